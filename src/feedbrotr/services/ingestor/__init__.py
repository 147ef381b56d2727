"""Ingestor service package.

Re-exports all public symbols::

    from feedbrotr.services.ingestor import Ingestor, IngestorConfig, Dispatcher
"""

from .archiver import MediaArchiver, archive_media
from .configs import FeedConfig, IngestorConfig, MediaConfig, ProcessingConfig
from .dispatcher import DispatchCounters, Dispatcher
from .feed import FeedSource, JsonLinesFeed, QueueFeed, parse_envelope_line
from .service import Ingestor
from .visibility import is_restricted


__all__ = [
    "DispatchCounters",
    "Dispatcher",
    "FeedConfig",
    "FeedSource",
    "Ingestor",
    "IngestorConfig",
    "JsonLinesFeed",
    "MediaArchiver",
    "MediaConfig",
    "ProcessingConfig",
    "QueueFeed",
    "archive_media",
    "is_restricted",
    "parse_envelope_line",
]
