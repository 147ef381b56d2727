"""Ingestor service configuration models.

See Also:
    [Ingestor][feedbrotr.services.ingestor.Ingestor]: The service class that
        consumes these configurations.
    [BaseServiceConfig][feedbrotr.core.base_service.BaseServiceConfig]:
        Base class providing ``interval``, ``max_consecutive_failures``,
        and ``metrics`` fields.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, Field

from feedbrotr.core.base_service import BaseServiceConfig


_MIB = 1024 * 1024


class FeedConfig(BaseModel):
    """Where the ingestor reads envelopes from.

    See Also:
        [JsonLinesFeed][feedbrotr.services.ingestor.feed.JsonLinesFeed]:
            The feed opened from ``path``.
    """

    path: Path | None = Field(
        default=None,
        description="JSON-lines feed file (None = envelopes are supplied programmatically)",
    )


class MediaConfig(BaseModel):
    """Media archival settings.

    See Also:
        [MediaArchiver][feedbrotr.services.ingestor.archiver.MediaArchiver]:
            Consumes this configuration.
    """

    directory: Path = Field(default=Path("media"), description="Archive directory")
    max_concurrent: int = Field(
        default=8, ge=1, le=256, description="Concurrent media downloads"
    )
    max_size: int = Field(
        default=64 * _MIB, ge=1024, description="Maximum media size in bytes"
    )
    timeout: float = Field(
        default=60.0, ge=1.0, le=3600.0, description="Total HTTP timeout per media item"
    )


class ProcessingConfig(BaseModel):
    """Dispatch behaviour.

    Note:
        ``rescan`` is set when replaying a feed that was already ingested:
        every post is then a duplicate or its media is already on disk, so
        media scheduling is suppressed.
    """

    rescan: bool = Field(default=False, description="Suppress media archival")
    max_depth: int = Field(
        default=8, ge=1, le=64, description="Maximum nesting of embedded posts"
    )


class IngestorConfig(BaseServiceConfig):
    """Ingestor service configuration.

    See Also:
        [Ingestor][feedbrotr.services.ingestor.Ingestor]: The service class
            that consumes this configuration.
    """

    feed: FeedConfig = Field(default_factory=FeedConfig)
    media: MediaConfig = Field(default_factory=MediaConfig)
    processing: ProcessingConfig = Field(default_factory=ProcessingConfig)
