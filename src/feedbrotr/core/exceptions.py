"""feedbrotr exception hierarchy.

Provides typed exceptions for the error categories of the ingestion
pipeline, so callers catch what they can handle and let
``CancelledError`` propagate untouched.

Exception hierarchy:

```text
FeedBrotrError (base, never raised directly)
├── ConfigurationError       config validation, missing keys, bad YAML
├── DatabaseError            pool/brotr failures
│   └── ConnectionPoolError  transient: pool exhausted, network blip
├── DecodeError              feed line or payload could not be parsed
└── MediaError               media archival failures
    ├── MediaFetchError      network failure while fetching bytes
    ├── MediaFormatError     byte signature not recognised
    └── MediaConflictError   destination file already exists
```

See Also:
    [Pool][feedbrotr.core.pool.Pool]: Raises
        [ConnectionPoolError][feedbrotr.core.exceptions.ConnectionPoolError]
        on transient connection failures.
    [archive_media()][feedbrotr.services.ingestor.archiver.archive_media]: Raises the
        [MediaError][feedbrotr.core.exceptions.MediaError] family.
    [BaseService][feedbrotr.core.base_service.BaseService]: Catches all
        [FeedBrotrError][feedbrotr.core.exceptions.FeedBrotrError] subclasses
        in the
        [run_forever()][feedbrotr.core.base_service.BaseService.run_forever]
        loop.
"""

from __future__ import annotations


class FeedBrotrError(Exception):
    """Base exception for all feedbrotr errors.

    Never raised directly, always use a specific subclass.
    """


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


class ConfigurationError(FeedBrotrError):
    """Invalid or missing configuration (YAML, env vars, CLI flags).

    See Also:
        [load_yaml()][feedbrotr.core.yaml.load_yaml]: YAML loading function
            that may trigger configuration errors.
    """


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------


class DatabaseError(FeedBrotrError):
    """Base for all database-related errors."""


class ConnectionPoolError(DatabaseError):
    """Transient database error: pool exhausted, connection refused, network blip.

    Callers may retry after a backoff.
    """


# ---------------------------------------------------------------------------
# Decoding
# ---------------------------------------------------------------------------


class DecodeError(FeedBrotrError):
    """A feed line or payload could not be parsed into a typed value.

    See Also:
        [JsonLinesFeed][feedbrotr.services.ingestor.feed.JsonLinesFeed]:
            Raises it for malformed lines and skips them.
    """


# ---------------------------------------------------------------------------
# Media
# ---------------------------------------------------------------------------


class MediaError(FeedBrotrError):
    """Base for media archival failures.

    Every subclass aborts only the media item being archived.
    """


class MediaFetchError(MediaError):
    """The media bytes could not be retrieved (HTTP error, timeout, oversize)."""


class MediaFormatError(MediaError):
    """The byte signature of the media does not match any known format."""


class MediaConflictError(MediaError):
    """The destination file already exists; the media was archived before."""
