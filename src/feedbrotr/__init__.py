r"""feedbrotr: social stream ingestion and archiving.

Ingests a continuous feed of stream events (posts, deletions, relationship
events, withholding notices) into PostgreSQL, dropping content whose
visibility is restricted, expanding embedded reposts and quotes exactly
once, and archiving attached media in the background.

Architecture follows a **diamond DAG** dependency structure where imports
flow strictly downward:

```text
             services          Ingestion loop, dispatcher, archiver
            /   |    \
        core  stream  utils    Infrastructure, payload decoding, HTTP/media
            \   |    /
             models            Pure frozen dataclasses (zero I/O)
```

Note:
    Top-level imports (``from feedbrotr import Post``) use lazy loading and
    resolve on first access.
"""

import importlib
from importlib.metadata import version as _get_version


__version__ = _get_version("feedbrotr")

__all__ = [
    "Account",
    "BaseService",
    "Brotr",
    "BrotrConfig",
    "Dispatcher",
    "Envelope",
    "Ingestor",
    "IngestorConfig",
    "Logger",
    "MediaArchiver",
    "MediaItem",
    "Pool",
    "PoolConfig",
    "Post",
    "decode_message",
    "is_restricted",
]

_LAZY_IMPORTS: dict[str, tuple[str, str]] = {
    "BaseService": ("feedbrotr.core", "BaseService"),
    "Brotr": ("feedbrotr.core", "Brotr"),
    "BrotrConfig": ("feedbrotr.core", "BrotrConfig"),
    "Logger": ("feedbrotr.core", "Logger"),
    "Pool": ("feedbrotr.core", "Pool"),
    "PoolConfig": ("feedbrotr.core", "PoolConfig"),
    "Account": ("feedbrotr.models", "Account"),
    "Envelope": ("feedbrotr.models", "Envelope"),
    "MediaItem": ("feedbrotr.models", "MediaItem"),
    "Post": ("feedbrotr.models", "Post"),
    "decode_message": ("feedbrotr.stream", "decode_message"),
    "Dispatcher": ("feedbrotr.services.ingestor", "Dispatcher"),
    "Ingestor": ("feedbrotr.services.ingestor", "Ingestor"),
    "IngestorConfig": ("feedbrotr.services.ingestor", "IngestorConfig"),
    "MediaArchiver": ("feedbrotr.services.ingestor", "MediaArchiver"),
    "is_restricted": ("feedbrotr.services.ingestor", "is_restricted"),
}


def __getattr__(name: str) -> object:
    if name in _LAZY_IMPORTS:
        module_path, attr_name = _LAZY_IMPORTS[name]
        module = importlib.import_module(module_path)
        value = getattr(module, attr_name)
        globals()[name] = value
        return value
    raise AttributeError(f"module 'feedbrotr' has no attribute {name!r}")


def __dir__() -> list[str]:
    return __all__
