"""Utility functions for HTTP transport and media storage.

The utils layer has **zero** imports from ``feedbrotr.core`` or
``feedbrotr.services``; it depends only on the standard library, ``aiohttp``
and ``filetype``.

Attributes:
    fetch_bytes: Bounded HTTP GET. See [fetch_bytes][feedbrotr.utils.http.fetch_bytes].
    detect_media_type: Byte-signature media detection.
    save_media: Exclusive-create media write.
"""

from .http import fetch_bytes, read_bounded
from .media import detect_media_type, save_media


__all__ = [
    "detect_media_type",
    "fetch_bytes",
    "read_bounded",
    "save_media",
]
