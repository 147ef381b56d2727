"""
Media type detection and exclusive-create storage.

Archived media is written to ``{media_dir}/{media_id}.{extension}`` where
the extension comes from the byte signature of the content, never from the
URL or a server header. Files are created with mode ``"xb"``: if the
destination exists the write fails with ``FileExistsError``, so the same
media identifier is stored at most once and never overwritten.

Note:
    Like the rest of ``utils`` this module has no imports from
    ``feedbrotr.core``; callers translate the stdlib exceptions raised here
    into the [MediaError][feedbrotr.core.exceptions.MediaError] family.

See Also:
    [archive_media()][feedbrotr.services.ingestor.archiver.archive_media]:
        Fetches, detects and saves one media item.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import filetype


if TYPE_CHECKING:
    from pathlib import Path


def detect_media_type(data: bytes) -> str | None:
    """Return the file extension matching the byte signature of *data*.

    Detection is delegated to ``filetype``, which inspects at most the
    first 8 KiB.

    Returns:
        The extension without a leading dot, or ``None`` if no known
        signature matches.
    """
    if not data:
        return None
    kind = filetype.guess(data)
    return kind.extension if kind is not None else None


def save_media(data: bytes, media_id: int, extension: str, media_dir: Path) -> Path:
    """Write *data* to ``{media_dir}/{media_id}.{extension}``, creating it exclusively.

    The parent directory is created if missing. Blocking; call it through
    ``asyncio.to_thread`` from async code.

    Returns:
        The path of the written file.

    Raises:
        FileExistsError: If the destination already exists.
        OSError: On any other filesystem failure.
    """
    media_dir.mkdir(parents=True, exist_ok=True)
    path = media_dir / f"{media_id}.{extension}"
    with path.open("xb") as f:
        f.write(data)
    return path
