"""
Fire-and-forget media archival beside the ingestion path.

[MediaArchiver.schedule()][feedbrotr.services.ingestor.archiver.MediaArchiver.schedule]
starts one task per media item and returns at once; the dispatcher never
awaits or inspects the outcome. Tasks share no mutable state (each writes a
distinct file) and are bounded by a semaphore so a burst of media does not
open an unbounded number of outbound connections.

All tasks are tracked in a set that acts as the shutdown barrier:
[wait_closed()][feedbrotr.services.ingestor.archiver.MediaArchiver.wait_closed]
waits for every in-flight task to finish. Tasks are never cancelled.

See Also:
    [archive_media()][feedbrotr.services.ingestor.archiver.archive_media]:
        The unit of work of each task.
    [MediaConfig][feedbrotr.services.ingestor.configs.MediaConfig]:
        Directory, concurrency, size and timeout settings.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import TYPE_CHECKING, Any

import aiohttp

from feedbrotr.core.exceptions import (
    MediaConflictError,
    MediaFetchError,
    MediaFormatError,
)
from feedbrotr.core.logger import Logger
from feedbrotr.core.metrics import MEDIA_ARCHIVE_TOTAL, MEDIA_IN_FLIGHT
from feedbrotr.utils.http import fetch_bytes
from feedbrotr.utils.media import detect_media_type, save_media


if TYPE_CHECKING:
    from feedbrotr.models import MediaItem

    from .configs import MediaConfig


async def archive_media(
    session: aiohttp.ClientSession,
    item: MediaItem,
    media_dir: Path,
    max_size: int,
) -> Path:
    """Fetch, identify and store one media item.

    Steps: bounded GET of ``item.media_url``, byte-signature detection,
    exclusive create of ``{media_dir}/{item.id}.{ext}``. Nothing is retried
    and the only timeout is the one of *session*.

    Returns:
        The path of the stored file.

    Raises:
        MediaFetchError: If the bytes could not be retrieved.
        MediaFormatError: If the content type is not recognised.
        MediaConflictError: If the media was already archived.
        OSError: On other filesystem failures.
    """
    try:
        data = await fetch_bytes(session, item.media_url, max_size)
    except (aiohttp.ClientError, TimeoutError, ValueError) as e:
        raise MediaFetchError(f"{item.media_url}: {e}") from e

    extension = detect_media_type(data)
    if extension is None:
        raise MediaFormatError(f"unrecognised media signature {data[:8].hex() or '<empty>'}")

    try:
        return await asyncio.to_thread(save_media, data, item.id, extension, media_dir)
    except FileExistsError as e:
        raise MediaConflictError(f"{media_dir / f'{item.id}.{extension}'} already exists") from e


def _outcome(error: BaseException) -> str:
    match error:
        case MediaConflictError():
            return "conflict"
        case MediaFormatError():
            return "unknown_format"
        case MediaFetchError():
            return "fetch_failed"
        case _:
            return "error"


class MediaArchiver:
    """Owner of the background media archival tasks.

    Use as an async context manager: entering opens the
    ``aiohttp.ClientSession`` (unless one is injected), exiting waits for
    all in-flight tasks and then closes the session.

    Examples:
        ```python
        async with MediaArchiver(config.media, logger=logger) as archiver:
            archiver.schedule(item, post_id=post.id)
        # every scheduled archival has finished here
        ```
    """

    def __init__(
        self,
        config: MediaConfig,
        *,
        logger: Logger | None = None,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        self._config = config
        self._logger = logger or Logger("archiver")
        self._session = session
        self._owns_session = session is None
        self._semaphore = asyncio.Semaphore(config.max_concurrent)
        self._tasks: set[asyncio.Task[None]] = set()
        self._scheduled = 0

    @property
    def pending(self) -> int:
        """Number of archival tasks not finished yet."""
        return len(self._tasks)

    @property
    def scheduled(self) -> int:
        """Number of archival tasks started since construction."""
        return self._scheduled

    def schedule(self, item: MediaItem, post_id: int) -> asyncio.Task[None]:
        """Start archiving *item* in the background and return immediately.

        Args:
            item: The media to archive.
            post_id: The post the media is attached to (for logging).

        Raises:
            RuntimeError: If the archiver is not open.
        """
        if self._session is None:
            raise RuntimeError("MediaArchiver is not open. Use 'async with'.")
        task = asyncio.create_task(self._archive(item, post_id), name=f"media-{item.id}")
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        self._scheduled += 1
        MEDIA_IN_FLIGHT.inc()
        return task

    async def _archive(self, item: MediaItem, post_id: int) -> None:
        session = self._session
        assert session is not None  # noqa: S101
        try:
            async with self._semaphore:
                path = await archive_media(
                    session, item, self._config.directory, self._config.max_size
                )
        except Exception as e:  # background task boundary: nothing awaits this task
            self._report_failure(item, post_id, e)
        else:
            MEDIA_ARCHIVE_TOTAL.labels(outcome="archived").inc()
            self._logger.debug("media_archived", media=item.id, post=post_id, path=str(path))
        finally:
            MEDIA_IN_FLIGHT.dec()

    def _report_failure(self, item: MediaItem, post_id: int, error: Exception) -> None:
        MEDIA_ARCHIVE_TOTAL.labels(outcome=_outcome(error)).inc()
        self._logger.error(
            "media_archive_failed",
            media=item.id,
            url=item.media_url,
            post=post_id,
            error=str(error),
            error_type=type(error).__name__,
        )

    async def wait_closed(self) -> None:
        """Wait until every scheduled task, including ones started meanwhile, has finished."""
        while self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)

    async def __aenter__(self) -> MediaArchiver:
        if self._session is None:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self._config.timeout)
            )
        return self

    async def __aexit__(self, *_exc: Any) -> None:
        try:
            if self._tasks:
                self._logger.info("media_draining", pending=len(self._tasks))
            await self.wait_closed()
        finally:
            if self._owns_session and self._session is not None:
                await self._session.close()
                self._session = None
