"""Ingestor service for feedbrotr.

Consumes a feed of envelopes strictly in order, handing each one to a
[Dispatcher][feedbrotr.services.ingestor.dispatcher.Dispatcher] and
awaiting it before taking the next. Media archival is the only concurrent
activity: it runs in background tasks owned by a
[MediaArchiver][feedbrotr.services.ingestor.archiver.MediaArchiver] that
is drained before a cycle returns, so shutdown never abandons a download.

One [run()][feedbrotr.services.ingestor.Ingestor.run] is one feed session.
[run_forever()][feedbrotr.core.base_service.BaseService.run_forever]
reopens the feed every ``interval`` seconds; a
[JsonLinesFeed][feedbrotr.services.ingestor.feed.JsonLinesFeed] resumes
where the previous session stopped.

Examples:
    ```python
    from feedbrotr.core import Brotr
    from feedbrotr.services import Ingestor

    brotr = Brotr.from_yaml("config/brotr.yaml")
    ingestor = Ingestor.from_yaml("config/services/ingestor.yaml", brotr=brotr)

    async with brotr:
        async with ingestor:
            await ingestor.run_forever()
    ```
"""

from __future__ import annotations

import time
from typing import TYPE_CHECKING, ClassVar

from feedbrotr.core.base_service import BaseService
from feedbrotr.core.exceptions import ConfigurationError
from feedbrotr.models.constants import ServiceName

from .archiver import MediaArchiver
from .configs import IngestorConfig
from .dispatcher import Dispatcher
from .feed import FeedSource, JsonLinesFeed


if TYPE_CHECKING:
    from feedbrotr.core.brotr import Brotr
    from feedbrotr.core.logger import Logger


class Ingestor(BaseService[IngestorConfig]):
    """Stream ingestion service.

    Args:
        brotr: Persistence gateway.
        config: Service configuration.
        feed: Envelope source. When omitted, a
            [JsonLinesFeed][feedbrotr.services.ingestor.feed.JsonLinesFeed]
            is opened on ``config.feed.path``.
        logger: Structured logger shared with the dispatcher and archiver.
    """

    SERVICE_NAME: ClassVar[ServiceName] = ServiceName.INGESTOR
    CONFIG_CLASS: ClassVar[type[IngestorConfig]] = IngestorConfig

    def __init__(
        self,
        brotr: Brotr,
        config: IngestorConfig | None = None,
        *,
        feed: FeedSource | None = None,
        logger: Logger | None = None,
    ) -> None:
        super().__init__(brotr, config, logger=logger)
        self._feed = feed

    def _open_feed(self) -> FeedSource:
        if self._feed is None:
            path = self._config.feed.path
            if path is None:
                raise ConfigurationError("no feed configured: set feed.path or pass a feed")
            self._feed = JsonLinesFeed(path, logger=self._logger)
        return self._feed

    async def run(self) -> None:
        """Consume one feed session, then wait for all media archival to finish."""
        feed = self._open_feed()
        processing = self._config.processing
        self._logger.info("cycle_started", rescan=processing.rescan)
        start = time.monotonic()

        async with MediaArchiver(
            self._config.media, logger=self._logger.bind(component="archiver")
        ) as archiver:
            dispatcher = Dispatcher(
                self._brotr,
                archiver,
                logger=self._logger,
                rescan=processing.rescan,
                max_depth=processing.max_depth,
            )
            async for envelope in feed:
                await dispatcher.handle(envelope)
                if not self.is_running:
                    self._logger.info("shutdown_requested", sequence_id=envelope.sequence_id)
                    break

        counters = dispatcher.counters.as_dict()
        for name, value in counters.items():
            self.set_gauge(name, value)
            self.inc_counter(f"total_{name}", value)
        self._logger.info(
            "cycle_completed", duration=round(time.monotonic() - start, 2), **counters
        )
