"""
Message dispatch and deduplication-gated post expansion.

[Dispatcher.handle()][feedbrotr.services.ingestor.dispatcher.Dispatcher.handle]
is the single entry point for one envelope: decode, apply the visibility
filter, persist, and expand. It never raises for per-envelope failures;
every failing gateway call is logged with the envelope's sequence id and
abandons only its own sub-item.

Deduplication: a post identifier triggers author processing, media
scheduling and recursive expansion exactly once, the first time
[Brotr.insert_post()][feedbrotr.core.brotr.Brotr.insert_post] reports it as
new. The same repost arriving embedded in many feeds is expanded once.

See Also:
    [is_restricted()][feedbrotr.services.ingestor.visibility.is_restricted]:
        The visibility filter evaluated before any persistence call.
    [MediaArchiver][feedbrotr.services.ingestor.archiver.MediaArchiver]:
        Receives media to archive in the background.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import TYPE_CHECKING, Any, assert_never

import asyncpg

from feedbrotr.core.exceptions import DatabaseError
from feedbrotr.core.logger import Logger
from feedbrotr.models import (
    AccountWithheldNotice,
    EventKind,
    Post,
    PostDeletion,
    PostWithheldNotice,
    RelationshipEvent,
    UnknownMessage,
)
from feedbrotr.stream import decode_message

from .visibility import is_restricted


if TYPE_CHECKING:
    from feedbrotr.core.brotr import Brotr
    from feedbrotr.models import Account, Envelope

    from .archiver import MediaArchiver


# Gateway failures that abandon a sub-item. ConnectionError is an OSError.
_PERSISTENCE_ERRORS = (asyncpg.PostgresError, DatabaseError, OSError)


@dataclass(slots=True)
class DispatchCounters:
    """Outcome counts of one ingestion session.

    Attributes:
        messages: Envelopes handled.
        dropped: Envelopes dropped by the visibility filter.
        posts_new: Posts recorded for the first time.
        posts_duplicate: Posts already recorded (expansion skipped).
        failures: Gateway calls that failed.
        media_scheduled: Media archival tasks started.
    """

    messages: int = 0
    dropped: int = 0
    posts_new: int = 0
    posts_duplicate: int = 0
    failures: int = 0
    media_scheduled: int = 0

    def as_dict(self) -> dict[str, int]:
        return asdict(self)


class Dispatcher:
    """Routes decoded messages to the persistence gateway.

    Args:
        brotr: Persistence gateway.
        archiver: Open media archiver receiving scheduled media.
        logger: Structured logger for all dispatch events.
        rescan: Suppress media scheduling (replay of an ingested feed).
        max_depth: Deepest embedded post that is expanded; deeper embeds
            are skipped with a ``post_depth_exceeded`` warning.
    """

    def __init__(
        self,
        brotr: Brotr,
        archiver: MediaArchiver,
        *,
        logger: Logger | None = None,
        rescan: bool = False,
        max_depth: int = 8,
    ) -> None:
        self._brotr = brotr
        self._archiver = archiver
        self._logger = logger or Logger("dispatcher")
        self._rescan = rescan
        self._max_depth = max_depth
        self._counters = DispatchCounters()

    @property
    def counters(self) -> DispatchCounters:
        return self._counters

    async def handle(self, envelope: Envelope) -> None:
        """Decode, filter, persist and expand one envelope."""
        self._counters.messages += 1
        message = decode_message(envelope.payload)

        if is_restricted(message, self._logger):
            self._counters.dropped += 1
            self._logger.debug("protected_message_dropped", account=envelope.account.screen_name)
            return

        match message:
            case Post():
                if await self._insert_message(envelope, post=message.id):
                    await self.process_post(envelope, message)

            case PostDeletion():
                if not await self._insert_message(envelope, deletion=message.id):
                    return
                self._logger.debug("post_deleted", post=message.id, user=message.user_id)
                try:
                    await self._brotr.mark_deleted(message.id, envelope.sequence_id)
                except _PERSISTENCE_ERRORS as e:
                    self._failed("post_delete_failed", envelope, e, post=message.id)

            case RelationshipEvent():
                await self._handle_event(envelope, message)

            case PostWithheldNotice():
                await self._insert_message(envelope, post=message.id)
                self._logger.info(
                    "post_withheld",
                    post=message.id,
                    user=message.user_id,
                    countries=",".join(message.withheld_in_countries),
                )

            case AccountWithheldNotice():
                await self._insert_message(envelope, user=message.id)
                self._logger.info(
                    "account_withheld",
                    user=message.id,
                    countries=",".join(message.withheld_in_countries),
                )

            case UnknownMessage(reason=None):
                self._logger.warning(
                    "unhandled_message_type",
                    sequence_id=envelope.sequence_id,
                    type=message.type_name,
                )

            case UnknownMessage():
                self._logger.warning(
                    "decode_failed",
                    sequence_id=envelope.sequence_id,
                    type=message.type_name,
                    reason=message.reason,
                )

            case _:
                assert_never(message)

    async def _handle_event(self, envelope: Envelope, event: RelationshipEvent) -> None:
        if not await self._insert_message(envelope, event=event.event):
            return
        if event.source is not None:
            await self.process_account(envelope, event.source)
        if event.target is not None:
            await self.process_account(envelope, event.target)
        if event.target_object is not None:
            await self.process_post(envelope, event.target_object)
        if event.event == EventKind.FOLLOW and event.source is not None and event.target is not None:
            try:
                await self._brotr.insert_follow(
                    event.source.id, event.target.id, envelope.sequence_id
                )
            except _PERSISTENCE_ERRORS as e:
                self._failed(
                    "follow_insert_failed",
                    envelope,
                    e,
                    source=event.source.id,
                    target=event.target.id,
                )

    async def process_post(self, envelope: Envelope, post: Post, depth: int = 0) -> None:
        """Record *post* and, if it is new, its author, media and embedded posts.

        Args:
            envelope: The envelope the post arrived in.
            post: The post to record.
            depth: Nesting level of *post* below the top-level message.
        """
        try:
            is_new = await self._brotr.insert_post(post, envelope.sequence_id)
        except _PERSISTENCE_ERRORS as e:
            self._failed("post_insert_failed", envelope, e, post=post.id)
            return

        if not is_new:
            self._counters.posts_duplicate += 1
            return
        self._counters.posts_new += 1

        await self.process_account(envelope, post.user)

        media = post.effective_media()
        if media and not self._rescan:
            for item in media:
                # Derived media is archived from the post it was copied from.
                if item.is_derived:
                    continue
                self._archiver.schedule(item, post_id=post.id)
                self._counters.media_scheduled += 1

        for embedded in (post.retweeted_status, post.quoted_status):
            if embedded is None:
                continue
            if depth + 1 > self._max_depth:
                self._logger.warning(
                    "post_depth_exceeded",
                    sequence_id=envelope.sequence_id,
                    post=post.id,
                    embedded=embedded.id,
                    max_depth=self._max_depth,
                )
                continue
            await self.process_post(envelope, embedded, depth + 1)

    async def process_account(self, envelope: Envelope, account: Account) -> None:
        """Record *account*; no relationship side effects."""
        try:
            await self._brotr.insert_account(account, envelope.sequence_id)
        except _PERSISTENCE_ERRORS as e:
            self._failed("account_insert_failed", envelope, e, user=account.id)

    async def _insert_message(self, envelope: Envelope, **context: Any) -> bool:
        try:
            await self._brotr.insert_message(envelope)
        except _PERSISTENCE_ERRORS as e:
            self._failed("message_insert_failed", envelope, e, **context)
            return False
        return True

    def _failed(self, event: str, envelope: Envelope, error: Exception, **context: Any) -> None:
        self._counters.failures += 1
        self._logger.error(
            event,
            sequence_id=envelope.sequence_id,
            **context,
            error=str(error),
            error_type=type(error).__name__,
        )
