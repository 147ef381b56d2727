"""
Unit tests for services.ingestor.dispatcher module.

Tests:
- Routing of every message variant to the gateway
- Visibility filter applied before any gateway call
- Deduplication-gated expansion of post trees
- Media scheduling (precedence, derived media, rescan)
- Embedding depth bound
- Failure isolation and counters
"""

from unittest.mock import MagicMock

import asyncpg
import pytest

from feedbrotr.core.exceptions import ConnectionPoolError
from feedbrotr.services.ingestor import DispatchCounters, Dispatcher
from tests.conftest import make_envelope, media_payload, post_payload, user_payload


@pytest.fixture
def logger() -> MagicMock:
    return MagicMock()


@pytest.fixture
def dispatcher(gateway, archiver, logger) -> Dispatcher:
    return Dispatcher(gateway, archiver, logger=logger)


def inserted_post_ids(gateway) -> list[int]:
    return [c.args[0].id for c in gateway.insert_post.await_args_list]


def inserted_account_ids(gateway) -> list[int]:
    return [c.args[0].id for c in gateway.insert_account.await_args_list]


def scheduled_media_ids(archiver) -> list[int]:
    return [c.args[0].id for c in archiver.schedule.call_args_list]


def logged_events(mock_method) -> list[str]:
    return [c.args[0] for c in mock_method.call_args_list]


# ============================================================================
# Posts
# ============================================================================


class TestPosts:
    async def test_new_post(self, dispatcher, gateway, archiver):
        payload = post_payload(1, user_payload(10), entities={"media": [media_payload(500)]})
        envelope = make_envelope(payload, sequence_id=42)

        await dispatcher.handle(envelope)

        gateway.insert_message.assert_awaited_once_with(envelope)
        assert inserted_post_ids(gateway) == [1]
        assert gateway.insert_post.await_args_list[0].args[1] == 42
        gateway.insert_account.assert_awaited_once()
        assert gateway.insert_account.await_args.args[0].id == 10
        assert gateway.insert_account.await_args.args[1] == 42
        archiver.schedule.assert_called_once()
        assert archiver.schedule.call_args.kwargs == {"post_id": 1}
        gateway.mark_deleted.assert_not_awaited()
        gateway.insert_follow.assert_not_awaited()

    async def test_repost_with_quote(self, dispatcher, gateway, archiver):
        quoted = post_payload(3, user_payload(10), entities={"media": [media_payload(30)]})
        original = post_payload(
            2, user_payload(20), quoted_status=quoted, entities={"media": [media_payload(20)]}
        )
        payload = post_payload(1, user_payload(30), retweeted_status=original)

        await dispatcher.handle(make_envelope(payload))

        assert inserted_post_ids(gateway) == [1, 2, 3]
        assert inserted_account_ids(gateway) == [30, 20, 10]
        assert scheduled_media_ids(archiver) == [20, 30]
        gateway.mark_deleted.assert_not_awaited()
        gateway.insert_message.assert_awaited_once()

    async def test_post_with_repost_and_quote_side_by_side(self, dispatcher, gateway):
        payload = post_payload(
            1,
            retweeted_status=post_payload(2, user_payload(2)),
            quoted_status=post_payload(3, user_payload(3)),
        )

        await dispatcher.handle(make_envelope(payload))

        assert inserted_post_ids(gateway) == [1, 2, 3]

    async def test_duplicate_post_not_expanded(self, dispatcher, gateway, archiver):
        payload = post_payload(
            1,
            retweeted_status=post_payload(2, user_payload(2)),
            entities={"media": [media_payload(7)]},
        )

        await dispatcher.handle(make_envelope(payload, sequence_id=1))
        gateway.insert_account.reset_mock()
        archiver.schedule.reset_mock()

        await dispatcher.handle(make_envelope(payload, sequence_id=2))

        assert inserted_post_ids(gateway) == [1, 2, 1]
        gateway.insert_account.assert_not_awaited()
        archiver.schedule.assert_not_called()
        assert gateway.insert_message.await_count == 2

    async def test_shared_repost_expanded_once_across_envelopes(
        self, dispatcher, gateway, archiver
    ):
        original = post_payload(99, user_payload(9), entities={"media": [media_payload(900)]})
        first = post_payload(10, user_payload(1), retweeted_status=original)
        second = post_payload(11, user_payload(2), retweeted_status=original)

        await dispatcher.handle(make_envelope(first, sequence_id=1))
        await dispatcher.handle(make_envelope(second, sequence_id=2))

        assert inserted_post_ids(gateway) == [10, 99, 11, 99]
        assert inserted_account_ids(gateway) == [1, 9, 2]
        assert scheduled_media_ids(archiver) == [900]
        assert dispatcher.counters.posts_new == 3
        assert dispatcher.counters.posts_duplicate == 1

    async def test_extended_media_precedence(self, dispatcher, archiver):
        payload = post_payload(
            1,
            entities={"media": [media_payload(1)]},
            extended_entities={"media": [media_payload(1), media_payload(2)]},
            extended_tweet={
                "full_text": "long",
                "extended_entities": {
                    "media": [media_payload(3), media_payload(4), media_payload(5)]
                },
            },
        )

        await dispatcher.handle(make_envelope(payload))

        assert scheduled_media_ids(archiver) == [3, 4, 5]

    async def test_derived_media_never_scheduled(self, dispatcher, archiver):
        payload = post_payload(
            1,
            extended_entities={
                "media": [media_payload(1, source_status_id=77), media_payload(2)]
            },
        )

        await dispatcher.handle(make_envelope(payload))

        assert scheduled_media_ids(archiver) == [2]
        assert dispatcher.counters.media_scheduled == 1

    async def test_rescan_suppresses_media(self, gateway, archiver, logger):
        dispatcher = Dispatcher(gateway, archiver, logger=logger, rescan=True)
        payload = post_payload(1, entities={"media": [media_payload(1)]})

        await dispatcher.handle(make_envelope(payload))

        archiver.schedule.assert_not_called()
        gateway.insert_account.assert_awaited_once()

    async def test_depth_bound(self, gateway, archiver, logger):
        dispatcher = Dispatcher(gateway, archiver, logger=logger, max_depth=1)
        innermost = post_payload(3, user_payload(3))
        middle = post_payload(2, user_payload(2), retweeted_status=innermost)
        payload = post_payload(1, user_payload(1), retweeted_status=middle)

        await dispatcher.handle(make_envelope(payload, sequence_id=5))

        assert inserted_post_ids(gateway) == [1, 2]
        logger.warning.assert_called_once_with(
            "post_depth_exceeded", sequence_id=5, post=2, embedded=3, max_depth=1
        )


# ============================================================================
# Visibility
# ============================================================================


class TestVisibility:
    async def test_protected_post_dropped(self, dispatcher, gateway, archiver, logger):
        payload = post_payload(
            1, user_payload(5, "locked", protected=True), entities={"media": [media_payload(1)]}
        )

        await dispatcher.handle(make_envelope(payload))

        gateway.insert_message.assert_not_awaited()
        gateway.insert_post.assert_not_awaited()
        gateway.insert_account.assert_not_awaited()
        archiver.schedule.assert_not_called()
        logger.debug.assert_called_once_with("protected_message_dropped", account="home")
        assert dispatcher.counters.dropped == 1

    async def test_restricted_event_dropped(self, dispatcher, gateway):
        payload = {"event": "block", "source": user_payload(1), "target": user_payload(2)}

        await dispatcher.handle(make_envelope(payload))

        gateway.insert_message.assert_not_awaited()
        gateway.insert_account.assert_not_awaited()

    async def test_event_with_protected_target_dropped(self, dispatcher, gateway):
        payload = {
            "event": "follow",
            "source": user_payload(1),
            "target": user_payload(2, protected=True),
        }

        await dispatcher.handle(make_envelope(payload))

        gateway.insert_message.assert_not_awaited()
        gateway.insert_follow.assert_not_awaited()

    async def test_unknown_event_kind_dropped(self, dispatcher, gateway, logger):
        payload = {"event": "access_revoked", "source": user_payload(1)}

        await dispatcher.handle(make_envelope(payload))

        gateway.insert_message.assert_not_awaited()
        logger.warning.assert_called_once_with("unknown_event_kind", event="access_revoked")


# ============================================================================
# Other Variants
# ============================================================================


class TestEvents:
    async def test_follow(self, dispatcher, gateway):
        payload = {"event": "follow", "source": user_payload(1), "target": user_payload(2)}
        envelope = make_envelope(payload, sequence_id=8)

        await dispatcher.handle(envelope)

        gateway.insert_message.assert_awaited_once_with(envelope)
        assert inserted_account_ids(gateway) == [1, 2]
        gateway.insert_follow.assert_awaited_once_with(1, 2, 8)
        gateway.insert_post.assert_not_awaited()

    async def test_unfollow_records_accounts_only(self, dispatcher, gateway):
        payload = {"event": "unfollow", "source": user_payload(1), "target": user_payload(2)}

        await dispatcher.handle(make_envelope(payload))

        assert inserted_account_ids(gateway) == [1, 2]
        gateway.insert_follow.assert_not_awaited()

    async def test_favorite_expands_target_post(self, dispatcher, gateway, archiver):
        payload = {
            "event": "favorite",
            "source": user_payload(1),
            "target": user_payload(2),
            "target_object": post_payload(
                50, user_payload(2), entities={"media": [media_payload(5)]}
            ),
        }

        await dispatcher.handle(make_envelope(payload))

        assert inserted_post_ids(gateway) == [50]
        assert inserted_account_ids(gateway) == [1, 2, 2]
        assert scheduled_media_ids(archiver) == [5]

    async def test_follow_failure_logged(self, dispatcher, gateway, logger):
        gateway.insert_follow.side_effect = asyncpg.PostgresError("fk violation")
        payload = {"event": "follow", "source": user_payload(1), "target": user_payload(2)}

        await dispatcher.handle(make_envelope(payload, sequence_id=3))

        assert logged_events(logger.error) == ["follow_insert_failed"]
        kwargs = logger.error.call_args.kwargs
        assert kwargs["sequence_id"] == 3
        assert kwargs["source"] == 1
        assert kwargs["target"] == 2
        assert kwargs["error_type"] == "PostgresError"


class TestDeletionAndNotices:
    async def test_deletion(self, dispatcher, gateway, logger):
        envelope = make_envelope({"delete": {"status": {"id": 5, "user_id": 6}}}, sequence_id=4)

        await dispatcher.handle(envelope)

        gateway.insert_message.assert_awaited_once_with(envelope)
        gateway.mark_deleted.assert_awaited_once_with(5, 4)
        logger.debug.assert_called_once_with("post_deleted", post=5, user=6)

    async def test_deletion_skipped_when_message_insert_fails(self, dispatcher, gateway, logger):
        gateway.insert_message.side_effect = ConnectionPoolError("pool exhausted")

        await dispatcher.handle(make_envelope({"delete": {"status": {"id": 5, "user_id": 6}}}))

        gateway.mark_deleted.assert_not_awaited()
        assert logged_events(logger.error) == ["message_insert_failed"]
        assert logger.error.call_args.kwargs["deletion"] == 5

    async def test_mark_deleted_failure_logged(self, dispatcher, gateway, logger):
        gateway.mark_deleted.side_effect = asyncpg.PostgresError("boom")

        await dispatcher.handle(make_envelope({"delete": {"status": {"id": 5, "user_id": 6}}}))

        assert logged_events(logger.error) == ["post_delete_failed"]
        assert dispatcher.counters.failures == 1

    async def test_post_withheld(self, dispatcher, gateway, logger):
        payload = {"status_withheld": {"id": 1, "user_id": 2, "withheld_in_countries": ["DE", "FR"]}}

        await dispatcher.handle(make_envelope(payload))

        gateway.insert_message.assert_awaited_once()
        gateway.insert_post.assert_not_awaited()
        logger.info.assert_called_once_with("post_withheld", post=1, user=2, countries="DE,FR")

    async def test_account_withheld(self, dispatcher, gateway, logger):
        payload = {"user_withheld": {"id": 3, "withheld_in_countries": ["TR"]}}

        await dispatcher.handle(make_envelope(payload))

        gateway.insert_message.assert_awaited_once()
        logger.info.assert_called_once_with("account_withheld", user=3, countries="TR")

    async def test_unhandled_type(self, dispatcher, gateway, logger):
        await dispatcher.handle(make_envelope({"friends": [1, 2]}, sequence_id=6))

        gateway.insert_message.assert_not_awaited()
        logger.warning.assert_called_once_with(
            "unhandled_message_type", sequence_id=6, type="friends"
        )

    async def test_undecodable_payload(self, dispatcher, gateway, logger):
        await dispatcher.handle(make_envelope(b"{broken", sequence_id=7))

        gateway.insert_message.assert_not_awaited()
        assert logged_events(logger.warning) == ["decode_failed"]
        kwargs = logger.warning.call_args.kwargs
        assert kwargs["sequence_id"] == 7
        assert kwargs["type"] == "invalid_json"
        assert kwargs["reason"]

    async def test_deeply_nested_payload_does_not_stop_feed(self, dispatcher, gateway, logger):
        deep = b"[" * 100_000 + b"]" * 100_000

        await dispatcher.handle(make_envelope(deep, sequence_id=7))
        await dispatcher.handle(make_envelope(post_payload(1), sequence_id=8))

        assert logged_events(logger.warning) == ["decode_failed"]
        assert logger.warning.call_args.kwargs["type"] == "invalid_json"
        assert inserted_post_ids(gateway) == [1]


# ============================================================================
# Failure Isolation
# ============================================================================


class TestFailureIsolation:
    async def test_message_insert_failure_stops_envelope(self, dispatcher, gateway, logger):
        gateway.insert_message.side_effect = OSError("connection reset")

        await dispatcher.handle(make_envelope(post_payload(1)))

        gateway.insert_post.assert_not_awaited()
        assert logged_events(logger.error) == ["message_insert_failed"]

    async def test_post_insert_failure_skips_subtree(self, dispatcher, gateway, archiver, logger):
        gateway.insert_post.side_effect = ConnectionPoolError("down")
        payload = post_payload(
            1, retweeted_status=post_payload(2), entities={"media": [media_payload(1)]}
        )

        await dispatcher.handle(make_envelope(payload))

        gateway.insert_post.assert_awaited_once()
        gateway.insert_account.assert_not_awaited()
        archiver.schedule.assert_not_called()
        assert logged_events(logger.error) == ["post_insert_failed"]
        assert logger.error.call_args.kwargs["post"] == 1

    async def test_account_failure_does_not_stop_expansion(
        self, dispatcher, gateway, archiver, logger
    ):
        gateway.insert_account.side_effect = asyncpg.PostgresError("deadlock")
        payload = post_payload(
            1,
            user_payload(10),
            retweeted_status=post_payload(2, user_payload(20)),
            entities={"media": [media_payload(1)]},
        )

        await dispatcher.handle(make_envelope(payload))

        assert inserted_post_ids(gateway) == [1, 2]
        assert scheduled_media_ids(archiver) == [1]
        assert logged_events(logger.error) == ["account_insert_failed", "account_insert_failed"]
        assert [c.kwargs["user"] for c in logger.error.call_args_list] == [10, 20]
        assert dispatcher.counters.failures == 2

    async def test_unexpected_error_propagates(self, dispatcher, gateway):
        gateway.insert_message.side_effect = RuntimeError("bug")

        with pytest.raises(RuntimeError, match="bug"):
            await dispatcher.handle(make_envelope(post_payload(1)))


class TestCounters:
    async def test_counts(self, dispatcher, gateway):
        await dispatcher.handle(make_envelope(post_payload(1)))
        await dispatcher.handle(make_envelope(post_payload(1)))
        await dispatcher.handle(make_envelope(post_payload(2, user_payload(3, protected=True))))

        assert dispatcher.counters == DispatchCounters(
            messages=3, dropped=1, posts_new=1, posts_duplicate=1
        )

    def test_as_dict(self):
        counters = DispatchCounters(messages=2, failures=1)
        assert counters.as_dict() == {
            "messages": 2,
            "dropped": 0,
            "posts_new": 0,
            "posts_duplicate": 0,
            "failures": 1,
            "media_scheduled": 0,
        }

    def test_default_logger(self, gateway, archiver):
        dispatcher = Dispatcher(gateway, archiver)
        assert dispatcher.counters == DispatchCounters()


async def test_envelopes_persisted_in_feed_order(dispatcher, gateway):
    envelopes = [make_envelope(post_payload(i), sequence_id=i) for i in (3, 1, 2)]

    for envelope in envelopes:
        await dispatcher.handle(envelope)

    assert [c.args[0].sequence_id for c in gateway.insert_message.await_args_list] == [3, 1, 2]
