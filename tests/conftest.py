"""
Pytest configuration and shared fixtures for feedbrotr tests.

Provides:
- Mock fixtures for Pool, Brotr, and asyncpg
- Builders for raw stream payloads and envelopes
- A recording gateway and archiver for dispatcher tests
"""

from __future__ import annotations

import json
import logging
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from feedbrotr.core.brotr import Brotr
from feedbrotr.core.pool import DatabaseConfig, Pool, PoolConfig
from feedbrotr.models import Account, Envelope


# ============================================================================
# Logging Configuration
# ============================================================================


@pytest.fixture(scope="session", autouse=True)
def setup_logging() -> None:
    """Configure logging for tests."""
    logging.basicConfig(level=logging.DEBUG)


# ============================================================================
# Mock Fixtures
# ============================================================================


@pytest.fixture
def mock_connection() -> MagicMock:
    """Create a mock asyncpg connection."""
    conn = MagicMock()
    conn.fetchval = AsyncMock(return_value=True)
    conn.execute = AsyncMock(return_value="SELECT 1")
    return conn


@pytest.fixture
def mock_asyncpg_pool(mock_connection: MagicMock) -> MagicMock:
    """Create a mock asyncpg pool."""
    pool = MagicMock()
    pool.close = AsyncMock()

    mock_acquire = MagicMock()
    mock_acquire.__aenter__ = AsyncMock(return_value=mock_connection)
    mock_acquire.__aexit__ = AsyncMock(return_value=None)
    pool.acquire = MagicMock(return_value=mock_acquire)

    return pool


@pytest.fixture
def mock_pool(
    mock_asyncpg_pool: MagicMock, mock_connection: MagicMock, monkeypatch: pytest.MonkeyPatch
) -> Pool:
    """Create a Pool with mocked internals."""
    monkeypatch.setenv("DB_ADMIN_PASSWORD", "test_password")

    config = PoolConfig(
        database=DatabaseConfig(
            host="localhost",
            port=5432,
            database="test_db",
            user="test_user",
        )
    )
    pool = Pool(config=config, logger=MagicMock())
    pool._pool = mock_asyncpg_pool

    # Store mock connection for easy access in tests
    pool._mock_connection = mock_connection  # type: ignore[attr-defined]

    return pool


@pytest.fixture
def mock_brotr(mock_pool: Pool) -> Brotr:
    """Create a Brotr instance with mocked pool."""
    return Brotr(pool=mock_pool, logger=MagicMock())


@pytest.fixture
def gateway() -> MagicMock:
    """A Brotr stand-in recording every gateway call.

    ``insert_post`` reports a post as new the first time its id is seen,
    like the ``post_insert`` procedure does.
    """
    seen: set[int] = set()

    async def insert_post(post: Any, sequence_id: int) -> bool:
        if post.id in seen:
            return False
        seen.add(post.id)
        return True

    brotr = MagicMock(spec=Brotr)
    brotr.insert_message = AsyncMock()
    brotr.insert_post = AsyncMock(side_effect=insert_post)
    brotr.insert_account = AsyncMock()
    brotr.insert_follow = AsyncMock()
    brotr.mark_deleted = AsyncMock()
    return brotr


@pytest.fixture
def archiver() -> MagicMock:
    """A MediaArchiver stand-in whose ``schedule`` only records calls."""
    mock = MagicMock()
    mock.schedule = MagicMock()
    return mock


# ============================================================================
# Payload Builders
# ============================================================================


def user_payload(user_id: int, screen_name: str | None = None, *, protected: bool = False) -> dict:
    """Raw user object as delivered by the stream."""
    return {
        "id": user_id,
        "id_str": str(user_id),
        "screen_name": screen_name or f"user{user_id}",
        "name": f"User {user_id}",
        "protected": protected,
    }


def media_payload(media_id: int, *, source_status_id: int | None = None) -> dict:
    """Raw media entity."""
    item: dict[str, Any] = {
        "id": media_id,
        "id_str": str(media_id),
        "media_url": f"http://pbs.example.com/media/{media_id}.jpg",
        "media_url_https": f"https://pbs.example.com/media/{media_id}.jpg",
        "type": "photo",
    }
    if source_status_id is not None:
        item["source_status_id"] = source_status_id
    return item


def post_payload(post_id: int, user: dict | None = None, **extra: Any) -> dict:
    """Raw post object; *extra* keys are merged in verbatim."""
    payload = {
        "id": post_id,
        "id_str": str(post_id),
        "text": f"post {post_id}",
        "created_at": "Wed Oct 10 20:19:24 +0000 2018",
        "user": user or user_payload(1),
    }
    payload.update(extra)
    return payload


def make_envelope(payload: Any, sequence_id: int = 1, account: Account | None = None) -> Envelope:
    """Wrap *payload* (dict, str or bytes) into an envelope."""
    if isinstance(payload, dict):
        raw = json.dumps(payload).encode()
    elif isinstance(payload, str):
        raw = payload.encode()
    else:
        raw = payload
    return Envelope(
        account=account or Account(id=100, screen_name="home"),
        payload=raw,
        sequence_id=sequence_id,
    )
