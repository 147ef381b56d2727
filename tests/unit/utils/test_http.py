"""
Unit tests for utils.http module.

Tests:
- read_bounded() chunk accumulation and size limit
- fetch_bytes() status check and Content-Length precheck
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from feedbrotr.utils import fetch_bytes, read_bounded


def make_response(chunks: list[bytes], content_length: int | None = None) -> MagicMock:
    response = MagicMock()
    response.content.read = AsyncMock(side_effect=[*chunks, b""])
    response.content_length = content_length
    response.raise_for_status = MagicMock()
    return response


def make_session(response: MagicMock) -> MagicMock:
    ctx = MagicMock()
    ctx.__aenter__ = AsyncMock(return_value=response)
    ctx.__aexit__ = AsyncMock(return_value=None)
    session = MagicMock()
    session.get = MagicMock(return_value=ctx)
    return session


class TestReadBounded:
    async def test_joins_chunks(self):
        response = make_response([b"abc", b"def"])
        assert await read_bounded(response, 100) == b"abcdef"

    async def test_exact_limit_allowed(self):
        response = make_response([b"x" * 10])
        assert await read_bounded(response, 10) == b"x" * 10

    async def test_over_limit(self):
        response = make_response([b"x" * 6, b"x" * 6])
        with pytest.raises(ValueError, match="too large"):
            await read_bounded(response, 10)


class TestFetchBytes:
    async def test_returns_body(self):
        response = make_response([b"data"], content_length=4)
        session = make_session(response)

        assert await fetch_bytes(session, "https://example.com/a", 100) == b"data"
        session.get.assert_called_once_with("https://example.com/a")
        response.raise_for_status.assert_called_once()

    async def test_content_length_precheck(self):
        response = make_response([b"never read"], content_length=1000)

        with pytest.raises(ValueError, match="1000 > 100"):
            await fetch_bytes(make_session(response), "https://example.com/a", 100)

        response.content.read.assert_not_awaited()

    async def test_status_error_propagates(self):
        response = make_response([])
        response.raise_for_status.side_effect = RuntimeError("404")

        with pytest.raises(RuntimeError, match="404"):
            await fetch_bytes(make_session(response), "https://example.com/a", 100)
