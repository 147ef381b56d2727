"""HTTP utilities for feedbrotr.

Provides a bounded GET that refuses bodies larger than a configured limit,
so a hostile or misconfigured media host cannot exhaust memory.

Note:
    This module sits in the ``utils`` layer and depends only on stdlib and
    ``aiohttp``. Timeouts are those of the ``aiohttp.ClientSession`` passed
    in; nothing here retries.
"""

from __future__ import annotations

import aiohttp


async def read_bounded(response: aiohttp.ClientResponse, max_size: int) -> bytes:
    """Read an entire response body, failing once it exceeds *max_size* bytes.

    Accumulates chunks until EOF, which also handles chunked
    transfer-encoding where a single read returns fewer bytes than asked.

    Raises:
        ValueError: If the response body exceeds *max_size*.
    """
    chunks: list[bytes] = []
    total = 0
    while True:
        chunk = await response.content.read(max_size + 1 - total)
        if not chunk:
            break
        total += len(chunk)
        if total > max_size:
            raise ValueError(f"Response body too large: >{max_size} bytes")
        chunks.append(chunk)
    return b"".join(chunks)


async def fetch_bytes(session: aiohttp.ClientSession, url: str, max_size: int) -> bytes:
    """GET *url* and return its body.

    A declared ``Content-Length`` above *max_size* is rejected before the
    body is read.

    Args:
        session: Open client session; its ``ClientTimeout`` applies.
        url: Absolute URL to fetch.
        max_size: Maximum allowed body size in bytes.

    Raises:
        aiohttp.ClientResponseError: On a non-2xx status.
        aiohttp.ClientError: On connection or protocol failures.
        TimeoutError: If the session timeout elapses.
        ValueError: If the body exceeds *max_size*.
    """
    async with session.get(url) as response:
        response.raise_for_status()
        if response.content_length is not None and response.content_length > max_size:
            raise ValueError(
                f"Response body too large: {response.content_length} > {max_size} bytes"
            )
        return await read_bounded(response, max_size)
