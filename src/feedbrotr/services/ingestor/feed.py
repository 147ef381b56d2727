"""
Feed sources: ordered async streams of envelopes.

The ingestor consumes any async iterable of
[Envelope][feedbrotr.models.messages.Envelope]s in order, one at a time.
Two sources are provided:

- [QueueFeed][feedbrotr.services.ingestor.feed.QueueFeed]: in-process
  channel for embedding the ingestor behind another transport.
- [JsonLinesFeed][feedbrotr.services.ingestor.feed.JsonLinesFeed]: a
  JSON-lines file, one envelope per line, read like ``tail``: each pass
  resumes after the last complete line of the previous pass.

JSON-lines envelope format:

```json
{"sequence_id": 17, "account": {"id": 12, "screen_name": "jack"}, "payload": {...}}
```

``payload`` is either the stream object itself or its JSON text.
"""

from __future__ import annotations

import asyncio
import json
from typing import TYPE_CHECKING, Any, Protocol

from feedbrotr.core.exceptions import DecodeError
from feedbrotr.core.logger import Logger
from feedbrotr.models import Envelope
from feedbrotr.stream import decode_account


if TYPE_CHECKING:
    from collections.abc import AsyncIterator
    from pathlib import Path


class FeedSource(Protocol):
    """An ordered async stream of envelopes."""

    def __aiter__(self) -> AsyncIterator[Envelope]: ...


class QueueFeed:
    """Feed backed by an ``asyncio.Queue``.

    Producers ``put()`` envelopes; ``close()`` ends iteration once the
    envelopes already queued have been consumed.

    Examples:
        ```python
        feed = QueueFeed()
        await feed.put(envelope)
        feed.close()
        async for envelope in feed:
            ...
        ```
    """

    def __init__(self, maxsize: int = 0) -> None:
        self._queue: asyncio.Queue[Envelope | None] = asyncio.Queue(maxsize)

    async def put(self, envelope: Envelope) -> None:
        await self._queue.put(envelope)

    def close(self) -> None:
        self._queue.put_nowait(None)

    async def __aiter__(self) -> AsyncIterator[Envelope]:
        while True:
            envelope = await self._queue.get()
            if envelope is None:
                return
            yield envelope


def parse_envelope_line(line: str) -> Envelope:
    """Parse one JSON-lines record into an envelope.

    Raises:
        DecodeError: If the line is not a valid envelope record.
    """
    try:
        record: Any = json.loads(line)
    except (RecursionError, ValueError) as e:
        raise DecodeError(f"invalid JSON: {e}") from e
    if not isinstance(record, dict):
        raise DecodeError("record is not a JSON object")

    sequence_id = record.get("sequence_id")
    account = record.get("account")
    payload = record.get("payload")
    if isinstance(sequence_id, bool) or not isinstance(sequence_id, int):
        raise DecodeError("sequence_id must be an integer")
    if not isinstance(account, dict):
        raise DecodeError("account must be an object")

    if isinstance(payload, dict):
        try:
            raw = json.dumps(payload, ensure_ascii=False, separators=(",", ":")).encode()
        except RecursionError as e:
            raise DecodeError(f"payload nested too deeply: {e}") from e
    elif isinstance(payload, str):
        raw = payload.encode()
    else:
        raise DecodeError("payload must be an object or a string")

    try:
        return Envelope(account=decode_account(account), payload=raw, sequence_id=sequence_id)
    except (TypeError, ValueError) as e:
        raise DecodeError(str(e)) from e


class JsonLinesFeed:
    """Feed reading envelopes from a JSON-lines file.

    Each iteration reads the lines appended since the previous one, so
    [run_forever()][feedbrotr.core.base_service.BaseService.run_forever]
    polls the file every ``interval`` seconds. An unterminated last line is
    left for the next pass. Malformed lines are logged as
    ``feed_line_invalid`` warnings and skipped.
    """

    def __init__(self, path: Path, *, logger: Logger | None = None) -> None:
        self._path = path
        self._logger = logger or Logger("feed")
        self._offset = 0
        self._line_number = 0

    @property
    def path(self) -> Path:
        return self._path

    async def __aiter__(self) -> AsyncIterator[Envelope]:
        with self._path.open("rb") as f:
            await asyncio.to_thread(f.seek, self._offset)
            while True:
                raw = await asyncio.to_thread(f.readline)
                if not raw.endswith(b"\n"):
                    return
                self._offset += len(raw)
                self._line_number += 1
                line = raw.decode("utf-8", errors="replace").strip()
                if not line:
                    continue
                try:
                    envelope = parse_envelope_line(line)
                except DecodeError as e:
                    self._logger.warning(
                        "feed_line_invalid",
                        path=str(self._path),
                        line=self._line_number,
                        error=str(e),
                    )
                    continue
                yield envelope
