"""Server-sent-event decoding of the gateway token stream.

The decoder is line oriented: bytes are buffered until a newline arrives, so
chunk boundaries that fall mid-line (or mid-UTF-8 sequence) never reach the
JSON parser. A payload that is still truncated once its line is complete is
held back and joined with the following ``data:`` line, the SSE rule for
multi-line data. A payload that fails for any other reason is malformed: it is
recorded, logged and skipped.
"""

import codecs
import json
from enum import Enum
from typing import AsyncIterable, AsyncIterator

from pydantic import ValidationError

from ..errors import MalformedStreamChunk
from ..gateway.schemas import ChatCompletionChunk
from ..logging_config import get_logger
from ..models import DeltaEvent

logger = get_logger(__name__)

DATA_PREFIX = "data: "
DONE_SENTINEL = "[DONE]"
MAX_PENDING_CHARS = 1024 * 1024


class _Parse(Enum):
    OK = "ok"
    INCOMPLETE = "incomplete"
    MALFORMED = "malformed"


def _try_parse(text: str) -> tuple[_Parse, object]:
    try:
        return _Parse.OK, json.loads(text, strict=False)
    except json.JSONDecodeError as e:
        # Truncated input fails at its very end, or inside an open string.
        if e.pos >= len(text.rstrip()) or e.msg.startswith("Unterminated string"):
            return _Parse.INCOMPLETE, None
        return _Parse.MALFORMED, None


class SSEDecoder:
    """Incremental decoder: feed() bytes in, get DeltaEvents out."""

    def __init__(self):
        self._utf8 = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""
        self._pending: str | None = None
        self._done = False
        self.malformed: list[MalformedStreamChunk] = []

    @property
    def done(self) -> bool:
        """True once the terminal event has been emitted."""
        return self._done

    def feed(self, chunk: bytes) -> list[DeltaEvent]:
        """Consume one transport chunk."""
        if self._done:
            return []
        self._buffer += self._utf8.decode(chunk)
        return self._drain_lines()

    def finish(self) -> list[DeltaEvent]:
        """Flush at transport close. Always ends with a terminal event."""
        if self._done:
            return []
        self._buffer += self._utf8.decode(b"", final=True)
        events = self._drain_lines()
        if not self._done and self._buffer:
            line, self._buffer = self._buffer, ""
            events.extend(self._process_line(line))
        if not self._done:
            self._drop_pending()
            self._done = True
            events.append(DeltaEvent(is_terminal=True))
        return events

    def _drain_lines(self) -> list[DeltaEvent]:
        events: list[DeltaEvent] = []
        while not self._done:
            newline_index = self._buffer.find("\n")
            if newline_index == -1:
                break
            line = self._buffer[:newline_index]
            self._buffer = self._buffer[newline_index + 1 :]
            events.extend(self._process_line(line))
        return events

    def _process_line(self, line: str) -> list[DeltaEvent]:
        if line.endswith("\r"):
            line = line[:-1]

        if not line.strip():
            # Blank line closes the SSE event; nothing more can complete it.
            self._drop_pending()
            return []
        if line.startswith(":") or not line.startswith(DATA_PREFIX):
            return []

        payload = line[len(DATA_PREFIX) :].strip()
        if not payload:
            return []
        if payload == DONE_SENTINEL:
            self._drop_pending()
            self._done = True
            self._buffer = ""
            return [DeltaEvent(is_terminal=True)]

        return self._process_payload(payload)

    def _process_payload(self, payload: str) -> list[DeltaEvent]:
        status, parsed = _try_parse(payload)
        if status is _Parse.OK:
            self._drop_pending()
            return self._extract(parsed)

        if self._pending is not None:
            joined = f"{self._pending}\n{payload}"
            joined_status, joined_parsed = _try_parse(joined)
            if joined_status is _Parse.OK:
                self._pending = None
                return self._extract(joined_parsed)
            if joined_status is _Parse.INCOMPLETE and len(joined) <= MAX_PENDING_CHARS:
                self._pending = joined
                return []
            self._drop_pending()

        if status is _Parse.INCOMPLETE:
            self._pending = payload
        else:
            self._reject(payload)
        return []

    def _drop_pending(self) -> None:
        if self._pending is not None:
            pending, self._pending = self._pending, None
            self._reject(pending)

    def _reject(self, payload: str) -> None:
        error = MalformedStreamChunk(payload)
        self.malformed.append(error)
        logger.warning(
            "Skipping malformed stream chunk",
            extra={"context": {"payload": payload[:200]}},
        )

    def _extract(self, parsed: object) -> list[DeltaEvent]:
        if not isinstance(parsed, dict):
            return []
        try:
            chunk = ChatCompletionChunk.model_validate(parsed)
        except ValidationError as e:
            logger.debug("Ignoring chunk with unexpected shape: %s", e)
            return []

        if not chunk.choices:
            return []
        delta = chunk.choices[0].delta
        answer = delta.content or None
        reasoning = delta.reasoning or None
        if answer is None and reasoning is None:
            return []
        return [DeltaEvent(answer_delta=answer, reasoning_delta=reasoning)]


async def decode_stream(
    chunks: AsyncIterable[bytes],
    decoder: SSEDecoder | None = None,
) -> AsyncIterator[DeltaEvent]:
    """Lazily decode a byte stream into DeltaEvents.

    Stops after the terminal event; the caller owns closing ``chunks``.
    """
    decoder = decoder or SSEDecoder()
    async for chunk in chunks:
        for event in decoder.feed(chunk):
            yield event
        if decoder.done:
            return
    for event in decoder.finish():
        yield event
