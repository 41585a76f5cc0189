import codecs
import logging
from collections.abc import AsyncIterator
from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter, ValidationError

from insightos.copilot.fallback import FALLBACK_RESPONSE
from insightos.copilot.schema import StructuredResponse

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Event types (newline-delimited JSON, one object per line)
# ---------------------------------------------------------------------------

class TokenEvent(BaseModel):
    """Incremental text delta from the model."""
    type: Literal["token"] = "token"
    content: str


class DoneEvent(BaseModel):
    """Terminal event: the validated response, or the fallback."""
    type: Literal["done"] = "done"
    payload: StructuredResponse


StreamEvent = Annotated[Union[TokenEvent, DoneEvent], Field(discriminator="type")]

_EVENT_ADAPTER = TypeAdapter(StreamEvent)


def encode_event(event: TokenEvent | DoneEvent) -> bytes:
    return (event.model_dump_json(by_alias=True) + "\n").encode("utf-8")


def parse_event_line(line: str) -> TokenEvent | DoneEvent | None:
    """Parse one NDJSON line. Blank or malformed lines return None."""
    stripped = line.strip()
    if not stripped:
        return None
    try:
        return _EVENT_ADAPTER.validate_json(stripped)
    except ValidationError:
        logger.debug("Discarding malformed stream line: %.200s", stripped)
        return None


# ---------------------------------------------------------------------------
# Byte framer
# ---------------------------------------------------------------------------

class NDJSONFramer:
    """
    Re-frames arbitrary byte chunks into stream events.

    Bytes are decoded incrementally (a multi-byte character may straddle two
    chunks) and only newline-terminated lines are parsed. The trailing partial
    line stays buffered until a later chunk completes it, so the output does
    not depend on where the chunks were split.
    """

    def __init__(self) -> None:
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""

    def feed(self, chunk: bytes) -> list[TokenEvent | DoneEvent]:
        self._buffer += self._decoder.decode(chunk)
        lines = self._buffer.split("\n")
        self._buffer = lines.pop()
        events = []
        for line in lines:
            event = parse_event_line(line)
            if event is not None:
                events.append(event)
        return events

    def close(self) -> None:
        """Flush the decoder; an unterminated final line is dropped."""
        self._buffer += self._decoder.decode(b"", final=True)
        if self._buffer.strip():
            logger.debug("Dropping unterminated stream tail: %.200s", self._buffer)
        self._buffer = ""


async def iter_stream_events(chunks: AsyncIterator[bytes]) -> AsyncIterator[TokenEvent | DoneEvent]:
    """
    Yield the events carried by an NDJSON byte stream.

    Always ends with exactly one DoneEvent: if the transport fails or closes
    before one arrives, a DoneEvent carrying the fallback response is
    synthesized. Events after the first DoneEvent are ignored.
    """
    framer = NDJSONFramer()
    try:
        async for chunk in chunks:
            for event in framer.feed(chunk):
                yield event
                if isinstance(event, DoneEvent):
                    return
        framer.close()
    except Exception as exc:
        logger.error("Copilot stream aborted: %s", exc)
    else:
        logger.warning("Copilot stream ended without a done event")
    yield DoneEvent(payload=FALLBACK_RESPONSE)
