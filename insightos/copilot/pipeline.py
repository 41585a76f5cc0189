import logging
from collections.abc import AsyncIterator
from typing import Any

from insightos.copilot.fallback import FALLBACK_RESPONSE
from insightos.copilot.llm import chunk_text, log_usage, merge_usage
from insightos.copilot.schema import StructuredResponse
from insightos.copilot.stream import DoneEvent, TokenEvent, encode_event
from insightos.copilot.validation import parse_and_validate

logger = logging.getLogger(__name__)


def finalize_turn(full_content: str) -> StructuredResponse:
    """Validated response for a finished turn, or the fallback."""
    if not full_content:
        logger.warning("Empty response from model")
        return FALLBACK_RESPONSE

    result = parse_and_validate(full_content)
    if result.ok:
        return result.response

    logger.warning(
        "Response failed schema validation after repair attempt (%d violations): %.500s",
        len(result.violations),
        full_content,
    )
    return FALLBACK_RESPONSE


async def relay_model_stream(chunks: AsyncIterator[Any]) -> AsyncIterator[bytes]:
    """
    Relay streamed model chunks as NDJSON lines.

    Emits one token event per non-empty delta, in provider order, then exactly
    one done event. The done payload is built from the accumulated text, never
    from individual deltas. A provider error mid-stream ends the token run and
    the done event carries the fallback.
    """
    parts: list[str] = []
    usage = None
    try:
        async for chunk in chunks:
            usage = merge_usage(usage, chunk)
            delta = chunk_text(chunk)
            if delta:
                parts.append(delta)
                yield encode_event(TokenEvent(content=delta))
    except Exception as exc:
        logger.error("Provider error during stream: %s", exc)
        log_usage(usage)
        yield encode_event(DoneEvent(payload=FALLBACK_RESPONSE))
        return

    log_usage(usage)
    yield encode_event(DoneEvent(payload=finalize_turn("".join(parts))))
