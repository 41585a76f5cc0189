import logging
from collections.abc import AsyncIterator
from typing import Any

from langchain_anthropic import ChatAnthropic
from langchain_core.messages.ai import UsageMetadata, add_usage

from insightos.config import Settings

logger = logging.getLogger(__name__)


def create_chat_model(settings: Settings) -> ChatAnthropic:
    """Build the streaming chat model from request-time settings."""
    return ChatAnthropic(
        model=settings.model,
        api_key=settings.api_key,
        max_tokens=settings.max_tokens,
        max_retries=settings.max_retries,
        stream_usage=True,
    )


def chunk_text(chunk: Any) -> str:
    """Text delta carried by one streamed message chunk."""
    content = getattr(chunk, "content", "")
    if isinstance(content, str):
        return content
    parts = []
    for block in content or []:
        if isinstance(block, str):
            parts.append(block)
        elif isinstance(block, dict) and block.get("type") == "text":
            parts.append(block.get("text") or "")
    return "".join(parts)


def merge_usage(total: UsageMetadata | None, chunk: Any) -> UsageMetadata | None:
    """Fold a chunk's usage_metadata into the running total for the turn."""
    usage = getattr(chunk, "usage_metadata", None)
    if not usage:
        return total
    return add_usage(total, usage)


def log_usage(usage: UsageMetadata | None) -> None:
    if not usage:
        return
    logger.info(
        "Token usage: input=%s output=%s total=%s",
        usage.get("input_tokens"),
        usage.get("output_tokens"),
        usage.get("total_tokens"),
    )


async def _empty() -> AsyncIterator[Any]:
    return
    yield


async def prime_stream(stream: AsyncIterator[Any]) -> AsyncIterator[Any]:
    """
    Pull the first chunk eagerly.

    Authentication, rate-limit and connection errors are raised here, before
    the HTTP response is committed, instead of halfway through the stream.
    Returns an iterator that replays the first chunk and then the rest.
    """
    iterator = aiter(stream)
    try:
        first = await anext(iterator)
    except StopAsyncIteration:
        return _empty()

    async def _replay():
        yield first
        async for chunk in iterator:
            yield chunk

    return _replay()
