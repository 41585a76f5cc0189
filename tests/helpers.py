"""Shared test helpers and stub classes."""

from __future__ import annotations

from typing import Any, Iterable

from langchain_core.messages import AIMessageChunk


class FakeChatModel:
    """Stands in for ChatAnthropic: streams canned chunks, optionally failing.

    ``fail_after`` is the chunk index at which ``error`` is raised; when it is
    None the error is raised after the last chunk.
    """

    def __init__(
        self,
        chunks: Iterable[str | AIMessageChunk] = (),
        error: BaseException | None = None,
        fail_after: int | None = None,
    ):
        self._chunks = [c if isinstance(c, AIMessageChunk) else AIMessageChunk(content=c) for c in chunks]
        self._error = error
        self._fail_after = fail_after
        self.calls: list[list[Any]] = []

    async def astream(self, messages):
        self.calls.append(list(messages))
        for index, chunk in enumerate(self._chunks):
            if self._error is not None and self._fail_after == index:
                raise self._error
            yield chunk
        if self._error is not None and (self._fail_after is None or self._fail_after >= len(self._chunks)):
            raise self._error
