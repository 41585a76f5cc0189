import json
import logging
from collections.abc import AsyncIterator, Mapping, Sequence
from typing import Any

import httpx
from pydantic import ValidationError

from insightos.copilot.schema import StructuredResponse
from insightos.copilot.stream import DoneEvent, TokenEvent, iter_stream_events
from insightos.services.context_builder import build_copilot_context
from insightos.services.conversation import ConversationState

logger = logging.getLogger(__name__)

ERROR_MESSAGE = "Something went wrong."


async def consume_stream(
    chunks: AsyncIterator[bytes],
    message_id: str,
    state: ConversationState,
) -> StructuredResponse:
    """
    Apply one streamed turn to the conversation state.

    Token deltas are appended to the assistant message as they arrive; the
    done event replaces the raw text with the clean summary and caches the
    structured response.
    """
    accumulated = ""
    async for event in iter_stream_events(chunks):
        if isinstance(event, TokenEvent):
            accumulated += event.content
            state.update_message_content(message_id, accumulated)
        elif isinstance(event, DoneEvent):
            apply_response(state, message_id, event.payload)
            return event.payload
    raise RuntimeError("copilot stream ended without a done event")


def apply_response(state: ConversationState, message_id: str, response: StructuredResponse) -> None:
    state.update_message_content(message_id, response.summary)
    state.set_last_response(response)


class CopilotSession:
    """
    Client side of one copilot conversation.

    Only one submission may be in flight; a second submit while loading is
    ignored rather than queued.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        state: ConversationState | None = None,
        endpoint: str = "/api/ai",
    ):
        self._client = client
        self._endpoint = endpoint
        self.state = state if state is not None else ConversationState()

    async def submit(
        self,
        query: str,
        current_page: str,
        metrics_summary: Mapping[str, Any] | None = None,
        table_snapshot: Sequence[Mapping[str, Any]] | None = None,
    ) -> bool:
        """Send a query. Returns False when it was rejected by the guard."""
        trimmed = query.strip()
        if not trimmed or self.state.is_loading:
            return False

        self.state.add_message("user", trimmed)
        self.state.set_loading(True)
        message_id = self.state.add_message("assistant", "")

        try:
            context = build_copilot_context(current_page, metrics_summary, table_snapshot)
            # Table cells may hold dates or decimals; send them as strings.
            body = json.dumps({"query": trimmed, "context": context}, default=str)
            async with self._client.stream(
                "POST", self._endpoint, content=body, headers={"Content-Type": "application/json"}
            ) as response:
                if response.is_success:
                    await consume_stream(response.aiter_bytes(), message_id, self.state)
                else:
                    await self._handle_error_response(response, message_id)
        except httpx.HTTPError as exc:
            logger.error("Copilot request failed: %s", exc)
            self.state.update_message_content(message_id, ERROR_MESSAGE)
        finally:
            self.state.set_loading(False)
        return True

    async def _handle_error_response(self, response: httpx.Response, message_id: str) -> None:
        body = await response.aread()
        logger.warning("Copilot request returned HTTP %d", response.status_code)
        # 503/429/502 carry the fallback response as their body.
        try:
            fallback = StructuredResponse.model_validate_json(body)
        except ValidationError:
            self.state.update_message_content(message_id, ERROR_MESSAGE)
            return
        apply_response(self.state, message_id, fallback)

    def clear(self) -> None:
        self.state.clear_session()
