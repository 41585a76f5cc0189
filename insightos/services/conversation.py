import uuid
from typing import Literal, TypedDict

from insightos.copilot.schema import StructuredResponse


class ConversationMessage(TypedDict):
    id: str
    role: Literal["user", "assistant"]
    content: str


class ConversationState:
    """
    Message history, the in-flight flag and the latest structured response
    for one copilot session.

    Owned by the session and passed by reference to the components that
    update it. Nothing here is persisted.
    """

    def __init__(self) -> None:
        self.messages: list[ConversationMessage] = []
        self.is_loading = False
        self.last_response: StructuredResponse | None = None

    def add_message(self, role: Literal["user", "assistant"], content: str) -> str:
        message_id = str(uuid.uuid4())
        self.messages.append({"id": message_id, "role": role, "content": content})
        return message_id

    def update_message_content(self, message_id: str, content: str) -> None:
        for message in self.messages:
            if message["id"] == message_id:
                message["content"] = content
                return

    def set_loading(self, loading: bool) -> None:
        self.is_loading = loading

    def set_last_response(self, response: StructuredResponse | None) -> None:
        self.last_response = response

    def clear_session(self) -> None:
        self.messages = []
        self.is_loading = False
        self.last_response = None

    def last_assistant_index(self) -> int:
        for index in range(len(self.messages) - 1, -1, -1):
            if self.messages[index]["role"] == "assistant":
                return index
        return -1

    def structured_response_for(self, index: int) -> StructuredResponse | None:
        # Only the latest response is kept, so it belongs to the last assistant message.
        if index >= 0 and index == self.last_assistant_index():
            return self.last_response
        return None
