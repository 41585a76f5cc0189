"""Tests for ConversationState."""

from __future__ import annotations

from insightos.copilot.fallback import FALLBACK_RESPONSE
from insightos.services.conversation import ConversationState


def test_messages_are_appended_and_updated_in_place():
    state = ConversationState()
    user_id = state.add_message("user", "summarize revenue")
    reply_id = state.add_message("assistant", "")

    state.update_message_content(reply_id, "Revenue")
    state.update_message_content(reply_id, "Revenue is stable.")

    assert user_id != reply_id
    assert [m["role"] for m in state.messages] == ["user", "assistant"]
    assert state.messages[1]["content"] == "Revenue is stable."


def test_updating_unknown_message_is_a_no_op():
    state = ConversationState()
    state.add_message("user", "hello")

    state.update_message_content("missing", "x")

    assert state.messages[0]["content"] == "hello"


def test_last_response_belongs_to_last_assistant_message():
    state = ConversationState()
    state.add_message("user", "q1")
    state.add_message("assistant", "a1")
    state.add_message("user", "q2")
    state.add_message("assistant", "a2")
    state.add_message("user", "q3")
    state.set_last_response(FALLBACK_RESPONSE)

    assert state.last_assistant_index() == 3
    assert state.structured_response_for(3) is FALLBACK_RESPONSE
    assert state.structured_response_for(1) is None
    assert state.structured_response_for(4) is None


def test_clear_session_resets_everything():
    state = ConversationState()
    state.add_message("user", "q")
    state.set_loading(True)
    state.set_last_response(FALLBACK_RESPONSE)

    state.clear_session()

    assert state.messages == []
    assert state.is_loading is False
    assert state.last_response is None
    assert state.last_assistant_index() == -1
    assert state.structured_response_for(-1) is None
