"""Tests for conversation ordering rules."""

import pytest

from orchestrator.conversation import Conversation
from orchestrator.errors import ConversationError
from orchestrator.models import AssistantMessage, SystemMessage, ToolRequest, ToolResultMessage


def result(cid, name="geocode_address"):
    return ToolResultMessage(tool_call_id=cid, name=name, content="{}")


def requesting(*ids):
    return AssistantMessage(tool_requests=[ToolRequest(id=i, name="geocode_address") for i in ids])


def test_system_prompt_is_first_and_stays_first():
    conv = Conversation("be helpful")
    conv.add_user("hi")
    conv.add_assistant(requesting("a"))
    conv.add_tool_result(result("a"))

    assert isinstance(conv.messages[0], SystemMessage)
    assert conv.messages[0].content == "be helpful"
    assert [m.role for m in conv.messages] == ["system", "user", "assistant", "tool"]


def test_tool_results_may_arrive_in_any_order_within_batch():
    conv = Conversation("sys")
    conv.add_user("hi")
    conv.add_assistant(requesting("a", "b"))
    conv.add_tool_result(result("b"))
    assert conv.pending == ("a",)
    conv.add_tool_result(result("a"))
    assert conv.pending == ()


def test_tool_result_without_request_is_rejected():
    conv = Conversation("sys")
    conv.add_user("hi")

    with pytest.raises(ConversationError):
        conv.add_tool_result(result("ghost"))


def test_duplicate_result_is_rejected():
    conv = Conversation("sys")
    conv.add_user("hi")
    conv.add_assistant(requesting("a"))
    conv.add_tool_result(result("a"))

    with pytest.raises(ConversationError):
        conv.add_tool_result(result("a"))


def test_next_turn_requires_complete_batch():
    conv = Conversation("sys")
    conv.add_user("hi")
    conv.add_assistant(requesting("a", "b"))
    conv.add_tool_result(result("a"))

    with pytest.raises(ConversationError):
        conv.add_assistant(AssistantMessage(content="done"))
    with pytest.raises(ConversationError):
        conv.add_user("again")


def test_duplicate_ids_in_one_message_are_rejected():
    conv = Conversation("sys")
    conv.add_user("hi")

    with pytest.raises(ConversationError):
        conv.add_assistant(requesting("a", "a"))


def test_messages_view_is_read_only_snapshot():
    conv = Conversation("sys")
    snapshot = conv.messages
    conv.add_user("hi")

    assert len(snapshot) == 1
    assert len(conv) == 2
