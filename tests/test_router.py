"""Tests for the bounded tool-calling loop."""

import json
import threading

import pytest

from orchestrator.errors import IterationLimitExceeded, ReasoningGatewayUnavailable
from orchestrator.models import (
    AssistantMessage, FailureKind, GeocodeResult, SystemMessage, ToolFailure, ToolInvocationRecord,
    ToolResultMessage, UserMessage,
)
from orchestrator.router import Orchestrator

from conftest import ScriptedGateway, final_reply, tool_reply


class RecordingRegistry:
    """Registry stand-in: geocode succeeds, everything else is an unknown tool."""

    def __init__(self):
        self.dispatched = []
        self.lock = threading.Lock()

    def catalog(self):
        return [{"type": "function", "function": {"name": "geocode_address"}}]

    def dispatch(self, name, raw_arguments):
        with self.lock:
            self.dispatched.append((name, raw_arguments))
        if name == "geocode_address":
            return ToolInvocationRecord(
                tool=name,
                arguments={"address": "Madrid"},
                outcome=GeocodeResult(lat=40.4, lon=-3.7, full_label="Madrid", source="Nominatim"),
            )
        return ToolInvocationRecord(
            tool=name, outcome=ToolFailure(kind=FailureKind.UNKNOWN_TOOL, reason=f"Unknown tool: {name}"),
        )


def make(replies, workers=1):
    gateway = ScriptedGateway(replies)
    registry = RecordingRegistry()
    return Orchestrator(gateway, registry, system_prompt="SYS", max_workers=workers), gateway, registry


def test_immediate_answer_uses_no_tools():
    orch, gateway, registry = make([final_reply("Report")])

    result = orch.run("  Tell me about Madrid  ")

    assert result.final_text == "Report"
    assert result.trace == []
    assert result.iterations_used == 0
    sent = gateway.calls[0]["messages"]
    assert sent == [SystemMessage(content="SYS"), UserMessage(content="Tell me about Madrid")]
    assert gateway.calls[0]["tools"] == registry.catalog()


def test_tool_round_then_answer():
    orch, gateway, registry = make([
        tool_reply(("c1", "geocode_address", '{"address": "Madrid"}')),
        final_reply("Madrid report (Nominatim)"),
    ])

    result = orch.run("Madrid")

    assert result.iterations_used == 1
    assert [r.tool for r in result.trace] == ["geocode_address"]
    assert registry.dispatched == [("geocode_address", '{"address": "Madrid"}')]

    second = gateway.calls[1]["messages"]
    assert [m.role for m in second] == ["system", "user", "assistant", "tool"]
    assert second[2].tool_requests[0].id == "c1"
    assert second[3].tool_call_id == "c1"
    assert json.loads(second[3].content)["success"] is True


def test_unknown_tool_is_fed_back_and_run_continues():
    orch, gateway, _ = make([
        tool_reply(("c1", "teleport", "{}")),
        final_reply("Sorry, used a wrong tool."),
    ])

    result = orch.run("Madrid")

    assert result.final_text == "Sorry, used a wrong tool."
    assert result.trace[0].outcome.kind == FailureKind.UNKNOWN_TOOL
    before, after = gateway.calls[0]["messages"], gateway.calls[1]["messages"]
    assert len(after) == len(before) + 2
    feedback = after[-1]
    assert isinstance(feedback, ToolResultMessage)
    assert json.loads(feedback.content)["success"] is False


def test_every_request_in_a_batch_gets_a_result_in_order():
    orch, gateway, _ = make([
        tool_reply(
            ("a", "geocode_address", "{}"),
            ("b", "teleport", "{}"),
            ("c", "geocode_address", "{}"),
        ),
        final_reply("done"),
    ], workers=3)

    result = orch.run("x")

    assert [r.tool for r in result.trace] == ["geocode_address", "teleport", "geocode_address"]
    tool_msgs = [m for m in gateway.calls[1]["messages"] if isinstance(m, ToolResultMessage)]
    assert [m.tool_call_id for m in tool_msgs] == ["a", "b", "c"]


def test_iteration_limit_raises_with_partial_trace():
    replies = [tool_reply((f"c{i}", "geocode_address", "{}")) for i in range(3)]
    orch, gateway, _ = make(replies)

    with pytest.raises(IterationLimitExceeded) as excinfo:
        orch.run("loop forever", max_iterations=3)

    assert len(gateway.calls) == 3
    assert len(excinfo.value.trace) == 3
    assert excinfo.value.max_iterations == 3


@pytest.mark.parametrize("max_iterations", [1, 2, 6])
def test_iterations_used_stays_below_bound(max_iterations):
    replies = [tool_reply((f"c{i}", "geocode_address", "{}")) for i in range(max_iterations - 1)]
    orch, _, _ = make(replies + [final_reply("ok")])

    result = orch.run("x", max_iterations=max_iterations)

    assert result.iterations_used == max_iterations - 1
    assert result.iterations_used < max_iterations


def test_gateway_failure_ends_the_run():
    class DownGateway:
        def complete(self, messages, tools=None):
            raise ReasoningGatewayUnavailable("down")

    orch = Orchestrator(DownGateway(), RecordingRegistry())

    with pytest.raises(ReasoningGatewayUnavailable):
        orch.run("x")


def test_max_iterations_must_be_positive():
    orch, gateway, _ = make([])

    with pytest.raises(ValueError):
        orch.run("x", max_iterations=0)
    assert gateway.calls == []


def test_empty_final_content_becomes_empty_text():
    orch, _, _ = make([AssistantMessage(content=None)])

    assert orch.run("x").final_text == ""
