"""Tests for per-run agent context and tool sets."""

import pytest

from hivekit.agents.agent import AgentContext, StructuredTool, ToolSet
from hivekit.agents.errors import StateError


def make_tool(name):
    return StructuredTool.from_function(lambda: name, name=name, description=f"{name} tool")


def test_warning_threshold_fires_once_per_value():
    context = AgentContext("lead")

    assert context.hit_warning_threshold(80) is True
    assert context.hit_warning_threshold(80) is False
    assert context.hit_warning_threshold(90) is True
    assert context.hit_warning_threshold(90) is False


def test_warning_threshold_read_is_pure():
    context = AgentContext("lead")

    assert context.warning_threshold_hit(80) is False
    assert context.warning_threshold_hit(80) is False
    context.hit_warning_threshold(80)
    assert context.warning_threshold_hit(80) is True


def test_thresholds_are_per_context():
    first, second = AgentContext("a"), AgentContext("a")
    assert first.hit_warning_threshold(80)
    assert second.hit_warning_threshold(80)


def test_crossed_thresholds():
    context = AgentContext("lead")

    assert context.crossed_thresholds(50) == []
    assert context.crossed_thresholds(85) == [80]
    assert context.crossed_thresholds(95) == [90]
    assert context.crossed_thresholds(99) == []


def test_delegation_tracking_per_call_id():
    context = AgentContext("lead", delegation_tools=["DelegateTaskToBackend", "DelegateTaskToFrontend"])

    context.track_delegation("call_1", "backend")
    context.track_delegation("call_2", "frontend")

    assert context.delegation_tool("DelegateTaskToBackend")
    assert not context.delegation_tool("Read")
    assert context.delegation("call_1") and context.delegation("call_2")
    assert context.delegation_target("call_2") == "frontend"

    context.clear_delegation("call_1")
    assert not context.delegation("call_1")
    assert context.delegation_target("call_1") is None
    assert context.pending_delegations == {"call_2": "frontend"}


def test_toolset_add_remove():
    tools = ToolSet([make_tool("Read"), make_tool("Write")])

    assert tools.names() == ["Read", "Write"]
    assert "Read" in tools
    removed = tools.remove("Write")
    assert removed.name == "Write"
    assert len(tools) == 1

    with pytest.raises(StateError):
        tools.remove("Write")


def test_toolset_immutable_tools_survive_reset():
    tools = ToolSet([make_tool("Think"), make_tool("Read"), make_tool("Bash")])
    tools.mark_immutable("Think")

    with pytest.raises(StateError, match="immutable"):
        tools.remove("Think")

    assert sorted(tools.remove_mutable()) == ["Bash", "Read"]
    assert tools.names() == ["Think"]


def test_toolset_schemas_use_function_format():
    schemas = ToolSet([make_tool("Read")]).schemas()
    assert schemas[0]["type"] == "function"
    assert schemas[0]["function"]["name"] == "Read"
