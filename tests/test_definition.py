"""Tests for agent definitions, settings and result models."""

import pytest
from loguru import logger

from hivekit.agents.agent import AgentDefinition, Result, delegation_tool_name
from hivekit.agents.agent.llm import OpenAIClient
from hivekit.agents.agent.models import EventLog, Usage
from hivekit.agents.errors import ConfigurationError
from hivekit.agents.logging_config import setup_rich_logging
from hivekit.settings.settings import Settings


def test_definition_defaults_and_immutability():
    definition = AgentDefinition.from_dict("backend", {"description": "APIs", "delegates_to": ["db", "db"]})

    assert definition.directories == ["."]
    assert definition.delegates_to == ["db"]
    assert definition.delegation_tools == ["DelegateTaskToDb"]
    with pytest.raises(Exception):
        definition.description = "changed"


def test_definition_rejects_unknown_fields():
    with pytest.raises(ConfigurationError, match="Invalid configuration for agent 'x'"):
        AgentDefinition.from_dict("x", {"description": "d", "colour": "blue"})


def test_with_delegates_copies():
    original = AgentDefinition(name="lead", description="d", delegates_to=["a"])
    scoped = original.with_delegates(["b"])

    assert scoped.delegates_to == ["b"]
    assert original.delegates_to == ["a"]


def test_tool_rules_fall_back_to_wildcard(tmp_path):
    definition = AgentDefinition(
        name="dev",
        description="d",
        directories=[str(tmp_path)],
        permissions={"*": {"denied_paths": ["*.env"]}, "Bash": {"denied_commands": ["^rm"]}},
    )

    assert definition.rules_for("Read").denied_paths == ["*.env"]
    assert definition.rules_for("Bash").denied_commands == ["^rm"]
    assert not definition.permission_config_for("Read").allowed(".env")


def test_delegation_tool_name_capitalises_first_letter():
    assert delegation_tool_name("backend") == "DelegateTaskToBackend"
    assert delegation_tool_name("qaLead") == "DelegateTaskToQaLead"


def test_result_to_dict():
    result = Result(content="hi", agent="lead", duration=1.23456, metadata={"node_results": {"a": Result(content="x")}})

    data = result.to_dict()

    assert data["success"] is True
    assert data["duration"] == 1.235
    assert data["metadata"]["node_results"]["a"]["content"] == "x"
    assert Result(error="bad").failure


def test_event_log_forwards_to_callback():
    received = []
    log = EventLog(received.append)

    log.emit("tool_call", agent="a", tool="Read")

    assert received[0]["type"] == "tool_call"
    assert log.of_type("tool_call")[0]["agent"] == "a"
    assert len(log) == 1


def test_usage_total_defaults_to_sum():
    assert Usage(input_tokens=3, output_tokens=4).total_tokens == 7


def test_settings_defaults(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("GLOBAL_CONCURRENCY", "7")

    settings = Settings()

    assert settings.global_concurrency == 7
    assert settings.local_concurrency == 10
    assert settings.context_warning_thresholds == [80, 90]


def test_setup_rich_logging_writes_file(tmp_path):
    log_file = tmp_path / "swarm.log"
    setup_rich_logging(level="INFO", log_file=str(log_file), rich_tracebacks=False)

    logger.debug("[TEST] debug line")
    logger.complete()

    assert "[TEST] debug line" in log_file.read_text()


def test_agent_model_falls_back_to_client_default():
    client = OpenAIClient(llm=None, model="gemma3:27b", temperature=0.2, max_tokens=512)

    inherited = client.for_definition(AgentDefinition(name="a", description="d"))
    assert inherited.model == "gemma3:27b"
    assert inherited.temperature == 0.2
    assert inherited.max_tokens == 512

    pinned = client.for_definition(AgentDefinition(name="b", description="d", model="gpt-5", temperature=0.0))
    assert pinned.model == "gpt-5"
    assert pinned.temperature == 0.0
