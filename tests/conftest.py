"""Shared fixtures: a scripted LLM client and response helpers."""

import itertools
import os
import sys

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

import pytest
from loguru import logger

from hivekit.agents.agent.models import LLMResponse, ToolCall, Usage

_ids = itertools.count(1)


def reply(text, input_tokens=0):
    """Final assistant message without tool calls."""
    return LLMResponse(content=text, usage=Usage(input_tokens=input_tokens, output_tokens=len(text.split())))


def call(name, call_id=None, input_tokens=0, **arguments):
    """Assistant turn requesting a single tool call."""
    return calls((name, arguments, call_id), input_tokens=input_tokens)


def calls(*specs, input_tokens=0):
    """Assistant turn requesting several tool calls: (name, args[, id]) tuples."""
    tool_calls = []
    for spec in specs:
        name, arguments = spec[0], spec[1]
        call_id = spec[2] if len(spec) > 2 and spec[2] else f"call_{next(_ids)}"
        tool_calls.append(ToolCall(id=call_id, name=name, arguments=arguments))
    return LLMResponse(content=None, tool_calls=tool_calls, usage=Usage(input_tokens=input_tokens))


class ScriptedClient:
    """LLM client replaying canned responses per agent.

    Each script entry is an LLMResponse, an exception to raise, or a
    callable taking the history and returning either. An exhausted script
    answers "done".
    """

    def __init__(self, scripts=None, agent=None, shared=None):
        self.scripts = shared if shared is not None else {k: list(v) for k, v in (scripts or {}).items()}
        self.agent = agent
        self.history_log = [] if shared is None else None
        self._root = self if shared is None else None

    def for_definition(self, definition):
        bound = ScriptedClient(agent=definition.name, shared=self.scripts)
        bound._root = self._root
        return bound

    @property
    def conversations(self):
        return self._root.history_log

    async def converse(self, history, tools):
        self._root.history_log.append((self.agent, [dict(m) for m in history], [t["function"]["name"] for t in tools]))
        script = self.scripts.get(self.agent, [])
        if not script:
            return reply("done")
        step = script.pop(0)
        if callable(step) and not isinstance(step, LLMResponse):
            step = step(history)
            if hasattr(step, "__await__"):
                step = await step
        if isinstance(step, BaseException):
            raise step
        return step

    def calls_for(self, agent):
        return [entry for entry in self._root.history_log if entry[0] == agent]


@pytest.fixture
def scripted():
    return ScriptedClient


@pytest.fixture(autouse=True)
def quiet_logs():
    logger.remove()
    logger.add(sys.stderr, level="WARNING")
    yield
