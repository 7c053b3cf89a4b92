"""Conversation loop that drives one agent, recursing on delegation."""

import asyncio
import json
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from loguru import logger

from ..agent.context import CONTEXT_WARNING_THRESHOLDS, AgentContext, ToolSet
from ..agent.definition import AgentDefinition
from ..agent.extension import Extension
from ..agent.llm import LLMClient, client_for
from ..agent.models import AgentMetrics, EventLog, LLMResponse, ToolCall, Usage
from ..agent.tool_base import BaseTool
from ..concurrency import ConcurrencySupervisor
from ..errors import AgentNotFoundError, LLMError
from ..permissions.config import PermissionConfig
from ..permissions.validator import Validator
from ..tools.delegate import DelegateTool
from ..tools.registry import ToolRegistry

DEFAULT_MAX_TURNS = 50


def _preview(text: str, limit: int = 200) -> str:
    return text if len(text) <= limit else text[:limit] + "..."


class AgentRunner:
    """Runs agent conversations for a single execute() call.

    All agents reached during the call share one supervisor, event log and
    metrics object. Each agent invocation gets a fresh AgentContext.
    """

    def __init__(
        self,
        definitions: Mapping[str, AgentDefinition],
        client: LLMClient,
        supervisor: ConcurrencySupervisor,
        tool_registry: Optional[ToolRegistry] = None,
        extensions: Sequence[Extension] = (),
        permissions: Optional[Mapping[tuple, PermissionConfig]] = None,
        events: Optional[EventLog] = None,
        metrics: Optional[AgentMetrics] = None,
        max_turns: int = DEFAULT_MAX_TURNS,
        thresholds: Iterable[int] = CONTEXT_WARNING_THRESHOLDS
    ):
        """Initialize the runner.

        Args:
            definitions: Agent name -> definition for this topology
            client: LLM client, specialised per agent when it supports it
            supervisor: Shared concurrency supervisor
            tool_registry: Factories for declared tool names
            extensions: Extensions composed into every agent
            permissions: (agent, tool) -> resolved permission config
            events: Event log for the run
            metrics: Metrics for the run
            max_turns: Turn limit per agent invocation
            thresholds: Context usage percentages that trigger a warning
        """
        self.definitions = dict(definitions)
        self.client = client
        self.supervisor = supervisor
        self.tool_registry = tool_registry or ToolRegistry()
        self.extensions = list(extensions)
        self.permissions = dict(permissions or {})
        self.events = events if events is not None else EventLog()
        self.metrics = metrics if metrics is not None else AgentMetrics()
        self.max_turns = max_turns
        self.thresholds = tuple(thresholds)

    def with_definitions(self, definitions: Mapping[str, AgentDefinition]) -> 'AgentRunner':
        """Runner for another topology sharing this run's state."""
        return AgentRunner(
            definitions,
            client=self.client,
            supervisor=self.supervisor,
            tool_registry=self.tool_registry,
            extensions=self.extensions,
            permissions=self.permissions,
            events=self.events,
            metrics=self.metrics,
            max_turns=self.max_turns,
            thresholds=self.thresholds,
        )

    def definition(self, name: str) -> AgentDefinition:
        try:
            return self.definitions[name]
        except KeyError:
            raise AgentNotFoundError(name) from None

    def _wrap(self, definition: AgentDefinition, tool: BaseTool) -> BaseTool:
        config = self.permissions.get((definition.name, tool.name))
        if config is None:
            config = definition.permission_config_for(tool.name)
        if config is None:
            return tool
        return Validator(tool, config)

    def build_context(self, definition: AgentDefinition) -> AgentContext:
        """Assemble the tool set and context for one invocation."""
        tools = ToolSet()

        for name in definition.tools:
            tools.add(self._wrap(definition, self.tool_registry.create(name, definition)))

        for extension in self.extensions:
            for tool in extension.tools(definition):
                tools.add(self._wrap(definition, tool))
            immutable = extension.immutable_tools(definition)
            if immutable:
                tools.mark_immutable(*immutable)

        for target in definition.delegates_to:
            target_definition = self.definition(target)
            tools.add(DelegateTool(target, target_definition.description, self.run))

        return AgentContext(
            definition.name,
            delegation_tools=definition.delegation_tools,
            metadata={"model": definition.model},
            tools=tools,
            thresholds=self.thresholds,
        )

    def _system_prompt(self, definition: AgentDefinition) -> str:
        parts = [definition.system_prompt or f"You are {definition.name}. {definition.description}"]
        for extension in self.extensions:
            addition = extension.system_prompt(definition)
            if addition:
                parts.append(addition)
        return "\n\n".join(parts)

    def _user_message(self, definition: AgentDefinition, prompt: str) -> str:
        parts = [prompt]
        for extension in self.extensions:
            parts.extend(extension.on_user_message(definition.name, prompt, True))
        return "\n\n".join(parts)

    @staticmethod
    def _assistant_message(response: LLMResponse) -> Dict[str, Any]:
        message: Dict[str, Any] = {"role": "assistant", "content": response.content}
        if response.tool_calls:
            message["tool_calls"] = [
                {
                    "id": call.id,
                    "type": "function",
                    "function": {"name": call.name, "arguments": json.dumps(call.arguments)},
                }
                for call in response.tool_calls
            ]
        return message

    async def run(self, agent_name: str, prompt: str) -> str:
        """Drive ``agent_name``'s conversation to its final text.

        Args:
            agent_name: Agent to run
            prompt: User message for the agent

        Returns:
            The agent's last assistant content

        Raises:
            LLMError: If the LLM client fails at any depth
        """
        definition = self.definition(agent_name)
        context = self.build_context(definition)
        client = client_for(self.client, definition)
        history: List[Dict[str, Any]] = [
            {"role": "system", "content": self._system_prompt(definition)},
            {"role": "user", "content": self._user_message(definition, prompt)},
        ]

        logger.info(f"[RUNNER:{agent_name}] Starting ({len(context.tools)} tools)")
        self.events.emit("agent_start", agent=agent_name, prompt=_preview(prompt))

        content = ""
        for turn in range(1, self.max_turns + 1):
            response = await self._converse(client, definition, history, context.tools.schemas())
            self.metrics.record_usage(response.usage)
            content = response.content or ""
            history.append(self._assistant_message(response))

            warning = self._context_warning(definition, context, response.usage)

            if not response.tool_calls:
                logger.info(f"[RUNNER:{agent_name}] Finished after {turn} turn(s)")
                self.events.emit("agent_stop", agent=agent_name, turns=turn, content=_preview(content))
                return content

            outputs = await self._dispatch(definition, context, response.tool_calls)
            for call, output in zip(response.tool_calls, outputs):
                history.append({"role": "tool", "tool_call_id": call.id, "content": output})

            if warning:
                history.append({"role": "user", "content": warning})

        logger.warning(f"[RUNNER:{agent_name}] Reached max turns ({self.max_turns}), returning last content")
        self.events.emit("agent_stop", agent=agent_name, turns=self.max_turns, content=_preview(content), truncated=True)
        return content

    async def _converse(
        self,
        client: LLMClient,
        definition: AgentDefinition,
        history: List[Dict[str, Any]],
        tools: List[Dict[str, Any]]
    ) -> LLMResponse:
        try:
            return await client.converse(history, tools)
        except LLMError:
            raise
        except Exception as e:
            logger.exception(f"[RUNNER:{definition.name}] LLM call failed: {e}")
            raise LLMError(f"LLM call failed for agent '{definition.name}': {e}", agent=definition.name) from e

    def _context_warning(self, definition: AgentDefinition, context: AgentContext, usage: Usage) -> Optional[str]:
        if not definition.context_window or not usage.input_tokens:
            return None

        percentage = usage.input_tokens / definition.context_window * 100
        crossed = context.crossed_thresholds(percentage)
        if not crossed:
            return None

        for threshold in crossed:
            logger.warning(f"[RUNNER:{definition.name}] Context usage reached {threshold}% ({percentage:.1f}%)")
            self.events.emit(
                "context_limit_warning",
                agent=definition.name,
                threshold=threshold,
                usage_percentage=round(percentage, 1),
                input_tokens=usage.input_tokens,
                context_window=definition.context_window,
            )

        return (
            "<system-reminder>\n"
            f"Context usage is at {percentage:.0f}% of the {definition.context_window}-token window "
            f"(threshold {max(crossed)}% reached). Keep remaining work focused and summarise where possible.\n"
            "</system-reminder>"
        )

    async def _dispatch(self, definition: AgentDefinition, context: AgentContext, calls: List[ToolCall]) -> List[str]:
        # One task per call; results are matched to calls by position, not completion order.
        tasks = [asyncio.create_task(self._execute_call(definition, context, call)) for call in calls]
        try:
            return list(await asyncio.gather(*tasks))
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

    async def _execute_call(self, definition: AgentDefinition, context: AgentContext, call: ToolCall) -> str:
        tool = context.tools.get(call.name)
        self.metrics.tool_executions += 1
        self.events.emit("tool_call", agent=definition.name, tool=call.name, call_id=call.id, arguments=call.arguments)

        async with self.supervisor.slot(definition.name):
            self.metrics.peak_concurrency = max(self.metrics.peak_concurrency, self.supervisor.active)
            if tool is None:
                output = f"Error: tool '{call.name}' is not available to agent '{definition.name}'"
            elif context.delegation_tool(call.name):
                output = await self._delegate(definition, context, call, tool)
            else:
                output = await tool.call(call.arguments)

        self.events.emit("tool_result", agent=definition.name, tool=call.name, call_id=call.id, result=_preview(output))
        return output

    async def _delegate(self, definition: AgentDefinition, context: AgentContext, call: ToolCall, tool: BaseTool) -> str:
        target = tool.target
        context.track_delegation(call.id, target)
        self.metrics.delegations += 1
        logger.info(f"[RUNNER:{definition.name}] Delegating to {target}")
        self.events.emit("delegation_start", agent=definition.name, target=target, call_id=call.id)
        try:
            output = await tool.call(call.arguments)
        finally:
            context.clear_delegation(call.id)
        self.events.emit("delegation_result", agent=definition.name, target=target, call_id=call.id, result=_preview(output))
        return output
