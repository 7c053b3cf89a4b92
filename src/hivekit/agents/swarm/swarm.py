"""Swarm: composition root for agents, workflows and concurrency."""

import asyncio
import time
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from loguru import logger

from ..agent.context import CONTEXT_WARNING_THRESHOLDS
from ..agent.definition import AgentDefinition
from ..agent.extension import Extension
from ..agent.llm import LLMClient
from ..agent.models import AgentMetrics, EventLog, Result
from ..concurrency import DEFAULT_GLOBAL_CONCURRENCY, DEFAULT_LOCAL_CONCURRENCY, ConcurrencySupervisor
from ..errors import AgentNotFoundError, ConfigurationError, LLMError
from ..graph.dependency import DependencyGraph
from ..graph.workflow import Node, WorkflowEngine
from ..permissions.config import PermissionConfig
from ..tools.registry import ToolRegistry
from .runner import DEFAULT_MAX_TURNS, AgentRunner

EventCallback = Callable[[Dict[str, Any]], None]


class Swarm:
    """A validated set of agents run either as a delegation tree or a workflow.

    Construction performs every load-time check; ``execute`` never raises
    for run-time failures and reports them through ``Result.error``.
    """

    def __init__(
        self,
        name: str,
        agents: Union[Iterable[AgentDefinition], Mapping[str, AgentDefinition]],
        client: LLMClient,
        lead: Optional[str] = None,
        nodes: Optional[Sequence[Node]] = None,
        start_node: Optional[str] = None,
        global_concurrency: int = DEFAULT_GLOBAL_CONCURRENCY,
        local_concurrency: int = DEFAULT_LOCAL_CONCURRENCY,
        tool_registry: Optional[ToolRegistry] = None,
        extensions: Sequence[Extension] = (),
        max_turns: int = DEFAULT_MAX_TURNS,
        context_warning_thresholds: Iterable[int] = CONTEXT_WARNING_THRESHOLDS,
        timeout: Optional[float] = None
    ):
        """Validate and wire the swarm.

        Args:
            name: Swarm name
            agents: Agent definitions
            client: LLM client shared by every agent
            lead: Lead agent for delegation mode
            nodes: Workflow nodes for workflow mode
            start_node: Workflow start node
            global_concurrency: Slots shared by all agents
            local_concurrency: Default slots per agent
            tool_registry: Tool factories (built-ins when None)
            extensions: Extensions composed into every agent
            max_turns: Turn limit per agent invocation
            context_warning_thresholds: Context usage warning percentages
            timeout: Default execute() timeout in seconds

        Raises:
            ConfigurationError: On any invalid configuration
            CircularDependencyError: If delegation or node dependencies cycle
        """
        self.name = name
        self.client = client
        self.global_concurrency = global_concurrency
        self.local_concurrency = local_concurrency
        self.tool_registry = tool_registry or ToolRegistry()
        self.extensions = list(extensions)
        self.max_turns = max_turns
        self.context_warning_thresholds = tuple(context_warning_thresholds)
        self.timeout = timeout

        self.agents = self._index(agents)
        if not self.agents:
            raise ConfigurationError(f"Swarm '{name}' has no agents")

        if (lead is None) == (nodes is None):
            raise ConfigurationError(f"Swarm '{name}' needs exactly one of a lead agent or workflow nodes")

        self.graph = DependencyGraph.for_agents(self.agents)
        for definition in self.agents.values():
            self.tool_registry.validate(definition)
        self.permissions = self._resolve_permissions()

        # Validates limits; execute() builds its own.
        ConcurrencySupervisor(global_concurrency, local_concurrency, self._agent_limits())

        self.lead = lead
        self.workflow: Optional[WorkflowEngine] = None
        if lead is not None:
            if lead not in self.agents:
                raise AgentNotFoundError(lead, referenced_by=f"swarm:{name}")
        else:
            if start_node is None:
                raise ConfigurationError(f"Swarm '{name}' defines nodes but no start node")
            self.workflow = WorkflowEngine(list(nodes), start_node, self.agents, name=name)

        depth = self.delegation_depth()
        if global_concurrency < depth:
            raise ConfigurationError(
                f"Swarm '{name}' has a delegation chain of {depth} agents but global_concurrency is "
                f"{global_concurrency}; every agent in a chain holds a slot while it waits"
            )

        logger.info(
            f"[SWARM:{self.name}] Ready: {len(self.agents)} agents, mode={self.mode}, "
            f"concurrency={global_concurrency}/{local_concurrency}"
        )

    @staticmethod
    def _index(agents: Union[Iterable[AgentDefinition], Mapping[str, AgentDefinition]]) -> Dict[str, AgentDefinition]:
        if isinstance(agents, Mapping):
            agents = list(agents.values())
        indexed: Dict[str, AgentDefinition] = {}
        for definition in agents:
            if definition.name in indexed:
                raise ConfigurationError(f"Agent '{definition.name}' is defined more than once")
            indexed[definition.name] = definition
        return indexed

    def _resolve_permissions(self) -> Dict[Tuple[str, str], PermissionConfig]:
        resolved = {}
        for definition in self.agents.values():
            if definition.bypass_permissions:
                continue
            # Every rule set is compiled here so bad regexes fail at load.
            for key, rules in definition.permissions.items():
                config = PermissionConfig(rules, base_directories=definition.directories)
                if key != "*":
                    resolved[(definition.name, key)] = config
            for tool_name in definition.tools:
                if (definition.name, tool_name) not in resolved:
                    config = definition.permission_config_for(tool_name)
                    if config is not None:
                        resolved[(definition.name, tool_name)] = config
        return resolved

    def _agent_limits(self) -> Dict[str, int]:
        return {
            name: d.max_concurrent_tools
            for name, d in self.agents.items()
            if d.max_concurrent_tools is not None
        }

    def delegation_depth(self) -> int:
        """Agents in the longest delegation chain, node-local topologies included."""
        graphs = [self.graph]
        if self.workflow is not None:
            graphs.extend(DependencyGraph.for_agents(d) for d in self.workflow.node_definitions.values())
        return max(len(g.topological_levels()) for g in graphs)

    @property
    def mode(self) -> str:
        return "delegation" if self.lead is not None else "workflow"

    def create_runner(self, events: Optional[EventLog] = None, metrics: Optional[AgentMetrics] = None) -> AgentRunner:
        """Fresh runner and supervisor for one execute() call."""
        supervisor = ConcurrencySupervisor(
            self.global_concurrency,
            self.local_concurrency,
            self._agent_limits(),
        )
        return AgentRunner(
            self.agents,
            client=self.client,
            supervisor=supervisor,
            tool_registry=self.tool_registry,
            extensions=self.extensions,
            permissions=self.permissions,
            events=events,
            metrics=metrics,
            max_turns=self.max_turns,
            thresholds=self.context_warning_thresholds,
        )

    async def _run(self, prompt: str, runner: AgentRunner) -> Result:
        if self.workflow is not None:
            outcome = await self.workflow.run(prompt, runner)
            return outcome.result
        content = await runner.run(self.lead, prompt)
        return Result(content=content, agent=self.lead)

    async def execute(
        self,
        prompt: str,
        timeout: Optional[float] = None,
        on_event: Optional[EventCallback] = None
    ) -> Result:
        """Run the swarm on ``prompt``.

        Args:
            prompt: External prompt
            timeout: Seconds before every outstanding task is cancelled
            on_event: Called with each structured event as it happens

        Returns:
            Result; ``error`` is set when the run failed
        """
        timeout = timeout if timeout is not None else self.timeout
        start = time.time()
        events = EventLog(on_event)
        metrics = AgentMetrics()
        runner = self.create_runner(events, metrics)

        logger.info(f"[SWARM:{self.name}] Executing ({self.mode})")

        try:
            if timeout is not None:
                result = await asyncio.wait_for(self._run(prompt, runner), timeout=timeout)
            else:
                result = await self._run(prompt, runner)
        except asyncio.TimeoutError:
            logger.error(f"[SWARM:{self.name}] Timed out after {timeout}s")
            result = Result(agent=self.lead, error=f"Execution timed out after {timeout} seconds")
        except LLMError as e:
            logger.error(f"[SWARM:{self.name}] LLM failure: {e}")
            result = Result(agent=e.agent or self.lead, error=str(e))
        except Exception as e:
            logger.exception(f"[SWARM:{self.name}] Execution failed: {e}")
            result = Result(agent=self.lead, error=f"{type(e).__name__}: {e}")

        result.duration = time.time() - start
        result.logs = events.events
        result.metadata.setdefault("swarm", self.name)
        metrics.peak_concurrency = max(metrics.peak_concurrency, runner.supervisor.peak)
        result.metadata["metrics"] = metrics.to_dict()

        status = "succeeded" if result.success else f"failed: {result.error}"
        logger.info(f"[SWARM:{self.name}] Execution {status} in {result.duration:.2f}s")
        return result

    def execute_sync(self, prompt: str, timeout: Optional[float] = None, on_event: Optional[EventCallback] = None) -> Result:
        """Blocking wrapper around ``execute`` for code without an event loop."""
        return asyncio.run(self.execute(prompt, timeout=timeout, on_event=on_event))

    def agent_names(self) -> List[str]:
        return list(self.agents)
