"""Node-based workflows: a DAG of staged agent invocations."""

import asyncio
import inspect
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Union

from loguru import logger

from ..agent.definition import AgentDefinition
from ..agent.models import Result
from ..errors import AgentNotFoundError, ConfigurationError
from .dependency import DependencyGraph
from .results import ResultStore


class NodeStatus(Enum):
    """Status of a node in a workflow run."""
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    SKIPPED = "skipped"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class SkipExecution:
    """Returned by an input transformer to bypass the node's agent.

    ``content`` becomes the node's raw result.
    """
    content: str


@dataclass
class NodeContext:
    """What a transformer sees.

    For input transformers ``content`` is the payload bound for the agent:
    the prompt for the start node, the single dependency's result when there
    is exactly one, otherwise None. For output transformers ``content`` is
    the agent's raw text and ``result`` the raw Result.
    """
    original_prompt: str
    all_results: Mapping[str, Result]
    node_name: str
    dependencies: List[str]
    content: Optional[str] = None
    previous_result: Optional[Result] = None
    result: Optional[Result] = None

    @property
    def agent(self) -> Optional[str]:
        source = self.result or self.previous_result
        return source.agent if source else None

    def content_of(self, node: str) -> Optional[str]:
        result = self.all_results.get(node)
        return result.content if result is not None else None


Transformer = Callable[[NodeContext], Union[str, SkipExecution, Awaitable[Union[str, SkipExecution]]]]


@dataclass
class Node:
    """A named workflow stage.

    Attributes:
        name: Unique node name
        agent: Lead agent; None makes this a pure computation stage
        delegates_to: Overrides the lead's delegation targets inside this node
        delegates: Further node-local ``agent -> targets`` overrides
        depends_on: Nodes that must finish first
        input: Optional input transformer
        output: Optional output transformer
    """
    name: str
    agent: Optional[str] = None
    delegates_to: Optional[List[str]] = None
    delegates: Dict[str, List[str]] = field(default_factory=dict)
    depends_on: List[str] = field(default_factory=list)
    input: Optional[Transformer] = None
    output: Optional[Transformer] = None
    description: str = ""


@dataclass
class WorkflowResult:
    """Per-node results plus the aggregate result."""
    result: Result
    node_results: Dict[str, Result]
    statuses: Dict[str, NodeStatus]

    @property
    def success(self) -> bool:
        return self.result.success


async def _apply(transformer: Transformer, ctx: NodeContext) -> Any:
    value = transformer(ctx)
    if inspect.isawaitable(value):
        value = await value
    return value


class WorkflowEngine:
    """Validates a node DAG once and runs it per execute() call."""

    def __init__(self, nodes: List[Node], start_node: str, definitions: Mapping[str, AgentDefinition], name: str = "workflow"):
        """Validate the workflow.

        Args:
            nodes: Workflow nodes in declaration order
            start_node: Node that receives the external prompt
            definitions: Every declared agent definition
            name: Workflow name for logging

        Raises:
            ConfigurationError: On any structural problem
            CircularDependencyError: If node dependencies form a cycle
        """
        self.name = name
        self.nodes: Dict[str, Node] = {}
        for node in nodes:
            if node.name in self.nodes:
                raise ConfigurationError(f"Node '{node.name}' is defined more than once")
            self.nodes[node.name] = node

        if not self.nodes:
            raise ConfigurationError("A workflow needs at least one node")
        if start_node not in self.nodes:
            raise ConfigurationError(f"Start node '{start_node}' is not defined")
        self.start_node = start_node

        for node in self.nodes.values():
            for dep in node.depends_on:
                if dep not in self.nodes:
                    raise ConfigurationError(f"Node '{node.name}' depends on unknown node '{dep}'")
            if node.name == start_node and node.depends_on:
                raise ConfigurationError(f"Start node '{start_node}' cannot have dependencies")
            if node.name != start_node and not node.depends_on:
                raise ConfigurationError(
                    f"Node '{node.name}' has no dependencies; only the start node '{start_node}' may"
                )

        self.graph = DependencyGraph(
            {n.name: n.depends_on for n in self.nodes.values()},
            kind="node dependency",
            name=name,
        )

        self.node_definitions: Dict[str, Dict[str, AgentDefinition]] = {
            node.name: self._definitions_for(node, definitions) for node in self.nodes.values()
        }
        self.order: List[str] = [n for level in self.graph.topological_levels() for n in level]
        self.sinks: List[str] = [n for n in self.nodes if not self.graph.sources(n)]

        logger.info(f"[WORKFLOW:{self.name}] Validated {len(self.nodes)} nodes, sinks={self.sinks}")

    @staticmethod
    def _definitions_for(node: Node, definitions: Mapping[str, AgentDefinition]) -> Dict[str, AgentDefinition]:
        if node.agent is None:
            if node.input is None and node.output is None:
                raise ConfigurationError(f"Node '{node.name}' has no agent and no transformer")
            if node.delegates_to or node.delegates:
                raise ConfigurationError(f"Node '{node.name}' declares delegates but no agent")
            return {}

        if node.agent not in definitions:
            raise AgentNotFoundError(node.agent, referenced_by=f"node:{node.name}")

        overrides = dict(node.delegates)
        if node.delegates_to is not None:
            overrides[node.agent] = node.delegates_to

        scoped = dict(definitions)
        for agent, targets in overrides.items():
            if agent not in scoped:
                raise AgentNotFoundError(agent, referenced_by=f"node:{node.name}")
            for target in targets:
                if target not in scoped:
                    raise AgentNotFoundError(target, referenced_by=f"node:{node.name}")
            scoped[agent] = scoped[agent].with_delegates(targets)

        DependencyGraph.for_agents(scoped)
        return scoped

    def final_content(self, store: ResultStore) -> Optional[str]:
        if len(self.sinks) == 1:
            return store.content(self.sinks[0])
        return "\n\n".join(f"## {name}\n{store.content(name) or ''}" for name in self.sinks)

    async def run(self, prompt: str, runner: Any) -> WorkflowResult:
        """Run every node, respecting dependencies.

        Nodes whose dependencies are all complete run concurrently. The
        first failure cancels in-flight nodes and stops scheduling.

        Args:
            prompt: External prompt for the start node
            runner: AgentRunner shared by the whole execute() call

        Returns:
            WorkflowResult
        """
        start = time.time()
        store = ResultStore()
        statuses = {name: NodeStatus.PENDING for name in self.nodes}
        running: Dict[asyncio.Task, str] = {}
        failure: Optional[Result] = None

        logger.info(f"[WORKFLOW:{self.name}] Starting")

        try:
            while True:
                for name in self.order:
                    if statuses[name] is not NodeStatus.PENDING:
                        continue
                    if all(dep in store for dep in self.nodes[name].depends_on):
                        statuses[name] = NodeStatus.RUNNING
                        task = asyncio.create_task(self._run_node(self.nodes[name], prompt, store, runner))
                        running[task] = name

                if not running:
                    break

                done, _ = await asyncio.wait(running, return_when=asyncio.FIRST_COMPLETED)
                for task in done:
                    name = running.pop(task)
                    result = task.result()
                    if result.success:
                        store.record(name, result)
                        statuses[name] = (
                            NodeStatus.SKIPPED if result.metadata.get("skipped") else NodeStatus.COMPLETED
                        )
                    else:
                        statuses[name] = NodeStatus.FAILED
                        if failure is None:
                            failure = result

                if failure is not None:
                    break
        finally:
            for task, name in running.items():
                task.cancel()
                statuses[name] = NodeStatus.CANCELLED
            if running:
                await asyncio.gather(*running, return_exceptions=True)

        node_results = store.to_dict()
        if failure is not None:
            node_results[failure.metadata["node"]] = failure
            logger.error(f"[WORKFLOW:{self.name}] Failed at node '{failure.metadata['node']}': {failure.error}")
            result = Result(
                content=None,
                agent=failure.agent,
                error=failure.error,
                duration=time.time() - start,
                metadata={"node_results": node_results, "failed_node": failure.metadata["node"]},
            )
        else:
            last = store.get(self.sinks[-1])
            result = Result(
                content=self.final_content(store),
                agent=last.agent if last else None,
                duration=time.time() - start,
                metadata={"node_results": node_results, "completion_order": store.completion_order()},
            )
            logger.info(f"[WORKFLOW:{self.name}] Completed {len(store)} nodes in {result.duration:.2f}s")

        return WorkflowResult(result=result, node_results=node_results, statuses=statuses)

    async def _run_node(self, node: Node, prompt: str, store: ResultStore, runner: Any) -> Result:
        start = time.time()
        runner.events.emit("node_start", node=node.name, agent=node.agent, dependencies=list(node.depends_on))
        logger.info(f"[NODE:{node.name}] Starting")

        try:
            content, raw, skipped = await self._execute(node, prompt, store, runner)
        except asyncio.CancelledError:
            logger.warning(f"[NODE:{node.name}] Cancelled")
            raise
        except Exception as e:
            logger.exception(f"[NODE:{node.name}] Error: {e}")
            duration = time.time() - start
            runner.events.emit("node_stop", node=node.name, success=False, error=str(e), duration=duration)
            return Result(agent=node.agent, error=str(e), duration=duration, metadata={"node": node.name})

        duration = time.time() - start
        runner.events.emit("node_stop", node=node.name, success=True, skipped=skipped, duration=duration)
        logger.info(f"[NODE:{node.name}] Completed in {duration:.2f}s")
        return Result(
            content=content,
            agent=node.agent,
            duration=duration,
            metadata={"node": node.name, "raw_content": raw, "skipped": skipped},
        )

    async def _execute(self, node: Node, prompt: str, store: ResultStore, runner: Any):
        previous = None
        if node.name == self.start_node:
            content: Optional[str] = prompt
        elif len(node.depends_on) == 1:
            previous = store.get(node.depends_on[0])
            content = previous.content
        else:
            content = None

        skipped = False
        if node.input is not None:
            ctx = NodeContext(
                original_prompt=prompt,
                all_results=store.view(),
                node_name=node.name,
                dependencies=list(node.depends_on),
                content=content,
                previous_result=previous,
            )
            transformed = await _apply(node.input, ctx)
            if isinstance(transformed, SkipExecution):
                logger.info(f"[NODE:{node.name}] Input transformer skipped execution")
                content, skipped = transformed.content, True
            elif transformed is None:
                raise ConfigurationError(f"Input transformer of node '{node.name}' returned None")
            else:
                content = str(transformed)

        if skipped or node.agent is None:
            raw = content
        else:
            if content is None:
                raise ConfigurationError(
                    f"Node '{node.name}' has {len(node.depends_on)} dependencies and needs an input transformer"
                )
            raw = await runner.with_definitions(self.node_definitions[node.name]).run(node.agent, content)

        if node.output is None:
            return raw, raw, skipped

        ctx = NodeContext(
            original_prompt=prompt,
            all_results=store.view(),
            node_name=node.name,
            dependencies=list(node.depends_on),
            content=raw,
            result=Result(content=raw, agent=node.agent),
        )
        output = await _apply(node.output, ctx)
        if output is None:
            raise ConfigurationError(f"Output transformer of node '{node.name}' returned None")
        return str(output), raw, skipped
