"""Fluent construction of a Swarm."""

from typing import Any, Dict, List, Optional

from loguru import logger

from ..agent.definition import AgentDefinition
from ..agent.extension import Extension
from ..agent.llm import LLMClient, OpenAIClient
from ..concurrency import DEFAULT_GLOBAL_CONCURRENCY, DEFAULT_LOCAL_CONCURRENCY
from ..errors import ConfigurationError
from ..graph.workflow import Node, Transformer
from ..tools.registry import ToolFactory, ToolRegistry
from .runner import DEFAULT_MAX_TURNS
from .swarm import Swarm


class SwarmBuilder:
    """Collects agents, nodes, tools and extensions, then builds a Swarm.

    Example:
        swarm = (
            SwarmBuilder("dev-team")
            .agent("lead", description="Coordinates", delegates_to=["backend"])
            .agent("backend", description="Writes APIs", tools=["Read", "Write"])
            .lead("lead")
            .client(client)
            .build()
        )
    """

    def __init__(self, name: str = "swarm"):
        self.name = name
        self._agents: Dict[str, AgentDefinition] = {}
        self._nodes: List[Node] = []
        self._lead: Optional[str] = None
        self._start_node: Optional[str] = None
        self._extensions: List[Extension] = []
        self._registry = ToolRegistry()
        self._client: Optional[LLMClient] = None
        self._global_limit = DEFAULT_GLOBAL_CONCURRENCY
        self._local_limit = DEFAULT_LOCAL_CONCURRENCY
        self._max_turns = DEFAULT_MAX_TURNS
        self._thresholds: Optional[List[int]] = None
        self._timeout: Optional[float] = None

    @classmethod
    def from_settings(cls, settings: Any, name: Optional[str] = None) -> 'SwarmBuilder':
        """Builder seeded with limits and an OpenAI client from Settings."""
        builder = cls(name or settings.app_name)
        builder._global_limit = settings.global_concurrency
        builder._local_limit = settings.local_concurrency
        builder._max_turns = settings.max_turns
        builder._thresholds = list(settings.context_warning_thresholds)
        builder._timeout = settings.execution_timeout
        builder._client = OpenAIClient.from_settings(settings)
        return builder

    def agent(self, name: str, **config: Any) -> 'SwarmBuilder':
        if name in self._agents:
            raise ConfigurationError(f"Agent '{name}' is defined more than once")
        self._agents[name] = AgentDefinition.from_dict(name, config)
        logger.debug(f"[BUILDER:{self.name}] Added agent '{name}'")
        return self

    def add_definition(self, definition: AgentDefinition) -> 'SwarmBuilder':
        if definition.name in self._agents:
            raise ConfigurationError(f"Agent '{definition.name}' is defined more than once")
        self._agents[definition.name] = definition
        return self

    def lead(self, name: str) -> 'SwarmBuilder':
        self._lead = name
        return self

    def node(
        self,
        name: str,
        agent: Optional[str] = None,
        depends_on: Optional[List[str]] = None,
        delegates_to: Optional[List[str]] = None,
        delegates: Optional[Dict[str, List[str]]] = None,
        input: Optional[Transformer] = None,
        output: Optional[Transformer] = None,
        description: str = ""
    ) -> 'SwarmBuilder':
        self._nodes.append(Node(
            name=name,
            agent=agent,
            depends_on=list(depends_on or []),
            delegates_to=delegates_to,
            delegates=dict(delegates or {}),
            input=input,
            output=output,
            description=description,
        ))
        return self

    def start_node(self, name: str) -> 'SwarmBuilder':
        self._start_node = name
        return self

    def extension(self, extension: Extension) -> 'SwarmBuilder':
        self._extensions.append(extension)
        return self

    def tool(self, name: str, factory: ToolFactory) -> 'SwarmBuilder':
        self._registry.register(name, factory)
        return self

    def concurrency(self, global_limit: Optional[int] = None, local_limit: Optional[int] = None) -> 'SwarmBuilder':
        if global_limit is not None:
            self._global_limit = global_limit
        if local_limit is not None:
            self._local_limit = local_limit
        return self

    def max_turns(self, turns: int) -> 'SwarmBuilder':
        self._max_turns = turns
        return self

    def timeout(self, seconds: Optional[float]) -> 'SwarmBuilder':
        self._timeout = seconds
        return self

    def client(self, client: LLMClient) -> 'SwarmBuilder':
        self._client = client
        return self

    def build(self) -> Swarm:
        """Validate everything and return the Swarm.

        Raises:
            ConfigurationError: If the collected configuration is invalid
        """
        if self._client is None:
            raise ConfigurationError(f"Swarm '{self.name}' has no LLM client")
        if self._nodes and self._lead is not None:
            raise ConfigurationError(f"Swarm '{self.name}' cannot have both a lead agent and workflow nodes")

        kwargs: Dict[str, Any] = {}
        if self._thresholds is not None:
            kwargs["context_warning_thresholds"] = self._thresholds

        return Swarm(
            self.name,
            list(self._agents.values()),
            client=self._client,
            lead=self._lead,
            nodes=self._nodes or None,
            start_node=self._start_node,
            global_concurrency=self._global_limit,
            local_concurrency=self._local_limit,
            tool_registry=self._registry,
            extensions=self._extensions,
            max_turns=self._max_turns,
            timeout=self._timeout,
            **kwargs
        )
