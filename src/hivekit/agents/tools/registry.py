"""Name -> tool factory mapping used when agents are assembled."""

from typing import Callable, Dict, List

from loguru import logger

from ..agent.definition import AgentDefinition
from ..agent.tool_base import BaseTool
from ..errors import ConfigurationError
from .filesystem import EditTool, GlobTool, GrepTool, MultiEditTool, ReadTool, WriteTool
from .shell import BashTool

ToolFactory = Callable[[AgentDefinition], BaseTool]

BUILTIN_TOOLS: Dict[str, ToolFactory] = {
    "Read": lambda d: ReadTool(d.primary_directory),
    "Write": lambda d: WriteTool(d.primary_directory),
    "Edit": lambda d: EditTool(d.primary_directory),
    "MultiEdit": lambda d: MultiEditTool(d.primary_directory),
    "Glob": lambda d: GlobTool(d.primary_directory),
    "Grep": lambda d: GrepTool(d.primary_directory),
    "Bash": lambda d: BashTool(d.primary_directory),
}


class ToolRegistry:
    """Per-swarm tool factories, seeded with the built-ins."""

    def __init__(self, include_builtins: bool = True):
        self._factories: Dict[str, ToolFactory] = dict(BUILTIN_TOOLS) if include_builtins else {}

    def register(self, name: str, factory: ToolFactory) -> None:
        if name in self._factories:
            logger.debug(f"[TOOLS] Overriding tool factory '{name}'")
        self._factories[name] = factory

    def __contains__(self, name: str) -> bool:
        return name in self._factories

    def names(self) -> List[str]:
        return sorted(self._factories)

    def create(self, name: str, definition: AgentDefinition) -> BaseTool:
        try:
            factory = self._factories[name]
        except KeyError:
            raise ConfigurationError(
                f"Agent '{definition.name}' declares unknown tool '{name}'"
            ) from None
        return factory(definition)

    def validate(self, definition: AgentDefinition) -> None:
        """Raise ConfigurationError if ``definition`` names an unknown tool."""
        for name in definition.tools:
            if name not in self._factories:
                raise ConfigurationError(f"Agent '{definition.name}' declares unknown tool '{name}'")
