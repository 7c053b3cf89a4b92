"""Exception hierarchy for swarm orchestration."""

from typing import List, Optional


class SwarmError(Exception):
    """Base class for all orchestration errors."""


class ConfigurationError(SwarmError):
    """Raised at load time for bad or missing configuration.

    Execution never starts once one of these is raised.
    """


class CircularDependencyError(ConfigurationError):
    """Raised when a delegation or node dependency graph contains a cycle."""

    def __init__(self, cycle: List[str], kind: str = "dependency"):
        self.cycle = list(cycle)
        self.kind = kind
        super().__init__(f"Circular {kind} detected: {' -> '.join(self.cycle)}")


class AgentNotFoundError(ConfigurationError):
    """Raised when a name refers to an agent that was never declared."""

    def __init__(self, name: str, referenced_by: Optional[str] = None):
        self.name = name
        self.referenced_by = referenced_by
        if referenced_by:
            message = f"Agent '{referenced_by}' references unknown agent '{name}'"
        else:
            message = f"Agent '{name}' not found"
        super().__init__(message)


class ToolExecutionError(SwarmError):
    """Raised by tools for failures that should be reported to the model."""


class LLMError(SwarmError):
    """Wraps any failure raised by the LLM client."""

    def __init__(self, message: str, agent: Optional[str] = None):
        self.agent = agent
        super().__init__(message)


class StateError(SwarmError):
    """Raised when runtime state is used incorrectly (e.g. double release)."""
