"""Immutable agent definitions."""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ..errors import ConfigurationError
from ..permissions.config import PermissionConfig, PermissionRules

DELEGATION_TOOL_PREFIX = "DelegateTaskTo"


def delegation_tool_name(target: str) -> str:
    """Name of the tool an agent calls to delegate to ``target``."""
    return f"{DELEGATION_TOOL_PREFIX}{target[:1].upper()}{target[1:]}"


class AgentDefinition(BaseModel):
    """Load-time configuration of one agent.

    Frozen once constructed and shared read-only across every run.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1, description="What the agent does; shown to delegating agents")
    model: Optional[str] = Field(default=None, description="Model name; the client default when unset")
    system_prompt: Optional[str] = None
    tools: List[str] = Field(default_factory=list)
    delegates_to: List[str] = Field(default_factory=list)
    permissions: Dict[str, PermissionRules] = Field(
        default_factory=dict,
        description="Per-tool rules, '*' applies to every tool without its own entry"
    )
    bypass_permissions: bool = False
    directories: List[str] = Field(default_factory=lambda: ["."])
    parameters: Dict[str, Any] = Field(default_factory=dict)
    context_window: Optional[int] = Field(default=None, gt=0)
    max_concurrent_tools: Optional[int] = Field(default=None, gt=0)
    temperature: Optional[float] = None
    max_tokens: Optional[int] = None

    @field_validator("delegates_to", "tools")
    @classmethod
    def _unique(cls, value: List[str]) -> List[str]:
        return list(dict.fromkeys(value))

    @field_validator("directories")
    @classmethod
    def _non_empty(cls, value: List[str]) -> List[str]:
        if not value:
            raise ValueError("at least one directory is required")
        return value

    @classmethod
    def from_dict(cls, name: str, config: Dict[str, Any]) -> 'AgentDefinition':
        """Build a definition, reporting bad fields as ConfigurationError.

        Args:
            name: Agent name
            config: Parsed configuration mapping

        Returns:
            AgentDefinition instance

        Raises:
            ConfigurationError: If a field is missing or invalid
        """
        try:
            return cls(name=name, **config)
        except ValidationError as e:
            problems = "; ".join(
                f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
            )
            raise ConfigurationError(f"Invalid configuration for agent '{name}': {problems}") from e
        except TypeError as e:
            raise ConfigurationError(f"Invalid configuration for agent '{name}': {e}") from e

    def with_delegates(self, delegates: List[str]) -> 'AgentDefinition':
        """Copy of this definition with a different delegation list."""
        return self.model_copy(update={"delegates_to": list(dict.fromkeys(delegates))})

    @property
    def primary_directory(self) -> str:
        return self.directories[0]

    def rules_for(self, tool_name: str) -> Optional[PermissionRules]:
        """Rules governing ``tool_name``; a tool entry wins over '*'."""
        if tool_name in self.permissions:
            return self.permissions[tool_name]
        return self.permissions.get("*")

    def permission_config_for(self, tool_name: str) -> Optional[PermissionConfig]:
        if self.bypass_permissions:
            return None
        rules = self.rules_for(tool_name)
        if rules is None:
            return None
        return PermissionConfig(rules, base_directories=self.directories)

    @property
    def delegation_tools(self) -> List[str]:
        return [delegation_tool_name(target) for target in self.delegates_to]
