"""Per-run agent state."""

from typing import Any, Dict, Iterable, List, Optional, Set

from loguru import logger

from ..errors import StateError
from .tool_base import BaseTool

CONTEXT_WARNING_THRESHOLDS = (80, 90)


class ToolSet:
    """Capability set of tools owned by one agent context.

    Mutated only through ``add``/``remove``. Names marked immutable survive
    ``remove_mutable`` and cannot be removed individually.
    """

    def __init__(self, tools: Optional[Iterable[BaseTool]] = None):
        self._tools: Dict[str, BaseTool] = {}
        self._immutable: Set[str] = set()
        for item in tools or []:
            self.add(item)

    def add(self, tool: BaseTool) -> None:
        if tool.name in self._tools:
            logger.debug(f"[TOOLSET] Replacing tool '{tool.name}'")
        self._tools[tool.name] = tool

    def remove(self, name: str) -> BaseTool:
        if name in self._immutable:
            raise StateError(f"Tool '{name}' is immutable and cannot be removed")
        try:
            return self._tools.pop(name)
        except KeyError:
            raise StateError(f"Tool '{name}' is not registered") from None

    def mark_immutable(self, *names: str) -> None:
        for name in names:
            if name not in self._tools:
                raise StateError(f"Tool '{name}' is not registered")
            self._immutable.add(name)

    def remove_mutable(self) -> List[str]:
        """Drop every tool not marked immutable, returning the removed names."""
        removed = [name for name in self._tools if name not in self._immutable]
        for name in removed:
            del self._tools[name]
        return removed

    def get(self, name: str) -> Optional[BaseTool]:
        return self._tools.get(name)

    def names(self) -> List[str]:
        return list(self._tools)

    def schemas(self) -> List[Dict[str, Any]]:
        return [t.to_schema() for t in self._tools.values()]

    def __contains__(self, name: str) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)


class AgentContext:
    """Mutable state of one agent for the duration of a single run.

    Owned exclusively by the task driving that agent's conversation.
    """

    def __init__(
        self,
        name: str,
        delegation_tools: Optional[Iterable[str]] = None,
        metadata: Optional[Dict[str, Any]] = None,
        tools: Optional[ToolSet] = None,
        thresholds: Iterable[int] = CONTEXT_WARNING_THRESHOLDS
    ):
        self.name = name
        self.delegation_tools: Set[str] = set(delegation_tools or [])
        self.metadata: Dict[str, Any] = dict(metadata or {})
        self.tools = tools or ToolSet()
        self.thresholds = tuple(sorted(thresholds))
        self._delegations: Dict[str, str] = {}
        self._warnings_hit: Set[int] = set()

    def delegation_tool(self, tool_name: str) -> bool:
        return tool_name in self.delegation_tools

    def track_delegation(self, call_id: str, target: str) -> None:
        self._delegations[call_id] = target

    def delegation(self, call_id: str) -> bool:
        return call_id in self._delegations

    def delegation_target(self, call_id: str) -> Optional[str]:
        return self._delegations.get(call_id)

    def clear_delegation(self, call_id: str) -> None:
        self._delegations.pop(call_id, None)

    @property
    def pending_delegations(self) -> Dict[str, str]:
        return dict(self._delegations)

    def hit_warning_threshold(self, percentage: int) -> bool:
        """One-shot gate: True only the first time ``percentage`` is reported."""
        if percentage in self._warnings_hit:
            return False
        self._warnings_hit.add(percentage)
        return True

    def warning_threshold_hit(self, percentage: int) -> bool:
        return percentage in self._warnings_hit

    def crossed_thresholds(self, usage_percentage: float) -> List[int]:
        """Thresholds reached by ``usage_percentage`` that have not fired yet."""
        return [
            t for t in self.thresholds
            if usage_percentage >= t and self.hit_warning_threshold(t)
        ]
