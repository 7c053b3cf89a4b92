"""Data models for swarm execution."""
from typing import List, Dict, Any, Optional, Callable
from dataclasses import dataclass, field
from datetime import datetime


@dataclass
class ToolCall:
    """A tool invocation requested by the model."""
    id: str
    name: str
    arguments: Dict[str, Any] = field(default_factory=dict)


@dataclass
class Usage:
    """Token usage reported for one LLM call."""
    input_tokens: int = 0
    output_tokens: int = 0
    total_tokens: int = 0

    def __post_init__(self):
        if not self.total_tokens:
            self.total_tokens = self.input_tokens + self.output_tokens


@dataclass
class LLMResponse:
    """One assistant turn as returned by an LLM client."""
    content: Optional[str] = None
    tool_calls: List[ToolCall] = field(default_factory=list)
    usage: Usage = field(default_factory=Usage)

    @property
    def has_tool_calls(self) -> bool:
        return bool(self.tool_calls)


@dataclass
class AgentMetrics:
    """Counters accumulated over one execute() call."""
    llm_calls: int = 0
    total_input_tokens: int = 0
    total_output_tokens: int = 0
    tool_executions: int = 0
    delegations: int = 0
    peak_concurrency: int = 0

    def record_usage(self, usage: Usage) -> None:
        self.llm_calls += 1
        self.total_input_tokens += usage.input_tokens
        self.total_output_tokens += usage.output_tokens

    def to_dict(self) -> Dict[str, Any]:
        """Convert metrics to dictionary."""
        return {
            "llm_calls": self.llm_calls,
            "total_input_tokens": self.total_input_tokens,
            "total_output_tokens": self.total_output_tokens,
            "total_tokens": self.total_input_tokens + self.total_output_tokens,
            "tool_executions": self.tool_executions,
            "delegations": self.delegations,
            "peak_concurrency": self.peak_concurrency,
        }


class EventLog:
    """Append-only list of structured events for one run.

    Every event is also forwarded to the optional callback.
    """

    def __init__(self, callback: Optional[Callable[[Dict[str, Any]], None]] = None):
        self.events: List[Dict[str, Any]] = []
        self.callback = callback

    def emit(self, event_type: str, **data: Any) -> Dict[str, Any]:
        event = {"type": event_type, "timestamp": datetime.now().isoformat(), **data}
        self.events.append(event)
        if self.callback is not None:
            self.callback(event)
        return event

    def of_type(self, event_type: str) -> List[Dict[str, Any]]:
        return [e for e in self.events if e["type"] == event_type]

    def __len__(self) -> int:
        return len(self.events)


@dataclass
class Result:
    """Outcome of a top-level execute() or of a single workflow node."""
    content: Optional[str] = None
    agent: Optional[str] = None
    error: Optional[str] = None
    duration: float = 0.0
    logs: List[Dict[str, Any]] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def success(self) -> bool:
        return self.error is None

    @property
    def failure(self) -> bool:
        return not self.success

    def to_dict(self) -> Dict[str, Any]:
        """Convert result to dictionary."""
        metadata = dict(self.metadata)
        if "node_results" in metadata:
            metadata["node_results"] = {
                name: r.to_dict() if isinstance(r, Result) else r
                for name, r in metadata["node_results"].items()
            }
        return {
            "content": self.content,
            "agent": self.agent,
            "error": self.error,
            "success": self.success,
            "duration": round(self.duration, 3),
            "logs": self.logs,
            "metadata": metadata,
        }
