"""Agent definitions, per-run context and the LLM boundary."""

# Core data models
from .models import (
    ToolCall,
    Usage,
    LLMResponse,
    AgentMetrics,
    EventLog,
    Result
)

# Tool base classes
from .tool_base import BaseTool, StructuredTool, tool

# Definitions and context
from .definition import AgentDefinition, delegation_tool_name
from .context import AgentContext, ToolSet, CONTEXT_WARNING_THRESHOLDS

# LLM boundary
from .llm import LLMClient, OpenAIClient

# Extension interface
from .extension import Extension


__all__ = [
    # Data models
    "ToolCall",
    "Usage",
    "LLMResponse",
    "AgentMetrics",
    "EventLog",
    "Result",
    # Tool base classes
    "BaseTool",
    "StructuredTool",
    "tool",
    # Definitions and context
    "AgentDefinition",
    "delegation_tool_name",
    "AgentContext",
    "ToolSet",
    "CONTEXT_WARNING_THRESHOLDS",
    # LLM
    "LLMClient",
    "OpenAIClient",
    # Extensions
    "Extension",
]
