"""Built-in tools and the tool registry."""

from .filesystem import ReadTool, WriteTool, EditTool, MultiEditTool, GlobTool, GrepTool
from .shell import BashTool
from .delegate import DelegateTool
from .registry import ToolRegistry, BUILTIN_TOOLS

__all__ = [
    "ReadTool",
    "WriteTool",
    "EditTool",
    "MultiEditTool",
    "GlobTool",
    "GrepTool",
    "BashTool",
    "DelegateTool",
    "ToolRegistry",
    "BUILTIN_TOOLS",
]
