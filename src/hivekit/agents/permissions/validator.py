"""Permission-enforcing wrapper around a tool."""

import os
from typing import Any, Dict, List, Optional

from loguru import logger

from ..agent.tool_base import BaseTool
from .config import PermissionConfig
from .error_formatter import ErrorFormatter

DIRECTORY_SEARCH_TOOLS = ("Glob", "Grep")
SHELL_TOOL = "Bash"
GLOB_CHARS = "*?[{"


def _glob_base_directory(pattern: str, path: Optional[str] = None) -> Optional[str]:
    # "lib/**/*.rb" -> "lib"; "/srv/data/*.csv" -> "/srv/data"
    if not isinstance(pattern, str) or not pattern:
        return None
    if not isinstance(path, str):
        path = None
    static = []
    for segment in pattern.split("/"):
        if any(c in segment for c in GLOB_CHARS):
            break
        static.append(segment)
    prefix = "/".join(static)
    if pattern.startswith("/") and not prefix:
        prefix = "/"
    base = os.path.join(path, prefix) if path else prefix
    return os.path.normpath(base) if base else "."


class Validator(BaseTool):
    """Checks path and command arguments before forwarding to ``tool``.

    A refused call returns a denial string and the wrapped tool never runs.
    """

    def __init__(self, tool: BaseTool, permissions: PermissionConfig):
        self.tool = tool
        self.permissions = permissions
        self.name = tool.name
        self.description = tool.description
        self.args_schema = tool.args_schema
        if self.name in DIRECTORY_SEARCH_TOOLS and hasattr(tool, "path_filter"):
            # Search results are limited to files the policy allows
            tool.path_filter = self.permissions.allowed

    def extract_paths(self, args: Dict[str, Any]) -> List[str]:
        """Collect every path-like argument, in order and without duplicates."""
        paths = []

        for key in ("file_path", "path"):
            if args.get(key):
                paths.append(args[key])

        if self.name == "Glob":
            base = _glob_base_directory(args.get("pattern"), args.get("path"))
            if base:
                paths.append(base)

        for edit in args.get("edits") or []:
            if isinstance(edit, dict) and edit.get("file_path"):
                paths.append(edit["file_path"])

        return list(dict.fromkeys(p for p in paths if isinstance(p, str)))

    def check(self, args: Dict[str, Any]) -> Optional[str]:
        """Return a denial message, or None when the call may proceed."""
        if self.name == SHELL_TOOL:
            command = args.get("command")
            if command:
                blocking = self.permissions.find_blocking_command_pattern(command)
                if blocking is not None:
                    logger.warning(f"[PERMISSIONS] {self.name} command denied: {command!r}")
                    return ErrorFormatter.command_permission_denied(
                        command=command,
                        tool_name=self.name,
                        allowed_patterns=self.permissions.allowed_commands,
                        denied_patterns=self.permissions.denied_commands,
                        matching_pattern=blocking,
                    )

        directory_search = self.name in DIRECTORY_SEARCH_TOOLS
        for path in self.extract_paths(args):
            blocking = self.permissions.find_blocking_pattern(path, directory_search=directory_search)
            if blocking is None:
                continue
            absolute = self.permissions.to_absolute(path)
            logger.warning(f"[PERMISSIONS] {self.name} denied access to {absolute}")
            return ErrorFormatter.permission_denied(
                path=absolute,
                tool_name=self.name,
                allowed_patterns=self.permissions.allowed_patterns,
                denied_patterns=self.permissions.denied_patterns,
                matching_pattern=blocking,
            )

        return None

    async def call(self, args: Dict[str, Any]) -> str:
        denial = self.check(args)
        if denial is not None:
            return denial
        return await self.tool.call(args)

    async def execute(self, **kwargs) -> str:
        denial = self.check(kwargs)
        if denial is not None:
            return denial
        return await self.tool.execute(**kwargs)

    def to_schema(self) -> Dict[str, Any]:
        return self.tool.to_schema()
