"""Permission policy for an agent's tools."""

import os
import re
from typing import List, Optional, Pattern, Sequence, Tuple

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field

from ..errors import ConfigurationError
from .path_matcher import PathMatcher

NOT_IN_ALLOWED_LIST = "(not in allowed list)"


class PermissionRules(BaseModel):
    """Declarative allow/deny lists as written in an agent definition."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    allowed_paths: List[str] = Field(default_factory=list, description="Path globs the tool may touch")
    denied_paths: List[str] = Field(default_factory=list, description="Path globs the tool may never touch")
    allowed_commands: List[str] = Field(default_factory=list, description="Regexes for permitted shell commands")
    denied_commands: List[str] = Field(default_factory=list, description="Regexes for forbidden shell commands")


class PermissionConfig:
    """Resolved, immutable permission policy.

    Relative patterns are expanded against every base directory. Relative
    paths are resolved against the first (primary) base directory. On an
    overlapping match the deny list always wins.
    """

    def __init__(self, rules: Optional[PermissionRules] = None, base_directories: Optional[Sequence[str]] = None):
        rules = rules or PermissionRules()
        dirs = list(base_directories or ["."])
        self.base_directories: Tuple[str, ...] = tuple(
            os.path.abspath(os.path.expanduser(d)) for d in dirs
        )
        self.rules = rules

        # (as written, absolute)
        self._allowed: Tuple[Tuple[str, str], ...] = self._expand_patterns(rules.allowed_paths)
        self._denied: Tuple[Tuple[str, str], ...] = self._expand_patterns(rules.denied_paths)

        self.allowed_commands: Tuple[Pattern[str], ...] = self._compile_commands(rules.allowed_commands)
        self.denied_commands: Tuple[Pattern[str], ...] = self._compile_commands(rules.denied_commands)

    @property
    def primary_directory(self) -> str:
        return self.base_directories[0]

    @property
    def allowed_patterns(self) -> List[str]:
        return [absolute for _, absolute in self._allowed]

    @property
    def denied_patterns(self) -> List[str]:
        return [absolute for _, absolute in self._denied]

    def _expand_patterns(self, patterns: Sequence[str]) -> Tuple[Tuple[str, str], ...]:
        expanded = []
        for pattern in patterns:
            raw = os.path.expanduser(pattern)
            if raw.startswith("/"):
                expanded.append((pattern, raw))
                continue
            for base in self.base_directories:
                expanded.append((pattern, os.path.join(base, raw)))
        return tuple(expanded)

    @staticmethod
    def _compile_commands(patterns: Sequence[str]) -> Tuple[Pattern[str], ...]:
        compiled = []
        for pattern in patterns:
            try:
                compiled.append(re.compile(pattern))
            except re.error as e:
                raise ConfigurationError(f"Invalid regex pattern '{pattern}': {e}") from e
        return tuple(compiled)

    def to_absolute(self, path: str) -> str:
        """Resolve ``path`` against the primary directory."""
        path = os.path.expanduser(path)
        if path.startswith("/"):
            return os.path.normpath(path)
        return os.path.normpath(os.path.join(self.primary_directory, path))

    def _search_base_allowed(self, directory: str) -> bool:
        # A search base is fine when some allowed pattern lives beneath it.
        prefix = directory if directory.endswith("/") else directory + "/"
        return any(
            pattern == directory or pattern.startswith(prefix)
            for pattern in self.allowed_patterns
        )

    def find_blocking_pattern(self, path: str, directory_search: bool = False) -> Optional[str]:
        """Return the rule that blocks ``path``, or None if it is allowed."""
        absolute = self.to_absolute(path)

        for written, pattern in self._denied:
            if PathMatcher.matches(pattern, absolute):
                return written

        if not self._allowed:
            return None

        if directory_search and self._search_base_allowed(absolute):
            return None

        if any(PathMatcher.matches(pattern, absolute) for _, pattern in self._allowed):
            return None

        return NOT_IN_ALLOWED_LIST

    def allowed(self, path: str, directory_search: bool = False) -> bool:
        """Check a path against the policy.

        Args:
            path: Relative or absolute path
            directory_search: Treat the path as a search base (Glob/Grep)

        Returns:
            True if access is allowed
        """
        blocking = self.find_blocking_pattern(path, directory_search=directory_search)
        if blocking is not None:
            logger.debug(f"[PERMISSIONS] Path '{path}' blocked by {blocking}")
        return blocking is None

    def find_blocking_command_pattern(self, command: str) -> Optional[str]:
        """Return the regex source that blocks ``command``, or None."""
        for regex in self.denied_commands:
            if regex.search(command):
                return regex.pattern

        if not self.allowed_commands:
            return None

        if any(regex.search(command) for regex in self.allowed_commands):
            return None

        return NOT_IN_ALLOWED_LIST

    def command_allowed(self, command: str) -> bool:
        return self.find_blocking_command_pattern(command) is None
