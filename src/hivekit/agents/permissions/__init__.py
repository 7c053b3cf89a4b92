"""Path and command sandboxing for agent tools."""

from .path_matcher import PathMatcher, matches
from .config import PermissionConfig, PermissionRules, NOT_IN_ALLOWED_LIST
from .error_formatter import ErrorFormatter
from .validator import Validator

__all__ = [
    "PathMatcher",
    "matches",
    "PermissionConfig",
    "PermissionRules",
    "NOT_IN_ALLOWED_LIST",
    "ErrorFormatter",
    "Validator",
]
