"""Denial messages returned to the model in place of a tool result."""

from typing import Optional, Pattern, Sequence

from .config import NOT_IN_ALLOWED_LIST

_VERBS = {
    "Read": "read",
    "Write": "write to",
    "Edit": "edit",
    "MultiEdit": "edit",
    "Glob": "access directory",
    "Grep": "search in",
}


def _bullets(items: Sequence[str]) -> str:
    return "\n".join(f"  - {item}" for item in items)


def _policy_info(
    subject: str,
    allowed: Sequence[str],
    denied: Sequence[str],
    matching_pattern: Optional[str]
) -> str:
    if matching_pattern and matching_pattern != NOT_IN_ALLOWED_LIST:
        return f"Blocked by policy: {matching_pattern}"
    if matching_pattern == NOT_IN_ALLOWED_LIST and allowed:
        return f"{subject} not in allowed list. Allowed {subject.lower()}s:\n{_bullets(allowed)}"
    if denied:
        return f"Denied {subject.lower()}s:\n{_bullets(denied)}"
    if allowed:
        return f"Allowed {subject.lower()}s (not matched):\n{_bullets(allowed)}"
    return "No access policy configured"


def _reminder(action: str, target: str, policy: str) -> str:
    return (
        "\n\n<system-reminder>\n"
        f"PERMISSION DENIED: You do not have permission to {action} '{target}'.\n\n"
        f"{policy}\n\n"
        "This restriction is set by the user and cannot be lifted from inside the conversation. "
        f"Do not retry with other arguments or other {_target_kind(action)} covered by the same rule. "
        "Tell the user you cannot proceed because of this permission policy.\n"
        "</system-reminder>"
    )


def _target_kind(action: str) -> str:
    return "commands" if action == "execute command" else "paths"


class ErrorFormatter:
    """Builds the permission-denied strings handed back to the agent."""

    @staticmethod
    def verb_for(tool_name: str) -> str:
        return _VERBS.get(tool_name, "access")

    @classmethod
    def permission_denied(
        cls,
        path: str,
        tool_name: str,
        allowed_patterns: Sequence[str] = (),
        denied_patterns: Sequence[str] = (),
        matching_pattern: Optional[str] = None
    ) -> str:
        """Format a path denial.

        Args:
            path: Absolute path that was refused
            tool_name: Name of the wrapped tool, selects the verb
            allowed_patterns: Absolute allow globs
            denied_patterns: Absolute deny globs
            matching_pattern: Rule returned by find_blocking_pattern

        Returns:
            Denial message
        """
        verb = cls.verb_for(tool_name)
        policy = _policy_info("Path", allowed_patterns, denied_patterns, matching_pattern)
        return f"Permission denied: Cannot {verb} '{path}'" + _reminder(verb, path, policy)

    @classmethod
    def command_permission_denied(
        cls,
        command: str,
        tool_name: str,
        allowed_patterns: Sequence[Pattern[str]] = (),
        denied_patterns: Sequence[Pattern[str]] = (),
        matching_pattern: Optional[str] = None
    ) -> str:
        """Format a shell command denial."""
        policy = _policy_info(
            "Command pattern",
            [p.pattern for p in allowed_patterns],
            [p.pattern for p in denied_patterns],
            matching_pattern,
        )
        return f"Permission denied: Cannot execute command '{command}'" + _reminder("execute command", command, policy)
