"""Glob matching for permission patterns.

Supported syntax:
    *       any run of characters within one path segment
    ?       a single character other than '/'
    [...]   character class, '[!...]' or '[^...]' negates
    {a,b}   alternation, may nest
    **/     zero or more whole directories
    /**     at the end of a pattern, everything below the directory

Hidden files are not special: '*' matches a leading dot.
"""

import re
from functools import lru_cache
from typing import Optional, Pattern

from loguru import logger


class _MalformedPattern(ValueError):
    pass


def _translate(pattern: str) -> str:
    out = []
    i, n = 0, len(pattern)
    depth = 0

    while i < n:
        c = pattern[i]

        if c == "*":
            if pattern.startswith("**", i):
                seg_start = i == 0 or pattern[i - 1] == "/"
                j = i + 2
                if seg_start and j < n and pattern[j] == "/":
                    out.append("(?:.*/)?")
                    i = j + 1
                    continue
                if seg_start and j == n:
                    out.append(".*")
                    i = j
                    continue
                out.append("[^/]*")
                i = j
                continue
            out.append("[^/]*")
            i += 1
        elif c == "?":
            out.append("[^/]")
            i += 1
        elif c == "[":
            j = i + 1
            if j < n and pattern[j] in "!^":
                j += 1
            if j < n and pattern[j] == "]":
                j += 1
            while j < n and pattern[j] != "]":
                j += 1
            if j >= n:
                raise _MalformedPattern(f"unterminated character class in {pattern!r}")
            body = pattern[i + 1:j].replace("\\", "\\\\")
            if body[0] in "!^":
                body = "^/" + body[1:]
            out.append(f"[{body}]")
            i = j + 1
        elif c == "{":
            out.append("(?:")
            depth += 1
            i += 1
        elif c == "," and depth:
            out.append("|")
            i += 1
        elif c == "}" and depth:
            out.append(")")
            depth -= 1
            i += 1
        elif c == "\\":
            if i + 1 >= n:
                raise _MalformedPattern(f"trailing escape in {pattern!r}")
            out.append(re.escape(pattern[i + 1]))
            i += 2
        else:
            out.append(re.escape(c))
            i += 1

    if depth:
        raise _MalformedPattern(f"unbalanced braces in {pattern!r}")

    return "".join(out)


@lru_cache(maxsize=1024)
def compile_pattern(pattern: str) -> Optional[Pattern[str]]:
    """Compile a glob into a regex, or return None when it is malformed."""
    if pattern.startswith("!"):
        pattern = pattern[1:]
    try:
        return re.compile(_translate(pattern))
    except (_MalformedPattern, re.error) as e:
        logger.warning(f"[PERMISSIONS] Ignoring malformed glob {pattern!r}: {e}")
        return None


class PathMatcher:
    """Stateless glob predicate."""

    @staticmethod
    def matches(pattern: str, path: str) -> bool:
        """Return True if ``path`` matches ``pattern``.

        A leading '!' is stripped; negation is the caller's concern.
        Malformed patterns never match.
        """
        if not pattern:
            return False
        regex = compile_pattern(pattern)
        if regex is None:
            return False
        return regex.fullmatch(path) is not None


def matches(pattern: str, path: str) -> bool:
    return PathMatcher.matches(pattern, path)
