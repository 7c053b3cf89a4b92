"""File-system tools rooted at an agent's primary directory."""

import asyncio
import os
import re
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Type

from pydantic import BaseModel, Field

from ..agent.tool_base import BaseTool
from ..errors import ToolExecutionError

MAX_READ_LINES = 2000
MAX_GLOB_RESULTS = 1000
MAX_GREP_MATCHES = 200


def _parent_after_wildcard(pattern: str) -> bool:
    wildcard = False
    for segment in pattern.split("/"):
        if any(c in segment for c in "*?[{"):
            wildcard = True
        elif segment == ".." and wildcard:
            return True
    return False


class FileSystemTool(BaseTool):
    """Base for tools that resolve paths against a working directory."""

    def __init__(self, directory: str = "."):
        super().__init__()
        self.directory = os.path.abspath(os.path.expanduser(directory))
        self.path_filter: Optional[Callable[[str], bool]] = None

    def visible(self, path: str) -> bool:
        return self.path_filter is None or self.path_filter(path)

    def resolve(self, path: str) -> Path:
        path = os.path.expanduser(path)
        if not os.path.isabs(path):
            path = os.path.join(self.directory, path)
        return Path(os.path.normpath(path))


class ReadInput(BaseModel):
    """Input for the Read tool."""
    file_path: str = Field(description="Path of the file to read")
    offset: int = Field(default=1, ge=1, description="First line to return (1-based)")
    limit: int = Field(default=MAX_READ_LINES, ge=1, description="Maximum number of lines to return")


class ReadTool(FileSystemTool):
    """Read a text file, returning numbered lines."""
    name = "Read"
    description = "Read a file from the filesystem. Lines are returned with line numbers."
    args_schema: Type[BaseModel] = ReadInput

    async def execute(self, file_path: str, offset: int = 1, limit: int = MAX_READ_LINES) -> str:
        path = self.resolve(file_path)
        if not path.is_file():
            raise ToolExecutionError(f"File not found: {path}")

        text = await asyncio.to_thread(path.read_text, encoding="utf-8", errors="replace")
        lines = text.splitlines()
        if not lines:
            return "(empty file)"

        selected = lines[offset - 1:offset - 1 + limit]
        return "\n".join(f"{n:6}\t{line}" for n, line in enumerate(selected, start=offset))


class WriteInput(BaseModel):
    """Input for the Write tool."""
    file_path: str = Field(description="Path of the file to write")
    content: str = Field(description="Full file content")


class WriteTool(FileSystemTool):
    """Create or overwrite a file."""
    name = "Write"
    description = "Write content to a file, creating parent directories as needed."
    args_schema: Type[BaseModel] = WriteInput

    async def execute(self, file_path: str, content: str) -> str:
        path = self.resolve(file_path)

        def write() -> None:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding="utf-8")

        await asyncio.to_thread(write)
        return f"Wrote {len(content)} characters to {path}"


def _replace(text: str, old: str, new: str, replace_all: bool, path: Path) -> str:
    if not old:
        raise ToolExecutionError("old_string must not be empty")
    count = text.count(old)
    if count == 0:
        raise ToolExecutionError(f"old_string not found in {path}")
    if count > 1 and not replace_all:
        raise ToolExecutionError(
            f"old_string occurs {count} times in {path}; add context or set replace_all"
        )
    return text.replace(old, new) if replace_all else text.replace(old, new, 1)


class EditInput(BaseModel):
    """Input for the Edit tool."""
    file_path: str = Field(description="Path of the file to edit")
    old_string: str = Field(description="Exact text to replace")
    new_string: str = Field(description="Replacement text")
    replace_all: bool = Field(default=False, description="Replace every occurrence")


class EditTool(FileSystemTool):
    """Replace text in a file."""
    name = "Edit"
    description = "Replace an exact string in a file. The string must be unique unless replace_all is set."
    args_schema: Type[BaseModel] = EditInput

    async def execute(self, file_path: str, old_string: str, new_string: str, replace_all: bool = False) -> str:
        path = self.resolve(file_path)
        if not path.is_file():
            raise ToolExecutionError(f"File not found: {path}")

        def edit() -> None:
            text = path.read_text(encoding="utf-8")
            path.write_text(_replace(text, old_string, new_string, replace_all, path), encoding="utf-8")

        await asyncio.to_thread(edit)
        return f"Edited {path}"


class EditOperation(BaseModel):
    """One replacement inside a MultiEdit call."""
    old_string: str
    new_string: str
    replace_all: bool = False
    file_path: Optional[str] = Field(default=None, description="Overrides the call's file_path")


class MultiEditInput(BaseModel):
    """Input for the MultiEdit tool."""
    file_path: Optional[str] = Field(default=None, description="Default file for every edit")
    edits: List[EditOperation] = Field(min_length=1)


class MultiEditTool(FileSystemTool):
    """Apply several edits atomically."""
    name = "MultiEdit"
    description = (
        "Apply a sequence of string replacements. All edits succeed or none are written. "
        "Each edit may name its own file_path."
    )
    args_schema: Type[BaseModel] = MultiEditInput

    async def execute(self, edits: List[Dict[str, Any]], file_path: Optional[str] = None) -> str:
        def apply() -> List[Path]:
            contents: Dict[Path, str] = {}
            for index, edit in enumerate(edits, start=1):
                target = edit.get("file_path") or file_path
                if not target:
                    raise ToolExecutionError(f"Edit {index} has no file_path")
                path = self.resolve(target)
                if path not in contents:
                    if not path.is_file():
                        raise ToolExecutionError(f"File not found: {path}")
                    contents[path] = path.read_text(encoding="utf-8")
                try:
                    contents[path] = _replace(
                        contents[path], edit["old_string"], edit["new_string"], edit.get("replace_all", False), path
                    )
                except ToolExecutionError as e:
                    raise ToolExecutionError(f"Edit {index}: {e}") from e
            for path, text in contents.items():
                path.write_text(text, encoding="utf-8")
            return list(contents)

        changed = await asyncio.to_thread(apply)
        return f"Applied {len(edits)} edits to {', '.join(str(p) for p in changed)}"


class GlobInput(BaseModel):
    """Input for the Glob tool."""
    pattern: str = Field(description="Glob pattern such as 'lib/**/*.py'")
    path: Optional[str] = Field(default=None, description="Directory to search (defaults to the working directory)")


class GlobTool(FileSystemTool):
    """Find files by glob pattern."""
    name = "Glob"
    description = "List files matching a glob pattern. Supports '**' for recursive matches."
    args_schema: Type[BaseModel] = GlobInput

    async def execute(self, pattern: str, path: Optional[str] = None) -> str:
        if _parent_after_wildcard(pattern):
            raise ToolExecutionError(f"Glob pattern may not use '..' after a wildcard: {pattern}")
        base = self.resolve(path or ".")
        if not base.is_dir():
            raise ToolExecutionError(f"Directory not found: {base}")

        def search() -> List[str]:
            if os.path.isabs(pattern):
                root = Path(pattern).anchor
                found = Path(root).glob(pattern[len(root):])
            else:
                found = base.glob(pattern)
            files = (os.path.normpath(str(p)) for p in found if p.is_file())
            return sorted(p for p in set(files) if self.visible(p))

        matches = await asyncio.to_thread(search)
        if not matches:
            return "No files found"
        if len(matches) > MAX_GLOB_RESULTS:
            extra = len(matches) - MAX_GLOB_RESULTS
            return "\n".join(matches[:MAX_GLOB_RESULTS]) + f"\n... ({extra} more)"
        return "\n".join(matches)


class GrepInput(BaseModel):
    """Input for the Grep tool."""
    pattern: str = Field(description="Regular expression to search for")
    path: Optional[str] = Field(default=None, description="File or directory to search")
    glob: Optional[str] = Field(default=None, description="Only search files matching this glob, e.g. '*.py'")


class GrepTool(FileSystemTool):
    """Search file contents with a regular expression."""
    name = "Grep"
    description = "Search file contents for a regular expression. Returns 'file:line: text' matches."
    args_schema: Type[BaseModel] = GrepInput

    async def execute(self, pattern: str, path: Optional[str] = None, glob: Optional[str] = None) -> str:
        try:
            regex = re.compile(pattern)
        except re.error as e:
            raise ToolExecutionError(f"Invalid regular expression '{pattern}': {e}") from e

        if glob and _parent_after_wildcard(glob):
            raise ToolExecutionError(f"Glob filter may not use '..' after a wildcard: {glob}")
        base = self.resolve(path or ".")
        if not base.exists():
            raise ToolExecutionError(f"Path not found: {base}")

        def search() -> List[str]:
            if base.is_file():
                files = [base]
            else:
                files = sorted(p for p in base.rglob(glob or "*") if p.is_file())
            results = []
            for file in files:
                if not self.visible(str(file)):
                    continue
                try:
                    text = file.read_text(encoding="utf-8")
                except (UnicodeDecodeError, OSError):
                    continue
                for number, line in enumerate(text.splitlines(), start=1):
                    if regex.search(line):
                        results.append(f"{file}:{number}: {line}")
                        if len(results) >= MAX_GREP_MATCHES:
                            return results
            return results

        matches = await asyncio.to_thread(search)
        if not matches:
            return "No matches found"
        return "\n".join(matches)
