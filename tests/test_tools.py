"""Tests for built-in tools and the tool registry."""

import asyncio
import sys

import pytest
from pydantic import BaseModel, Field

from hivekit.agents.agent import AgentDefinition, StructuredTool, tool
from hivekit.agents.errors import ConfigurationError
from hivekit.agents.tools import (
    BashTool,
    DelegateTool,
    EditTool,
    GlobTool,
    GrepTool,
    MultiEditTool,
    ReadTool,
    ToolRegistry,
    WriteTool,
)


@pytest.mark.asyncio
async def test_write_then_read_with_line_numbers(tmp_path):
    await WriteTool(str(tmp_path)).call({"file_path": "notes/a.txt", "content": "one\ntwo\nthree\n"})

    output = await ReadTool(str(tmp_path)).call({"file_path": "notes/a.txt", "offset": 2, "limit": 1})

    assert (tmp_path / "notes" / "a.txt").exists()
    assert output == "     2\ttwo"


@pytest.mark.asyncio
async def test_read_missing_file_is_error_string(tmp_path):
    output = await ReadTool(str(tmp_path)).call({"file_path": "missing.txt"})
    assert output.startswith("Error executing tool 'Read': File not found")


@pytest.mark.asyncio
async def test_invalid_arguments_are_reported(tmp_path):
    output = await ReadTool(str(tmp_path)).call({"offset": 1})
    assert output.startswith("Error validating tool input")


@pytest.mark.asyncio
async def test_edit_requires_unique_match(tmp_path):
    target = tmp_path / "code.py"
    target.write_text("x = 1\nx = 1\n")
    edit = EditTool(str(tmp_path))

    ambiguous = await edit.call({"file_path": "code.py", "old_string": "x = 1", "new_string": "x = 2"})
    assert "occurs 2 times" in ambiguous

    await edit.call({"file_path": "code.py", "old_string": "x = 1", "new_string": "x = 2", "replace_all": True})
    assert target.read_text() == "x = 2\nx = 2\n"


@pytest.mark.asyncio
async def test_multiedit_is_all_or_nothing(tmp_path):
    (tmp_path / "a.txt").write_text("alpha")
    (tmp_path / "b.txt").write_text("beta")
    multi = MultiEditTool(str(tmp_path))

    failed = await multi.call({
        "file_path": "a.txt",
        "edits": [
            {"old_string": "alpha", "new_string": "ALPHA"},
            {"file_path": "b.txt", "old_string": "gamma", "new_string": "GAMMA"},
        ],
    })
    assert "Edit 2" in failed
    assert (tmp_path / "a.txt").read_text() == "alpha"

    await multi.call({
        "file_path": "a.txt",
        "edits": [
            {"old_string": "alpha", "new_string": "ALPHA"},
            {"file_path": "b.txt", "old_string": "beta", "new_string": "BETA"},
        ],
    })
    assert (tmp_path / "a.txt").read_text() == "ALPHA"
    assert (tmp_path / "b.txt").read_text() == "BETA"


@pytest.mark.asyncio
async def test_glob_and_grep(tmp_path):
    (tmp_path / "lib" / "deep").mkdir(parents=True)
    (tmp_path / "lib" / "a.rb").write_text("def hello\nend\n")
    (tmp_path / "lib" / "deep" / "b.rb").write_text("puts 'hello'\n")
    (tmp_path / "lib" / "c.txt").write_text("hello text\n")

    found = await GlobTool(str(tmp_path)).call({"pattern": "lib/**/*.rb"})
    assert str(tmp_path / "lib" / "a.rb") in found
    assert str(tmp_path / "lib" / "deep" / "b.rb") in found
    assert "c.txt" not in found

    matches = await GrepTool(str(tmp_path)).call({"pattern": "hello", "path": "lib", "glob": "*.rb"})
    assert "a.rb:1: def hello" in matches
    assert "b.rb:1:" in matches
    assert "c.txt" not in matches

    assert await GlobTool(str(tmp_path)).call({"pattern": "*.none"}) == "No files found"
    bad = await GrepTool(str(tmp_path)).call({"pattern": "(", "path": "lib"})
    assert "Invalid regular expression" in bad


@pytest.mark.asyncio
@pytest.mark.skipif(sys.platform == "win32", reason="POSIX shell")
async def test_bash_runs_in_directory(tmp_path):
    bash = BashTool(str(tmp_path))

    output = await bash.call({"command": "pwd"})
    failing = await bash.call({"command": "echo oops >&2; exit 3"})

    assert output.strip() == str(tmp_path.resolve()) or output.strip() == str(tmp_path)
    assert "oops" in failing
    assert "Exit code: 3" in failing


@pytest.mark.asyncio
@pytest.mark.skipif(sys.platform == "win32", reason="POSIX shell")
async def test_bash_timeout_does_not_block_loop(tmp_path):
    bash = BashTool(str(tmp_path))
    ticks = []

    async def ticker():
        for _ in range(3):
            ticks.append(1)
            await asyncio.sleep(0.05)

    output, _ = await asyncio.gather(bash.call({"command": "sleep 5", "timeout": 0.3}), ticker())

    assert output == "Command timed out after 0.3 seconds"
    assert len(ticks) == 3


class AddInput(BaseModel):
    a: int = Field(description="First number")
    b: int = Field(description="Second number")


@pytest.mark.asyncio
async def test_tool_decorator_sync_and_async():
    @tool(name="Add", args_schema=AddInput)
    def add(a: int, b: int) -> int:
        """Add two numbers."""
        return a + b

    async def shout(text: str) -> str:
        return text.upper()

    loud = StructuredTool.from_function(shout)

    assert await add.call({"a": 2, "b": "3"}) == "5"
    assert await loud.call({"text": "hi"}) == "HI"
    assert add.description == "Add two numbers."
    assert add.to_schema()["function"]["parameters"]["required"] == ["a", "b"]


@pytest.mark.asyncio
async def test_delegate_tool_naming_and_forwarding():
    seen = []

    async def delegate(target, task):
        seen.append((target, task))
        return f"{target} did {task}"

    delegate_tool = DelegateTool("backend", "Builds APIs", delegate)

    assert delegate_tool.name == "DelegateTaskToBackend"
    assert delegate_tool.description == "Delegate tasks to backend. Builds APIs"
    assert await delegate_tool.call({"task": "add endpoint"}) == "backend did add endpoint"
    assert seen == [("backend", "add endpoint")]


def test_registry_creates_builtins_rooted_at_primary_directory(tmp_path):
    registry = ToolRegistry()
    definition = AgentDefinition(name="dev", description="Dev", directories=[str(tmp_path), "/other"])

    read = registry.create("Read", definition)

    assert isinstance(read, ReadTool)
    assert read.directory == str(tmp_path)
    assert {"Read", "Write", "Edit", "MultiEdit", "Glob", "Grep", "Bash"} <= set(registry.names())


def test_registry_rejects_unknown_tools():
    registry = ToolRegistry()
    definition = AgentDefinition(name="dev", description="Dev", tools=["Teleport"])

    with pytest.raises(ConfigurationError, match="unknown tool 'Teleport'"):
        registry.validate(definition)

    registry.register("Teleport", lambda d: StructuredTool.from_function(lambda: "zap", name="Teleport"))
    registry.validate(definition)
    assert registry.create("Teleport", definition).name == "Teleport"
