"""Shell command tool."""

import asyncio
import os
from typing import Type

from loguru import logger
from pydantic import BaseModel, Field

from ..agent.tool_base import BaseTool

DEFAULT_TIMEOUT = 120.0
MAX_OUTPUT_CHARS = 30000


class BashInput(BaseModel):
    """Input for the Bash tool."""
    command: str = Field(description="Shell command to execute")
    timeout: float = Field(default=DEFAULT_TIMEOUT, gt=0, le=600, description="Timeout in seconds")


class BashTool(BaseTool):
    """Run a shell command in the agent's directory."""
    name = "Bash"
    description = "Execute a shell command in the working directory and return its output."
    args_schema: Type[BaseModel] = BashInput

    def __init__(self, directory: str = "."):
        super().__init__()
        self.directory = os.path.abspath(os.path.expanduser(directory))

    async def execute(self, command: str, timeout: float = DEFAULT_TIMEOUT) -> str:
        logger.debug(f"[TOOL:Bash] Running {command!r} in {self.directory}")
        process = await asyncio.create_subprocess_shell(
            command,
            cwd=self.directory,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        try:
            stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=timeout)
        except asyncio.TimeoutError:
            process.kill()
            await process.wait()
            return f"Command timed out after {timeout:g} seconds"
        except asyncio.CancelledError:
            process.kill()
            raise

        output = stdout.decode(errors="replace")
        if stderr:
            output += ("\n" if output else "") + stderr.decode(errors="replace")
        if len(output) > MAX_OUTPUT_CHARS:
            output = output[:MAX_OUTPUT_CHARS] + "\n... (output truncated)"
        if process.returncode:
            output += f"\nExit code: {process.returncode}"
        return output or "(no output)"
