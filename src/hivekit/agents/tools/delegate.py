"""Tool that hands a task to another agent."""

from typing import Awaitable, Callable, Type

from pydantic import BaseModel, Field

from ..agent.definition import delegation_tool_name
from ..agent.tool_base import BaseTool

Delegate = Callable[[str, str], Awaitable[str]]


class DelegateInput(BaseModel):
    """Input for delegation tools."""
    task: str = Field(description="Task description for the agent")


class DelegateTool(BaseTool):
    """Runs ``target``'s conversation and returns its final text."""
    args_schema: Type[BaseModel] = DelegateInput

    def __init__(self, target: str, target_description: str, delegate: Delegate):
        self.target = target
        self.delegate = delegate
        self.name = delegation_tool_name(target)
        self.description = f"Delegate tasks to {target}. {target_description}"

    async def execute(self, task: str) -> str:
        return await self.delegate(self.target, task)
