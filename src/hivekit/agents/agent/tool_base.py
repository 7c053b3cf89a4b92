"""Base tool classes."""

import inspect
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Optional, Type

from loguru import logger
from pydantic import BaseModel, ValidationError

from ..errors import LLMError


class BaseTool(ABC):
    """Base class for all tools.

    Subclasses implement ``execute``. Callers (the agent runner and the
    permission validator) go through ``call`` which validates arguments and
    turns failures into strings for the model.
    """

    name: str
    description: str
    args_schema: Optional[Type[BaseModel]] = None

    def __init__(self):
        if not hasattr(self, 'name'):
            self.name = self.__class__.__name__.replace('Tool', '')
        if not hasattr(self, 'description'):
            self.description = self.__class__.__doc__ or "No description available"

    @abstractmethod
    async def execute(self, **kwargs) -> str:
        """Run the tool's action."""
        raise NotImplementedError("Tool must implement execute method")

    async def call(self, args: Dict[str, Any]) -> str:
        """Validate ``args`` and run the tool.

        Args:
            args: Arguments as produced by the model

        Returns:
            Tool output, or an error description
        """
        if self.args_schema:
            try:
                args = self.args_schema(**args).model_dump()
            except ValidationError as e:
                return f"Error validating tool input: {e}"

        try:
            return await self.execute(**args)
        except LLMError:
            raise
        except Exception as e:
            logger.exception(f"[TOOL:{self.name}] Failed: {e}")
            return f"Error executing tool '{self.name}': {e}"

    def to_schema(self) -> Dict[str, Any]:
        """Describe the tool in OpenAI function-calling format."""
        if self.args_schema:
            parameters = self.args_schema.model_json_schema()
        else:
            parameters = {"type": "object", "properties": {}}
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": parameters,
            },
        }

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name!r})"


class StructuredTool(BaseTool):
    """A tool created from a plain or async function."""

    def __init__(
        self,
        name: str,
        description: str,
        func: Callable,
        args_schema: Optional[Type[BaseModel]] = None
    ):
        self.name = name
        self.description = description
        self.func = func
        self.args_schema = args_schema

    @classmethod
    def from_function(
        cls,
        func: Callable,
        name: Optional[str] = None,
        description: Optional[str] = None,
        args_schema: Optional[Type[BaseModel]] = None
    ) -> 'StructuredTool':
        """Create a StructuredTool from a function.

        Args:
            func: Function to wrap
            name: Tool name (defaults to function name)
            description: Tool description (defaults to function docstring)
            args_schema: Pydantic model for argument validation

        Returns:
            StructuredTool instance
        """
        tool_name = name or func.__name__
        tool_description = description or func.__doc__ or f"Tool {tool_name}"
        return cls(
            name=tool_name,
            description=tool_description.strip(),
            func=func,
            args_schema=args_schema
        )

    async def execute(self, **kwargs) -> str:
        if inspect.iscoroutinefunction(self.func):
            result = await self.func(**kwargs)
        else:
            result = self.func(**kwargs)
        return str(result)


def tool(
    name: Optional[str] = None,
    description: Optional[str] = None,
    args_schema: Optional[Type[BaseModel]] = None
):
    """Decorator turning a function into a StructuredTool.

    Example:
        @tool(name="Add", args_schema=AddInput)
        def add(a: int, b: int) -> int:
            return a + b
    """
    def decorator(func: Callable) -> StructuredTool:
        return StructuredTool.from_function(
            func=func,
            name=name,
            description=description,
            args_schema=args_schema
        )
    return decorator
