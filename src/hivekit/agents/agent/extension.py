"""Extension interface attached to agents when a swarm is built."""

from typing import List, Optional

from .definition import AgentDefinition
from .tool_base import BaseTool


class Extension:
    """Adds tools and prompt material to agents.

    Extensions are handed to the swarm builder and composed into each
    agent at construction. Every hook has a no-op default.
    """

    name: str = "extension"

    def tools(self, definition: AgentDefinition) -> List[BaseTool]:
        """Extra tools for ``definition``'s agent."""
        return []

    def immutable_tools(self, definition: AgentDefinition) -> List[str]:
        """Names among ``tools()`` that must survive tool-set resets."""
        return []

    def system_prompt(self, definition: AgentDefinition) -> Optional[str]:
        """Text appended to the agent's system prompt."""
        return None

    def on_user_message(self, agent: str, prompt: str, first_message: bool) -> List[str]:
        """Reminders appended to an incoming user message."""
        return []
