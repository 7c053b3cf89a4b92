"""LLM client boundary."""

import json
from typing import Any, Dict, List, Optional, Protocol, runtime_checkable

from loguru import logger
from openai import AsyncOpenAI

from .models import LLMResponse, ToolCall, Usage


@runtime_checkable
class LLMClient(Protocol):
    """Anything that can take one conversational turn."""

    async def converse(self, history: List[Dict[str, Any]], tools: List[Dict[str, Any]]) -> LLMResponse:
        ...


def client_for(client: LLMClient, definition: Any) -> LLMClient:
    """Specialise ``client`` for one agent when it supports that."""
    bind = getattr(client, "for_definition", None)
    if callable(bind):
        return bind(definition)
    return client


class OpenAIClient:
    """LLMClient backed by an OpenAI-compatible chat completions API."""

    def __init__(
        self,
        llm: AsyncOpenAI,
        model: str,
        temperature: float = 0.7,
        max_tokens: Optional[int] = None,
        parameters: Optional[Dict[str, Any]] = None
    ):
        self.llm = llm
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.parameters = dict(parameters or {})

    @classmethod
    def create(
        cls,
        api_base: str = "http://localhost:11434/v1",
        api_key: str = "not-needed",
        model: str = "gemma3:27b",
        temperature: float = 0.7,
        max_tokens: Optional[int] = None,
        timeout: Optional[float] = None
    ) -> 'OpenAIClient':
        """Build a client for an OpenAI-compatible endpoint.

        Args:
            api_base: Endpoint URL (e.g. "http://localhost:11434/v1" for Ollama)
            api_key: API key ("not-needed" for local servers)
            model: Default model name
            temperature: Default sampling temperature
            max_tokens: Default completion limit
            timeout: Request timeout in seconds

        Returns:
            OpenAIClient instance
        """
        options: Dict[str, Any] = {}
        if timeout is not None:
            options["timeout"] = timeout
        llm = AsyncOpenAI(
            base_url=api_base,
            api_key=api_key,
            **options
        )
        return cls(llm, model=model, temperature=temperature, max_tokens=max_tokens)

    @classmethod
    def from_settings(cls, settings: Any) -> 'OpenAIClient':
        return cls.create(
            api_base=settings.llm_api_base,
            api_key=settings.llm_api_key,
            model=settings.llm_model,
            temperature=settings.llm_temperature,
            max_tokens=settings.llm_max_tokens,
            timeout=settings.llm_timeout,
        )

    def for_definition(self, definition: Any) -> 'OpenAIClient':
        """Client sharing this connection but using the agent's model settings."""
        model = definition.model or self.model
        temperature = definition.temperature if definition.temperature is not None else self.temperature
        max_tokens = definition.max_tokens if definition.max_tokens is not None else self.max_tokens
        return OpenAIClient(
            self.llm,
            model=model,
            temperature=temperature,
            max_tokens=max_tokens,
            parameters={**self.parameters, **definition.parameters},
        )

    async def converse(self, history: List[Dict[str, Any]], tools: List[Dict[str, Any]]) -> LLMResponse:
        kwargs: Dict[str, Any] = {
            "model": self.model,
            "messages": history,
            "temperature": self.temperature,
            **self.parameters,
        }
        if self.max_tokens:
            kwargs["max_tokens"] = self.max_tokens
        if tools:
            kwargs["tools"] = tools

        response = await self.llm.chat.completions.create(**kwargs)
        return self._parse(response)

    @staticmethod
    def _parse(response: Any) -> LLMResponse:
        message = response.choices[0].message

        calls = []
        for raw in message.tool_calls or []:
            try:
                arguments = json.loads(raw.function.arguments or "{}")
            except json.JSONDecodeError as e:
                logger.warning(f"[LLM] Malformed arguments for {raw.function.name}: {e}")
                arguments = {}
            if not isinstance(arguments, dict):
                arguments = {}
            calls.append(ToolCall(id=raw.id, name=raw.function.name, arguments=arguments))

        usage = Usage()
        if getattr(response, "usage", None) is not None:
            usage = Usage(
                input_tokens=getattr(response.usage, "prompt_tokens", 0) or 0,
                output_tokens=getattr(response.usage, "completion_tokens", 0) or 0,
                total_tokens=getattr(response.usage, "total_tokens", 0) or 0,
            )

        return LLMResponse(content=message.content, tool_calls=calls, usage=usage)
