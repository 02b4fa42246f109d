"""LLM provider abstract base class."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, AsyncIterator

from autopilot.core.llm.types import LLMMessage, LLMResponse, StreamFragment


class LLMProvider(ABC):
    name: str = "provider"

    @property
    def is_configured(self) -> bool:
        """Whether the provider has what it needs to answer requests."""
        return True

    @abstractmethod
    async def complete(
        self,
        messages: list[LLMMessage],
        system: str | None = None,
        tools: list[dict[str, Any]] | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> LLMResponse: ...

    @abstractmethod
    def stream(
        self,
        messages: list[LLMMessage],
        system: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> AsyncIterator[StreamFragment]: ...

    @abstractmethod
    def count_tokens(self, text: str) -> int: ...

    async def generate(
        self,
        prompt: str,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> str:
        """Single-prompt completion returning only the text."""
        response = await self.complete(
            messages=[LLMMessage(role="user", content=prompt)],
            temperature=temperature,
            max_tokens=max_tokens,
        )
        return response.content

    def stream_prompt(
        self,
        prompt: str,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> AsyncIterator[StreamFragment]:
        return self.stream(
            messages=[LLMMessage(role="user", content=prompt)],
            temperature=temperature,
            max_tokens=max_tokens,
        )

    async def close(self) -> None:
        """Clean up resources. Override if needed."""
