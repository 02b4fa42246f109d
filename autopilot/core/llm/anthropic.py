"""Anthropic LLM provider."""

from __future__ import annotations

import asyncio
import random
from typing import Any, AsyncIterator

import tiktoken
from anthropic import AsyncAnthropic, APIError, RateLimitError

from autopilot.config import LLMConfig
from autopilot.core.llm.base import LLMProvider
from autopilot.core.llm.types import (
    FragmentType,
    LLMMessage,
    LLMResponse,
    StreamFragment,
    ToolCall,
)
from autopilot.errors import ProviderNotConfiguredError
from autopilot.utils.logging import get_logger

log = get_logger(__name__)


class AnthropicProvider(LLMProvider):
    def __init__(self, config: LLMConfig) -> None:
        self._config = config
        self._client = AsyncAnthropic(api_key=config.api_key, timeout=config.timeout)
        self._model = config.model
        self.name = f"anthropic:{config.model}"
        self._tokenizer: tiktoken.Encoding | None = None

    @property
    def is_configured(self) -> bool:
        return bool(self._config.api_key)

    async def complete(
        self,
        messages: list[LLMMessage],
        system: str | None = None,
        tools: list[dict[str, Any]] | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> LLMResponse:
        self._require_configured()
        kwargs = self._build_kwargs(messages, system, tools, temperature, max_tokens)
        response = await self._call_with_retry(kwargs)
        return self._parse_response(response)

    async def stream(
        self,
        messages: list[LLMMessage],
        system: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> AsyncIterator[StreamFragment]:
        self._require_configured()
        kwargs = self._build_kwargs(messages, system, None, temperature, max_tokens)
        # Fragments carry the content block index so tool-call pieces can be matched up
        tool_blocks: dict[int, tuple[str, str]] = {}

        events = await self._client.messages.create(**kwargs, stream=True)
        async for event in events:
            if event.type == "content_block_start":
                block = event.content_block
                if block.type == "tool_use":
                    tool_blocks[event.index] = (block.id, block.name)
                    yield StreamFragment(
                        type=FragmentType.TOOL_CALL_START,
                        tool_name=block.name, tool_call_id=block.id, index=event.index,
                    )
            elif event.type == "content_block_delta":
                delta = event.delta
                if delta.type == "text_delta":
                    yield StreamFragment(
                        type=FragmentType.TEXT_DELTA, delta=delta.text, index=event.index,
                    )
                elif delta.type == "input_json_delta":
                    call_id, name = tool_blocks.get(event.index, (None, None))
                    yield StreamFragment(
                        type=FragmentType.TOOL_CALL_DELTA, delta=delta.partial_json,
                        tool_name=name, tool_call_id=call_id, index=event.index,
                    )
                elif delta.type == "thinking_delta":
                    yield StreamFragment(
                        type=FragmentType.REASONING_DELTA, delta=delta.thinking, index=event.index,
                    )
            elif event.type == "content_block_stop" and event.index in tool_blocks:
                call_id, name = tool_blocks.pop(event.index)
                yield StreamFragment(
                    type=FragmentType.TOOL_CALL_END,
                    tool_name=name, tool_call_id=call_id, index=event.index,
                )
            elif event.type == "message_stop":
                yield StreamFragment.done()

    def count_tokens(self, text: str) -> int:
        if self._tokenizer is None:
            self._tokenizer = tiktoken.get_encoding("cl100k_base")
        return len(self._tokenizer.encode(text))

    async def close(self) -> None:
        await self._client.close()

    def _require_configured(self) -> None:
        if not self.is_configured:
            raise ProviderNotConfiguredError(f"{self.name} has no API key")

    def _build_kwargs(
        self,
        messages: list[LLMMessage],
        system: str | None,
        tools: list[dict[str, Any]] | None,
        temperature: float | None,
        max_tokens: int | None,
    ) -> dict[str, Any]:
        api_messages = []
        for msg in messages:
            api_messages.append({"role": msg.role, "content": msg.content})

        kwargs: dict[str, Any] = {
            "model": self._model,
            "messages": api_messages,
            "max_tokens": max_tokens or self._config.max_tokens,
            "temperature": temperature if temperature is not None else self._config.temperature,
        }
        if system:
            kwargs["system"] = system
        if tools:
            kwargs["tools"] = tools
        return kwargs

    async def _call_with_retry(
        self, kwargs: dict[str, Any], max_retries: int = 3
    ) -> Any:
        for attempt in range(max_retries + 1):
            try:
                return await self._client.messages.create(**kwargs)
            except RateLimitError:
                if attempt == max_retries:
                    raise
                wait = (2 ** attempt) + random.uniform(0, 1)
                log.warning("rate_limited", attempt=attempt, wait=wait)
                await asyncio.sleep(wait)
            except APIError as e:
                status = getattr(e, "status_code", None)
                if attempt == max_retries or status is None or status < 500:
                    raise
                wait = (2 ** attempt) + random.uniform(0, 1)
                log.warning("api_error_retry", status=status, attempt=attempt)
                await asyncio.sleep(wait)

    def _parse_response(self, response: Any) -> LLMResponse:
        result = LLMResponse(
            stop_reason=response.stop_reason,
            input_tokens=response.usage.input_tokens,
            output_tokens=response.usage.output_tokens,
        )

        for block in response.content:
            if block.type == "text":
                result.content += block.text
            elif block.type == "tool_use":
                result.tool_calls.append(
                    ToolCall(
                        id=block.id,
                        name=block.name,
                        arguments=block.input,
                    )
                )

        return result
