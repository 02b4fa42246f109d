"""Local (OpenAI-compatible) LLM provider."""

from __future__ import annotations

import asyncio
import json
import random
from typing import Any, AsyncIterator
from uuid import uuid4

import httpx
import tiktoken

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


class LocalProvider(LLMProvider):
    """OpenAI-compatible local model provider (ollama, llama.cpp, vllm, etc.)."""

    def __init__(self, config: LLMConfig, client: httpx.AsyncClient | None = None) -> None:
        self._config = config
        self._endpoint = config.endpoint.rstrip("/")
        self._model = config.model
        self.name = f"local:{config.model}"
        self._client = client or httpx.AsyncClient(
            timeout=config.timeout, base_url=self._endpoint,
        )
        self._tokenizer: tiktoken.Encoding | None = None

    @property
    def is_configured(self) -> bool:
        return bool(self._endpoint and self._model)

    async def complete(
        self,
        messages: list[LLMMessage],
        system: str | None = None,
        tools: list[dict[str, Any]] | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> LLMResponse:
        body = self._build_body(messages, system, temperature, max_tokens)
        if tools:
            body["tools"] = [
                {"type": "function", "function": {
                    "name": t["name"],
                    "description": t.get("description", ""),
                    "parameters": t.get("input_schema", {}),
                }}
                for t in tools
            ]

        resp = await self._post_with_retry("/chat/completions", body)
        data = resp.json()

        choice = data["choices"][0]
        msg = choice["message"]
        tool_calls: list[ToolCall] = []
        for tc in msg.get("tool_calls") or []:
            fn = tc.get("function", {})
            args = fn.get("arguments", "{}")
            if isinstance(args, str):
                try:
                    args = json.loads(args)
                except json.JSONDecodeError:
                    args = {}
            tool_calls.append(ToolCall(
                id=tc.get("id", uuid4().hex[:12]),
                name=fn.get("name", ""),
                arguments=args,
            ))

        usage = data.get("usage", {})
        return LLMResponse(
            content=msg.get("content", "") or "",
            tool_calls=tool_calls,
            stop_reason=choice.get("finish_reason"),
            input_tokens=usage.get("prompt_tokens", 0),
            output_tokens=usage.get("completion_tokens", 0),
        )

    async def stream(
        self,
        messages: list[LLMMessage],
        system: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> AsyncIterator[StreamFragment]:
        body = self._build_body(messages, system, temperature, max_tokens)
        body["stream"] = True
        # OpenAI-style streams key tool calls by position, not id
        open_calls: dict[int, tuple[str, str]] = {}

        async with self._client.stream("POST", "/chat/completions", json=body) as resp:
            resp.raise_for_status()
            async for line in resp.aiter_lines():
                if not line.startswith("data: "):
                    continue
                payload = line[6:]
                if payload.strip() == "[DONE]":
                    break
                try:
                    chunk = json.loads(payload)
                    choice = chunk["choices"][0]
                except (json.JSONDecodeError, KeyError, IndexError):
                    continue

                delta = choice.get("delta", {})
                if delta.get("reasoning"):
                    yield StreamFragment(type=FragmentType.REASONING_DELTA, delta=delta["reasoning"])
                if delta.get("content"):
                    yield StreamFragment.text(delta["content"])
                for tc in delta.get("tool_calls") or []:
                    position = tc.get("index", 0)
                    fn = tc.get("function", {})
                    if position not in open_calls:
                        call_id = tc.get("id") or uuid4().hex[:12]
                        open_calls[position] = (call_id, fn.get("name", ""))
                        yield StreamFragment(
                            type=FragmentType.TOOL_CALL_START,
                            tool_name=fn.get("name", ""), tool_call_id=call_id, index=position,
                        )
                    if fn.get("arguments"):
                        call_id, name = open_calls[position]
                        yield StreamFragment(
                            type=FragmentType.TOOL_CALL_DELTA, delta=fn["arguments"],
                            tool_name=name, tool_call_id=call_id, index=position,
                        )
                if choice.get("finish_reason"):
                    for position, (call_id, name) in open_calls.items():
                        yield StreamFragment(
                            type=FragmentType.TOOL_CALL_END,
                            tool_name=name, tool_call_id=call_id, index=position,
                        )
                    open_calls.clear()

        yield StreamFragment.done()

    def count_tokens(self, text: str) -> int:
        if self._tokenizer is None:
            self._tokenizer = tiktoken.get_encoding("cl100k_base")
        return len(self._tokenizer.encode(text))

    async def close(self) -> None:
        await self._client.aclose()

    def _build_body(
        self,
        messages: list[LLMMessage],
        system: str | None,
        temperature: float | None,
        max_tokens: int | None,
    ) -> dict[str, Any]:
        if not self.is_configured:
            raise ProviderNotConfiguredError(f"{self.name} has no endpoint or model")

        api_messages: list[dict[str, Any]] = []
        if system:
            api_messages.append({"role": "system", "content": system})
        for msg in messages:
            content = msg.content
            if isinstance(content, list):
                # Flatten structured content to text for local models
                content = "\n".join(
                    block.get("text", "") for block in content
                    if isinstance(block, dict) and block.get("type") == "text"
                )
            api_messages.append({"role": msg.role, "content": content})

        return {
            "model": self._model,
            "messages": api_messages,
            "max_tokens": max_tokens or self._config.max_tokens,
            "temperature": temperature if temperature is not None else self._config.temperature,
        }

    async def _post_with_retry(
        self, path: str, body: dict[str, Any], max_retries: int = 2
    ) -> httpx.Response:
        for attempt in range(max_retries + 1):
            try:
                resp = await self._client.post(path, json=body)
                resp.raise_for_status()
                return resp
            except httpx.HTTPStatusError as e:
                if attempt == max_retries or e.response.status_code < 500:
                    raise
                wait = (2 ** attempt) + random.uniform(0, 1)
                log.warning("local_llm_retry", status=e.response.status_code, attempt=attempt)
                await asyncio.sleep(wait)
            except httpx.ConnectError:
                if attempt == max_retries:
                    raise
                wait = (2 ** attempt) + random.uniform(0, 1)
                log.warning("local_llm_connect_retry", attempt=attempt)
                await asyncio.sleep(wait)
        raise RuntimeError("Unreachable")
