"""Shared fixtures: a scripted inference provider and an in-memory scene."""

from __future__ import annotations

from typing import Any, AsyncIterator

import pytest

from autopilot.core.llm import LLMMessage, LLMProvider, LLMResponse, StreamFragment
from autopilot.tools.registry import ToolRegistry
from autopilot.tools.scene import SceneState, scene_tools


class ScriptedProvider(LLMProvider):
    """Answers with canned replies in order; the last one repeats."""

    def __init__(
        self,
        replies: list[str | Exception] | None = None,
        name: str = "scripted",
        configured: bool = True,
        fragments: list[StreamFragment] | None = None,
    ) -> None:
        self.name = name
        self.replies = list(replies or [""])
        self.fragments = list(fragments or [])
        self.prompts: list[str] = []
        self.calls: list[dict[str, Any]] = []
        self._configured = configured

    @property
    def is_configured(self) -> bool:
        return self._configured

    async def complete(
        self,
        messages: list[LLMMessage],
        system: str | None = None,
        tools: list[dict[str, Any]] | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> LLMResponse:
        prompt = messages[-1].content
        self.prompts.append(prompt)
        self.calls.append({"temperature": temperature, "max_tokens": max_tokens})
        reply = self.replies.pop(0) if len(self.replies) > 1 else self.replies[0]
        if isinstance(reply, Exception):
            raise reply
        return LLMResponse(content=reply)

    async def stream(
        self,
        messages: list[LLMMessage],
        system: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> AsyncIterator[StreamFragment]:
        for fragment in self.fragments:
            yield fragment

    def count_tokens(self, text: str) -> int:
        return len(text) // 4


@pytest.fixture
def scene():
    return SceneState()


@pytest.fixture
def surface(scene):
    return ToolRegistry(scene_tools(scene))


@pytest.fixture
def scripted():
    return ScriptedProvider
