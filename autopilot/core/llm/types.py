"""LLM data types."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


@dataclass
class LLMMessage:
    role: str  # "user", "assistant", "system"
    content: str | list[dict[str, Any]]


@dataclass
class ToolCall:
    id: str
    name: str
    arguments: dict[str, Any]


@dataclass
class LLMResponse:
    content: str = ""
    tool_calls: list[ToolCall] = field(default_factory=list)
    stop_reason: str | None = None
    input_tokens: int = 0
    output_tokens: int = 0


class FragmentType(str, Enum):
    TEXT_DELTA = "text_delta"
    TOOL_CALL_START = "tool_call_start"
    TOOL_CALL_DELTA = "tool_call_delta"
    TOOL_CALL_END = "tool_call_end"
    REASONING_DELTA = "reasoning_delta"
    DONE = "done"
    ERROR = "error"


@dataclass
class StreamFragment:
    """One piece of a streamed model response."""

    type: FragmentType
    delta: str = ""
    tool_name: str | None = None
    tool_call_id: str | None = None
    index: int = 0
    received_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def text(cls, delta: str) -> StreamFragment:
        return cls(type=FragmentType.TEXT_DELTA, delta=delta)

    @classmethod
    def error(cls, message: str) -> StreamFragment:
        return cls(type=FragmentType.ERROR, delta=message)

    @classmethod
    def done(cls) -> StreamFragment:
        return cls(type=FragmentType.DONE)
