"""LLM provider subpackage."""

from autopilot.core.llm.types import (
    FragmentType,
    LLMMessage,
    LLMResponse,
    StreamFragment,
    ToolCall,
)
from autopilot.core.llm.base import LLMProvider
from autopilot.core.llm.anthropic import AnthropicProvider
from autopilot.core.llm.local import LocalProvider
from autopilot.config import LLMConfig

__all__ = [
    "FragmentType",
    "LLMMessage",
    "LLMResponse",
    "StreamFragment",
    "ToolCall",
    "LLMProvider",
    "AnthropicProvider",
    "LocalProvider",
    "create_provider",
]


def create_provider(config: LLMConfig) -> LLMProvider:
    """Factory to create the appropriate LLM provider from config."""
    if config.provider == "local":
        return LocalProvider(config)
    return AnthropicProvider(config)
