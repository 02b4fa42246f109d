"""Base tool interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

from autopilot.tools.outcome import FAILURE_MARKER, SUCCESS_MARKER


@dataclass
class ToolResult:
    success: bool
    output: str = ""
    error: str = ""
    data: dict[str, Any] = field(default_factory=dict)

    def render(self) -> str:
        """Marker-annotated text, the only form that leaves the tool surface."""
        if self.success:
            return f"{SUCCESS_MARKER} {self.output}".rstrip()
        return f"{FAILURE_MARKER} Error: {self.error or self.output or 'unknown failure'}"


class BaseTool(ABC):
    @property
    @abstractmethod
    def name(self) -> str: ...

    @property
    @abstractmethod
    def description(self) -> str: ...

    @property
    @abstractmethod
    def parameters(self) -> dict[str, Any]:
        """JSON Schema for tool parameters."""
        ...

    @property
    def group(self) -> str:
        """Capability group the tool belongs to (scene, scripts, ...)."""
        return "general"

    @abstractmethod
    async def execute(self, **kwargs: str) -> ToolResult: ...

    def to_anthropic_schema(self) -> dict[str, Any]:
        """Convert to Anthropic tool format."""
        return {
            "name": self.name,
            "description": self.description,
            "input_schema": self.parameters,
        }

    def signature(self) -> str:
        """One-line description used in prompts: name(params): description."""
        props = self.parameters.get("properties", {})
        required = set(self.parameters.get("required", []))
        params = ", ".join(p if p in required else f"{p}?" for p in props)
        return f"{self.name}({params}): {self.description}"
