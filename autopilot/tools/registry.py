"""Name-keyed tool surface."""

from __future__ import annotations

from typing import Any, Iterable

from autopilot.tools.base import BaseTool, ToolResult
from autopilot.utils.logging import get_logger

log = get_logger(__name__)


class ToolRegistry:
    """Maps operation names to tools and returns marker-annotated text.

    ``invoke`` never raises: unknown names and tool exceptions come back as
    failure text, the same way a tool's own failure would.
    """

    def __init__(self, tools: Iterable[BaseTool] = ()) -> None:
        self._tools: dict[str, BaseTool] = {}
        for tool in tools:
            self.register(tool)

    def register(self, tool: BaseTool) -> None:
        if tool.name in self._tools:
            log.warning("tool_replaced", tool=tool.name)
        self._tools[tool.name] = tool

    def has(self, name: str) -> bool:
        return name in self._tools

    def names(self) -> list[str]:
        return list(self._tools)

    def groups(self) -> dict[str, list[str]]:
        grouped: dict[str, list[str]] = {}
        for tool in self._tools.values():
            grouped.setdefault(tool.group, []).append(tool.name)
        return grouped

    def schemas(self) -> list[dict[str, Any]]:
        return [t.to_anthropic_schema() for t in self._tools.values()]

    def describe(self) -> str:
        return "\n".join(f"- {t.signature()}" for t in self._tools.values())

    async def invoke(self, name: str, params: dict[str, str] | None = None) -> str:
        tool = self._tools.get(name)
        if tool is None:
            return ToolResult(success=False, error=f"Unknown operation '{name}'").render()

        log.info("tool_executing", tool=name, params=sorted((params or {}).keys()))
        try:
            result = await tool.execute(**(params or {}))
        except Exception as e:
            log.exception("tool_raised", tool=name)
            return ToolResult(success=False, error=str(e) or type(e).__name__).render()
        return result.render()
