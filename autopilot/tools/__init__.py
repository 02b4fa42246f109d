"""Tool surface: registry, base tool and result markers."""

from autopilot.tools.base import BaseTool, ToolResult
from autopilot.tools.outcome import ToolOutcome, detect_outcome, is_success
from autopilot.tools.registry import ToolRegistry

__all__ = [
    "BaseTool",
    "ToolResult",
    "ToolOutcome",
    "ToolRegistry",
    "detect_outcome",
    "is_success",
]
