"""One corrective action per error category, applied through the tool surface."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import PurePath
from typing import Awaitable, Callable

from autopilot.healing.classifier import ErrorAnalysis, ErrorCategory
from autopilot.tools import operations as ops
from autopilot.tools.outcome import SUCCESS_MARKER, ToolOutcome, detect_outcome
from autopilot.tools.registry import ToolRegistry
from autopilot.utils.logging import get_logger

log = get_logger(__name__)

_COMMON_USINGS = (
    "using UnityEngine;",
    "using System.Collections;",
    "using System.Collections.Generic;",
)


@dataclass
class FixResult:
    success: bool
    action: str
    details: str = ""
    changes_applied: list[str] = field(default_factory=list)
    guidance: list[str] = field(default_factory=list)

    def render(self) -> str:
        lines = [
            "FIX APPLIED" if self.success else "FIX FAILED",
            f"Action: {self.action}",
            f"Details: {self.details}",
        ]
        if self.changes_applied:
            lines += ["", "Changes Applied:"] + [f"  - {c}" for c in self.changes_applied]
        if self.guidance:
            lines += ["", "Suggestions:"] + [f"  - {g}" for g in self.guidance]
        return "\n".join(lines)


def _payload(text: str) -> str:
    """Strip the success marker from a tool reply, keeping the body intact."""
    if SUCCESS_MARKER in text:
        text = text.split(SUCCESS_MARKER, 1)[1]
        if text.startswith(" "):
            text = text[1:]
    return text


Handler = Callable[[ErrorAnalysis, dict[str, str]], Awaitable[FixResult]]


class FixStrategyResolver:
    """Dispatch a classified error to its handler.

    ``apply`` never raises. Categories without an automatic fix come back as a
    failed :class:`FixResult` carrying guidance and no applied changes.
    """

    def __init__(self, surface: ToolRegistry) -> None:
        self._surface = surface
        self._handlers: dict[ErrorCategory, Handler] = {
            ErrorCategory.COMPILATION: self._fix_compilation,
            ErrorCategory.SYNTAX: self._fix_compilation,
            ErrorCategory.GAMEOBJECT_NOT_FOUND: self._fix_gameobject_not_found,
            ErrorCategory.MISSING_REFERENCE: self._fix_gameobject_not_found,
            ErrorCategory.COMPONENT_NOT_FOUND: self._fix_component_not_found,
            ErrorCategory.SCRIPT_NOT_FOUND: self._guidance_only,
            ErrorCategory.NULL_REFERENCE: self._guidance_only,
            ErrorCategory.TYPE_MISMATCH: self._guidance_only,
            ErrorCategory.INVALID_PARAMETER: self._guidance_only,
            ErrorCategory.PERMISSION_DENIED: self._guidance_only,
        }

    async def apply(self, analysis: ErrorAnalysis, params: dict[str, str] | None = None) -> FixResult:
        params = dict(params or {})
        handler = self._handlers.get(analysis.category)
        if handler is None:
            return FixResult(
                success=False,
                action="No automatic fix available",
                details=f"Manual intervention required for {analysis.category.value}",
                guidance=list(analysis.possible_fixes),
            )
        try:
            result = await handler(analysis, params)
        except Exception as e:
            log.warning("fix_raised", category=analysis.category.value, error=str(e))
            return FixResult(
                success=False,
                action=f"Fix {analysis.category.value}",
                details=f"Error applying fix: {e}",
            )
        log.info(
            "fix_attempted",
            category=analysis.category.value,
            success=result.success,
            changes=len(result.changes_applied),
        )
        return result

    async def _call(self, operation: str, params: dict[str, str]) -> str:
        return await self._surface.invoke(operation, params)

    # --- Handlers ---

    async def _fix_compilation(self, analysis: ErrorAnalysis, params: dict[str, str]) -> FixResult:
        result = FixResult(success=False, action="Fix compilation error")
        script = params.get("script_name")
        if not script and "file" in analysis.context:
            script = PurePath(analysis.context["file"]).stem
        if not script:
            result.details = "Cannot determine which script has the error"
            result.guidance = list(analysis.possible_fixes)
            return result

        reply = await self._call(ops.READ_SCRIPT, {"script_name": script})
        if detect_outcome(reply) is ToolOutcome.FAILURE:
            result.details = f"Script '{script}' not found"
            result.guidance = list(analysis.possible_fixes)
            return result
        content = _payload(reply)

        if "using statement" in analysis.root_cause:
            for using in _COMMON_USINGS:
                if using not in content:
                    content = f"{using}\n{content}"
                    result.changes_applied.append(f"Added {using}")

        if "semicolon" in analysis.root_cause and "line" in analysis.context:
            line_no = int(analysis.context["line"])
            lines = content.split("\n")
            if 0 < line_no <= len(lines):
                line = lines[line_no - 1].rstrip()
                if (
                    line.strip()
                    and not line.endswith((";", "{", "}"))
                    and not line.lstrip().startswith("//")
                ):
                    lines[line_no - 1] = line + ";"
                    content = "\n".join(lines)
                    result.changes_applied.append(f"Added semicolon at line {line_no}")

        if not result.changes_applied:
            result.details = "No automatic fix available for this compilation error"
            result.guidance = list(analysis.possible_fixes)
            return result

        write = await self._call(ops.MODIFY_SCRIPT, {"script_name": script, "content": content})
        if detect_outcome(write) is ToolOutcome.FAILURE:
            result.details = f"Could not write fix: {write}"
            result.changes_applied = []
            return result

        result.success = True
        result.details = f"Applied {len(result.changes_applied)} fix(es) to {script}"
        return result

    async def _fix_gameobject_not_found(self, analysis: ErrorAnalysis, params: dict[str, str]) -> FixResult:
        result = FixResult(success=False, action="Create missing GameObject")
        name = (
            analysis.context.get("gameobject")
            or params.get("gameobject_name")
            or params.get("name")
            or "NewGameObject"
        )

        found = await self._call(ops.FIND_GAMEOBJECT, {"name": name})
        if detect_outcome(found) is ToolOutcome.SUCCESS:
            result.success = True
            result.details = f"GameObject '{name}' already exists"
            return result

        created = await self._call(ops.CREATE_GAMEOBJECT, {"name": name})
        if detect_outcome(created) is ToolOutcome.FAILURE:
            result.details = f"Error creating GameObject: {created}"
            return result

        result.success = True
        result.details = f"Created GameObject '{name}'"
        result.changes_applied = [f"Created GameObject: {name}"]
        return result

    async def _fix_component_not_found(self, analysis: ErrorAnalysis, params: dict[str, str]) -> FixResult:
        result = FixResult(success=False, action="Add missing component")
        target = params.get("gameobject_name")
        component = params.get("component_type") or analysis.context.get("component")
        if not target or not component:
            result.details = "Missing GameObject or component type information"
            result.guidance = list(analysis.possible_fixes)
            return result

        found = await self._call(ops.FIND_GAMEOBJECT, {"name": target})
        if detect_outcome(found) is ToolOutcome.FAILURE:
            result.details = f"GameObject '{target}' not found"
            return result

        reply = await self._call(
            ops.ADD_COMPONENT, {"gameobject_name": target, "component_type": component},
        )
        if detect_outcome(reply) is not ToolOutcome.SUCCESS:
            result.details = reply
            return result

        result.success = True
        result.details = f"Added {component} to {target}"
        result.changes_applied = [f"Added component: {component}"]
        return result

    async def _guidance_only(self, analysis: ErrorAnalysis, params: dict[str, str]) -> FixResult:
        return FixResult(
            success=False,
            action=f"Handle {analysis.category.value}",
            details=analysis.root_cause,
            guidance=list(analysis.possible_fixes),
        )
