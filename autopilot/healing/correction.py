"""Bounded execute, classify, fix and retry around a single operation."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Awaitable, Callable

from autopilot.healing.classifier import ErrorAnalysis, classify, confidence_description
from autopilot.healing.fixes import FixResult, FixStrategyResolver
from autopilot.tools import operations as ops
from autopilot.tools.outcome import detect_outcome, is_success, resolve
from autopilot.tools.registry import ToolRegistry
from autopilot.utils.logging import get_logger

log = get_logger(__name__)

ProgressFn = Callable[[str], None]
Validator = Callable[[dict[str, str]], Awaitable[bool]]


def _short(text: str, limit: int = 80) -> str:
    return text if len(text) <= limit else text[:limit] + "..."


@dataclass
class CorrectionAttempt:
    number: int
    operation: str
    error: str = ""
    analysis: ErrorAnalysis | None = None
    fix: FixResult | None = None
    result: str = ""
    success: bool = False
    at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass
class CorrectionSession:
    operation: str
    max_attempts: int
    attempts: list[CorrectionAttempt] = field(default_factory=list)
    success: bool = False
    started: float = field(default_factory=time.monotonic)
    finished: float | None = None

    @property
    def duration(self) -> float:
        end = self.finished if self.finished is not None else time.monotonic()
        return end - self.started

    @property
    def fixes_applied(self) -> int:
        return sum(1 for a in self.attempts if a.fix is not None and a.fix.success)

    def close(self, success: bool) -> None:
        self.success = success
        self.finished = time.monotonic()

    def summary(self) -> str:
        lines = [
            "SELF-CORRECTION SESSION",
            f"Operation: {self.operation}",
            f"Attempts: {len(self.attempts)}/{self.max_attempts}",
            f"Final Status: {'SUCCESS' if self.success else 'FAILED'}",
            f"Duration: {self.duration:.2f}s",
        ]
        for attempt in self.attempts:
            lines.append("")
            lines.append(f"## Attempt {attempt.number}:")
            if attempt.error:
                lines.append(f"Error: {_short(attempt.error)}")
            if attempt.analysis is not None:
                lines.append(f"Category: {attempt.analysis.category.value}")
            if attempt.fix is not None:
                lines.append(f"Fix: {attempt.fix.action}")
            lines.append(f"Result: {'ok' if attempt.success else 'failed'}")
        return "\n".join(lines)


class SelfCorrectionEngine:
    """Run an operation up to ``max_retries`` times, fixing between attempts.

    A fix is only a hint: whether or not it worked, the next attempt runs with
    the original parameters. After the last failure the caller gets the raw
    text of that failure back.
    """

    def __init__(
        self,
        surface: ToolRegistry,
        resolver: FixStrategyResolver | None = None,
        max_retries: int = 3,
        fail_open: bool = True,
    ) -> None:
        if max_retries < 1:
            raise ValueError("max_retries must be at least 1")
        self._surface = surface
        self._resolver = resolver or FixStrategyResolver(surface)
        self.max_retries = max_retries
        self.fail_open = fail_open
        self.last_session: CorrectionSession | None = None
        self._sessions = 0
        self._successes = 0
        self._attempts = 0
        self._fixes = 0
        self._validators: dict[str, Validator] = {
            ops.CREATE_GAMEOBJECT: self._validate_gameobject,
            ops.CREATE_AND_ATTACH_SCRIPT: self._validate_script,
            ops.ADD_COMPONENT: self._validate_component,
        }

    async def execute_with_correction(
        self,
        operation: str,
        params: dict[str, str] | None = None,
        progress: ProgressFn | None = None,
    ) -> str:
        result, _ = await self.run(operation, params, progress)
        return result

    async def run(
        self,
        operation: str,
        params: dict[str, str] | None = None,
        progress: ProgressFn | None = None,
    ) -> tuple[str, CorrectionSession]:
        """Like :meth:`execute_with_correction`, also returning the session."""
        params = dict(params or {})
        notify = progress or (lambda _msg: None)
        session = CorrectionSession(operation=operation, max_attempts=self.max_retries)
        self.last_session = session
        self._sessions += 1
        notify(f"Starting {operation} with self-correction")

        result = ""
        for number in range(1, self.max_retries + 1):
            notify(f"Attempt {number}/{self.max_retries}")
            attempt = CorrectionAttempt(number=number, operation=operation)
            result = await self._surface.invoke(operation, params)
            attempt.result = result
            self._attempts += 1

            if resolve(detect_outcome(result), self.fail_open):
                attempt.success = True
                session.attempts.append(attempt)
                session.close(success=True)
                self._successes += 1
                log.info("correction_succeeded", operation=operation, attempt=number)
                notify(f"Success on attempt {number}")
                return result, session

            attempt.error = result
            attempt.analysis = classify(result)
            log.info(
                "correction_attempt_failed",
                operation=operation,
                attempt=number,
                category=attempt.analysis.category.value,
                confidence=attempt.analysis.confidence,
            )
            notify(
                f"Error category: {attempt.analysis.category.value} "
                f"({confidence_description(attempt.analysis.confidence)} confidence)"
            )

            if number < self.max_retries:
                attempt.fix = await self._resolver.apply(attempt.analysis, params)
                if attempt.fix.success:
                    self._fixes += 1
                    notify(f"Fix applied: {attempt.fix.details}")
                else:
                    notify("Automatic fix not available, retrying anyway")

            session.attempts.append(attempt)

        session.close(success=False)
        log.warning("correction_exhausted", operation=operation, attempts=len(session.attempts))
        notify(session.summary())
        return result, session

    async def validate(self, operation: str, params: dict[str, str], result: str) -> bool:
        """Check that the effect of ``operation`` is actually visible on the surface."""
        if not is_success(result, self.fail_open):
            return False
        validator = self._validators.get(operation)
        if validator is None:
            return is_success(result, self.fail_open)
        return await validator(params)

    async def _validate_gameobject(self, params: dict[str, str]) -> bool:
        name = params.get("name")
        if not name:
            return False
        reply = await self._surface.invoke(ops.FIND_GAMEOBJECT, {"name": name})
        return is_success(reply, fail_open=False)

    async def _validate_script(self, params: dict[str, str]) -> bool:
        script = params.get("script_name")
        if not script:
            return False
        reply = await self._surface.invoke(ops.FIND_SCRIPT, {"script_name": script})
        return is_success(reply, fail_open=False)

    async def _validate_component(self, params: dict[str, str]) -> bool:
        target = params.get("gameobject_name")
        component = params.get("component_type")
        if not target or not component:
            return False
        reply = await self._surface.invoke(ops.GET_COMPONENTS, {"gameobject_name": target})
        return is_success(reply, fail_open=False) and component in reply

    def statistics(self) -> dict[str, int]:
        return {
            "max_retries": self.max_retries,
            "sessions": self._sessions,
            "successes": self._successes,
            "attempts": self._attempts,
            "fixes_applied": self._fixes,
        }
