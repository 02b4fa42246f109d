"""Decide whether the loop may move to the next step without a human turn."""

from __future__ import annotations

import re
import time
from typing import Callable

from autopilot.planner.models import Plan
from autopilot.tools.outcome import FAILURE_MARKER
from autopilot.utils.logging import get_logger

log = get_logger(__name__)

COMPLETION_KEYWORDS = ("completed", "done", "ready", "finished", "successfully", "all set", "ok")
ERROR_KEYWORDS = ("error", "failed", "couldn't", "cannot", "unable")

_COMPLETION_RE = re.compile(
    r"\b(?:" + "|".join(re.escape(k) for k in COMPLETION_KEYWORDS) + r")\b", re.IGNORECASE,
)


def claims_completion(text: str | None) -> bool:
    return bool(text) and _COMPLETION_RE.search(text) is not None


def has_error(text: str | None) -> bool:
    if not text:
        return False
    if FAILURE_MARKER in text:
        return True
    lowered = text.lower()
    return any(k in lowered for k in ERROR_KEYWORDS)


class ContinuationHeuristic:
    """Auto-continue gate with a cooldown after every positive answer.

    The cooldown is the only state. ``clock`` returns seconds and defaults to
    :func:`time.monotonic`.
    """

    def __init__(self, cooldown: float = 2.0, clock: Callable[[], float] = time.monotonic) -> None:
        self.cooldown = cooldown
        self._clock = clock
        self._last_continue: float | None = None

    def in_cooldown(self) -> bool:
        return self._last_continue is not None and self._clock() - self._last_continue < self.cooldown

    def should_auto_continue(
        self,
        plan: Plan | None,
        last_response: str | None,
        last_tool_result: str | None,
    ) -> bool:
        if self.in_cooldown():
            log.debug("continuation_declined", reason="cooldown")
            return False
        if plan is None or plan.is_complete:
            log.debug("continuation_declined", reason="no_active_plan")
            return False
        if has_error(last_tool_result):
            log.debug("continuation_declined", reason="tool_error")
            return False

        if claims_completion(last_response):
            return self._accept("model_claims_done", plan)

        step = plan.current_step
        if step is not None and len(step.required_operations) > 1:
            return self._accept("more_operations_required", plan)

        if last_tool_result and plan.remaining_count > 0:
            return self._accept("tool_succeeded", plan)

        log.debug("continuation_declined", reason="no_signal")
        return False

    def _accept(self, reason: str, plan: Plan) -> bool:
        self._last_continue = self._clock()
        log.debug("continuation_accepted", reason=reason, remaining=plan.remaining_count)
        return True

    def reset_cooldown(self) -> None:
        self._last_continue = None

    def estimate_remaining(self, plan: Plan | None) -> int:
        if plan is None or plan.is_complete:
            return 0
        return plan.remaining_count


def continuation_prompt(plan: Plan | None) -> str:
    """Prompt nudging the model on to the current step; empty when nothing is left."""
    if plan is None or plan.is_complete:
        return ""
    step = plan.current_step
    lines = [
        "[Auto-Continue]",
        "",
        f"Progress: {plan.completed_count}/{plan.total_count} steps completed",
        "",
        "Completed:",
    ]
    for i in range(max(0, plan.cursor - 2), plan.cursor):
        lines.append(f"  {i + 1}. {plan.steps[i].description}")

    lines += [
        "",
        f"CURRENT STEP ({plan.cursor + 1}/{plan.total_count}):",
        f"  Task: {step.description}",
        f"  Required operations: {', '.join(sorted(step.required_operations))}",
    ]
    if step.suggested_parameters:
        lines.append("  Suggested parameters:")
        lines += [f'    - {k} = "{v}"' for k, v in step.suggested_parameters.items()]

    nxt = plan.next_step
    if nxt is not None:
        lines += ["", f"Next step: {nxt.description}"]
    lines += ["", "Proceed with the CURRENT STEP now. Use the required operations."]
    return "\n".join(lines)


def stuck_reminder_prompt(plan: Plan | None, turns_without_action: int) -> str:
    if plan is None or plan.current_step is None:
        return ""
    step = plan.current_step
    return (
        f"REMINDER: You haven't used any operations in the last {turns_without_action} messages.\n\n"
        f"Current task: {step.description}\n"
        f"Required operations: {', '.join(sorted(step.required_operations))}\n\n"
        "Please use one of the required operations to proceed."
    )
