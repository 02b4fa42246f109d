"""Decide how to recover when a workflow step fails."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from autopilot.core.llm import LLMProvider
from autopilot.planner.models import Plan
from autopilot.utils.logging import get_logger

log = get_logger(__name__)

_HEALING_PROMPT = """\
A workflow step has failed. Analyze the error and recommend a recovery strategy.

STEP: {step}
OPERATION USED: {operation}
ERROR: {error}
RETRY COUNT: {retries}/{max_retries}

Available strategies:
1. RETRY - Try the same step again (maybe temporary issue)
2. SKIP - Skip this step and continue (if non-critical)
3. ROLLBACK - Go back to previous step (if dependency issue)
4. REPLAN - Revise entire plan (if fundamental issue)

Respond with ONLY ONE WORD: RETRY, SKIP, ROLLBACK, or REPLAN
"""


class HealingStrategy(str, Enum):
    RETRY = "retry"
    SKIP = "skip"
    ROLLBACK = "rollback"
    REPLAN = "replan"


@dataclass
class HealingDecision:
    strategy: HealingStrategy
    reason: str


class HealingAdvisor:
    """Asks the executor tier for a recovery strategy, bounded per step."""

    def __init__(self, llm: LLMProvider, max_step_retries: int = 3) -> None:
        self._llm = llm
        self.max_step_retries = max_step_retries
        self._retries: dict[int, int] = {}

    def retries_for(self, step_index: int) -> int:
        return self._retries.get(step_index, 0)

    def reset_step(self, step_index: int) -> None:
        self._retries.pop(step_index, None)

    def reset(self) -> None:
        self._retries.clear()

    async def decide(self, plan: Plan, error: str, operation: str, step_index: int) -> HealingDecision:
        retries = self._retries.get(step_index, 0) + 1
        self._retries[step_index] = retries

        if retries >= self.max_step_retries:
            log.warning("healing_forced_skip", step_index=step_index, retries=retries)
            return HealingDecision(
                HealingStrategy.SKIP,
                f"Max retries ({self.max_step_retries}) exceeded for this step",
            )

        step = plan.steps[step_index].description if step_index < len(plan.steps) else plan.goal
        prompt = _HEALING_PROMPT.format(
            step=step,
            operation=operation or "(none)",
            error=error,
            retries=retries,
            max_retries=self.max_step_retries,
        )
        try:
            reply = await self._llm.generate(prompt, temperature=0.0, max_tokens=16)
        except Exception as e:
            log.warning("healing_advice_failed", error=str(e), retries=retries)
            if retries < 2:
                return HealingDecision(HealingStrategy.RETRY, "Fallback: retry")
            return HealingDecision(HealingStrategy.SKIP, "Fallback: skip")

        upper = reply.strip().upper()
        for strategy in HealingStrategy:
            if strategy.name in upper:
                break
        else:
            strategy = HealingStrategy.RETRY

        log.info("healing_decided", strategy=strategy.value, step_index=step_index, retries=retries)
        return HealingDecision(strategy, f"Model analysis of error: {error[:50]}")
