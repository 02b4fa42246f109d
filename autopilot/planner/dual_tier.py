"""Route planning to an expensive model and step work to a cheap one."""

from __future__ import annotations

from dataclasses import dataclass

from autopilot.core.llm import LLMProvider
from autopilot.planner.engine import TaskPlanner
from autopilot.planner.models import Plan, Step
from autopilot.utils.logging import get_logger

log = get_logger(__name__)

_EXECUTE_PROMPT = """\
Execute this task step:

STEP: {description}
REQUIRED OPERATIONS: {operations}
{parameters}{context}
Use the required operations to complete this step. Emit each call as:
[TOOL:operation_name]
key: value
[/TOOL]
"""

_VALIDATE_PROMPT = """\
Validate if this step completed successfully:

STEP GOAL: {description}
EXECUTION RESULT: {result}

Did this step achieve its goal? Respond with ONE WORD:
- SUCCESS (if goal achieved)
- PARTIAL (if partially achieved, can continue)
- FAILED (if completely failed)
"""

STEP_STATUSES = ("success", "partial", "failed")


@dataclass
class StepValidation:
    valid: bool
    status: str  # one of STEP_STATUSES
    message: str = ""


class DualTierExecutor:
    """Owns a planner-tier and an executor-tier provider.

    With no usable executor the planner serves both roles. Callers see the
    same methods either way; only the routing changes.
    """

    def __init__(
        self,
        planner: LLMProvider,
        executor: LLMProvider | None = None,
        operations: str = "",
        execute_max_tokens: int | None = None,
    ) -> None:
        self.planner = planner
        if executor is not None and executor.is_configured:
            self.executor = executor
            self.degraded = False
            log.info("dual_tier_ready", planner=planner.name, executor=executor.name)
        else:
            self.executor = planner
            self.degraded = True
            log.warning("dual_tier_degraded", provider=planner.name)
        self._task_planner = TaskPlanner(planner, operations=operations)
        self._execute_max_tokens = execute_max_tokens

    async def create_plan(self, goal: str, context: str = "") -> Plan:
        return await self._task_planner.create_plan(goal, context)

    async def revise_plan(self, current: Plan, issue: str) -> Plan:
        log.info("plan_revision_requested", plan_id=current.id, issue=issue[:200])
        return await self._task_planner.revise_plan(current, issue)

    async def execute_step(self, step: Step, context: str = "") -> str:
        """One executor-tier call; the raw reply comes back unchanged."""
        ops = ", ".join(sorted(step.required_operations)) or "(choose as needed)"
        params = ""
        if step.suggested_parameters:
            lines = "".join(f"  {k} = {v}\n" for k, v in step.suggested_parameters.items())
            params = f"\nSUGGESTED PARAMETERS:\n{lines}"
        prompt = _EXECUTE_PROMPT.format(
            description=step.description,
            operations=ops,
            parameters=params,
            context=f"\nCONTEXT: {context}\n" if context else "",
        )
        log.debug("step_executing", provider=self.executor.name, step=step.description[:100])
        return await self.executor.generate(prompt, max_tokens=self._execute_max_tokens)

    async def validate_step(self, step: Step, result: str) -> StepValidation:
        prompt = _VALIDATE_PROMPT.format(description=step.description, result=result)
        reply = await self.executor.generate(prompt, temperature=0.0, max_tokens=16)
        upper = reply.strip().upper()
        if "SUCCESS" in upper:
            validation = StepValidation(valid=True, status="success")
        elif "PARTIAL" in upper:
            validation = StepValidation(valid=True, status="partial")
        else:
            validation = StepValidation(valid=False, status="failed", message=reply.strip())
        log.debug("step_validated", status=validation.status)
        return validation

    def cost_estimate(self, steps_count: int) -> str:
        if self.degraded:
            return f"Same model for all calls ({steps_count + 1} calls)"
        return (
            f"1 planning call ({self.planner.name}) + "
            f"{steps_count} execution calls ({self.executor.name})"
        )
