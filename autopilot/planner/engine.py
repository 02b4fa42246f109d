"""Plan creation and revision against one inference provider."""

from __future__ import annotations

from autopilot.core.llm import LLMProvider
from autopilot.planner.models import Plan
from autopilot.planner.parser import fallback_steps, parse_plan_steps
from autopilot.utils.logging import get_logger

log = get_logger(__name__)

_CREATE_PLAN_PROMPT = """\
You are a task planning expert. Break down this goal into 5-10 actionable sub-tasks.

USER GOAL: "{goal}"

CONTEXT: {context}

Available operations:
{operations}

Each sub-task should:
1. Have a clear description
2. List the operations it requires
3. Include suggested parameters

Respond with ONLY a JSON object:
{{"subTasks": [{{"description": "Check scene for player", \
"requiredTools": ["find_gameobject"], "suggestedParameters": {{"name": "Player"}}}}]}}
"""

_REVISE_PLAN_PROMPT = """\
A task plan needs revision due to an issue.

ORIGINAL GOAL: {goal}
CURRENT PROGRESS: {cursor}/{total} steps
ISSUE: {issue}

COMPLETED STEPS:
{completed}

REMAINING STEPS:
{remaining}

Create a REVISED plan for the remaining steps. Account for the issue above.
Respond with ONLY a JSON object in the same format as before:
{{"subTasks": [{{"description": "...", "requiredTools": ["..."], "suggestedParameters": {{}}}}]}}
"""

PLAN_TEMPERATURE = 0.3
PLAN_MAX_TOKENS = 1024


class TaskPlanner:
    """Turns a goal into a :class:`Plan` by prompting one provider.

    Provider errors propagate. Unusable replies never do: they produce a
    single fallback step instead.
    """

    def __init__(self, llm: LLMProvider, operations: str = "") -> None:
        self._llm = llm
        self._operations = operations

    async def create_plan(self, goal: str, context: str = "") -> Plan:
        prompt = _CREATE_PLAN_PROMPT.format(
            goal=goal,
            context=context or "No additional context.",
            operations=self._operations or "(any)",
        )
        content = await self._llm.generate(
            prompt, temperature=PLAN_TEMPERATURE, max_tokens=PLAN_MAX_TOKENS,
        )
        plan = self._build(goal, content)
        log.info("plan_created", plan_id=plan.id, steps=plan.total_count)
        return plan

    async def revise_plan(self, current: Plan, issue: str) -> Plan:
        completed = "\n".join(f"✅ {s.description}" for s in current.completed_steps())
        remaining = "\n".join(f"⏳ {s.description}" for s in current.pending_steps())
        prompt = _REVISE_PLAN_PROMPT.format(
            goal=current.goal,
            cursor=current.cursor,
            total=current.total_count,
            issue=issue,
            completed=completed or "(none)",
            remaining=remaining or "(none)",
        )
        content = await self._llm.generate(
            prompt, temperature=PLAN_TEMPERATURE, max_tokens=PLAN_MAX_TOKENS,
        )
        plan = self._build(current.goal, content)
        log.info("plan_revised", old_plan_id=current.id, plan_id=plan.id, steps=plan.total_count)
        return plan

    def _build(self, goal: str, content: str) -> Plan:
        steps = parse_plan_steps(content)
        if not steps:
            log.warning("plan_fallback", goal=goal[:100])
            steps = fallback_steps(goal)
        return Plan(goal=goal, steps=steps, cursor=0)
