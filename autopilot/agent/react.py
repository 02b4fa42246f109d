"""Thought, action, observation and reflection, one step at a time."""

from __future__ import annotations

from typing import Callable

from autopilot.agent.complexity import recommended_max_steps, select_strategy
from autopilot.agent.envelope import ActionEnvelope, parse_action
from autopilot.agent.trajectory import ReActStepRecord, Trajectory
from autopilot.config import ReActConfig
from autopilot.core.llm import LLMProvider
from autopilot.healing.correction import SelfCorrectionEngine
from autopilot.tools.outcome import is_success
from autopilot.tools.registry import ToolRegistry
from autopilot.utils.logging import get_logger

log = get_logger(__name__)

ProgressFn = Callable[[str], None]

COMPLETION_PHRASES = ("task complete", "all done", "successfully completed")
COMPLETION_MARKERS = ("DONE", "COMPLETE")
FALLBACK_OBJECTIVE = "Complete remaining work"

_THOUGHT_PROMPT = """\
You are a development assistant working in a Reason + Act loop.

MAIN TASK: {task}
CURRENT OBJECTIVE: {objective}

AVAILABLE OPERATIONS:
{operations}
{history}
INSTRUCTIONS:
1. Analyze what needs to be done for the current objective
2. Decide which operation to use (if any)
3. Format the call like this:
[TOOL:operation_name]
param1: value1
param2: value2
[/TOOL]

If the task is complete, include 'TASK COMPLETE' in your response.

Now, think step by step about what to do next:
"""


def fallback_thought(objective: str) -> str:
    return f"Working on: {objective}\nAnalyzing requirements and determining next action..."


class ReActAgent:
    """Runs a task as a bounded sequence of ReAct steps.

    Exceptions never leave :meth:`run`; they end the trajectory with a failed
    record instead.
    """

    def __init__(
        self,
        surface: ToolRegistry,
        llm: LLMProvider | None = None,
        config: ReActConfig | None = None,
        correction: SelfCorrectionEngine | None = None,
        use_correction: bool = True,
        fail_open: bool = True,
    ) -> None:
        self._surface = surface
        self._llm = llm
        self._config = config or ReActConfig()
        self._fail_open = fail_open
        if correction is None and use_correction:
            correction = SelfCorrectionEngine(
                surface, max_retries=self._config.correction_retries, fail_open=fail_open,
            )
        self._correction = correction if use_correction else None

    def _resolve_max_steps(self, task: str, max_steps: int | None) -> int:
        if max_steps:
            return max_steps
        if self._config.max_steps:
            return self._config.max_steps
        return recommended_max_steps(task)

    async def run(
        self,
        task: str,
        max_steps: int | None = None,
        progress: ProgressFn | None = None,
    ) -> Trajectory:
        notify = progress or (lambda _msg: None)
        limit = self._resolve_max_steps(task, max_steps)
        trajectory = Trajectory(task=task, max_steps=limit)
        try:
            strategy = select_strategy(task)
            trajectory.strategy = strategy.name
            log.info("react_started", strategy=strategy.name, max_steps=limit)
            notify(f"Task: {task}\nStrategy: {strategy.name}")

            for n in range(limit):
                objective = (
                    strategy.objectives[n] if n < len(strategy.objectives) else FALLBACK_OBJECTIVE
                )
                notify(f"Step {n + 1}/{limit}: {objective}")
                record = await self._step(trajectory, objective, notify)
                trajectory.add(record)
                log.info(
                    "react_step",
                    step=n + 1,
                    action=record.action,
                    success=record.success,
                    should_continue=record.should_continue,
                )
                if trajectory.is_complete:
                    break
                if not record.success and "cannot continue" in record.reflection:
                    notify("Critical error, stopping.")
                    trajectory.finish()
                    break

            trajectory.finish()
            trajectory.final_result = trajectory.report()
            notify(trajectory.compact_summary())
        except Exception as e:
            log.exception("react_failed", task=task[:100], steps=len(trajectory.steps))
            if not trajectory.is_complete:
                trajectory.add(ReActStepRecord(
                    observation=f"❌ Error: {e}",
                    reflection="Error occurred, cannot continue.",
                    should_continue=False,
                ))
            trajectory.finish()
            trajectory.final_result = f"❌ Error: {e}"
            return trajectory

        log.info(
            "react_finished",
            steps=len(trajectory.steps),
            successes=trajectory.success_count,
            ceiling=trajectory.stopped_by_ceiling,
        )
        return trajectory

    async def _step(self, trajectory: Trajectory, objective: str, notify: ProgressFn) -> ReActStepRecord:
        record = ReActStepRecord()
        try:
            record.thought = await self._think(trajectory, objective)
            notify(record.thought)
            finished = any(marker in record.thought for marker in COMPLETION_MARKERS)

            envelope = parse_action(record.thought)
            if envelope is None:
                record.observation = "No action required at this step."
                record.success = True
                record.reflection = "Reasoning step complete. Ready for next action."
                if finished:
                    record.reflection = "Reasoning step complete, task complete."
            elif not self._surface.has(envelope.operation):
                record.action = envelope.operation
                record.params = envelope.params
                record.observation = f"❌ Error: Unknown operation '{envelope.operation}'"
                record.success = False
                record.reflection = (
                    f"{envelope.operation} is not an available operation, cannot continue."
                )
                record.should_continue = False
                return record
            else:
                record.action = envelope.operation
                record.params = envelope.params
                record.observation = await self._act(envelope, notify)
                record.success = is_success(record.observation, self._fail_open)
                if record.success:
                    record.reflection = f"{envelope.operation} succeeded. Moving to next step."
                    if finished:
                        record.reflection = f"{envelope.operation} succeeded, task complete."
                else:
                    record.reflection = (
                        f"{envelope.operation} failed. May need to retry or adjust approach."
                    )

            notify(record.reflection)
            if any(phrase in record.reflection for phrase in COMPLETION_PHRASES):
                record.should_continue = False
            return record
        except Exception as e:
            log.warning("react_step_failed", error=str(e))
            record.observation = f"❌ Error: {e}"
            record.reflection = "Error occurred, cannot continue."
            record.success = False
            record.should_continue = False
            return record

    async def _act(self, envelope: ActionEnvelope, notify: ProgressFn) -> str:
        if self._correction is not None:
            return await self._correction.execute_with_correction(
                envelope.operation, envelope.params, progress=lambda msg: notify(f"   {msg}"),
            )
        return await self._surface.invoke(envelope.operation, envelope.params)

    def build_thought_prompt(self, trajectory: Trajectory, objective: str) -> str:
        history = ""
        recent = trajectory.recent(self._config.history_window)
        if recent:
            lines = ["", "PREVIOUS STEPS:"]
            for i, step in recent:
                status = "SUCCESS" if step.success else "FAILED"
                lines.append(f"  Step {i + 1}: {step.action or 'reasoning'} -> {status}")
                if step.reflection:
                    lines.append(f"    Reflection: {step.reflection}")
            history = "\n".join(lines) + "\n"
        return _THOUGHT_PROMPT.format(
            task=trajectory.task,
            objective=objective,
            operations=self._surface.describe() or "(none)",
            history=history,
        )

    async def _think(self, trajectory: Trajectory, objective: str) -> str:
        if self._llm is None or not self._llm.is_configured:
            return fallback_thought(objective)
        prompt = self.build_thought_prompt(trajectory, objective)
        try:
            return await self._llm.generate(
                prompt,
                temperature=self._config.thought_temperature,
                max_tokens=self._config.thought_max_tokens,
            )
        except Exception as e:
            log.warning("thought_generation_failed", error=str(e))
            return fallback_thought(objective)
