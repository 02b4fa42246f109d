"""The loop that drives a goal through plan, execute, validate and heal."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable

from autopilot.agent.continuation import ContinuationHeuristic
from autopilot.agent.envelope import parse_actions
from autopilot.config import Settings
from autopilot.core.llm import create_provider
from autopilot.errors import AlreadyRunningError
from autopilot.healing.advisor import HealingAdvisor, HealingStrategy
from autopilot.healing.checkpoints import CheckpointStore
from autopilot.healing.correction import CorrectionSession, SelfCorrectionEngine
from autopilot.planner.dual_tier import DualTierExecutor, StepValidation
from autopilot.planner.models import Plan
from autopilot.tools.outcome import is_success
from autopilot.tools.registry import ToolRegistry
from autopilot.utils.logging import get_logger
from autopilot.workflow.state_machine import StateTransition, WorkflowState, WorkflowStateMachine

log = get_logger(__name__)

S = WorkflowState

STATUS_COMPLETE = "complete"
STATUS_FAILED = "failed"
STATUS_PAUSED = "paused"

StateObserver = Callable[[WorkflowState, WorkflowState], None]


@dataclass
class WorkflowResult:
    status: str
    goal: str
    message: str
    plan: Plan | None = None
    transitions: tuple[StateTransition, ...] = ()
    sessions: list[CorrectionSession] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.status == STATUS_COMPLETE

    @property
    def iterations(self) -> int:
        return self.transitions[-1].iteration if self.transitions else 0


class WorkflowOrchestrator:
    """Single owner of one workflow: its state machine, plan and sessions.

    Only this class moves the plan cursor. A run that the continuation
    heuristic declines to carry on ends ``paused``; :meth:`resume` picks it
    up after the human turn.
    """

    def __init__(
        self,
        executor: DualTierExecutor,
        surface: ToolRegistry,
        settings: Settings | None = None,
        correction: SelfCorrectionEngine | None = None,
        advisor: HealingAdvisor | None = None,
        checkpoints: CheckpointStore | None = None,
        continuation: ContinuationHeuristic | None = None,
        state_machine: WorkflowStateMachine | None = None,
        on_state_change: StateObserver | None = None,
    ) -> None:
        self._settings = settings or Settings()
        cfg = self._settings
        self._executor = executor
        self._surface = surface
        self._fail_open = cfg.correction.fail_open
        self._correction = correction
        if self._correction is None and cfg.correction.enabled:
            self._correction = SelfCorrectionEngine(
                surface, max_retries=cfg.correction.max_retries, fail_open=self._fail_open,
            )
        self._advisor = advisor or HealingAdvisor(
            executor.executor, max_step_retries=cfg.workflow.max_step_retries,
        )
        self._checkpoints = checkpoints or CheckpointStore(
            max_checkpoints=cfg.workflow.max_checkpoints, db_path=cfg.get_checkpoint_db(),
        )
        self._continuation = continuation or ContinuationHeuristic(
            cooldown=cfg.continuation.cooldown_seconds,
        )
        self.state_machine = state_machine or WorkflowStateMachine(cfg.workflow.max_iterations)
        if on_state_change is not None:
            self.state_machine.subscribe(on_state_change)

        self.plan: Plan | None = None
        self._goal = ""
        self._context = ""
        self._sessions: list[CorrectionSession] = []
        self._running = False

    @classmethod
    def from_settings(cls, settings: Settings, surface: ToolRegistry, **kwargs) -> WorkflowOrchestrator:
        planner = create_provider(settings.planner)
        executor = create_provider(settings.executor) if settings.executor else None
        dual = DualTierExecutor(
            planner,
            executor,
            operations=surface.describe(),
            execute_max_tokens=(settings.executor or settings.planner).max_tokens,
        )
        return cls(dual, surface, settings=settings, **kwargs)

    async def start(self) -> None:
        await self._checkpoints.start()

    async def stop(self) -> None:
        await self._checkpoints.stop()

    @property
    def is_paused(self) -> bool:
        return self.plan is not None and self.state_machine.is_active and not self._running

    # --- Entry points ---

    async def run(self, goal: str, context: str = "") -> WorkflowResult:
        self._claim()
        try:
            self.state_machine.reset()
            await self._checkpoints.clear()
            self._advisor.reset()
            self._continuation.reset_cooldown()
            self._sessions = []
            self.plan = None
            self._goal = goal
            self._context = context
            log.info("workflow_started", goal=goal[:100])

            self.state_machine.transition(S.PLANNING, "New goal")
            try:
                self.plan = await self._executor.create_plan(goal, context)
            except Exception as e:
                log.error("planning_failed", error=str(e))
                return self._fail(f"Planning failed: {e}")

            if not self._move(S.EXECUTING, f"Plan ready ({self.plan.total_count} steps)"):
                return self._result_from_state()
            return await self._drive()
        finally:
            self._running = False

    async def resume(self, note: str = "") -> WorkflowResult:
        """Continue a paused workflow after the human turn."""
        if not self.is_paused:
            raise RuntimeError("no paused workflow to resume")
        self._claim()
        try:
            if note:
                self._context = f"{self._context}\n{note}".strip()
            log.info("workflow_resumed", plan_id=self.plan.id, cursor=self.plan.cursor)
            if self.state_machine.state is not S.EXECUTING:
                if not self._move(S.EXECUTING, "Resumed"):
                    return self._result_from_state()
            return await self._drive()
        finally:
            self._running = False

    def _claim(self) -> None:
        if self._running:
            raise AlreadyRunningError("workflow already running")
        self._running = True

    # --- Loop ---

    async def _drive(self) -> WorkflowResult:
        assert self.plan is not None
        while self.state_machine.can_continue:
            plan = self.plan
            step = plan.current_step
            if step is None:
                self._move(S.COMPLETE, "All steps done")
                break

            index = plan.cursor
            await self._checkpoints.save(plan, index, step.description)

            try:
                reply = await self._executor.execute_step(step, self._context)
            except Exception as e:
                log.error("step_execution_failed", step=index, error=str(e))
                return self._fail(f"Step {index + 1} execution failed: {e}")

            operation, tool_results = await self._run_actions(reply)
            observation = "\n".join(tool_results) or reply

            if not self._move(S.VALIDATING, f"Step {index + 1} executed"):
                break

            failure = next((t for t in tool_results if not is_success(t, self._fail_open)), None)
            if failure is not None:
                validation = StepValidation(valid=False, status="failed", message=failure)
            else:
                try:
                    validation = await self._executor.validate_step(step, observation)
                except Exception as e:
                    log.error("step_validation_failed", step=index, error=str(e))
                    return self._fail(f"Step {index + 1} validation failed: {e}")

            if validation.valid:
                plan.advance(observation)
                self._advisor.reset_step(index)
                log.info("step_completed", step=index + 1, status=validation.status)
                if plan.is_complete:
                    self._move(S.COMPLETE, "All steps done")
                    break
                if not self._continuation.should_auto_continue(plan, reply, "\n".join(tool_results)):
                    log.info("workflow_paused", cursor=plan.cursor, remaining=plan.remaining_count)
                    return self._result(STATUS_PAUSED, f"Paused before step {plan.cursor + 1}")
                if not self._move(S.EXECUTING, "Continuing"):
                    break
                continue

            if not self._move(S.HEALING, f"Step {index + 1} failed"):
                break
            if not await self._heal(validation.message or observation, operation, index):
                break

        return self._result_from_state()

    async def _run_actions(self, reply: str) -> tuple[str, list[str]]:
        results: list[str] = []
        operation = ""
        for envelope in parse_actions(reply):
            operation = envelope.operation
            if self._correction is not None:
                text, session = await self._correction.run(envelope.operation, envelope.params)
                self._sessions.append(session)
            else:
                text = await self._surface.invoke(envelope.operation, envelope.params)
            results.append(text)
            if not is_success(text, self._fail_open):
                break
        return operation, results

    async def _heal(self, error: str, operation: str, index: int) -> bool:
        assert self.plan is not None
        decision = await self._advisor.decide(self.plan, error, operation, index)
        log.info("healing", strategy=decision.strategy.value, step=index + 1, reason=decision.reason)

        if decision.strategy is HealingStrategy.SKIP:
            self.plan.skip(decision.reason)
        elif decision.strategy is HealingStrategy.ROLLBACK:
            checkpoint = await self._checkpoints.rollback_to(index - 1)
            if checkpoint is not None:
                self.plan = checkpoint.plan.snapshot()
        elif decision.strategy is HealingStrategy.REPLAN:
            if not self._move(S.REPLANNING, decision.reason):
                return False
            try:
                self.plan = await self._executor.revise_plan(self.plan, error)
            except Exception as e:
                log.error("replanning_failed", error=str(e))
                self._fail(f"Replanning failed: {e}")
                return False

        return self._move(S.EXECUTING, f"Healing: {decision.strategy.value}")

    # --- State helpers ---

    def _move(self, to_state: WorkflowState, reason: str) -> bool:
        """Transition and report whether the workflow can keep going."""
        self.state_machine.transition(to_state, reason)
        return self.state_machine.state is to_state and to_state is not S.FAILED

    def _fail(self, message: str) -> WorkflowResult:
        self.state_machine.transition(S.FAILED, message)
        return self._result(STATUS_FAILED, message)

    def _result_from_state(self) -> WorkflowResult:
        sm = self.state_machine
        if sm.state is S.COMPLETE:
            return self._result(STATUS_COMPLETE, "Task completed!")
        if sm.state is not S.FAILED:
            return self._result(STATUS_FAILED, f"Workflow stopped while {sm.state.value}")
        reason = sm.history[-1].reason if sm.history else ""
        return self._result(STATUS_FAILED, reason or sm.description())

    def _result(self, status: str, message: str) -> WorkflowResult:
        log.info("workflow_finished", status=status, iterations=self.state_machine.iteration)
        return WorkflowResult(
            status=status,
            goal=self._goal,
            message=message,
            plan=self.plan,
            transitions=self.state_machine.history,
            sessions=list(self._sessions),
        )
