"""Workflow controller: a fixed transition table under a hard iteration ceiling."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Callable

from autopilot.utils.logging import get_logger

log = get_logger(__name__)


class WorkflowState(str, Enum):
    IDLE = "idle"
    PLANNING = "planning"
    EXECUTING = "executing"
    VALIDATING = "validating"
    HEALING = "healing"
    REPLANNING = "replanning"
    COMPLETE = "complete"
    FAILED = "failed"


S = WorkflowState

_ALLOWED: dict[WorkflowState, frozenset[WorkflowState]] = {
    S.IDLE: frozenset({S.PLANNING}),
    S.PLANNING: frozenset({S.EXECUTING}),
    S.EXECUTING: frozenset({S.VALIDATING, S.HEALING, S.COMPLETE}),
    S.VALIDATING: frozenset({S.EXECUTING, S.HEALING, S.COMPLETE}),
    S.HEALING: frozenset({S.EXECUTING, S.REPLANNING}),
    S.REPLANNING: frozenset({S.EXECUTING}),
    S.COMPLETE: frozenset(),
    S.FAILED: frozenset(),
}

# Reachable from every state
_EXITS = frozenset({S.FAILED, S.IDLE})

_TERMINAL = frozenset({S.IDLE, S.COMPLETE, S.FAILED})

NEAR_LIMIT_RATIO = 0.8

Observer = Callable[[WorkflowState, WorkflowState], None]


@dataclass(frozen=True)
class StateTransition:
    from_state: WorkflowState
    to_state: WorkflowState
    iteration: int
    reason: str = ""
    at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


def is_valid_transition(from_state: WorkflowState, to_state: WorkflowState) -> bool:
    return to_state in _EXITS or to_state in _ALLOWED[from_state]


class WorkflowStateMachine:
    """Owns the workflow state, the iteration counter and the transition log.

    Every accepted transition costs one iteration. The transition that would
    use up the last iteration is turned into ``FAILED``, and once the counter
    sits at ``max_iterations`` nothing but :meth:`reset` moves the machine.
    """

    def __init__(self, max_iterations: int = 50) -> None:
        if max_iterations < 1:
            raise ValueError("max_iterations must be at least 1")
        self.max_iterations = max_iterations
        self.state = WorkflowState.IDLE
        self.iteration = 0
        self._history: list[StateTransition] = []
        self._observers: list[Observer] = []

    @property
    def history(self) -> tuple[StateTransition, ...]:
        return tuple(self._history)

    @property
    def is_active(self) -> bool:
        return self.state not in _TERMINAL

    @property
    def can_continue(self) -> bool:
        return self.is_active and self.iteration < self.max_iterations

    def subscribe(self, observer: Observer) -> None:
        self._observers.append(observer)

    def unsubscribe(self, observer: Observer) -> None:
        if observer in self._observers:
            self._observers.remove(observer)

    def transition(self, to_state: WorkflowState, reason: str = "") -> bool:
        if not is_valid_transition(self.state, to_state):
            log.warning("transition_rejected", from_state=self.state.value, to_state=to_state.value)
            return False

        if self.iteration >= self.max_iterations:
            log.warning(
                "transition_rejected",
                from_state=self.state.value,
                to_state=to_state.value,
                reason="iteration_ceiling",
            )
            return False

        if self.iteration + 1 >= self.max_iterations and to_state is not S.FAILED:
            log.error(
                "transition_forced_failed",
                requested=to_state.value,
                max_iterations=self.max_iterations,
            )
            to_state = S.FAILED
            reason = f"Max iterations exceeded ({self.max_iterations})"

        old = self.state
        self.state = to_state
        self.iteration += 1
        self._history.append(StateTransition(old, to_state, self.iteration, reason))
        log.info(
            "state_transition",
            from_state=old.value,
            to_state=to_state.value,
            iteration=self.iteration,
            max_iterations=self.max_iterations,
            reason=reason,
        )
        self._notify(old, to_state)
        return True

    def _notify(self, old: WorkflowState, new: WorkflowState) -> None:
        for observer in list(self._observers):
            try:
                observer(old, new)
            except Exception:
                log.exception("observer_error", observer=getattr(observer, "__qualname__", repr(observer)))

    def reset(self) -> None:
        self.state = WorkflowState.IDLE
        self.iteration = 0
        self._history = []
        log.debug("state_machine_reset")

    def description(self) -> str:
        return {
            S.IDLE: "Ready",
            S.PLANNING: "Creating task plan...",
            S.EXECUTING: f"Executing step ({self.iteration}/{self.max_iterations})",
            S.VALIDATING: "Validating result...",
            S.HEALING: "Recovering from error...",
            S.REPLANNING: "Revising plan...",
            S.COMPLETE: "Task completed!",
            S.FAILED: "Task failed (max retries exceeded)",
        }[self.state]

    def history_summary(self) -> str:
        lines = [f"State History ({len(self._history)} transitions):"]
        for t in self._history:
            line = f"  [{t.iteration}] {t.from_state.value} -> {t.to_state.value}"
            if t.reason:
                line += f" ({t.reason})"
            lines.append(line)
        return "\n".join(lines)

    def progress(self) -> float:
        if not self.is_active:
            return 1.0 if self.state is S.COMPLETE else 0.0
        return min(1.0, self.iteration / self.max_iterations)

    def is_near_limit(self) -> bool:
        return self.iteration >= self.max_iterations * NEAR_LIMIT_RATIO
