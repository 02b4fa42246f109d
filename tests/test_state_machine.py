"""Tests for the workflow state machine."""

import pytest

from autopilot.workflow.state_machine import (
    WorkflowState,
    WorkflowStateMachine,
    is_valid_transition,
)

S = WorkflowState


class TestTransitions:
    def test_happy_path(self):
        sm = WorkflowStateMachine()
        for state in (S.PLANNING, S.EXECUTING, S.VALIDATING, S.EXECUTING, S.VALIDATING, S.COMPLETE):
            assert sm.transition(state)
        assert sm.state is S.COMPLETE
        assert sm.iteration == 6
        assert not sm.is_active

    def test_rejects_transition_outside_table(self):
        sm = WorkflowStateMachine()
        assert not sm.transition(S.EXECUTING)
        assert sm.state is S.IDLE
        assert sm.iteration == 0
        assert sm.history == ()

    @pytest.mark.parametrize("state", list(WorkflowState))
    def test_failed_and_idle_always_reachable(self, state):
        assert is_valid_transition(state, S.FAILED)
        assert is_valid_transition(state, S.IDLE)

    def test_healing_paths(self):
        assert is_valid_transition(S.HEALING, S.REPLANNING)
        assert is_valid_transition(S.REPLANNING, S.EXECUTING)
        assert not is_valid_transition(S.HEALING, S.COMPLETE)
        assert not is_valid_transition(S.COMPLETE, S.EXECUTING)

    def test_history_records_reason(self):
        sm = WorkflowStateMachine()
        sm.transition(S.PLANNING, "New goal")
        (entry,) = sm.history
        assert entry.from_state is S.IDLE
        assert entry.to_state is S.PLANNING
        assert entry.iteration == 1
        assert entry.reason == "New goal"
        assert "[1] idle -> planning (New goal)" in sm.history_summary()


class TestIterationCeiling:
    def test_last_iteration_forced_to_failed(self):
        sm = WorkflowStateMachine(max_iterations=3)
        assert sm.transition(S.PLANNING)
        assert sm.transition(S.EXECUTING)
        assert sm.transition(S.VALIDATING)
        assert sm.state is S.FAILED
        assert sm.iteration == 3
        assert sm.history[-1].reason == "Max iterations exceeded (3)"

    def test_nothing_moves_at_ceiling(self):
        sm = WorkflowStateMachine(max_iterations=2)
        sm.transition(S.PLANNING)
        sm.transition(S.EXECUTING)
        assert sm.state is S.FAILED
        assert not sm.transition(S.IDLE)
        assert not sm.transition(S.FAILED)
        assert sm.iteration == 2

    def test_counter_never_exceeds_max(self):
        sm = WorkflowStateMachine(max_iterations=5)
        cycle = [S.PLANNING, S.EXECUTING, S.VALIDATING, S.HEALING, S.REPLANNING, S.EXECUTING]
        for _ in range(4):
            for state in cycle:
                sm.transition(state)
                assert sm.iteration <= sm.max_iterations
        assert sm.state is S.FAILED
        assert not sm.can_continue

    def test_failed_request_at_last_iteration_kept(self):
        sm = WorkflowStateMachine(max_iterations=2)
        sm.transition(S.PLANNING)
        assert sm.transition(S.FAILED, "planning failed")
        assert sm.history[-1].reason == "planning failed"

    def test_reset_idempotent(self):
        sm = WorkflowStateMachine(max_iterations=2)
        sm.transition(S.PLANNING)
        sm.transition(S.EXECUTING)
        sm.reset()
        sm.reset()
        assert sm.state is S.IDLE
        assert sm.iteration == 0
        assert sm.history == ()
        assert sm.transition(S.PLANNING)

    def test_rejects_bad_limit(self):
        with pytest.raises(ValueError):
            WorkflowStateMachine(max_iterations=0)

    def test_near_limit_and_progress(self):
        sm = WorkflowStateMachine(max_iterations=10)
        for state in (S.PLANNING, S.EXECUTING) + (S.VALIDATING, S.EXECUTING) * 3:
            sm.transition(state)
        assert sm.iteration == 8
        assert sm.is_near_limit()
        assert sm.progress() == pytest.approx(0.8)
        assert sm.description() == "Executing step (8/10)"


class TestObservers:
    def test_observer_sees_transitions(self):
        sm = WorkflowStateMachine()
        seen = []
        sm.subscribe(lambda old, new: seen.append((old, new)))
        sm.transition(S.PLANNING)
        assert seen == [(S.IDLE, S.PLANNING)]

    def test_observer_error_does_not_block(self):
        sm = WorkflowStateMachine()
        seen = []

        def broken(old, new):
            raise RuntimeError("observer bug")

        sm.subscribe(broken)
        sm.subscribe(lambda old, new: seen.append(new))
        assert sm.transition(S.PLANNING)
        assert sm.state is S.PLANNING
        assert seen == [S.PLANNING]

    def test_unsubscribe(self):
        sm = WorkflowStateMachine()
        seen = []
        observer = lambda old, new: seen.append(new)  # noqa: E731
        sm.subscribe(observer)
        sm.unsubscribe(observer)
        sm.unsubscribe(observer)
        sm.transition(S.PLANNING)
        assert seen == []
