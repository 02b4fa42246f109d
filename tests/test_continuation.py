"""Tests for the auto-continue heuristic and its prompts."""

import pytest

from autopilot.agent.continuation import (
    ContinuationHeuristic,
    claims_completion,
    continuation_prompt,
    has_error,
    stuck_reminder_prompt,
)
from autopilot.planner.models import Plan, Step


class FakeClock:
    def __init__(self):
        self.now = 100.0

    def __call__(self):
        return self.now


def _plan(*ops_per_step):
    steps = [
        Step(description=f"step {i}", required_operations=ops, suggested_parameters={"name": "A"})
        for i, ops in enumerate(ops_per_step)
    ]
    return Plan(goal="g", steps=steps)


class TestKeywords:
    @pytest.mark.parametrize("text", ["All done.", "Ready!", "It is finished", "ok"])
    def test_claims_completion(self, text):
        assert claims_completion(text)

    @pytest.mark.parametrize("text", ["", None, "I will keep going", "token expired", "looking at it"])
    def test_no_completion_claim(self, text):
        assert not claims_completion(text)

    def test_has_error(self):
        assert has_error("❌ nope")
        assert has_error("Unable to open file")
        assert has_error("Compilation FAILED")
        assert not has_error("✅ Created")
        assert not has_error(None)


class TestContinuationHeuristic:
    def test_cooldown_blocks_second_call(self):
        clock = FakeClock()
        heuristic = ContinuationHeuristic(cooldown=2.0, clock=clock)
        plan = _plan({"a"}, {"b"}, {"c"})
        assert heuristic.should_auto_continue(plan, "done", "✅ ok")
        assert not heuristic.should_auto_continue(plan, "done", "✅ ok")
        assert heuristic.in_cooldown()

        clock.now += 2.5
        assert heuristic.should_auto_continue(plan, "done", "✅ ok")

    def test_reset_cooldown(self):
        heuristic = ContinuationHeuristic(clock=FakeClock())
        plan = _plan({"a"}, {"b"})
        assert heuristic.should_auto_continue(plan, "done", "")
        heuristic.reset_cooldown()
        assert heuristic.should_auto_continue(plan, "done", "")

    def test_no_plan_or_finished_plan(self):
        heuristic = ContinuationHeuristic(clock=FakeClock())
        assert not heuristic.should_auto_continue(None, "done", "✅")
        plan = _plan({"a"})
        plan.advance()
        assert not heuristic.should_auto_continue(plan, "done", "✅")

    def test_tool_error_declines(self):
        heuristic = ContinuationHeuristic(clock=FakeClock())
        assert not heuristic.should_auto_continue(_plan({"a"}, {"b"}), "done", "❌ Error: x")

    def test_multiple_operations_continue(self):
        heuristic = ContinuationHeuristic(clock=FakeClock())
        assert heuristic.should_auto_continue(_plan({"a", "b"}), "thinking", "")

    def test_tool_result_continues(self):
        heuristic = ContinuationHeuristic(clock=FakeClock())
        assert heuristic.should_auto_continue(_plan({"a"}, {"b"}), "thinking", "✅ Created")

    def test_no_signal_declines(self):
        heuristic = ContinuationHeuristic(clock=FakeClock())
        assert not heuristic.should_auto_continue(_plan({"a"}, {"b"}), "thinking", "")
        assert not heuristic.in_cooldown()

    def test_estimate_remaining(self):
        heuristic = ContinuationHeuristic()
        plan = _plan({"a"}, {"b"}, {"c"})
        plan.advance()
        assert heuristic.estimate_remaining(plan) == 2
        assert heuristic.estimate_remaining(None) == 0


class TestPrompts:
    def test_continuation_prompt(self):
        plan = _plan({"find_gameobject"}, {"create_gameobject"}, {"add_component"})
        plan.advance()
        text = continuation_prompt(plan)
        assert text.startswith("[Auto-Continue]")
        assert "Progress: 1/3 steps completed" in text
        assert "  1. step 0" in text
        assert "CURRENT STEP (2/3):" in text
        assert "Required operations: create_gameobject" in text
        assert '- name = "A"' in text
        assert "Next step: step 2" in text

    def test_continuation_prompt_empty_when_done(self):
        plan = _plan({"a"})
        plan.advance()
        assert continuation_prompt(plan) == ""
        assert continuation_prompt(None) == ""

    def test_stuck_reminder(self):
        text = stuck_reminder_prompt(_plan({"find_script"}), 3)
        assert "last 3 messages" in text
        assert "Required operations: find_script" in text
        assert stuck_reminder_prompt(None, 3) == ""
