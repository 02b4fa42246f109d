"""Tests for the workflow orchestrator driving plan, execute, validate and heal."""

import asyncio
import json

import pytest
from unittest.mock import AsyncMock

from autopilot.agent.continuation import ContinuationHeuristic
from autopilot.config import CorrectionConfig, Settings, WorkflowConfig
from autopilot.errors import AlreadyRunningError, ProviderNotConfiguredError
from autopilot.planner.dual_tier import DualTierExecutor
from autopilot.planner.models import Plan, Step
from autopilot.workflow.orchestrator import (
    STATUS_COMPLETE,
    STATUS_FAILED,
    STATUS_PAUSED,
    WorkflowOrchestrator,
)
from autopilot.workflow.state_machine import WorkflowState, WorkflowStateMachine

S = WorkflowState


def _plan_json(*steps):
    return json.dumps({"subTasks": [
        {"description": d, "requiredTools": [op], "suggestedParameters": {}} for d, op in steps
    ]})


def _action(operation, **params):
    body = "".join(f"{k}: {v}\n" for k, v in params.items())
    return f"[TOOL:{operation}]\n{body}[/TOOL]"


def _orchestrator(scripted, surface, plan_replies, executor_replies, settings=None, **kwargs):
    dual = DualTierExecutor(scripted(plan_replies, name="planner"), scripted(executor_replies, name="executor"))
    kwargs.setdefault("continuation", ContinuationHeuristic(cooldown=0))
    return WorkflowOrchestrator(dual, surface, settings=settings, **kwargs)


TWO_STEPS = _plan_json(("Create the player", "create_gameobject"), ("Add a body", "add_component"))


class TestWorkflowRun:
    async def test_completes_plan(self, scripted, surface, scene):
        orchestrator = _orchestrator(scripted, surface, [TWO_STEPS], [
            _action("create_gameobject", name="Player"),
            "SUCCESS",
            _action("add_component", gameobject_name="Player", component_type="Rigidbody"),
            "SUCCESS",
        ])
        seen = []
        orchestrator.state_machine.subscribe(lambda old, new: seen.append(new))

        result = await orchestrator.run("make a player")

        assert result.status == STATUS_COMPLETE
        assert result.success
        assert result.plan.is_complete
        assert result.plan.completed_count == 2
        assert scene.gameobjects["Player"] == ["Transform", "Rigidbody"]
        assert seen == [S.PLANNING, S.EXECUTING, S.VALIDATING, S.EXECUTING, S.VALIDATING, S.COMPLETE]
        assert result.iterations == 6
        assert len(result.sessions) == 2

    async def test_fallback_plan_single_step(self, scripted, surface):
        orchestrator = _orchestrator(scripted, surface, ["no json here"], ["Nothing to do. SUCCESS"])
        result = await orchestrator.run("build a timer")
        assert result.status == STATUS_COMPLETE
        assert result.plan.total_count == 1
        assert "build a timer" in result.plan.steps[0].description

    async def test_pauses_without_continue_signal(self, scripted, surface):
        orchestrator = _orchestrator(scripted, surface, [TWO_STEPS], [
            "I thought about it",
            "SUCCESS",
            "Thought about the second one too",
            "SUCCESS",
        ])
        result = await orchestrator.run("make a player")
        assert result.status == STATUS_PAUSED
        assert result.plan.cursor == 1
        assert orchestrator.is_paused
        assert orchestrator.state_machine.is_active

        resumed = await orchestrator.resume("carry on")
        assert resumed.status == STATUS_COMPLETE
        assert resumed.plan.cursor == 2
        assert not orchestrator.is_paused

    async def test_resume_without_pause(self, scripted, surface):
        orchestrator = _orchestrator(scripted, surface, [TWO_STEPS], ["SUCCESS"])
        with pytest.raises(RuntimeError):
            await orchestrator.resume()

    async def test_tool_failure_heals_by_skipping(self, scripted, surface):
        settings = Settings(correction=CorrectionConfig(enabled=False))
        orchestrator = _orchestrator(scripted, surface, [TWO_STEPS], [
            _action("find_gameobject", name="Ghost"),
            "SKIP",
            _action("create_gameobject", name="Player"),
            "SUCCESS",
        ], settings=settings)
        seen = []
        orchestrator.state_machine.subscribe(lambda old, new: seen.append(new))

        result = await orchestrator.run("make a player")

        assert result.status == STATUS_COMPLETE
        assert result.plan.steps[0].failed
        assert result.plan.steps[1].completed
        assert S.HEALING in seen
        assert result.sessions == []

    async def test_replan_replaces_plan(self, scripted, surface):
        revised = _plan_json(("Create it instead", "create_gameobject"))
        orchestrator = _orchestrator(scripted, surface, [TWO_STEPS, revised], [
            "It did not work",
            "FAILED",
            "REPLAN",
            _action("create_gameobject", name="Player"),
            "SUCCESS",
        ])
        seen = []
        orchestrator.state_machine.subscribe(lambda old, new: seen.append(new))

        result = await orchestrator.run("make a player")

        assert result.status == STATUS_COMPLETE
        assert S.REPLANNING in seen
        assert result.plan.total_count == 1
        assert result.plan.steps[0].description == "Create it instead"

    async def test_iteration_ceiling_fails(self, scripted, surface):
        orchestrator = _orchestrator(
            scripted, surface, [TWO_STEPS],
            [_action("create_gameobject", name="P"), "SUCCESS"],
            state_machine=WorkflowStateMachine(max_iterations=4),
        )
        result = await orchestrator.run("make a player")
        assert result.status == STATUS_FAILED
        assert result.message == "Max iterations exceeded (4)"
        assert result.iterations == 4
        assert orchestrator.state_machine.state is S.FAILED

    async def test_planning_error_fails(self, scripted, surface):
        orchestrator = _orchestrator(scripted, surface, [ProviderNotConfiguredError("no key")], ["SUCCESS"])
        result = await orchestrator.run("anything")
        assert result.status == STATUS_FAILED
        assert result.message.startswith("Planning failed")
        assert result.plan is None

    async def test_validation_error_fails(self, scripted, surface):
        orchestrator = _orchestrator(scripted, surface, [TWO_STEPS], ["thinking", RuntimeError("timeout")])
        result = await orchestrator.run("make a player")
        assert result.status == STATUS_FAILED
        assert "validation failed" in result.message

    async def test_run_twice_restarts(self, scripted, surface):
        orchestrator = _orchestrator(scripted, surface, ["no json"], ["SUCCESS"])
        first = await orchestrator.run("one")
        second = await orchestrator.run("two")
        assert first.success and second.success
        assert second.goal == "two"
        assert second.iterations == first.iterations

    async def test_concurrent_run_rejected(self, surface):
        gate = asyncio.Event()

        async def slow_plan(goal, context=""):
            await gate.wait()
            return Plan(goal=goal, steps=[Step(description="x")])

        executor = AsyncMock(spec=DualTierExecutor)
        executor.executor = AsyncMock()
        executor.create_plan.side_effect = slow_plan
        orchestrator = WorkflowOrchestrator(executor, surface)

        task = asyncio.create_task(orchestrator.run("slow"))
        await asyncio.sleep(0)
        with pytest.raises(AlreadyRunningError):
            await orchestrator.run("again")
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task


class TestCheckpointsInWorkflow:
    async def test_rollback_restores_earlier_plan(self, scripted, surface):
        three = _plan_json(
            ("Create the player", "create_gameobject"),
            ("Add a body", "add_component"),
            ("Add a light", "add_component"),
        )
        orchestrator = _orchestrator(scripted, surface, [three], [
            _action("create_gameobject", name="Player"),
            "SUCCESS",
            "tried something",
            "FAILED",
            "ROLLBACK",
            _action("create_gameobject", name="Player"),
            "SUCCESS",
            _action("add_component", gameobject_name="Player", component_type="Rigidbody"),
            "SUCCESS",
            _action("add_component", gameobject_name="Player", component_type="Light"),
            "SUCCESS",
        ], settings=Settings(workflow=WorkflowConfig(max_iterations=50)))
        result = await orchestrator.run("make a player")
        assert result.status == STATUS_COMPLETE
        assert result.plan.completed_count == 3
