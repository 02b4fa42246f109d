"""Command-line entry point."""

from __future__ import annotations

import asyncio

import click

from autopilot.agent.react import ReActAgent
from autopilot.config import Settings, load_settings
from autopilot.core.llm import create_provider
from autopilot.errors import AutopilotError
from autopilot.healing.classifier import classify, fix_priority
from autopilot.planner.dual_tier import DualTierExecutor
from autopilot.tools.registry import ToolRegistry
from autopilot.tools.scene import SceneState, scene_tools
from autopilot.utils.logging import get_logger, setup_logging
from autopilot.workflow.orchestrator import STATUS_PAUSED, WorkflowOrchestrator

log = get_logger(__name__)


def _scene_surface() -> ToolRegistry:
    return ToolRegistry(scene_tools(SceneState()))


async def _plan(settings: Settings, goal: str, context: str) -> str:
    planner = create_provider(settings.planner)
    executor = create_provider(settings.executor) if settings.executor else None
    try:
        dual = DualTierExecutor(planner, executor, operations=_scene_surface().describe())
        plan = await dual.create_plan(goal, context)
        return plan.detailed_status()
    finally:
        await planner.close()
        if executor is not None:
            await executor.close()


async def _react(settings: Settings, task: str, max_steps: int | None) -> str:
    llm = create_provider(settings.planner)
    try:
        agent = ReActAgent(
            _scene_surface(),
            llm=llm,
            config=settings.react,
            use_correction=settings.correction.enabled,
            fail_open=settings.correction.fail_open,
        )
        trajectory = await agent.run(task, max_steps=max_steps, progress=click.echo)
        return trajectory.final_result
    finally:
        await llm.close()


async def _run(settings: Settings, goal: str, context: str) -> str:
    def announce(old, new) -> None:
        click.echo(f"[{old.value} -> {new.value}] {orchestrator.state_machine.description()}")

    orchestrator = WorkflowOrchestrator.from_settings(
        settings, _scene_surface(), on_state_change=announce,
    )
    await orchestrator.start()
    try:
        result = await orchestrator.run(goal, context)
        while result.status == STATUS_PAUSED:
            click.echo(result.plan.detailed_status())
            if not click.confirm("Continue with the next step?", default=True):
                break
            result = await orchestrator.resume()
        if result.plan is not None:
            click.echo(result.plan.detailed_status())
        return f"{result.status}: {result.message}"
    finally:
        await orchestrator.stop()


@click.group()
@click.option("--config", "config_path", default=None, help="Path to config YAML file")
@click.option("--log-level", default=None, help="Log level (DEBUG, INFO, WARNING, ERROR)")
@click.pass_context
def cli(ctx: click.Context, config_path: str | None, log_level: str | None) -> None:
    """Plan, execute and self-heal multi-step tasks with an LLM."""
    settings = load_settings(config_path)
    if log_level:
        settings.log_level = log_level
    setup_logging(level=settings.log_level, json_output=settings.log_json)
    ctx.obj = settings


@cli.command("classify")
@click.argument("error_text")
def classify_cmd(error_text: str) -> None:
    """Classify an error message and list candidate fixes."""
    analysis = classify(error_text)
    click.echo(analysis.render())
    click.echo(f"Fix priority: {fix_priority(analysis.category)}")


@cli.command("plan")
@click.argument("goal")
@click.option("--context", default="", help="Extra context for the planner")
@click.pass_obj
def plan_cmd(settings: Settings, goal: str, context: str) -> None:
    """Decompose GOAL into a step plan."""
    try:
        click.echo(asyncio.run(_plan(settings, goal, context)))
    except AutopilotError as e:
        raise click.ClickException(str(e)) from e


@cli.command("react")
@click.argument("task")
@click.option("--max-steps", type=int, default=None, help="Step ceiling (default: from task complexity)")
@click.pass_obj
def react_cmd(settings: Settings, task: str, max_steps: int | None) -> None:
    """Run TASK through the ReAct loop against an in-memory scene."""
    click.echo(asyncio.run(_react(settings, task, max_steps)))


@cli.command("run")
@click.argument("goal")
@click.option("--context", default="", help="Extra context for the planner")
@click.pass_obj
def run_cmd(settings: Settings, goal: str, context: str) -> None:
    """Drive GOAL through the full workflow against an in-memory scene."""
    try:
        click.echo(asyncio.run(_run(settings, goal, context)))
    except AutopilotError as e:
        raise click.ClickException(str(e)) from e


if __name__ == "__main__":
    cli()
