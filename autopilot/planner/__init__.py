"""Task planning: plan model, plan parsing, planner and dual-tier executor."""

from autopilot.planner.dual_tier import DualTierExecutor, StepValidation
from autopilot.planner.engine import TaskPlanner
from autopilot.planner.models import Plan, Step
from autopilot.planner.parser import extract_json_object, parse_plan_steps

__all__ = [
    "DualTierExecutor",
    "Plan",
    "Step",
    "StepValidation",
    "TaskPlanner",
    "extract_json_object",
    "parse_plan_steps",
]
