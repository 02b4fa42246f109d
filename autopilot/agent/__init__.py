"""ReAct agent, action envelopes and the auto-continue heuristic."""

from autopilot.agent.complexity import (
    Strategy,
    estimate_complexity,
    recommended_max_steps,
    select_strategy,
)
from autopilot.agent.continuation import (
    ContinuationHeuristic,
    continuation_prompt,
    stuck_reminder_prompt,
)
from autopilot.agent.envelope import ActionEnvelope, format_action, parse_action, parse_actions
from autopilot.agent.react import ReActAgent
from autopilot.agent.trajectory import ReActStepRecord, Trajectory

__all__ = [
    "ActionEnvelope",
    "ContinuationHeuristic",
    "ReActAgent",
    "ReActStepRecord",
    "Strategy",
    "Trajectory",
    "continuation_prompt",
    "estimate_complexity",
    "format_action",
    "parse_action",
    "parse_actions",
    "recommended_max_steps",
    "select_strategy",
    "stuck_reminder_prompt",
]
