"""Workflow state machine and the orchestrating loop."""

from autopilot.workflow.orchestrator import WorkflowOrchestrator, WorkflowResult
from autopilot.workflow.state_machine import (
    StateTransition,
    WorkflowState,
    WorkflowStateMachine,
    is_valid_transition,
)

__all__ = [
    "StateTransition",
    "WorkflowOrchestrator",
    "WorkflowResult",
    "WorkflowState",
    "WorkflowStateMachine",
    "is_valid_transition",
]
