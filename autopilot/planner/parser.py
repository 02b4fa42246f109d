"""Tolerant parsing of plan JSON embedded in model replies."""

from __future__ import annotations

import json
import re
from typing import Any

from autopilot.planner.models import Step
from autopilot.utils.logging import get_logger

log = get_logger(__name__)

MAX_STEPS = 10

_OBJECT_START_RE = re.compile(r"\{")
_decoder = json.JSONDecoder()


def extract_json_object(text: str) -> dict[str, Any] | None:
    """Return the first balanced JSON object found anywhere in ``text``.

    Surrounding prose and code fences are ignored. Each ``{`` is tried as a
    starting point until one decodes to a dict.
    """
    for match in _OBJECT_START_RE.finditer(text or ""):
        try:
            value, _ = _decoder.raw_decode(text, match.start())
        except json.JSONDecodeError:
            continue
        if isinstance(value, dict):
            return value
    return None


def _parse_step(raw: Any) -> Step | None:
    if not isinstance(raw, dict):
        return None
    description = raw.get("description")
    if not isinstance(description, str) or not description.strip():
        return None

    tools = raw.get("requiredTools") or []
    if isinstance(tools, str):
        tools = [tools]
    elif not isinstance(tools, (list, tuple)):
        tools = []
    operations = [t.strip() for t in tools if isinstance(t, str) and t.strip()]

    params = raw.get("suggestedParameters") or {}
    if not isinstance(params, dict):
        params = {}
    suggested = {str(k): str(v) for k, v in params.items() if v is not None}

    return Step(
        description=description.strip(),
        required_operations=frozenset(operations),
        suggested_parameters=suggested,
    )


def parse_plan_steps(content: str) -> list[Step]:
    """Parse ``{"subTasks": [...]}`` out of a model reply; [] when nothing usable."""
    data = extract_json_object(content)
    if data is None:
        log.warning("plan_parse_failed", reason="no_json_object", content=(content or "")[:200])
        return []

    raw_steps = data.get("subTasks")
    if not isinstance(raw_steps, list):
        log.warning("plan_parse_failed", reason="missing_subtasks", keys=sorted(data.keys()))
        return []

    steps = [s for s in (_parse_step(raw) for raw in raw_steps) if s is not None]
    if len(steps) > MAX_STEPS:
        log.info("plan_truncated", parsed=len(steps), kept=MAX_STEPS)
    return steps[:MAX_STEPS]


def fallback_steps(goal: str) -> list[Step]:
    return [Step(description=f"Execute the goal directly: {goal}")]
