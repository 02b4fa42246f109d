"""Planner data models."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any
from uuid import uuid4


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Step:
    description: str
    required_operations: frozenset[str] = frozenset()
    suggested_parameters: dict[str, str] = field(default_factory=dict)
    completed: bool = False
    failed: bool = False
    result: str = ""
    completed_at: datetime | None = None

    def __post_init__(self) -> None:
        # Accept any iterable of names; the stored set never changes afterwards
        object.__setattr__(self, "required_operations", frozenset(self.required_operations))

    def __setattr__(self, name: str, value: Any) -> None:
        if name == "required_operations" and "required_operations" in self.__dict__:
            raise AttributeError("required_operations is fixed once the step exists")
        super().__setattr__(name, value)

    def parameters_hint(self) -> str:
        if not self.suggested_parameters:
            return ""
        pairs = ", ".join(f"{k}={v}" for k, v in self.suggested_parameters.items())
        return f"Suggested parameters: {pairs}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "description": self.description,
            "required_operations": sorted(self.required_operations),
            "suggested_parameters": dict(self.suggested_parameters),
            "completed": self.completed,
            "failed": self.failed,
            "result": self.result,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Step:
        completed_at = data.get("completed_at")
        return cls(
            description=data["description"],
            required_operations=frozenset(data.get("required_operations", [])),
            suggested_parameters=dict(data.get("suggested_parameters", {})),
            completed=data.get("completed", False),
            failed=data.get("failed", False),
            result=data.get("result", ""),
            completed_at=datetime.fromisoformat(completed_at) if completed_at else None,
        )


@dataclass
class Plan:
    """Ordered steps toward one goal plus a cursor at the next step to run.

    The cursor only moves forward, one step at a time, and stays within
    ``[0, len(steps)]``. Replanning replaces the whole plan instead of
    editing this one.
    """

    goal: str
    steps: list[Step]
    cursor: int = 0
    id: str = field(default_factory=lambda: uuid4().hex[:12])
    started_at: datetime = field(default_factory=_now)
    completed_at: datetime | None = None

    def __post_init__(self) -> None:
        if not 0 <= self.cursor <= len(self.steps):
            raise ValueError(f"cursor {self.cursor} outside [0, {len(self.steps)}]")

    @property
    def is_complete(self) -> bool:
        return self.cursor >= len(self.steps)

    @property
    def total_count(self) -> int:
        return len(self.steps)

    @property
    def completed_count(self) -> int:
        return sum(1 for s in self.steps if s.completed)

    @property
    def remaining_count(self) -> int:
        return len(self.steps) - self.cursor

    @property
    def progress(self) -> float:
        return self.cursor / len(self.steps) if self.steps else 0.0

    @property
    def current_step(self) -> Step | None:
        return self.steps[self.cursor] if self.cursor < len(self.steps) else None

    @property
    def next_step(self) -> Step | None:
        nxt = self.cursor + 1
        return self.steps[nxt] if nxt < len(self.steps) else None

    def completed_steps(self) -> list[Step]:
        return self.steps[: self.cursor]

    def pending_steps(self) -> list[Step]:
        return self.steps[self.cursor :]

    def advance(self, result: str = "") -> None:
        """Mark the current step complete and move the cursor forward."""
        step = self.current_step
        if step is None:
            return
        step.completed = True
        step.result = result
        step.completed_at = _now()
        self._move()

    def mark_failed(self, error: str) -> None:
        step = self.current_step
        if step is None:
            return
        step.failed = True
        step.result = error

    def skip(self, reason: str) -> None:
        """Give up on the current step and move on."""
        if self.current_step is None:
            return
        self.mark_failed(reason)
        self._move()

    def _move(self) -> None:
        self.cursor += 1
        if self.is_complete:
            self.completed_at = _now()

    def snapshot(self) -> Plan:
        return copy.deepcopy(self)

    def progress_summary(self) -> str:
        return f"{self.completed_count}/{self.total_count} steps completed ({self.progress:.0%})"

    def detailed_status(self) -> str:
        lines = [f"Goal: {self.goal}", f"Progress: {self.progress_summary()}", ""]
        for i, step in enumerate(self.steps):
            if step.completed:
                icon = "+"
            elif step.failed:
                icon = "x"
            elif i == self.cursor:
                icon = ">"
            else:
                icon = " "
            lines.append(f"[{icon}] {i + 1}. {step.description}")
            if step.result:
                lines.append(f"      {step.result[:200]}")
        return "\n".join(lines)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "goal": self.goal,
            "cursor": self.cursor,
            "steps": [s.to_dict() for s in self.steps],
            "started_at": self.started_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Plan:
        completed_at = data.get("completed_at")
        return cls(
            id=data["id"],
            goal=data["goal"],
            steps=[Step.from_dict(s) for s in data.get("steps", [])],
            cursor=data.get("cursor", 0),
            started_at=datetime.fromisoformat(data["started_at"]),
            completed_at=datetime.fromisoformat(completed_at) if completed_at else None,
        )
