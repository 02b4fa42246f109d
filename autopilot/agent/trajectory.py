"""Append-only record of one ReAct run."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from datetime import datetime, timezone


@dataclass
class ReActStepRecord:
    thought: str = ""
    action: str | None = None
    params: dict[str, str] = field(default_factory=dict)
    observation: str = ""
    reflection: str = ""
    success: bool = False
    should_continue: bool = True
    at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def compact(self) -> str:
        status = "ok" if self.success else "failed"
        return f"[{status}] {self.action or 'reasoning'}: {self.reflection or self.observation}"

    def render(self) -> str:
        lines = [f"Thought: {self.thought}", f"Action: {self.action or '(none)'}"]
        if self.params:
            lines.append(f"  Parameters: {', '.join(self.params)}")
        lines.append(f"Observation: {self.observation}")
        if self.reflection:
            lines.append(f"Reflection: {self.reflection}")
        lines.append(f"Status: {'Success' if self.success else 'Failed'}")
        return "\n".join(lines)


@dataclass
class Trajectory:
    """Steps of one task run, in execution order.

    ``is_complete`` becomes true once a step asks to stop or the step
    ceiling is reached; either way no further steps are accepted.
    """

    task: str
    max_steps: int = 10
    steps: list[ReActStepRecord] = field(default_factory=list)
    strategy: str = ""
    final_result: str = ""
    stopped_by_ceiling: bool = False
    started: float = field(default_factory=time.monotonic)
    finished: float | None = None

    @property
    def is_complete(self) -> bool:
        return self.finished is not None

    @property
    def duration(self) -> float:
        end = self.finished if self.finished is not None else time.monotonic()
        return end - self.started

    @property
    def success_count(self) -> int:
        return sum(1 for s in self.steps if s.success)

    def add(self, record: ReActStepRecord) -> None:
        if self.is_complete:
            raise RuntimeError("trajectory is complete")
        self.steps.append(record)
        if not record.should_continue:
            self.finish()
        elif len(self.steps) >= self.max_steps:
            self.stopped_by_ceiling = True
            self.finish()

    def finish(self) -> None:
        if self.finished is None:
            self.finished = time.monotonic()

    def recent(self, window: int) -> list[tuple[int, ReActStepRecord]]:
        start = max(0, len(self.steps) - window)
        return [(i, self.steps[i]) for i in range(start, len(self.steps))]

    def summary(self) -> str:
        lines = [
            f"Task: {self.task}",
            f"Steps: {len(self.steps)}/{self.max_steps}",
            f"Duration: {self.duration:.2f}s",
            f"Status: {'Complete' if self.is_complete else 'In Progress'}",
        ]
        for i, step in enumerate(self.steps, start=1):
            lines += ["", f"### Step {i}:", step.render()]
        if self.final_result:
            lines += ["", "## Final Result:", self.final_result]
        return "\n".join(lines)

    def compact_summary(self) -> str:
        lines = [self.task]
        lines += [f"{i}. {s.compact()}" for i, s in enumerate(self.steps, start=1)]
        lines.append(f"{self.duration:.1f}s | {len(self.steps)} steps")
        return "\n".join(lines)

    def report(self) -> str:
        lines = [
            f"Task: {self.task}",
            f"Steps Executed: {len(self.steps)}",
            f"Success Rate: {self.success_count}/{len(self.steps)}",
            f"Duration: {self.duration:.2f}s",
        ]
        actions = [s for s in self.steps if s.action]
        if actions:
            lines += ["", "Key Actions Taken:"]
            lines += [f"- [{'ok' if s.success else 'failed'}] {s.action}" for s in actions]
        return "\n".join(lines)
