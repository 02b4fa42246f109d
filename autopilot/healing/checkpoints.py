"""Plan snapshots for rollback, optionally persisted to SQLite."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path

import aiosqlite

from autopilot.planner.models import Plan
from autopilot.utils.logging import get_logger

log = get_logger(__name__)

_CHECKPOINT_SCHEMA = """
CREATE TABLE IF NOT EXISTS checkpoints (
    seq INTEGER PRIMARY KEY AUTOINCREMENT,
    plan_id TEXT NOT NULL,
    step_index INTEGER NOT NULL,
    description TEXT NOT NULL,
    plan_json TEXT NOT NULL,
    created_at TEXT NOT NULL
);
"""


@dataclass
class Checkpoint:
    step_index: int
    plan: Plan
    description: str = ""
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    seq: int | None = None

    @property
    def age(self) -> float:
        return (datetime.now(timezone.utc) - self.created_at).total_seconds()

    def summary(self) -> str:
        text = f"Step {self.step_index}: {self.plan.progress_summary()}"
        return f"{text} - {self.description}" if self.description else text


class CheckpointStore:
    """Stack of plan snapshots, newest last, bounded to ``max_checkpoints``.

    Without a ``db_path`` everything lives in memory. With one, each
    checkpoint is mirrored to SQLite so it survives a restart; call
    :meth:`start` before use and :meth:`stop` when done.
    """

    def __init__(self, max_checkpoints: int = 20, db_path: Path | None = None) -> None:
        self.max_checkpoints = max_checkpoints
        self._db_path = db_path
        self._db: aiosqlite.Connection | None = None
        self._stack: list[Checkpoint] = []

    async def start(self) -> None:
        if self._db_path is None:
            return
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._db = await aiosqlite.connect(str(self._db_path))
        await self._db.executescript(_CHECKPOINT_SCHEMA)
        await self._db.commit()

        cursor = await self._db.execute(
            "SELECT seq, step_index, description, plan_json, created_at "
            "FROM checkpoints ORDER BY seq DESC LIMIT ?",
            (self.max_checkpoints,),
        )
        rows = await cursor.fetchall()
        self._stack = [
            Checkpoint(
                seq=row[0],
                step_index=row[1],
                description=row[2],
                plan=Plan.from_dict(json.loads(row[3])),
                created_at=datetime.fromisoformat(row[4]),
            )
            for row in reversed(rows)
        ]
        log.info("checkpoints_loaded", count=len(self._stack), db=str(self._db_path))

    async def stop(self) -> None:
        if self._db:
            await self._db.close()
            self._db = None

    @property
    def count(self) -> int:
        return len(self._stack)

    @property
    def can_rollback(self) -> bool:
        return bool(self._stack)

    async def save(self, plan: Plan, step_index: int, description: str = "") -> Checkpoint:
        checkpoint = Checkpoint(step_index=step_index, plan=plan.snapshot(), description=description)
        if self._db is not None:
            cursor = await self._db.execute(
                "INSERT INTO checkpoints (plan_id, step_index, description, plan_json, created_at) "
                "VALUES (?, ?, ?, ?, ?)",
                (
                    plan.id, step_index, description,
                    json.dumps(checkpoint.plan.to_dict()),
                    checkpoint.created_at.isoformat(),
                ),
            )
            checkpoint.seq = cursor.lastrowid
            await self._db.commit()

        self._stack.append(checkpoint)
        while len(self._stack) > self.max_checkpoints:
            await self._forget(self._stack.pop(0))
        log.debug("checkpoint_saved", step_index=step_index, count=len(self._stack))
        return checkpoint

    async def rollback_last(self) -> Checkpoint | None:
        if not self._stack:
            log.warning("rollback_unavailable")
            return None
        checkpoint = self._stack.pop()
        await self._forget(checkpoint)
        log.info("rolled_back", step_index=checkpoint.step_index)
        return checkpoint

    async def rollback_to(self, step_index: int) -> Checkpoint | None:
        """Pop checkpoints until one at or before ``step_index`` is found."""
        while self._stack:
            checkpoint = self._stack.pop()
            await self._forget(checkpoint)
            if checkpoint.step_index <= step_index:
                log.info("rolled_back", step_index=checkpoint.step_index)
                return checkpoint
        return None

    async def clear(self) -> None:
        self._stack.clear()
        if self._db is not None:
            await self._db.execute("DELETE FROM checkpoints")
            await self._db.commit()

    def history(self) -> str:
        if not self._stack:
            return "No checkpoints saved"
        lines = [f"Checkpoint History ({len(self._stack)}):"]
        for i, cp in enumerate(self._stack, start=1):
            lines.append(f"  {i}. {cp.summary()} (age: {cp.age:.1f}s)")
        return "\n".join(lines)

    async def _forget(self, checkpoint: Checkpoint) -> None:
        if self._db is not None and checkpoint.seq is not None:
            await self._db.execute("DELETE FROM checkpoints WHERE seq = ?", (checkpoint.seq,))
            await self._db.commit()
