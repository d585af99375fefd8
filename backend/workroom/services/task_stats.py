"""Dashboard counters over a user's visible tasks."""
from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime

from ..models import Task, TaskStatus, now_utc
from .task_state import is_overdue


@dataclass(frozen=True)
class TaskStats:
    total: int = 0
    completed: int = 0
    pending: int = 0
    overdue: int = 0
    completion_rate: int = 0


def compute_task_stats(tasks: Sequence[Task], *, at: datetime | None = None) -> TaskStats:
    ts = at or now_utc()
    total = len(tasks)
    completed = sum(1 for t in tasks if t.status == TaskStatus.COMPLETED)
    pending = sum(1 for t in tasks if t.status == TaskStatus.PENDING)
    overdue = sum(1 for t in tasks if is_overdue(t, at=ts))
    # Half-up rounding to a whole percent.
    completion_rate = int(completed * 100 / total + 0.5) if total else 0
    return TaskStats(
        total=total,
        completed=completed,
        pending=pending,
        overdue=overdue,
        completion_rate=completion_rate,
    )
