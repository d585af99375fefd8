"""Task step/status rules: toggling, completion and overdue checks."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from ..models import Task, TaskStatus, TaskStep, now_utc


@dataclass(frozen=True)
class StepToggleResult:
    task: Task
    step: TaskStep
    previous_status: TaskStatus

    @property
    def completed_now(self) -> bool:
        return self.previous_status == TaskStatus.PENDING and self.task.status == TaskStatus.COMPLETED

    @property
    def reopened(self) -> bool:
        return self.previous_status == TaskStatus.COMPLETED and self.task.status == TaskStatus.PENDING


def build_steps(texts: Iterable[str]) -> list[TaskStep]:
    """Create steps in the given order, dropping blank entries."""
    return [TaskStep(text=text.strip()) for text in texts if text and text.strip()]


def all_steps_done(steps: list[TaskStep]) -> bool:
    """An empty checklist is never done."""
    if not steps:
        return False
    return all(step.is_completed for step in steps)


def find_step(task: Task, step_id: UUID) -> TaskStep | None:
    return next((step for step in task.steps if step.id == step_id), None)


def recompute_status(task: Task, *, at: datetime | None = None) -> TaskStatus:
    """Bring status/completed_at in line with the steps and return the previous status."""
    ts = at or now_utc()
    previous = task.status
    if all_steps_done(task.steps):
        if previous != TaskStatus.COMPLETED:
            task.status = TaskStatus.COMPLETED
            task.completed_at = ts
    elif previous == TaskStatus.COMPLETED:
        task.status = TaskStatus.PENDING
        task.completed_at = None
    return previous


def toggle_step(task: Task, step_id: UUID, *, at: datetime | None = None) -> StepToggleResult:
    """Flip one step and recompute the task status."""
    step = find_step(task, step_id)
    if step is None:
        raise ValueError(f"Step {step_id} does not belong to task {task.id}")
    step.is_completed = not step.is_completed
    previous = recompute_status(task, at=at)
    return StepToggleResult(task=task, step=step, previous_status=previous)


def is_overdue(task: Task, *, at: datetime | None = None) -> bool:
    ts = at or now_utc()
    return task.status != TaskStatus.COMPLETED and task.due_date is not None and task.due_date < ts
