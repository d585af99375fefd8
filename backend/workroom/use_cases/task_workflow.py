"""Task lifecycle use-cases used by task router endpoints."""
from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import datetime
from uuid import UUID

from ..domain_errors import DomainError, not_found
from ..models import (
    Clock,
    Comment,
    Task,
    TaskPriority,
    TaskStatus,
    User,
    now_utc,
)
from ..security import (
    available_assignees,
    can_view_task,
    require_permission,
    resolve_actor,
    visible_tasks,
)
from ..services.distiller import DEFAULT_TITLE, Distillation, Distiller
from ..services.notification_dispatcher import (
    comment_notifications,
    completion_notifications,
    on_assigned,
    resolve_assignee_user,
)
from ..services.task_state import build_steps, find_step, toggle_step
from ..services.task_stats import TaskStats, compute_task_stats
from ..store import DirectoryStore, TenantWorkspace

logger = logging.getLogger(__name__)


def _get_visible_task(workspace: TenantWorkspace, task_id: UUID, actor: User) -> Task:
    task = workspace.task_by_id(task_id)
    if task is None:
        raise not_found("TASK_NOT_FOUND", "Task not found")
    if not can_view_task(task, actor, workspace.teammates):
        raise DomainError(
            code="TASK_ACCESS_DENIED",
            http_status=403,
            message="Task is not visible to you",
        )
    return task


def distill_task_use_case(*, current_user: User, raw_input: str, distiller: Distiller) -> Distillation:
    """Ask the distiller for a checklist preview. Nothing is created here."""
    require_permission(current_user, "canCreateTasks")
    if not (raw_input or "").strip():
        raise DomainError(
            code="RAW_INPUT_REQUIRED",
            http_status=400,
            message="Task description is required",
        )
    return distiller(raw_input)


def create_task_use_case(
    *,
    store: DirectoryStore,
    current_user: User,
    steps: Sequence[str],
    title: str = "",
    raw_input: str = "",
    assignee_id: UUID | None = None,
    priority: TaskPriority | str = TaskPriority.MODERATE,
    due_date: datetime | None = None,
    clock: Clock = now_utc,
) -> Task:
    """Create a task with its full step list and notify the assignee."""
    step_rows = build_steps(steps)
    if not step_rows:
        raise DomainError(
            code="TASK_STEPS_REQUIRED",
            http_status=400,
            message="A task needs at least one step",
        )
    now = clock()

    with store.session(current_user.tenant_id) as workspace:
        actor = resolve_actor(workspace, current_user.id)
        require_permission(actor, "canCreateTasks")

        if assignee_id is not None:
            allowed = {t.id for t in available_assignees(actor, workspace.teammates)}
            if assignee_id not in allowed:
                raise DomainError(
                    code="ASSIGNEE_NOT_ALLOWED",
                    http_status=400,
                    message="You cannot assign tasks to this teammate",
                    details={"assignee_id": str(assignee_id)},
                )

        task = Task(
            tenant_id=workspace.tenant_id,
            title=(title or "").strip() or DEFAULT_TITLE,
            raw_input=raw_input or "",
            steps=step_rows,
            assignee_id=assignee_id,
            created_at=now,
            due_date=due_date,
            status=TaskStatus.PENDING,
            priority=TaskPriority(priority),
        )
        # Newest first.
        workspace.tasks.insert(0, task)

        if assignee_id is not None:
            workspace.notifications.extend(
                on_assigned(task, resolve_assignee_user(workspace, task), at=now)
            )

    logger.info("Task %s created in tenant %s by %s", task.id, task.tenant_id, current_user.id)
    return task


def toggle_step_use_case(
    *,
    store: DirectoryStore,
    current_user: User,
    task_id: UUID,
    step_id: UUID,
    clock: Clock = now_utc,
) -> Task:
    """Flip one step; completion notifies once per forward transition."""
    now = clock()
    with store.session(current_user.tenant_id) as workspace:
        actor = resolve_actor(workspace, current_user.id)
        task = _get_visible_task(workspace, task_id, actor)
        if find_step(task, step_id) is None:
            raise not_found("STEP_NOT_FOUND", "Step not found")

        result = toggle_step(task, step_id, at=now)
        if result.completed_now:
            workspace.notifications.extend(completion_notifications(workspace, task, at=now))
            logger.info("Task %s completed", task.id)
        elif result.reopened:
            logger.info("Task %s reopened", task.id)
        return task


def add_comment_use_case(
    *,
    store: DirectoryStore,
    current_user: User,
    task_id: UUID,
    text: str,
    clock: Clock = now_utc,
) -> Comment:
    """Append a comment and notify the other participants."""
    text = (text or "").strip()
    if not text:
        raise DomainError(
            code="COMMENT_TEXT_REQUIRED",
            http_status=400,
            message="Comment text is required",
        )
    now = clock()
    with store.session(current_user.tenant_id) as workspace:
        actor = resolve_actor(workspace, current_user.id)
        task = _get_visible_task(workspace, task_id, actor)
        comment = Comment(
            text=text,
            author_name=actor.name,
            author_role=actor.role,
            timestamp=now,
        )
        task.comments.append(comment)
        workspace.notifications.extend(
            comment_notifications(workspace, task, comment, author_id=actor.id, at=now)
        )
        return comment


def list_tasks_use_case(
    *,
    store: DirectoryStore,
    current_user: User,
    status: TaskStatus | None = None,
) -> list[Task]:
    workspace = store.snapshot(current_user.tenant_id)
    if workspace is None:
        return []
    actor = resolve_actor(workspace, current_user.id)
    tasks = visible_tasks(actor, workspace.tasks, workspace.teammates)
    if status is not None:
        tasks = [t for t in tasks if t.status == status]
    return tasks


def get_task_use_case(*, store: DirectoryStore, current_user: User, task_id: UUID) -> Task:
    workspace = store.snapshot(current_user.tenant_id)
    if workspace is None:
        raise not_found("TASK_NOT_FOUND", "Task not found")
    actor = resolve_actor(workspace, current_user.id)
    return _get_visible_task(workspace, task_id, actor)


def task_stats_use_case(*, store: DirectoryStore, current_user: User, clock: Clock = now_utc) -> TaskStats:
    workspace = store.snapshot(current_user.tenant_id)
    if workspace is None:
        return TaskStats()
    actor = resolve_actor(workspace, current_user.id)
    require_permission(actor, "canViewReports")
    tasks = visible_tasks(actor, workspace.tasks, workspace.teammates)
    return compute_task_stats(tasks, at=clock())
