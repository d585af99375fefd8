"""Notification fan-out for task lifecycle events and the per-user read model."""
from __future__ import annotations

import logging
from datetime import datetime
from uuid import UUID

from ..models import Comment, Notification, NotificationType, Task, Teammate, User, now_utc
from ..store import TenantWorkspace

logger = logging.getLogger(__name__)


def _notification(
    *,
    task: Task,
    recipient: User,
    title: str,
    message: str,
    type_: NotificationType,
    at: datetime,
) -> Notification:
    return Notification(
        tenant_id=task.tenant_id,
        user_id=recipient.id,
        title=title,
        message=message,
        type=type_,
        related_task_id=task.id,
        is_read=False,
        timestamp=at,
    )


def on_assigned(task: Task, assignee_user: User | None, *, at: datetime | None = None) -> list[Notification]:
    """One notification to the assignee's user; nothing when the teammate has no active login."""
    if assignee_user is None or not assignee_user.is_active:
        logger.warning("Task %s assigned to teammate %s without an active user", task.id, task.assignee_id)
        return []
    return [
        _notification(
            task=task,
            recipient=assignee_user,
            title="New Task Assigned!",
            message=f"You have been assigned: {task.title}",
            type_=NotificationType.TASK_ASSIGNED,
            at=at or now_utc(),
        )
    ]


def on_completed(
    task: Task,
    teammate: Teammate | None,
    direct_manager_user: User | None = None,
    admin_user: User | None = None,
    *,
    at: datetime | None = None,
) -> list[Notification]:
    """Notify the direct manager and the tenant admin.

    Recipients are not de-duplicated: a manager who is also the admin gets both.
    """
    ts = at or now_utc()
    notifications: list[Notification] = []
    if teammate is not None and direct_manager_user is not None and direct_manager_user.is_active:
        notifications.append(
            _notification(
                task=task,
                recipient=direct_manager_user,
                title="Task Completed!",
                message=f"{teammate.name} finished: {task.title}",
                type_=NotificationType.TASK_COMPLETED,
                at=ts,
            )
        )
    if admin_user is not None:
        who = teammate.name if teammate is not None else "A teammate"
        notifications.append(
            _notification(
                task=task,
                recipient=admin_user,
                title="Task Finished",
                message=f"{who} finished {task.title}",
                type_=NotificationType.TASK_COMPLETED,
                at=ts,
            )
        )
    return notifications


def on_comment_added(
    task: Task,
    comment: Comment,
    recipients: list[User],
    *,
    author_id: UUID | None = None,
    at: datetime | None = None,
) -> list[Notification]:
    """One notification per distinct active recipient other than the author."""
    ts = at or now_utc()
    seen: set[UUID] = set()
    notifications: list[Notification] = []
    for recipient in recipients:
        if not recipient.is_active or recipient.id == author_id or recipient.id in seen:
            continue
        seen.add(recipient.id)
        notifications.append(
            _notification(
                task=task,
                recipient=recipient,
                title="New Comment",
                message=f"{comment.author_name} commented on {task.title}: {comment.text}",
                type_=NotificationType.COMMENT_ADDED,
                at=ts,
            )
        )
    return notifications


# Recipient resolution against a tenant workspace.

def resolve_assignee_user(workspace: TenantWorkspace, task: Task) -> User | None:
    return workspace.user_for_teammate(task.assignee_id, active_only=True)


def resolve_direct_manager(workspace: TenantWorkspace, teammate: Teammate | None) -> User | None:
    if teammate is None or teammate.manager_id is None:
        return None
    manager = workspace.user_by_id(teammate.manager_id)
    if manager is None or not manager.is_active:
        return None
    return manager


def completion_notifications(workspace: TenantWorkspace, task: Task, *, at: datetime) -> list[Notification]:
    teammate = workspace.teammate_by_id(task.assignee_id)
    return on_completed(
        task,
        teammate,
        resolve_direct_manager(workspace, teammate),
        workspace.first_admin(),
        at=at,
    )


def comment_notifications(
    workspace: TenantWorkspace,
    task: Task,
    comment: Comment,
    *,
    author_id: UUID,
    at: datetime,
) -> list[Notification]:
    recipients: list[User] = []
    assignee_user = resolve_assignee_user(workspace, task)
    if assignee_user is not None:
        recipients.append(assignee_user)
    manager = resolve_direct_manager(workspace, workspace.teammate_by_id(task.assignee_id))
    if manager is not None:
        recipients.append(manager)
    return on_comment_added(task, comment, recipients, author_id=author_id, at=at)


# Read model.

def notifications_for_user(
    notifications: list[Notification],
    user_id: UUID,
    *,
    unread_only: bool = False,
    limit: int | None = None,
    offset: int = 0,
) -> list[Notification]:
    """Most recent first."""
    rows = [n for n in notifications if n.user_id == user_id and (not unread_only or not n.is_read)]
    rows.sort(key=lambda n: n.timestamp, reverse=True)
    if limit is None:
        return rows[offset:]
    return rows[offset : offset + limit]


def unread_count(notifications: list[Notification], user_id: UUID) -> int:
    return sum(1 for n in notifications if n.user_id == user_id and not n.is_read)
