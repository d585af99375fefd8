"""Notification inbox use-cases."""
from __future__ import annotations

from uuid import UUID

from ..domain_errors import not_found
from ..models import Notification, User
from ..security import resolve_actor
from ..services.notification_dispatcher import notifications_for_user, unread_count
from ..store import DirectoryStore


def list_notifications_use_case(
    *,
    store: DirectoryStore,
    current_user: User,
    unread_only: bool = False,
    limit: int | None = None,
    offset: int = 0,
) -> list[Notification]:
    workspace = store.snapshot(current_user.tenant_id)
    if workspace is None:
        return []
    return notifications_for_user(
        workspace.notifications,
        current_user.id,
        unread_only=unread_only,
        limit=limit,
        offset=offset,
    )


def unread_count_use_case(*, store: DirectoryStore, current_user: User) -> int:
    workspace = store.snapshot(current_user.tenant_id)
    if workspace is None:
        return 0
    return unread_count(workspace.notifications, current_user.id)


def mark_notification_read_use_case(
    *,
    store: DirectoryStore,
    current_user: User,
    notification_id: UUID,
) -> Notification:
    """Only the recipient may flip is_read."""
    with store.session(current_user.tenant_id) as workspace:
        resolve_actor(workspace, current_user.id)
        notification = next(
            (n for n in workspace.notifications if n.id == notification_id and n.user_id == current_user.id),
            None,
        )
        if notification is None:
            raise not_found("NOTIFICATION_NOT_FOUND", "Notification not found")
        notification.is_read = True
        return notification


def mark_all_read_use_case(*, store: DirectoryStore, current_user: User) -> int:
    with store.session(current_user.tenant_id) as workspace:
        resolve_actor(workspace, current_user.id)
        changed = 0
        for notification in workspace.notifications:
            if notification.user_id == current_user.id and not notification.is_read:
                notification.is_read = True
                changed += 1
        return changed
