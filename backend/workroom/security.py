"""Security helpers (role permissions and per-user visibility scoping).

All functions operate on rows that already belong to the caller's tenant; tenant
filtering happens when the workspace is loaded, not here.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import Any
from uuid import UUID

from .domain_errors import DomainError
from .models import Role, Task, Teammate


ROLE_PERMISSIONS: dict[Role, dict[str, bool]] = {
    Role.ADMIN: {
        "canCreateTasks": True,
        "canManageTeam": True,
        "canViewTeam": True,
        "canViewReports": True,
    },
    Role.MANAGER: {
        "canCreateTasks": True,
        "canManageTeam": False,
        "canViewTeam": True,
        "canViewReports": True,
    },
    Role.TEAMMATE: {
        "canCreateTasks": False,
        "canManageTeam": False,
        "canViewTeam": False,
        "canViewReports": False,
    },
}


def effective_role(user: Any) -> Role:
    """Role used for access decisions; unknown values fall back to the most restrictive role."""
    return Role.parse(getattr(user, "role", None))


def check_permission(user: Any, permission: str) -> bool:
    """Check if user has specific permission."""
    return ROLE_PERMISSIONS[effective_role(user)].get(permission, False)


def require_permission(user: Any, permission: str) -> None:
    """Enforce a role permission inside a use case."""
    if not check_permission(user, permission):
        raise DomainError(
            code="PERMISSION_DENIED",
            http_status=403,
            message=f"Permission denied: {permission} required",
            details={"permission": permission},
        )


def managed_teammate_ids(user: Any, teammates: Iterable[Teammate]) -> set[UUID]:
    """Ids of teammates whose direct manager is this user (one level only)."""
    return {t.id for t in teammates if t.manager_id is not None and t.manager_id == user.id}


def can_view_task(task: Task, user: Any, teammates: Iterable[Teammate]) -> bool:
    """Task visibility policy for one task."""
    if task.assignee_id is None:
        return effective_role(user) == Role.ADMIN

    match effective_role(user):
        case Role.ADMIN:
            return True
        case Role.MANAGER:
            own_teammate_id = getattr(user, "teammate_id", None)
            if own_teammate_id is not None and task.assignee_id == own_teammate_id:
                return True
            return task.assignee_id in managed_teammate_ids(user, teammates)
        case Role.TEAMMATE:
            own_teammate_id = getattr(user, "teammate_id", None)
            return own_teammate_id is not None and task.assignee_id == own_teammate_id


def visible_tasks(user: Any, tasks: Sequence[Task], teammates: Sequence[Teammate]) -> list[Task]:
    """Tasks the user may see, in the order given."""
    role = effective_role(user)
    if role == Role.ADMIN:
        return list(tasks)
    return [task for task in tasks if can_view_task(task, user, teammates)]


def visible_teammates(user: Any, teammates: Sequence[Teammate]) -> list[Teammate]:
    """Directory view: admins see everyone, managers their direct reports, teammates nobody."""
    match effective_role(user):
        case Role.ADMIN:
            return list(teammates)
        case Role.MANAGER:
            return [t for t in teammates if t.manager_id is not None and t.manager_id == user.id]
        case Role.TEAMMATE:
            return []


def available_assignees(user: Any, teammates: Sequence[Teammate]) -> list[Teammate]:
    """Active teammates the user may assign new tasks to."""
    match effective_role(user):
        case Role.ADMIN:
            return [t for t in teammates if t.is_active]
        case Role.MANAGER:
            return [
                t for t in teammates
                if t.is_active and t.manager_id is not None and t.manager_id == user.id
            ]
        case Role.TEAMMATE:
            return []


def resolve_actor(workspace: Any, user_id: UUID) -> Any:
    """Reload the caller from the tenant workspace; inactive or missing users cannot act."""
    user = workspace.user_by_id(user_id)
    if user is None or not user.is_active:
        raise DomainError(
            code="AUTH_USER_INACTIVE",
            http_status=401,
            message="User not found or inactive",
        )
    return user
