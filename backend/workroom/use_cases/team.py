"""Staff directory use-cases: onboarding, profile edits, activation, import/export."""
from __future__ import annotations

import logging
from typing import Any
from uuid import UUID, uuid4

from ..config import settings
from ..domain_errors import DomainError, not_found
from ..models import ROLE_DISPLAY, Role, Teammate, User
from ..security import (
    available_assignees,
    require_permission,
    resolve_actor,
    visible_teammates,
)
from ..services.hierarchy_csv import MANAGER_ROLES, ImportReport, export_members, import_members
from ..store import DirectoryStore, TenantWorkspace

logger = logging.getLogger(__name__)

PROFILE_FIELDS: frozenset[str] = frozenset({"name", "contact", "email", "job_profile", "skills", "manager_id"})


def _get_teammate_or_404(workspace: TenantWorkspace, teammate_id: UUID) -> Teammate:
    teammate = workspace.teammate_by_id(teammate_id)
    if teammate is None:
        raise not_found("TEAMMATE_NOT_FOUND", "Teammate not found")
    return teammate


def _validate_manager(workspace: TenantWorkspace, manager_id: UUID, *, member_teammate_id: UUID | None) -> User:
    manager = workspace.user_by_id(manager_id)
    if manager is None or not manager.is_active or manager.role not in MANAGER_ROLES:
        raise DomainError(
            code="MANAGER_NOT_FOUND",
            http_status=400,
            message="Manager must be an active manager or admin of this workspace",
        )
    if member_teammate_id is not None and manager.teammate_id == member_teammate_id:
        raise DomainError(
            code="MANAGER_INVALID",
            http_status=400,
            message="A member cannot manage themselves",
        )
    return manager


def onboard_member_use_case(
    *,
    store: DirectoryStore,
    current_user: User,
    name: str,
    username: str,
    role: Role | str = Role.TEAMMATE,
    email: str = "",
    contact: str = "",
    job_profile: str = "",
    skills: str = "",
    manager_id: UUID | None = None,
    default_password: str | None = None,
) -> tuple[User, Teammate | None]:
    """Create a User (and, for non-admins, its Teammate sharing the same id)."""
    name = (name or "").strip()
    username = (username or "").strip().lower()
    if not name or not username:
        raise DomainError(
            code="MEMBER_FIELDS_REQUIRED",
            http_status=400,
            message="Name and username are required",
        )
    member_role = Role.parse(role)

    with store.session(current_user.tenant_id) as workspace:
        actor = resolve_actor(workspace, current_user.id)
        require_permission(actor, "canManageTeam")

        if workspace.user_by_username(username) is not None:
            raise DomainError(
                code="USERNAME_TAKEN",
                http_status=409,
                message="Username already exists in this workspace",
                details={"username": username},
            )

        internal_id = uuid4()
        if manager_id is not None:
            _validate_manager(workspace, manager_id, member_teammate_id=internal_id)

        profile = (job_profile or "").strip() or ROLE_DISPLAY[member_role]
        is_admin = member_role == Role.ADMIN
        user = User(
            id=internal_id,
            tenant_id=workspace.tenant_id,
            username=username,
            password=default_password or settings.DEFAULT_MEMBER_PASSWORD,
            name=name,
            role=member_role,
            job_profile=profile,
            is_active=True,
            teammate_id=None if is_admin else internal_id,
        )
        teammate = None
        if not is_admin:
            teammate = Teammate(
                id=internal_id,
                tenant_id=workspace.tenant_id,
                name=name,
                job_profile=profile,
                contact=(contact or "").strip(),
                email=(email or "").strip(),
                username=username,
                skills=skills or "",
                is_active=True,
                manager_id=manager_id,
            )
            workspace.teammates.append(teammate)
        workspace.users.append(user)

    logger.info("Onboarded %s as %s in tenant %s", username, member_role.value, current_user.tenant_id)
    return user, teammate


def update_member_profile_use_case(
    *,
    store: DirectoryStore,
    current_user: User,
    teammate_id: UUID,
    changes: dict[str, Any],
) -> Teammate:
    """Apply profile edits; the display name is mirrored onto the linked user."""
    unknown = set(changes) - PROFILE_FIELDS
    if unknown:
        raise DomainError(
            code="PROFILE_FIELDS_INVALID",
            http_status=400,
            message="Unsupported profile fields",
            details={"fields": sorted(unknown)},
        )

    with store.session(current_user.tenant_id) as workspace:
        actor = resolve_actor(workspace, current_user.id)
        require_permission(actor, "canManageTeam")
        teammate = _get_teammate_or_404(workspace, teammate_id)

        if "manager_id" in changes and changes["manager_id"] is not None:
            _validate_manager(workspace, changes["manager_id"], member_teammate_id=teammate.id)
        if "name" in changes and not (changes["name"] or "").strip():
            raise DomainError(code="MEMBER_FIELDS_REQUIRED", http_status=400, message="Name is required")

        for key, value in changes.items():
            if value is None and key != "manager_id":
                value = ""
            if isinstance(value, str):
                value = value.strip() if key != "skills" else value
            setattr(teammate, key, value)

        linked = workspace.user_for_teammate(teammate.id)
        if linked is not None:
            linked.name = teammate.name
        return teammate


def set_member_active_use_case(
    *,
    store: DirectoryStore,
    current_user: User,
    teammate_id: UUID,
    is_active: bool,
) -> Teammate:
    """Deactivate or reactivate a member; records are never deleted."""
    with store.session(current_user.tenant_id) as workspace:
        actor = resolve_actor(workspace, current_user.id)
        require_permission(actor, "canManageTeam")
        teammate = _get_teammate_or_404(workspace, teammate_id)
        linked = workspace.user_for_teammate(teammate.id)
        if linked is not None and linked.id == actor.id and not is_active:
            raise DomainError(
                code="MEMBER_SELF_DEACTIVATION",
                http_status=400,
                message="You cannot deactivate your own account",
            )
        teammate.is_active = is_active
        if linked is not None:
            linked.is_active = is_active
    logger.info("Member %s active=%s in tenant %s", teammate_id, is_active, current_user.tenant_id)
    return teammate


def list_team_use_case(*, store: DirectoryStore, current_user: User) -> list[Teammate]:
    workspace = store.snapshot(current_user.tenant_id)
    if workspace is None:
        return []
    actor = resolve_actor(workspace, current_user.id)
    return visible_teammates(actor, workspace.teammates)


def list_assignees_use_case(*, store: DirectoryStore, current_user: User) -> list[Teammate]:
    workspace = store.snapshot(current_user.tenant_id)
    if workspace is None:
        return []
    actor = resolve_actor(workspace, current_user.id)
    return available_assignees(actor, workspace.teammates)


def list_managers_use_case(*, store: DirectoryStore, current_user: User) -> list[User]:
    """Users that may be picked as someone's manager."""
    workspace = store.snapshot(current_user.tenant_id)
    if workspace is None:
        return []
    actor = resolve_actor(workspace, current_user.id)
    require_permission(actor, "canManageTeam")
    return [u for u in workspace.users if u.is_active and u.role in MANAGER_ROLES]


def import_members_use_case(
    *,
    store: DirectoryStore,
    current_user: User,
    text: str,
    default_password: str | None = None,
) -> ImportReport:
    """Bulk import; a malformed file raises before anything is committed."""
    if len((text or "").encode("utf-8")) > settings.IMPORT_MAX_BYTES:
        raise DomainError(
            code="IMPORT_TOO_LARGE",
            http_status=413,
            message="Import file is too large",
            details={"max_bytes": settings.IMPORT_MAX_BYTES},
        )

    with store.session(current_user.tenant_id) as workspace:
        actor = resolve_actor(workspace, current_user.id)
        require_permission(actor, "canManageTeam")
        return import_members(
            workspace,
            text,
            default_password=default_password or settings.DEFAULT_MEMBER_PASSWORD,
        )


def export_members_use_case(*, store: DirectoryStore, current_user: User) -> str:
    workspace = store.snapshot(current_user.tenant_id)
    if workspace is None:
        raise not_found("TENANT_NOT_FOUND", "Tenant not found")
    actor = resolve_actor(workspace, current_user.id)
    require_permission(actor, "canManageTeam")
    return export_members(workspace)
