"""Tenant registration, login and password use-cases."""
from __future__ import annotations

import logging
from uuid import UUID

from ..domain_errors import DomainError
from ..models import ROLE_DISPLAY, Clock, Role, Tenant, User, now_utc
from ..security import resolve_actor
from ..store import DirectoryStore, TenantWorkspace

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS_MESSAGE = "Incorrect login details."
ACCOUNT_DISABLED_MESSAGE = "Account disabled. Contact Business Owner."
TENANT_MISSING_MESSAGE = "Invalid tenant association."


def register_tenant_use_case(
    *,
    store: DirectoryStore,
    company_name: str,
    username: str,
    password: str,
    admin_name: str = "",
    industry: str = "",
    clock: Clock = now_utc,
) -> tuple[Tenant, User]:
    """Create a tenant together with its admin user."""
    company_name = (company_name or "").strip()
    username = (username or "").strip().lower()
    if not company_name or not username or not password:
        raise DomainError(
            code="REGISTRATION_FIELDS_REQUIRED",
            http_status=400,
            message="Company name, username and password are required",
        )

    tenant = Tenant(
        name=company_name,
        industry=(industry or "").strip() or "General",
        created_at=clock(),
    )
    admin = User(
        tenant_id=tenant.id,
        username=username,
        password=password,
        name=(admin_name or "").strip() or username,
        role=Role.ADMIN,
        job_profile=ROLE_DISPLAY[Role.ADMIN],
        is_active=True,
    )
    store.create_tenant(TenantWorkspace(tenant=tenant, users=[admin]))
    logger.info("Registered tenant %s (%s) with admin %s", tenant.id, tenant.name, admin.username)
    return tenant, admin


def authenticate_use_case(
    *,
    store: DirectoryStore,
    username: str,
    password: str,
    tenant_id: UUID | None = None,
) -> tuple[User, Tenant]:
    """Resolve a login.

    Wrong username and wrong password produce the same error; a disabled account and a
    dangling tenant each get their own message.
    """
    key = (username or "").strip().lower()

    if tenant_id is not None:
        if not store.load_all("tenants", tenant_id):
            raise DomainError(code="AUTH_TENANT_NOT_FOUND", http_status=401, message=TENANT_MISSING_MESSAGE)
        tenant_ids = [tenant_id]
    else:
        tenant_ids = store.tenant_ids()

    user: User | None = None
    if key:
        for tid in tenant_ids:
            with store.tenant_lock(tid):
                rows = store.load_all("users", tid)
            user = next(
                (u for u in rows if u.username.lower() == key and u.password == password),  # type: ignore[attr-defined]
                None,
            )
            if user is not None:
                break

    if user is None:
        raise DomainError(code="AUTH_INVALID_CREDENTIALS", http_status=401, message=INVALID_CREDENTIALS_MESSAGE)
    if not user.is_active:
        raise DomainError(code="AUTH_ACCOUNT_DISABLED", http_status=403, message=ACCOUNT_DISABLED_MESSAGE)

    tenants = store.load_all("tenants", user.tenant_id)
    if not tenants:
        raise DomainError(code="AUTH_TENANT_NOT_FOUND", http_status=401, message=TENANT_MISSING_MESSAGE)
    return user, tenants[0]  # type: ignore[return-value]


def change_password_use_case(
    *,
    store: DirectoryStore,
    current_user: User,
    current_password: str,
    new_password: str,
    confirm_password: str,
) -> None:
    if not new_password:
        raise DomainError(code="PASSWORD_REQUIRED", http_status=400, message="New password is required")
    if new_password != confirm_password:
        raise DomainError(
            code="PASSWORD_CONFIRMATION_MISMATCH",
            http_status=400,
            message="New password and confirmation do not match",
        )

    with store.session(current_user.tenant_id) as workspace:
        user = resolve_actor(workspace, current_user.id)
        if user.password != current_password:
            raise DomainError(
                code="PASSWORD_MISMATCH",
                http_status=400,
                message="Current password is incorrect",
            )
        user.password = new_password
    logger.info("Password changed for user %s", current_user.id)
