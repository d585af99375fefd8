"""Directory store: per-tenant collections with load-all / replace-all semantics.

Use cases never touch a backing store directly. They open ``store.session(tenant_id)``,
which serializes writers per tenant, hands out a private copy of the tenant's object
graph and writes every collection back only when the block exits cleanly.
"""
from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from uuid import UUID

from pydantic import BaseModel

from .domain_errors import DomainError
from .models import Notification, Role, Task, Teammate, Tenant, User


COLLECTION_MODELS: dict[str, type[BaseModel]] = {
    "tenants": Tenant,
    "users": User,
    "teammates": Teammate,
    "tasks": Task,
    "notifications": Notification,
}


@dataclass
class TenantWorkspace:
    """In-memory object graph of one tenant."""

    tenant: Tenant
    users: list[User] = field(default_factory=list)
    teammates: list[Teammate] = field(default_factory=list)
    tasks: list[Task] = field(default_factory=list)
    notifications: list[Notification] = field(default_factory=list)

    @property
    def tenant_id(self) -> UUID:
        return self.tenant.id

    def user_by_id(self, user_id: UUID | None) -> User | None:
        if user_id is None:
            return None
        return next((u for u in self.users if u.id == user_id), None)

    def user_by_username(self, username: str | None) -> User | None:
        key = (username or "").strip().lower()
        if not key:
            return None
        return next((u for u in self.users if u.username.lower() == key), None)

    def user_for_teammate(self, teammate_id: UUID | None, *, active_only: bool = False) -> User | None:
        if teammate_id is None:
            return None
        for user in self.users:
            if user.teammate_id == teammate_id and (user.is_active or not active_only):
                return user
        return None

    def teammate_by_id(self, teammate_id: UUID | None) -> Teammate | None:
        if teammate_id is None:
            return None
        return next((t for t in self.teammates if t.id == teammate_id), None)

    def task_by_id(self, task_id: UUID) -> Task | None:
        return next((t for t in self.tasks if t.id == task_id), None)

    def first_admin(self) -> User | None:
        return next((u for u in self.users if u.role == Role.ADMIN), None)

    def collections(self) -> dict[str, list[BaseModel]]:
        return {
            "tenants": [self.tenant],
            "users": list(self.users),
            "teammates": list(self.teammates),
            "tasks": list(self.tasks),
            "notifications": list(self.notifications),
        }


def _item_tenant_id(collection: str, item: BaseModel) -> UUID:
    if collection == "tenants":
        return item.id  # type: ignore[attr-defined]
    return item.tenant_id  # type: ignore[attr-defined]


def ensure_same_tenant(collection: str, tenant_id: UUID, items: list[BaseModel]) -> None:
    """Reject batches that would place another tenant's rows under tenant_id."""
    if collection not in COLLECTION_MODELS:
        raise ValueError(f"Unknown collection: {collection}")
    model = COLLECTION_MODELS[collection]
    for item in items:
        if not isinstance(item, model):
            raise TypeError(f"{collection} expects {model.__name__}, got {type(item).__name__}")
        if _item_tenant_id(collection, item) != tenant_id:
            raise ValueError(f"Cross-tenant row in {collection} for tenant {tenant_id}")


class DirectoryStore(ABC):
    """Storage boundary. Subclasses only implement batch read and batch write."""

    def __init__(self) -> None:
        self._locks: dict[UUID, threading.RLock] = {}
        self._locks_guard = threading.Lock()

    @abstractmethod
    def tenant_ids(self) -> list[UUID]:
        """Return ids of all registered tenants."""

    @abstractmethod
    def load_all(self, collection: str, tenant_id: UUID) -> list[BaseModel]:
        """Return a private copy of every row of a tenant collection."""

    @abstractmethod
    def replace_all(self, collection: str, tenant_id: UUID, items: list[BaseModel]) -> None:
        """Atomically replace a tenant collection."""

    def replace_collections(self, tenant_id: UUID, batches: dict[str, list[BaseModel]]) -> None:
        """Validate every batch before writing any of them."""
        for collection, items in batches.items():
            ensure_same_tenant(collection, tenant_id, items)
        for collection, items in batches.items():
            self.replace_all(collection, tenant_id, items)

    def tenant_lock(self, tenant_id: UUID) -> threading.RLock:
        with self._locks_guard:
            lock = self._locks.get(tenant_id)
            if lock is None:
                lock = threading.RLock()
                self._locks[tenant_id] = lock
            return lock

    def _load_workspace(self, tenant_id: UUID) -> TenantWorkspace | None:
        tenants = self.load_all("tenants", tenant_id)
        if not tenants:
            return None
        return TenantWorkspace(
            tenant=tenants[0],  # type: ignore[arg-type]
            users=self.load_all("users", tenant_id),  # type: ignore[arg-type]
            teammates=self.load_all("teammates", tenant_id),  # type: ignore[arg-type]
            tasks=self.load_all("tasks", tenant_id),  # type: ignore[arg-type]
            notifications=self.load_all("notifications", tenant_id),  # type: ignore[arg-type]
        )

    def snapshot(self, tenant_id: UUID) -> TenantWorkspace | None:
        """Read-only view of a tenant; changes made to it are never written back."""
        with self.tenant_lock(tenant_id):
            return self._load_workspace(tenant_id)

    @contextmanager
    def session(self, tenant_id: UUID) -> Iterator[TenantWorkspace]:
        """Serialized read-modify-write of one tenant. Nothing is saved if the block raises."""
        with self.tenant_lock(tenant_id):
            workspace = self._load_workspace(tenant_id)
            if workspace is None:
                raise DomainError(
                    code="TENANT_NOT_FOUND",
                    http_status=404,
                    message="Tenant not found",
                )
            yield workspace
            self.replace_collections(tenant_id, workspace.collections())

    def create_tenant(self, workspace: TenantWorkspace) -> None:
        """Persist a brand-new tenant together with its initial rows."""
        with self.tenant_lock(workspace.tenant_id):
            if self.load_all("tenants", workspace.tenant_id):
                raise ValueError(f"Tenant {workspace.tenant_id} already exists")
            self.replace_collections(workspace.tenant_id, workspace.collections())


class InMemoryStore(DirectoryStore):
    """Process-local store; rows are copied on the way in and on the way out."""

    def __init__(self) -> None:
        super().__init__()
        self._rows: dict[tuple[str, UUID], list[BaseModel]] = {}
        # Guards the key set of _rows; tenant locks only serialize one tenant.
        self._rows_lock = threading.Lock()

    def tenant_ids(self) -> list[UUID]:
        with self._rows_lock:
            entries = list(self._rows.items())
        return [tenant_id for (collection, tenant_id), rows in entries if collection == "tenants" and rows]

    def load_all(self, collection: str, tenant_id: UUID) -> list[BaseModel]:
        if collection not in COLLECTION_MODELS:
            raise ValueError(f"Unknown collection: {collection}")
        with self._rows_lock:
            rows = list(self._rows.get((collection, tenant_id), []))
        return [row.model_copy(deep=True) for row in rows]

    def replace_all(self, collection: str, tenant_id: UUID, items: list[BaseModel]) -> None:
        ensure_same_tenant(collection, tenant_id, items)
        copies = [item.model_copy(deep=True) for item in items]
        with self._rows_lock:
            self._rows[(collection, tenant_id)] = copies
