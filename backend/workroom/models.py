"""Workspace entities: tenants, users, teammates, tasks and notifications."""
from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timezone
from enum import Enum
from uuid import UUID, uuid4

from pydantic import BaseModel, Field, field_validator


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


Clock = Callable[[], datetime]


def as_utc(dt: datetime | None) -> datetime | None:
    if dt is None:
        return None
    if dt.tzinfo is None or dt.tzinfo.utcoffset(dt) is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


class Role(str, Enum):
    ADMIN = "admin"
    MANAGER = "manager"
    TEAMMATE = "teammate"

    @classmethod
    def parse(cls, value: object) -> "Role":
        """Normalize a raw role value; anything unrecognized is the most restrictive role."""
        if isinstance(value, Role):
            return value
        raw = str(value or "").strip().lower()
        for role in cls:
            if role.value == raw:
                return role
        return cls.TEAMMATE


ROLE_DISPLAY: dict[Role, str] = {
    Role.ADMIN: "Business Owner (Admin)",
    Role.MANAGER: "Operations Lead / Manager",
    Role.TEAMMATE: "Field Teammate / Staff",
}


class TaskStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"


class TaskPriority(str, Enum):
    HIGH = "high"
    MODERATE = "moderate"
    LOW = "low"


class NotificationType(str, Enum):
    TASK_ASSIGNED = "task_assigned"
    TASK_COMPLETED = "task_completed"
    COMMENT_ADDED = "comment_added"


class Tenant(BaseModel):
    """Root of isolation; every other entity carries its tenant_id."""

    id: UUID = Field(default_factory=uuid4)
    name: str
    industry: str = "General"
    created_at: datetime = Field(default_factory=now_utc)


class User(BaseModel):
    """Login identity. Non-admin users share their id space with a Teammate via teammate_id."""

    id: UUID = Field(default_factory=uuid4)
    tenant_id: UUID
    username: str
    # Opaque secret compared for equality only.
    password: str
    name: str
    role: Role = Role.TEAMMATE
    teammate_id: UUID | None = None
    is_active: bool = True
    job_profile: str = ""

    @field_validator("role", mode="before")
    @classmethod
    def _coerce_role(cls, value: object) -> Role:
        return Role.parse(value)


class Teammate(BaseModel):
    """Directory record for a non-admin member."""

    id: UUID = Field(default_factory=uuid4)
    tenant_id: UUID
    name: str
    job_profile: str = ""
    contact: str = ""
    email: str = ""
    username: str
    skills: str = ""
    is_active: bool = True
    manager_id: UUID | None = None


class TaskStep(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    text: str
    is_completed: bool = False


class Comment(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    text: str
    author_name: str
    author_role: Role
    timestamp: datetime


class Task(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    tenant_id: UUID
    title: str
    raw_input: str = ""
    steps: list[TaskStep] = Field(default_factory=list)
    comments: list[Comment] = Field(default_factory=list)
    assignee_id: UUID | None = None
    created_at: datetime = Field(default_factory=now_utc)
    due_date: datetime | None = None
    completed_at: datetime | None = None
    status: TaskStatus = TaskStatus.PENDING
    priority: TaskPriority = TaskPriority.MODERATE

    @field_validator("due_date")
    @classmethod
    def _due_date_utc(cls, value: datetime | None) -> datetime | None:
        return as_utc(value)


class Notification(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    tenant_id: UUID
    user_id: UUID
    title: str
    message: str
    type: NotificationType
    related_task_id: UUID
    is_read: bool = False
    timestamp: datetime
