"""Pydantic schemas for API."""
from pydantic import BaseModel, ConfigDict, Field
from typing import Optional
from datetime import datetime
from uuid import UUID

from .models import NotificationType, Role, TaskPriority, TaskStatus


# Tenant / user schemas
class TenantResponse(BaseModel):
    id: UUID
    name: str
    industry: str
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


class UserResponse(BaseModel):
    """User without its password."""
    id: UUID
    tenant_id: UUID
    username: str
    name: str
    role: Role
    teammate_id: Optional[UUID] = None
    is_active: bool
    job_profile: str
    model_config = ConfigDict(from_attributes=True)


class TeammateResponse(BaseModel):
    id: UUID
    name: str
    job_profile: str
    contact: str
    email: str
    username: str
    skills: str
    is_active: bool
    manager_id: Optional[UUID] = None
    model_config = ConfigDict(from_attributes=True)


# Auth schemas
class RegisterRequest(BaseModel):
    company_name: str
    industry: str = ""
    admin_name: str = ""
    username: str
    password: str


class RegisterResponse(BaseModel):
    tenant: TenantResponse
    admin: UserResponse


class LoginRequest(BaseModel):
    username: str
    password: str
    tenant_id: Optional[UUID] = None


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserResponse
    tenant: TenantResponse


class ChangePasswordRequest(BaseModel):
    current_password: str
    new_password: str
    confirm_password: str


# Team schemas
class MemberCreate(BaseModel):
    name: str
    username: str
    email: str = ""
    contact: str = ""
    role: Role = Role.TEAMMATE
    job_profile: str = ""
    skills: str = ""
    manager_id: Optional[UUID] = None


class MemberUpdate(BaseModel):
    name: Optional[str] = None
    contact: Optional[str] = None
    email: Optional[str] = None
    job_profile: Optional[str] = None
    skills: Optional[str] = None
    manager_id: Optional[UUID] = None


class MemberActiveUpdate(BaseModel):
    is_active: bool


class OnboardResponse(BaseModel):
    user: UserResponse
    teammate: Optional[TeammateResponse] = None


class SkippedRowResponse(BaseModel):
    line_no: int
    username: str
    reason: str
    model_config = ConfigDict(from_attributes=True)


class ImportResponse(BaseModel):
    created: list[str]
    skipped: list[SkippedRowResponse]
    unresolved_managers: list[str]


# Task schemas
class DistillRequest(BaseModel):
    raw_input: str = Field(..., min_length=1)


class DistillResponse(BaseModel):
    steps: list[str]
    suggested_title: str


class TaskCreate(BaseModel):
    title: str = ""
    raw_input: str = ""
    steps: list[str]
    assignee_id: Optional[UUID] = None
    priority: TaskPriority = TaskPriority.MODERATE
    due_date: Optional[datetime] = None


class TaskStepResponse(BaseModel):
    id: UUID
    text: str
    is_completed: bool
    model_config = ConfigDict(from_attributes=True)


class CommentCreate(BaseModel):
    text: str = Field(..., min_length=1)


class CommentResponse(BaseModel):
    id: UUID
    text: str
    author_name: str
    author_role: Role
    timestamp: datetime
    model_config = ConfigDict(from_attributes=True)


class TaskResponse(BaseModel):
    id: UUID
    title: str
    raw_input: str
    steps: list[TaskStepResponse]
    comments: list[CommentResponse]
    assignee_id: Optional[UUID] = None
    created_at: datetime
    due_date: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    status: TaskStatus
    priority: TaskPriority
    model_config = ConfigDict(from_attributes=True)


class TaskStatsResponse(BaseModel):
    total: int
    completed: int
    pending: int
    overdue: int
    completion_rate: int
    model_config = ConfigDict(from_attributes=True)


# Notification schemas
class NotificationResponse(BaseModel):
    id: UUID
    title: str
    message: str
    type: NotificationType
    related_task_id: UUID
    is_read: bool
    timestamp: datetime
    model_config = ConfigDict(from_attributes=True)


class UnreadCountResponse(BaseModel):
    unread: int


class MarkAllReadResponse(BaseModel):
    updated: int
