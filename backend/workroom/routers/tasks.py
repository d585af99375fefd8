"""Task endpoints."""
from __future__ import annotations

from functools import lru_cache
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, status

from ..auth import get_current_user
from ..database import get_store
from ..models import TaskStatus, User
from ..schemas import (
    CommentCreate,
    CommentResponse,
    DistillRequest,
    DistillResponse,
    TaskCreate,
    TaskResponse,
    TaskStatsResponse,
)
from ..services.distiller import Distiller, GeminiDistiller
from ..store import DirectoryStore
from ..use_cases.task_workflow import (
    add_comment_use_case,
    create_task_use_case,
    distill_task_use_case,
    get_task_use_case,
    list_tasks_use_case,
    task_stats_use_case,
    toggle_step_use_case,
)

router = APIRouter(prefix="/tasks", tags=["tasks"])


@lru_cache()
def get_distiller() -> Distiller:
    return GeminiDistiller()


@router.get("", response_model=list[TaskResponse])
def get_tasks(
    status: Optional[TaskStatus] = None,
    current_user: User = Depends(get_current_user),
    store: DirectoryStore = Depends(get_store),
):
    """Tasks visible to the caller, newest first."""
    tasks = list_tasks_use_case(store=store, current_user=current_user, status=status)
    return [TaskResponse.model_validate(t) for t in tasks]


@router.get("/stats", response_model=TaskStatsResponse)
def get_task_stats(
    current_user: User = Depends(get_current_user),
    store: DirectoryStore = Depends(get_store),
):
    return TaskStatsResponse.model_validate(task_stats_use_case(store=store, current_user=current_user))


@router.post("/distill", response_model=DistillResponse)
def distill_task(
    payload: DistillRequest,
    current_user: User = Depends(get_current_user),
    distiller: Distiller = Depends(get_distiller),
):
    """Preview an AI checklist for a raw description. Creates nothing."""
    result = distill_task_use_case(current_user=current_user, raw_input=payload.raw_input, distiller=distiller)
    return DistillResponse(steps=result.steps, suggested_title=result.suggested_title)


@router.post("", response_model=TaskResponse, status_code=status.HTTP_201_CREATED)
def create_task(
    payload: TaskCreate,
    current_user: User = Depends(get_current_user),
    store: DirectoryStore = Depends(get_store),
):
    task = create_task_use_case(
        store=store,
        current_user=current_user,
        title=payload.title,
        raw_input=payload.raw_input,
        steps=payload.steps,
        assignee_id=payload.assignee_id,
        priority=payload.priority,
        due_date=payload.due_date,
    )
    return TaskResponse.model_validate(task)


@router.get("/{task_id}", response_model=TaskResponse)
def get_task(
    task_id: UUID,
    current_user: User = Depends(get_current_user),
    store: DirectoryStore = Depends(get_store),
):
    return TaskResponse.model_validate(get_task_use_case(store=store, current_user=current_user, task_id=task_id))


@router.post("/{task_id}/steps/{step_id}/toggle", response_model=TaskResponse)
def toggle_step(
    task_id: UUID,
    step_id: UUID,
    current_user: User = Depends(get_current_user),
    store: DirectoryStore = Depends(get_store),
):
    task = toggle_step_use_case(store=store, current_user=current_user, task_id=task_id, step_id=step_id)
    return TaskResponse.model_validate(task)


@router.post("/{task_id}/comments", response_model=CommentResponse, status_code=status.HTTP_201_CREATED)
def add_comment(
    task_id: UUID,
    payload: CommentCreate,
    current_user: User = Depends(get_current_user),
    store: DirectoryStore = Depends(get_store),
):
    comment = add_comment_use_case(store=store, current_user=current_user, task_id=task_id, text=payload.text)
    return CommentResponse.model_validate(comment)
