"""Notification inbox endpoints."""
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from ..auth import get_current_user
from ..database import get_store
from ..models import User
from ..schemas import MarkAllReadResponse, NotificationResponse, UnreadCountResponse
from ..store import DirectoryStore
from ..use_cases.notifications import (
    list_notifications_use_case,
    mark_all_read_use_case,
    mark_notification_read_use_case,
    unread_count_use_case,
)

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("", response_model=list[NotificationResponse])
def get_notifications(
    unread: bool = False,
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    current_user: User = Depends(get_current_user),
    store: DirectoryStore = Depends(get_store),
):
    """Caller's notifications, most recent first."""
    rows = list_notifications_use_case(
        store=store,
        current_user=current_user,
        unread_only=unread,
        limit=limit,
        offset=offset,
    )
    return [NotificationResponse.model_validate(n) for n in rows]


@router.get("/unread-count", response_model=UnreadCountResponse)
def get_unread_count(
    current_user: User = Depends(get_current_user),
    store: DirectoryStore = Depends(get_store),
):
    return UnreadCountResponse(unread=unread_count_use_case(store=store, current_user=current_user))


@router.post("/{notification_id}/read", response_model=NotificationResponse)
def mark_read(
    notification_id: UUID,
    current_user: User = Depends(get_current_user),
    store: DirectoryStore = Depends(get_store),
):
    notification = mark_notification_read_use_case(
        store=store,
        current_user=current_user,
        notification_id=notification_id,
    )
    return NotificationResponse.model_validate(notification)


@router.post("/read-all", response_model=MarkAllReadResponse)
def mark_all_read(
    current_user: User = Depends(get_current_user),
    store: DirectoryStore = Depends(get_store),
):
    return MarkAllReadResponse(updated=mark_all_read_use_case(store=store, current_user=current_user))
