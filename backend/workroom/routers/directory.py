"""Directory endpoints: team listing, onboarding, profile edits and CSV import/export."""

from uuid import UUID

from fastapi import APIRouter, Depends, File, Response, UploadFile, status
from starlette.concurrency import run_in_threadpool

from ..auth import get_current_user
from ..config import settings
from ..database import get_store
from ..domain_errors import DomainError
from ..models import User
from ..schemas import (
    ImportResponse,
    MemberActiveUpdate,
    MemberCreate,
    MemberUpdate,
    OnboardResponse,
    SkippedRowResponse,
    TeammateResponse,
    UserResponse,
)
from ..store import DirectoryStore
from ..use_cases.team import (
    export_members_use_case,
    import_members_use_case,
    list_assignees_use_case,
    list_managers_use_case,
    list_team_use_case,
    onboard_member_use_case,
    set_member_active_use_case,
    update_member_profile_use_case,
)

router = APIRouter(prefix="/directory", tags=["directory"])


@router.get("/teammates", response_model=list[TeammateResponse])
def list_teammates(
    current_user: User = Depends(get_current_user),
    store: DirectoryStore = Depends(get_store),
):
    """Teammates visible to the caller (admin: all, manager: direct reports)."""
    return [TeammateResponse.model_validate(t) for t in list_team_use_case(store=store, current_user=current_user)]


@router.get("/assignees", response_model=list[TeammateResponse])
def list_assignees(
    current_user: User = Depends(get_current_user),
    store: DirectoryStore = Depends(get_store),
):
    return [TeammateResponse.model_validate(t) for t in list_assignees_use_case(store=store, current_user=current_user)]


@router.get("/managers", response_model=list[UserResponse])
def list_managers(
    current_user: User = Depends(get_current_user),
    store: DirectoryStore = Depends(get_store),
):
    return [UserResponse.model_validate(u) for u in list_managers_use_case(store=store, current_user=current_user)]


@router.post("/members", response_model=OnboardResponse, status_code=status.HTTP_201_CREATED)
def onboard_member(
    payload: MemberCreate,
    current_user: User = Depends(get_current_user),
    store: DirectoryStore = Depends(get_store),
):
    user, teammate = onboard_member_use_case(
        store=store,
        current_user=current_user,
        name=payload.name,
        username=payload.username,
        role=payload.role,
        email=payload.email,
        contact=payload.contact,
        job_profile=payload.job_profile,
        skills=payload.skills,
        manager_id=payload.manager_id,
    )
    return OnboardResponse(
        user=UserResponse.model_validate(user),
        teammate=TeammateResponse.model_validate(teammate) if teammate else None,
    )


@router.patch("/members/{teammate_id}", response_model=TeammateResponse)
def update_member(
    teammate_id: UUID,
    payload: MemberUpdate,
    current_user: User = Depends(get_current_user),
    store: DirectoryStore = Depends(get_store),
):
    teammate = update_member_profile_use_case(
        store=store,
        current_user=current_user,
        teammate_id=teammate_id,
        changes=payload.model_dump(exclude_unset=True),
    )
    return TeammateResponse.model_validate(teammate)


@router.put("/members/{teammate_id}/active", response_model=TeammateResponse)
def set_member_active(
    teammate_id: UUID,
    payload: MemberActiveUpdate,
    current_user: User = Depends(get_current_user),
    store: DirectoryStore = Depends(get_store),
):
    teammate = set_member_active_use_case(
        store=store,
        current_user=current_user,
        teammate_id=teammate_id,
        is_active=payload.is_active,
    )
    return TeammateResponse.model_validate(teammate)


@router.post("/import", response_model=ImportResponse)
async def import_members(
    file: UploadFile = File(...),
    current_user: User = Depends(get_current_user),
    store: DirectoryStore = Depends(get_store),
):
    """Bulk import staff from CSV (header row, then one member per line)."""
    try:
        raw = await file.read(settings.IMPORT_MAX_BYTES + 1)
    finally:
        await file.close()
    if len(raw) > settings.IMPORT_MAX_BYTES:
        raise DomainError(
            code="IMPORT_TOO_LARGE",
            http_status=413,
            message="Import file is too large",
            details={"max_bytes": settings.IMPORT_MAX_BYTES},
        )
    try:
        text = raw.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise DomainError(
            code="IMPORT_MALFORMED",
            http_status=400,
            message="Import file must be UTF-8 text",
        ) from exc

    # The use case waits on the tenant lock; keep it off the event loop.
    report = await run_in_threadpool(
        import_members_use_case,
        store=store,
        current_user=current_user,
        text=text,
    )
    return ImportResponse(
        created=report.created,
        skipped=[SkippedRowResponse.model_validate(row) for row in report.skipped],
        unresolved_managers=report.unresolved_managers,
    )


@router.get("/export")
def export_members(
    current_user: User = Depends(get_current_user),
    store: DirectoryStore = Depends(get_store),
):
    content = export_members_use_case(store=store, current_user=current_user)
    return Response(
        content=content,
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": 'attachment; filename="staff_backup.csv"'},
    )
