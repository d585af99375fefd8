"""Staff directory import/export as CSV with manager-chain resolution.

Import stages every member first and links managers afterwards, so a manager may
appear anywhere in the file relative to the people reporting to them.

A ManagerUsername only links to a manager- or admin-role user other than the member
themselves. Anything else (unknown username, plain teammate, self reference) leaves
manager_id unset and the member is listed in ``unresolved_managers``.
"""
from __future__ import annotations

import csv
import io
import logging
from dataclasses import dataclass, field
from uuid import UUID, uuid4

from ..domain_errors import DomainError
from ..models import ROLE_DISPLAY, Role, Teammate, User
from ..store import TenantWorkspace

logger = logging.getLogger(__name__)

CSV_HEADER: tuple[str, ...] = (
    "Name",
    "Username",
    "Email",
    "Contact",
    "Role",
    "JobProfile",
    "Skills",
    "ManagerUsername",
)
# ManagerUsername may be omitted entirely on a row.
MIN_ROW_FIELDS = len(CSV_HEADER) - 1
MANAGER_ROLES: frozenset[Role] = frozenset({Role.MANAGER, Role.ADMIN})


@dataclass(frozen=True)
class MemberRow:
    line_no: int
    name: str
    username: str
    email: str
    contact: str
    role: Role
    job_profile: str
    skills: str
    manager_username: str


@dataclass(frozen=True)
class SkippedRow:
    line_no: int
    username: str
    reason: str


@dataclass
class ImportReport:
    created: list[str] = field(default_factory=list)
    skipped: list[SkippedRow] = field(default_factory=list)
    unresolved_managers: list[str] = field(default_factory=list)

    @property
    def created_count(self) -> int:
        return len(self.created)


@dataclass
class _Staged:
    row: MemberRow
    user: User
    teammate: Teammate | None


def _read_records(text: str) -> list[list[str]]:
    try:
        return list(csv.reader(io.StringIO(text), delimiter=",", quotechar='"', skipinitialspace=True))
    except csv.Error as exc:
        raise DomainError(
            code="IMPORT_MALFORMED",
            http_status=400,
            message="Import file is not valid CSV",
            details={"error": str(exc)},
        ) from exc


def parse_member_rows(text: str) -> tuple[list[MemberRow], list[SkippedRow]]:
    """Parse the CSV body. Raises only when the file as a whole is unusable."""
    records = _read_records(text or "")
    if not records or len([c for c in records[0] if c.strip()]) < MIN_ROW_FIELDS:
        raise DomainError(
            code="IMPORT_MALFORMED",
            http_status=400,
            message="Import file must start with a header row",
            details={"expected": list(CSV_HEADER)},
        )

    rows: list[MemberRow] = []
    skipped: list[SkippedRow] = []
    for line_no, record in enumerate(records[1:], start=2):
        if not any(cell.strip() for cell in record):
            continue
        if len(record) < MIN_ROW_FIELDS:
            skipped.append(SkippedRow(line_no=line_no, username="", reason="too few fields"))
            continue
        cells = [cell.strip() for cell in record] + [""] * (len(CSV_HEADER) - len(record))
        name, username, email, contact, raw_role, job_profile, skills, manager_username = cells[: len(CSV_HEADER)]
        if not username:
            skipped.append(SkippedRow(line_no=line_no, username="", reason="missing username"))
            continue
        rows.append(
            MemberRow(
                line_no=line_no,
                name=name,
                username=username.lower(),
                email=email,
                contact=contact,
                role=Role.parse(raw_role),
                job_profile=job_profile,
                skills=skills,
                manager_username=manager_username.lower(),
            )
        )
    return rows, skipped


def import_members(
    workspace: TenantWorkspace,
    text: str,
    *,
    default_password: str,
) -> ImportReport:
    """Stage all rows, then resolve manager links, then commit to the workspace in one step."""
    rows, skipped = parse_member_rows(text)
    report = ImportReport(skipped=list(skipped))

    # Pass 1: nodes.
    taken: set[str] = {u.username.lower() for u in workspace.users}
    staged: list[_Staged] = []
    for row in rows:
        if row.username in taken:
            report.skipped.append(SkippedRow(line_no=row.line_no, username=row.username, reason="username exists"))
            continue
        taken.add(row.username)

        internal_id = uuid4()
        job_profile = row.job_profile or ROLE_DISPLAY[row.role]
        is_admin = row.role == Role.ADMIN
        user = User(
            id=internal_id,
            tenant_id=workspace.tenant_id,
            username=row.username,
            password=default_password,
            name=row.name,
            role=row.role,
            job_profile=job_profile,
            is_active=True,
            teammate_id=None if is_admin else internal_id,
        )
        teammate = None
        if not is_admin:
            teammate = Teammate(
                id=internal_id,
                tenant_id=workspace.tenant_id,
                name=row.name,
                job_profile=job_profile,
                contact=row.contact,
                email=row.email,
                username=row.username,
                skills=row.skills,
                is_active=True,
            )
        staged.append(_Staged(row=row, user=user, teammate=teammate))

    # Pass 2: edges, against existing + staged users.
    users_by_username: dict[str, User] = {u.username.lower(): u for u in workspace.users}
    users_by_username.update({s.user.username: s.user for s in staged})
    for item in staged:
        if item.teammate is None or not item.row.manager_username:
            continue
        manager = users_by_username.get(item.row.manager_username)
        if manager is None or manager.role not in MANAGER_ROLES or manager.id == item.user.id:
            report.unresolved_managers.append(item.row.username)
            continue
        item.teammate.manager_id = manager.id

    for item in staged:
        workspace.users.append(item.user)
        if item.teammate is not None:
            workspace.teammates.append(item.teammate)
        report.created.append(item.user.username)

    for row in report.skipped:
        logger.warning("Import row %s skipped (%s): %s", row.line_no, row.username or "-", row.reason)
    logger.info(
        "Imported %s members into tenant %s (%s skipped, %s unresolved managers)",
        report.created_count,
        workspace.tenant_id,
        len(report.skipped),
        len(report.unresolved_managers),
    )
    return report


def _member_role(workspace: TenantWorkspace, teammate: Teammate) -> Role:
    user = workspace.user_for_teammate(teammate.id)
    if user is None:
        user = workspace.user_by_username(teammate.username)
    return user.role if user is not None else Role.TEAMMATE


def _manager_username(workspace: TenantWorkspace, manager_id: UUID | None) -> str:
    manager = workspace.user_by_id(manager_id)
    return manager.username if manager is not None else ""


def export_members(workspace: TenantWorkspace) -> str:
    """One row per teammate; the inverse of import_members modulo internal ids."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, delimiter=",", quotechar='"', quoting=csv.QUOTE_MINIMAL, lineterminator="\n")
    writer.writerow(CSV_HEADER)
    for teammate in workspace.teammates:
        writer.writerow(
            [
                teammate.name,
                teammate.username,
                teammate.email,
                teammate.contact,
                _member_role(workspace, teammate).value,
                teammate.job_profile,
                teammate.skills,
                _manager_username(workspace, teammate.manager_id),
            ]
        )
    return buffer.getvalue()
