"""
merit.services.user_service — User Store & Hierarchy
=====================================================

Registration, profile edits, CSV user import and the identity checks the
workflow relies on (direct manager, admin role, access to another user's
data).  Point totals and ranks are *not* written here; see
:mod:`merit.services.points_service`.

The manager hierarchy is a forest keyed by employee id.  Any edit that
would make a user their own (indirect) manager is rejected.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import asdict
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from merit.constants import MSG_USER_REGISTERED
from merit.database.engine import commit_or_conflict
from merit.database.models import (
    CaptureMethod,
    EventType,
    Organization,
    RankConfiguration,
    User,
    UserRole,
)
from merit.engine.leaderboard import page_offset
from merit.engine.ranks import rank_progress
from merit.engine.workflow import creates_cycle, is_direct_manager as _is_direct_manager
from merit.errors import ConflictError, MeritError, NotFoundError, ValidationError
from merit.services import catalog_service, event_service, mission_service
from merit.services.csv_import import ImportResult, cell
from merit.services.event_service import record_event

if TYPE_CHECKING:
    from sqlalchemy import Engine

logger = logging.getLogger(__name__)

_UNSET: Any = object()


# ---------------------------------------------------------------------------
# Session-level helpers
# ---------------------------------------------------------------------------
def load_user(session: Session, user_id: int) -> User:
    user = session.get(User, user_id)
    if user is None:
        raise NotFoundError(f"User not found: {user_id}")
    return user


def find_by_employee_id(
    session: Session, organization_id: int, employee_id: str
) -> User | None:
    return session.scalar(
        select(User).where(
            User.organization_id == organization_id, User.employee_id == employee_id
        )
    )


def _manager_map(session: Session, organization_id: int) -> dict[str, str | None]:
    rows = session.execute(
        select(User.employee_id, User.manager_employee_id).where(
            User.organization_id == organization_id
        )
    ).all()
    return {emp: mgr for emp, mgr in rows}


def _check_manager(
    session: Session,
    organization_id: int,
    employee_id: str,
    manager_employee_id: str | None,
    manager_of: dict[str, str | None] | None = None,
) -> None:
    """Validate a manager assignment for *employee_id*.

    The manager need not be registered yet (imports may list reports before
    their managers); only self-reference and cycles are rejected.
    """
    if manager_employee_id is None:
        return
    if manager_employee_id == employee_id:
        raise ValidationError("A user cannot be their own manager")
    if manager_of is None:
        manager_of = _manager_map(session, organization_id)
    if creates_cycle(employee_id, manager_employee_id, manager_of):
        raise ValidationError("Manager assignment would create a cycle")


def _parse_role(role: str | None) -> UserRole:
    if role is None or not str(role).strip():
        return UserRole.USER
    value = str(role).strip().upper()
    if value not in UserRole.__members__:
        raise ValidationError(f"Unknown role: {role}")
    return UserRole(value)


def _new_user(
    session: Session,
    organization_id: int,
    *,
    employee_id: str,
    name: str,
    surname: str,
    manager_employee_id: str | None,
    role: UserRole,
) -> User:
    """Insert a user and its USER_REGISTERED event (no commit)."""
    if find_by_employee_id(session, organization_id, employee_id) is not None:
        raise ConflictError(f"Employee ID already exists: {employee_id}")
    user = User(
        organization_id=organization_id,
        employee_id=employee_id,
        name=name,
        surname=surname,
        manager_employee_id=manager_employee_id,
        role=role,
        total_points=0,
    )
    try:
        with session.begin_nested():
            session.add(user)
            session.flush()
    except IntegrityError as exc:
        raise ConflictError(f"Employee ID already exists: {employee_id}") from exc

    record_event(
        session,
        organization_id=organization_id,
        user_id=user.id,
        event_type=EventType.USER_REGISTERED,
        message=MSG_USER_REGISTERED % user.full_name,
        payload={"employee_id": employee_id, "role": str(role)},
    )
    logger.info("Registered user %s (id=%d) in org %d", employee_id, user.id, organization_id)
    return user


# ---------------------------------------------------------------------------
# Registration & profile
# ---------------------------------------------------------------------------
def register_user(
    engine: Engine,
    organization_id: int,
    *,
    employee_id: str,
    name: str,
    surname: str = "",
    manager_employee_id: str | None = None,
    role: str | None = None,
) -> User:
    """Create a user in *organization_id*.

    Raises
    ------
    NotFoundError
        If the organization doesn't exist.
    ConflictError
        If the employee id is already registered in the organization.
    ValidationError
        On blank fields, an unknown role, or a manager cycle.
    """
    if not employee_id or not str(employee_id).strip():
        raise ValidationError("Employee ID is required")
    if not name or not str(name).strip():
        raise ValidationError("Name is required")
    employee_id = str(employee_id).strip()
    with Session(engine, expire_on_commit=False) as session:
        if session.get(Organization, organization_id) is None:
            raise NotFoundError(f"Organization not found: {organization_id}")
        if find_by_employee_id(session, organization_id, employee_id) is not None:
            raise ConflictError(f"Employee ID already exists: {employee_id}")
        _check_manager(session, organization_id, employee_id, manager_employee_id or None)
        user = _new_user(
            session,
            organization_id,
            employee_id=employee_id,
            name=name.strip(),
            surname=(surname or "").strip(),
            manager_employee_id=manager_employee_id or None,
            role=_parse_role(role),
        )
        commit_or_conflict(session)
        session.refresh(user)
        session.expunge(user)
        return user


def get_user(engine: Engine, user_id: int) -> User:
    with Session(engine, expire_on_commit=False) as session:
        user = load_user(session, user_id)
        session.expunge(user)
        return user


def list_users(
    engine: Engine, organization_id: int, *, page: int = 1, page_size: int = 50
) -> list[User]:
    offset = page_offset(page, page_size)
    with Session(engine, expire_on_commit=False) as session:
        rows = list(session.scalars(
            select(User)
            .where(User.organization_id == organization_id)
            .order_by(User.surname, User.name, User.id)
            .offset(offset)
            .limit(page_size)
        ).all())
        session.expunge_all()
        return rows


def update_profile(
    engine: Engine,
    user_id: int,
    *,
    name: str | None = None,
    surname: str | None = None,
    manager_employee_id: str | None = _UNSET,
    role: str | None = None,
) -> User:
    """Edit name / surname / manager / role.  Points and rank are untouched.

    Pass ``manager_employee_id=None`` to clear the manager.
    """
    with Session(engine, expire_on_commit=False) as session:
        user = session.scalars(
            select(User).where(User.id == user_id).with_for_update()
        ).first()
        if user is None:
            raise NotFoundError(f"User not found: {user_id}")
        if name is not None:
            if not name.strip():
                raise ValidationError("Name is required")
            user.name = name.strip()
        if surname is not None:
            user.surname = surname.strip()
        if role is not None:
            user.role = _parse_role(role)
        if manager_employee_id is not _UNSET:
            manager_employee_id = manager_employee_id or None
            _check_manager(
                session, user.organization_id, user.employee_id, manager_employee_id
            )
            user.manager_employee_id = manager_employee_id
        commit_or_conflict(session)
        session.refresh(user)
        session.expunge(user)
        logger.info("Updated profile of user %d", user.id)
        return user


def record_login(engine: Engine, user_id: int) -> datetime | None:
    """Stamp ``last_login``; returns the previous value."""
    with Session(engine) as session:
        user = load_user(session, user_id)
        previous = user.last_login
        user.last_login = datetime.now(UTC)
        commit_or_conflict(session)
        return previous


# ---------------------------------------------------------------------------
# Hierarchy & access
# ---------------------------------------------------------------------------
def direct_reports(engine: Engine, manager_id: int) -> list[User]:
    with Session(engine, expire_on_commit=False) as session:
        manager = load_user(session, manager_id)
        rows = list(session.scalars(
            select(User)
            .where(
                User.organization_id == manager.organization_id,
                User.manager_employee_id == manager.employee_id,
                User.id != manager.id,
            )
            .order_by(User.surname, User.name, User.id)
        ).all())
        session.expunge_all()
        return rows


def is_direct_manager(engine: Engine, manager_id: int, subordinate_id: int) -> bool:
    with Session(engine) as session:
        manager = session.get(User, manager_id)
        subordinate = session.get(User, subordinate_id)
        return _is_direct_manager(manager, subordinate)


def organization_of(engine: Engine, user_id: int) -> int:
    with Session(engine) as session:
        return load_user(session, user_id).organization_id


def has_admin_role(engine: Engine, user_id: int, organization_id: int) -> bool:
    with Session(engine) as session:
        user = session.get(User, user_id)
        return (
            user is not None
            and user.organization_id == organization_id
            and user.role == UserRole.ADMIN
        )


def can_access_user(engine: Engine, viewer_id: int, target_id: int) -> bool:
    """Self, an admin of the same organization, or the direct manager."""
    if viewer_id == target_id:
        return True
    with Session(engine) as session:
        viewer = session.get(User, viewer_id)
        target = session.get(User, target_id)
        if viewer is None or target is None:
            return False
        if viewer.organization_id != target.organization_id:
            return False
        return viewer.role == UserRole.ADMIN or _is_direct_manager(viewer, target)


# ---------------------------------------------------------------------------
# Rank info
# ---------------------------------------------------------------------------
def rank_info(engine: Engine, user_id: int) -> dict:
    """Current rank, next rank and the distance to it."""
    with Session(engine) as session:
        user = load_user(session, user_id)
        ranks = session.scalars(
            select(RankConfiguration).where(
                RankConfiguration.organization_id == user.organization_id
            )
        ).all()
        current = next((r for r in ranks if r.id == user.current_rank_id), None)
        return asdict(rank_progress(current, ranks, user.total_points))


# ---------------------------------------------------------------------------
# CSV import
# ---------------------------------------------------------------------------
def import_users(
    engine: Engine, organization_id: int, rows: Iterable[Sequence[str]]
) -> ImportResult:
    """Register users from parsed CSV rows.

    Columns: ``employee_id, name, surname, manager_employee_id[, role]``.
    Each row commits on its own; failures are reported as ``Line N: …``
    with *N* the 1-based data row.
    """
    result = ImportResult()
    with Session(engine) as session:
        if session.get(Organization, organization_id) is None:
            raise NotFoundError(f"Organization not found: {organization_id}")

    for line, row in enumerate(rows, start=1):
        row = list(row)
        try:
            if len(row) < 4:
                raise ValidationError("Expected at least 4 columns")
            employee_id = cell(row, 0)
            name = cell(row, 1)
            if employee_id is None or name is None:
                raise ValidationError("Employee ID and name are required")
            manager_ref = cell(row, 3)
            with Session(engine) as session:
                _check_manager(session, organization_id, employee_id, manager_ref)
                _new_user(
                    session,
                    organization_id,
                    employee_id=employee_id,
                    name=name,
                    surname=cell(row, 2) or "",
                    manager_employee_id=manager_ref,
                    role=_parse_role(cell(row, 4)),
                )
                commit_or_conflict(session)
            result.record_success()
        except MeritError as exc:
            logger.warning("User import line %d failed: %s", line, exc)
            result.record_failure(line, str(exc))

    logger.info(
        "User import into org %d: %d/%d succeeded",
        organization_id, result.succeeded, result.total,
    )
    return result


def user_to_dict(user: User) -> dict:
    return {
        "id": user.id,
        "organization_id": user.organization_id,
        "employee_id": user.employee_id,
        "name": user.name,
        "surname": user.surname,
        "full_name": user.full_name,
        "manager_employee_id": user.manager_employee_id,
        "role": user.role,
        "total_points": user.total_points,
        "current_rank_id": user.current_rank_id,
        "last_login": user.last_login.isoformat() if user.last_login else None,
    }


def count_users(engine: Engine, organization_id: int) -> int:
    with Session(engine) as session:
        return session.scalar(
            select(func.count(User.id)).where(User.organization_id == organization_id)
        ) or 0


# ---------------------------------------------------------------------------
# Dashboard
# ---------------------------------------------------------------------------
def dashboard(engine: Engine, user_id: int, *, recent_events: int = 10) -> dict:
    """Everything the home screen needs for one user in a single payload."""
    user = get_user(engine, user_id)
    capturable = catalog_service.list_action_types(
        engine, user.organization_id, capture_method=CaptureMethod.UI
    )
    return {
        "user": user_to_dict(user),
        "rank": rank_info(engine, user.id),
        "missions": mission_service.mission_progress(engine, user.id),
        "badges": mission_service.earned_badges(engine, user.id),
        "action_types": [catalog_service.action_type_to_dict(at) for at in capturable],
        "recent_events": event_service.user_events(engine, user.id, limit=recent_events),
    }
