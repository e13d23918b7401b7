"""
merit.services.action_service — Action Workflow
================================================

Capture → (approve | reject) lifecycle for actions.

Whenever an action reaches ``APPROVED`` (on creation for approval-free
types and imports, or later through :func:`approve_action`) the same
cascade runs inside the same transaction:

    award points (+ promotion)  →  mission progress (+ bonus)  →  events

so a failure anywhere rolls the whole transition back.

Batch imports are the exception to all-or-nothing: each row commits on
its own and failures are collected into an :class:`ImportResult`.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from datetime import UTC, date, datetime, timedelta
from typing import TYPE_CHECKING

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from merit.config import MeritConfig, default_config
from merit.constants import (
    MONTH_DAYS,
    MSG_ACTION_APPROVED,
    MSG_ACTION_CAPTURED,
    MSG_ACTION_REJECTED,
    REASON_ACTION_APPROVED,
    WEEK_DAYS,
)
from merit.database.engine import commit_or_conflict
from merit.database.models import (
    Action,
    ActionStatus,
    ActionType,
    CaptureMethod,
    EventType,
    Organization,
    ReporterType,
    User,
)
from merit.engine.leaderboard import page_offset
from merit.engine.workflow import (
    check_capture_allowed,
    ensure_transition,
    initial_status,
    is_direct_manager,
    reporter_type_for,
)
from merit.errors import ConflictError, ForbiddenError, MeritError, NotFoundError, ValidationError
from merit.services import catalog_service
from merit.services.csv_import import ImportResult, cell
from merit.services.event_service import record_event
from merit.services.mission_service import apply_action_completed
from merit.services.points_service import apply_award, lock_user
from merit.services.user_service import find_by_employee_id, load_user

if TYPE_CHECKING:
    from sqlalchemy import Engine

logger = logging.getLogger(__name__)

DUPLICATE_MESSAGE = "Action already captured for this user, action type, and date"


# ---------------------------------------------------------------------------
# Internals
# ---------------------------------------------------------------------------
def _lock_action(session: Session, action_id: int) -> Action:
    action = session.scalars(
        select(Action).where(Action.id == action_id).with_for_update()
    ).first()
    if action is None:
        raise NotFoundError(f"Action not found: {action_id}")
    return action


def _ensure_not_duplicate(
    session: Session, organization_id: int, user_id: int, action_type_id: int, action_date: date
) -> None:
    existing = session.scalar(
        select(Action.id).where(
            Action.organization_id == organization_id,
            Action.user_id == user_id,
            Action.action_type_id == action_type_id,
            Action.action_date == action_date,
        )
    )
    if existing is not None:
        raise ConflictError(DUPLICATE_MESSAGE)


def _insert_action(session: Session, action: Action) -> None:
    """Insert inside a SAVEPOINT so a unique-constraint race becomes a Conflict."""
    try:
        with session.begin_nested():
            session.add(action)
            session.flush()
    except IntegrityError as exc:
        raise ConflictError(DUPLICATE_MESSAGE) from exc


def _on_approved(session: Session, user: User, action_type: ActionType) -> None:
    """Award points, then advance missions.  Caller holds *user* locked."""
    apply_award(session, user, action_type.points, REASON_ACTION_APPROVED % action_type.name)
    apply_action_completed(session, user, action_type.id)


def _capture(
    session: Session,
    *,
    user: User,
    action_type: ActionType,
    action_date: date,
    method: CaptureMethod,
    reporter_id: str,
    reporter_type: ReporterType,
    evidence: str | None,
    notes: str | None,
) -> Action:
    if not isinstance(action_date, date):
        raise ValidationError("Action date is required")
    check_capture_allowed(action_type, method, reporter_type)
    _ensure_not_duplicate(
        session, user.organization_id, user.id, action_type.id, action_date
    )

    status = initial_status(action_type.requires_manager_approval, method)
    action = Action(
        organization_id=user.organization_id,
        user_id=user.id,
        action_type_id=action_type.id,
        action_date=action_date,
        capture_method=str(method),
        reporter_id=str(reporter_id),
        reporter_type=str(reporter_type),
        status=status,
        evidence=evidence,
        notes=notes,
    )
    if status == ActionStatus.APPROVED:
        action.approved_at = datetime.now(UTC)
    _insert_action(session, action)

    record_event(
        session,
        organization_id=user.organization_id,
        user_id=user.id,
        event_type=EventType.ACTION_CAPTURED,
        message=MSG_ACTION_CAPTURED % action_type.name,
        payload={
            "action_id": action.id,
            "action_type_id": action_type.id,
            "action_date": action_date,
            "capture_method": str(method),
            "reporter_id": str(reporter_id),
            "reporter_type": str(reporter_type),
            "status": str(status),
        },
    )
    logger.info(
        "Captured action %d (%s) for user %d via %s → %s",
        action.id, action_type.name, user.id, method, status,
    )

    if status == ActionStatus.APPROVED:
        _on_approved(session, user, action_type)
    return action


def _finish(session: Session, action: Action) -> Action:
    commit_or_conflict(session)
    session.refresh(action)
    session.expunge(action)
    return action


# ---------------------------------------------------------------------------
# Capture (UI)
# ---------------------------------------------------------------------------
def capture_action(
    engine: Engine,
    organization_id: int,
    *,
    user_id: int,
    action_type_id: int,
    action_date: date,
    reporter_id: int,
    evidence: str | None = None,
    notes: str | None = None,
) -> Action:
    """Capture an action through the UI on behalf of *user_id*.

    The reporter's relationship to the user (self, direct manager, peer) is
    derived and must be allowed by the action type.  Approval-free types
    are approved, and points awarded, before this returns.

    Raises
    ------
    NotFoundError
        Unknown user, reporter or action type.
    ValidationError
        Action type inactive or not capturable through the UI.
    ForbiddenError
        Reporter outside the organization or reporter type not allowed.
    ConflictError
        Same user, action type and date already captured.
    """
    with Session(engine, expire_on_commit=False) as session:
        user = lock_user(session, user_id)
        if user.organization_id != organization_id:
            raise NotFoundError(f"User not found: {user_id}")
        action_type = catalog_service.get_action_type(session, organization_id, action_type_id)
        reporter = load_user(session, reporter_id)
        if reporter.organization_id != organization_id:
            raise ForbiddenError("Reporter does not belong to this organization")

        action = _capture(
            session,
            user=user,
            action_type=action_type,
            action_date=action_date,
            method=CaptureMethod.UI,
            reporter_id=str(reporter.id),
            reporter_type=reporter_type_for(reporter, user),
            evidence=evidence,
            notes=notes,
        )
        return _finish(session, action)


# ---------------------------------------------------------------------------
# Approve / reject
# ---------------------------------------------------------------------------
def approve_action(
    engine: Engine, action_id: int, approver_id: int, notes: str | None = None
) -> Action:
    """Approve a pending action; only the user's direct manager may do so."""
    with Session(engine, expire_on_commit=False) as session:
        action = _lock_action(session, action_id)
        approver = load_user(session, approver_id)
        user = lock_user(session, action.user_id)
        if not is_direct_manager(approver, user):
            raise ForbiddenError("Only the direct manager can approve this action")
        ensure_transition(action.status, ActionStatus.APPROVED)

        action_type = session.get(ActionType, action.action_type_id)
        action.status = ActionStatus.APPROVED
        action.approver_id = approver.id
        action.approval_notes = notes
        action.approved_at = datetime.now(UTC)

        _on_approved(session, user, action_type)
        record_event(
            session,
            organization_id=action.organization_id,
            user_id=user.id,
            event_type=EventType.ACTION_APPROVED,
            message=MSG_ACTION_APPROVED % action_type.name,
            payload={
                "action_id": action.id,
                "action_type_id": action_type.id,
                "approver_id": approver.id,
                "points": action_type.points,
            },
        )
        logger.info("Action %d approved by user %d", action.id, approver.id)
        return _finish(session, action)


def reject_action(engine: Engine, action_id: int, reviewer_id: int, reason: str) -> Action:
    """Reject a pending action.  No points are awarded."""
    if not reason or not reason.strip():
        raise ValidationError("A rejection reason is required")
    with Session(engine, expire_on_commit=False) as session:
        action = _lock_action(session, action_id)
        reviewer = load_user(session, reviewer_id)
        user = load_user(session, action.user_id)
        if not is_direct_manager(reviewer, user):
            raise ForbiddenError("Only the direct manager can reject this action")
        ensure_transition(action.status, ActionStatus.REJECTED)

        action_type = session.get(ActionType, action.action_type_id)
        action.status = ActionStatus.REJECTED
        action.approver_id = reviewer.id
        action.rejection_reason = reason.strip()
        action.approved_at = datetime.now(UTC)

        record_event(
            session,
            organization_id=action.organization_id,
            user_id=user.id,
            event_type=EventType.ACTION_REJECTED,
            message=MSG_ACTION_REJECTED % action_type.name,
            payload={
                "action_id": action.id,
                "action_type_id": action_type.id,
                "reviewer_id": reviewer.id,
                "reason": action.rejection_reason,
            },
        )
        logger.info("Action %d rejected by user %d", action.id, reviewer.id)
        return _finish(session, action)


# ---------------------------------------------------------------------------
# Batch import
# ---------------------------------------------------------------------------
def _parse_date(raw: str | None) -> date:
    if raw is None:
        raise ValidationError("Action date is required")
    try:
        return date.fromisoformat(raw)
    except ValueError as exc:
        raise ValidationError(f"Invalid action date: {raw}") from exc


def import_actions(
    engine: Engine,
    organization_id: int,
    rows: Iterable[Sequence[str]],
    *,
    config: MeritConfig | None = None,
) -> ImportResult:
    """Import approved actions from parsed CSV rows.

    Columns: ``employee_id, action_type, action_date[, evidence][, notes]``
    where ``action_type`` is the action type's name and ``action_date`` an
    ISO date.  Every row commits in its own transaction.
    """
    config = config or default_config()
    result = ImportResult()
    with Session(engine) as session:
        if session.get(Organization, organization_id) is None:
            raise NotFoundError(f"Organization not found: {organization_id}")

    for line, row in enumerate(rows, start=1):
        row = list(row)
        try:
            if len(row) < 3:
                raise ValidationError("Expected at least 3 columns")
            employee_id = cell(row, 0)
            type_name = cell(row, 1)
            if employee_id is None or type_name is None:
                raise ValidationError("Employee ID and action type are required")
            action_date = _parse_date(cell(row, 2))

            with Session(engine) as session:
                action_type = catalog_service.get_action_type_by_name(
                    session, organization_id, type_name
                )
                found = find_by_employee_id(session, organization_id, employee_id)
                if found is None:
                    raise NotFoundError(f"User not found: {employee_id}")
                user = lock_user(session, found.id)
                _capture(
                    session,
                    user=user,
                    action_type=action_type,
                    action_date=action_date,
                    method=CaptureMethod.IMPORT,
                    reporter_id=config.system_reporter_id,
                    reporter_type=ReporterType.SYSTEM,
                    evidence=cell(row, 3),
                    notes=cell(row, 4),
                )
                commit_or_conflict(session)
            result.record_success()
        except MeritError as exc:
            logger.warning("Action import line %d failed: %s", line, exc)
            result.record_failure(line, str(exc))

    logger.info(
        "Action import into org %d: %d/%d succeeded",
        organization_id, result.succeeded, result.total,
    )
    return result


# ---------------------------------------------------------------------------
# Read side
# ---------------------------------------------------------------------------
def action_to_dict(action: Action, action_type: ActionType | None = None) -> dict:
    out = {
        "id": action.id,
        "organization_id": action.organization_id,
        "user_id": action.user_id,
        "action_type_id": action.action_type_id,
        "action_date": action.action_date.isoformat(),
        "capture_method": action.capture_method,
        "reporter_id": action.reporter_id,
        "reporter_type": action.reporter_type,
        "status": action.status,
        "evidence": action.evidence,
        "notes": action.notes,
        "approver_id": action.approver_id,
        "approval_notes": action.approval_notes,
        "rejection_reason": action.rejection_reason,
        "approved_at": action.approved_at.isoformat() if action.approved_at else None,
    }
    if action_type is not None:
        out["action_type_name"] = action_type.name
        out["points"] = action_type.points
    return out


def get_action(engine: Engine, action_id: int) -> dict:
    with Session(engine) as session:
        action = session.get(Action, action_id)
        if action is None:
            raise NotFoundError(f"Action not found: {action_id}")
        return action_to_dict(action, action.action_type)


def action_history(
    engine: Engine, user_id: int, *, page: int = 1, page_size: int = 20
) -> list[dict]:
    """A user's actions, newest action date first."""
    offset = page_offset(page, page_size)
    with Session(engine) as session:
        load_user(session, user_id)
        rows = session.execute(
            select(Action, ActionType)
            .join(ActionType, ActionType.id == Action.action_type_id)
            .where(Action.user_id == user_id)
            .order_by(Action.action_date.desc(), Action.id.desc())
            .offset(offset)
            .limit(page_size)
        ).all()
        return [action_to_dict(a, at) for a, at in rows]


def pending_approvals(engine: Engine, manager_id: int) -> list[dict]:
    """Pending actions of the manager's direct reports, oldest first."""
    with Session(engine) as session:
        manager = load_user(session, manager_id)
        rows = session.execute(
            select(Action, ActionType)
            .join(ActionType, ActionType.id == Action.action_type_id)
            .join(User, User.id == Action.user_id)
            .where(
                Action.organization_id == manager.organization_id,
                Action.status == ActionStatus.PENDING_APPROVAL,
                User.manager_employee_id == manager.employee_id,
                User.id != manager.id,
            )
            .order_by(Action.action_date, Action.id)
        ).all()
        return [action_to_dict(a, at) for a, at in rows]


def action_statistics(
    engine: Engine,
    organization_id: int,
    *,
    user_id: int | None = None,
    today: date | None = None,
) -> dict:
    """Counts by status and by action-date window (today, 7 days, 30 days)."""
    today = today or datetime.now(UTC).date()
    filters = [Action.organization_id == organization_id]
    if user_id is not None:
        filters.append(Action.user_id == user_id)

    with Session(engine) as session:
        by_status = dict(session.execute(
            select(Action.status, func.count(Action.id))
            .where(*filters)
            .group_by(Action.status)
        ).all())

        def _since(start: date) -> int:
            return session.scalar(
                select(func.count(Action.id)).where(
                    *filters, Action.action_date >= start, Action.action_date <= today
                )
            ) or 0

        return {
            "total_actions": sum(by_status.values()),
            "pending_actions": by_status.get(ActionStatus.PENDING_APPROVAL, 0),
            "approved_actions": by_status.get(ActionStatus.APPROVED, 0),
            "rejected_actions": by_status.get(ActionStatus.REJECTED, 0),
            "today_actions": _since(today),
            "week_actions": _since(today - timedelta(days=WEEK_DAYS - 1)),
            "month_actions": _since(today - timedelta(days=MONTH_DAYS - 1)),
        }
