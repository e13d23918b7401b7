"""
merit.services.event_service — Append-Only Event Log
=====================================================

Writers call :func:`record_event` inside their own transaction, so an
event is committed exactly when the state change it describes is.  The
read side serves user feeds, the admin search, and counters.  Nothing in
the domain reads events back to make decisions.
"""

from __future__ import annotations

import logging
from datetime import UTC, date, datetime, timedelta
from typing import TYPE_CHECKING, Any

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from merit.constants import FEED_FALLBACK_DAYS, MONTH_DAYS, WEEK_DAYS
from merit.database.models import Event, EventType, User
from merit.engine.leaderboard import page_offset
from merit.errors import NotFoundError, ValidationError

if TYPE_CHECKING:
    from sqlalchemy import Engine

logger = logging.getLogger(__name__)


def _jsonable(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [_jsonable(v) for v in value]
    return value


# ---------------------------------------------------------------------------
# Write side
# ---------------------------------------------------------------------------
def record_event(
    session: Session,
    *,
    organization_id: int,
    event_type: EventType,
    message: str,
    user_id: int | None = None,
    payload: dict | None = None,
) -> Event:
    """Append an event within the caller's transaction."""
    event = Event(
        organization_id=organization_id,
        user_id=user_id,
        event_type=str(event_type),
        message=message,
        payload=_jsonable(payload or {}),
        timestamp=datetime.now(UTC),
    )
    session.add(event)
    logger.debug("Event %s user=%s: %s", event_type, user_id, message)
    return event


def event_to_dict(event: Event) -> dict:
    return {
        "id": event.id,
        "organization_id": event.organization_id,
        "user_id": event.user_id,
        "event_type": event.event_type,
        "message": event.message,
        "payload": event.payload or {},
        "timestamp": event.timestamp.isoformat() if event.timestamp else None,
    }


# ---------------------------------------------------------------------------
# Read side
# ---------------------------------------------------------------------------
def user_events(
    engine: Engine,
    user_id: int,
    *,
    since: datetime | None = None,
    limit: int = 50,
) -> list[dict]:
    """Most recent events for one user, newest first."""
    with Session(engine) as session:
        stmt = select(Event).where(Event.user_id == user_id)
        if since is not None:
            stmt = stmt.where(Event.timestamp >= since)
        rows = session.scalars(
            stmt.order_by(Event.timestamp.desc(), Event.id.desc()).limit(limit)
        ).all()
        return [event_to_dict(e) for e in rows]


def feed_since_last_login(engine: Engine, user_id: int, *, limit: int = 50) -> list[dict]:
    """Events since the user's previous login (last week if never logged in)."""
    with Session(engine) as session:
        user = session.get(User, user_id)
        if user is None:
            raise NotFoundError(f"User not found: {user_id}")
        since = user.last_login or datetime.now(UTC) - timedelta(days=FEED_FALLBACK_DAYS)
    return user_events(engine, user_id, since=since, limit=limit)


def organization_events(
    engine: Engine, organization_id: int, *, page: int = 1, page_size: int = 50
) -> list[dict]:
    """Organization-wide activity feed, newest first."""
    offset = page_offset(page, page_size)
    with Session(engine) as session:
        rows = session.scalars(
            select(Event)
            .where(Event.organization_id == organization_id)
            .order_by(Event.timestamp.desc(), Event.id.desc())
            .offset(offset)
            .limit(page_size)
        ).all()
        return [event_to_dict(e) for e in rows]


def search_events(
    engine: Engine,
    organization_id: int,
    *,
    event_type: str | None = None,
    user_id: int | None = None,
    since: datetime | None = None,
    until: datetime | None = None,
    page: int = 1,
    page_size: int = 50,
) -> dict:
    """Admin search with optional type / user / time-range filters.

    Returns ``{"items": [...], "total": n, "page": p, "page_size": s}``.
    """
    offset = page_offset(page, page_size)
    if event_type is not None and event_type not in EventType.__members__:
        raise ValidationError(f"Unknown event type: {event_type}")
    if since is not None and until is not None and since > until:
        raise ValidationError("since must not be after until")

    filters = [Event.organization_id == organization_id]
    if event_type is not None:
        filters.append(Event.event_type == event_type)
    if user_id is not None:
        filters.append(Event.user_id == user_id)
    if since is not None:
        filters.append(Event.timestamp >= since)
    if until is not None:
        filters.append(Event.timestamp <= until)

    with Session(engine) as session:
        total = session.scalar(select(func.count(Event.id)).where(*filters)) or 0
        rows = session.scalars(
            select(Event)
            .where(*filters)
            .order_by(Event.timestamp.desc(), Event.id.desc())
            .offset(offset)
            .limit(page_size)
        ).all()
        return {
            "items": [event_to_dict(e) for e in rows],
            "total": total,
            "page": page,
            "page_size": page_size,
        }


def event_statistics(
    engine: Engine, organization_id: int, *, now: datetime | None = None
) -> dict:
    """Event counts: all time, today (UTC), last 7 days, last 30 days."""
    now = now or datetime.now(UTC)
    start_of_today = now.replace(hour=0, minute=0, second=0, microsecond=0)

    def _count(session: Session, since: datetime | None) -> int:
        stmt = select(func.count(Event.id)).where(Event.organization_id == organization_id)
        if since is not None:
            stmt = stmt.where(Event.timestamp >= since)
        return session.scalar(stmt) or 0

    with Session(engine) as session:
        return {
            "total_events": _count(session, None),
            "today_events": _count(session, start_of_today),
            "week_events": _count(session, now - timedelta(days=WEEK_DAYS)),
            "month_events": _count(session, now - timedelta(days=MONTH_DAYS)),
        }
