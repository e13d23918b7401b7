"""
merit.services.leaderboard_service — Leaderboard Queries
=========================================================

Read-only views over users' point totals.  Nothing here writes.

Ordering everywhere: points descending, then user id ascending.  A user's
position is one plus the number of users in the organization with strictly
more points, so tied users share a position (1, 2, 2, 4, …).
"""

from __future__ import annotations

import logging
from calendar import monthrange
from dataclasses import asdict
from datetime import date
from typing import TYPE_CHECKING

from sqlalchemy import and_, func, select
from sqlalchemy.orm import Session

from merit.constants import podium_badge
from merit.database.models import (
    Action,
    ActionStatus,
    ActionType,
    Organization,
    RankConfiguration,
    User,
)
from merit.engine.leaderboard import (
    competition_positions,
    nearby_window,
    page_offset,
    position_for,
    summarize,
)
from merit.engine.ranks import rank_distribution
from merit.errors import NotFoundError, ValidationError

if TYPE_CHECKING:
    from sqlalchemy import Engine

logger = logging.getLogger(__name__)


def _entry(user: User, rank: RankConfiguration | None, position: int, points: int) -> dict:
    return {
        "position": position,
        "badge": podium_badge(position),
        "user_id": user.id,
        "employee_id": user.employee_id,
        "full_name": user.full_name,
        "points": points,
        "rank_id": rank.id if rank else None,
        "rank_name": rank.name if rank else None,
        "insignia": rank.insignia if rank else None,
    }


def _require_org(session: Session, organization_id: int) -> None:
    if session.get(Organization, organization_id) is None:
        raise NotFoundError(f"Organization not found: {organization_id}")


def _ordered(organization_id: int):
    return (
        select(User, RankConfiguration)
        .outerjoin(RankConfiguration, RankConfiguration.id == User.current_rank_id)
        .where(User.organization_id == organization_id)
        .order_by(User.total_points.desc(), User.id)
    )


def _count_greater(session: Session, organization_id: int, points: int) -> int:
    return session.scalar(
        select(func.count(User.id)).where(
            User.organization_id == organization_id, User.total_points > points
        )
    ) or 0


def _count_users(session: Session, organization_id: int) -> int:
    return session.scalar(
        select(func.count(User.id)).where(User.organization_id == organization_id)
    ) or 0


def _slice(session: Session, organization_id: int, offset: int, limit: int) -> list[dict]:
    rows = session.execute(_ordered(organization_id).offset(offset).limit(limit)).all()
    if not rows:
        return []
    points = [u.total_points for u, _ in rows]
    first = position_for(_count_greater(session, organization_id, points[0]))
    positions = competition_positions(points, offset=offset, first_position=first)
    return [
        _entry(user, rank, pos, user.total_points)
        for (user, rank), pos in zip(rows, positions)
    ]


# ---------------------------------------------------------------------------
# All-time leaderboard
# ---------------------------------------------------------------------------
def leaderboard(
    engine: Engine, organization_id: int, *, page: int = 1, page_size: int = 20
) -> dict:
    """One page of the all-time leaderboard (1-based pages)."""
    offset = page_offset(page, page_size)
    with Session(engine) as session:
        _require_org(session, organization_id)
        total = _count_users(session, organization_id)
        return {
            "entries": _slice(session, organization_id, offset, page_size),
            "page": page,
            "page_size": page_size,
            "total_users": total,
        }


def user_position(
    engine: Engine, organization_id: int, user_id: int, *, window: int = 5
) -> dict:
    """The user's position plus the leaderboard rows within *window* of it."""
    with Session(engine) as session:
        user = session.get(User, user_id)
        if user is None or user.organization_id != organization_id:
            raise NotFoundError(f"User not found: {user_id}")
        rank = session.get(RankConfiguration, user.current_rank_id) if user.current_rank_id else None

        greater = _count_greater(session, organization_id, user.total_points)
        tied_before = session.scalar(
            select(func.count(User.id)).where(
                User.organization_id == organization_id,
                User.total_points == user.total_points,
                User.id < user.id,
            )
        ) or 0
        index = greater + tied_before
        total = _count_users(session, organization_id)
        start, stop = nearby_window(index, total, window)

        return {
            "user_id": user.id,
            "position": position_for(greater),
            "total_users": total,
            "points": user.total_points,
            "rank_id": rank.id if rank else None,
            "rank_name": rank.name if rank else None,
            "insignia": rank.insignia if rank else None,
            "nearby": _slice(session, organization_id, start, stop - start),
        }


def statistics(engine: Engine, organization_id: int) -> dict:
    """Totals, active users (points > 0), mean points and the top scorer."""
    with Session(engine) as session:
        _require_org(session, organization_id)
        points = list(session.scalars(
            select(User.total_points).where(User.organization_id == organization_id)
        ).all())
        top = session.scalars(
            select(User)
            .where(User.organization_id == organization_id)
            .order_by(User.total_points.desc(), User.id)
            .limit(1)
        ).first()
        stats = summarize(
            points,
            top_scorer_name=top.full_name if top else None,
            top_scorer_points=top.total_points if top else None,
        )
        return asdict(stats)


def rank_statistics(engine: Engine, organization_id: int) -> dict:
    """How many users hold each active rank."""
    with Session(engine) as session:
        _require_org(session, organization_id)
        ranks = session.scalars(
            select(RankConfiguration).where(
                RankConfiguration.organization_id == organization_id
            )
        ).all()
        counts = dict(session.execute(
            select(User.current_rank_id, func.count(User.id))
            .where(
                User.organization_id == organization_id,
                User.current_rank_id.is_not(None),
            )
            .group_by(User.current_rank_id)
        ).all())
        points = list(session.scalars(
            select(User.total_points).where(User.organization_id == organization_id)
        ).all())
        return {
            "distribution": rank_distribution(ranks, counts),
            "total_users": len(points),
            "average_points": round(sum(points) / len(points)) if points else 0,
        }


# ---------------------------------------------------------------------------
# Monthly leaderboard
# ---------------------------------------------------------------------------
def monthly_leaderboard(
    engine: Engine,
    organization_id: int,
    year: int,
    month: int,
    *,
    page: int = 1,
    page_size: int = 20,
) -> dict:
    """Leaderboard of points from actions approved for the given month.

    A user's monthly score is the sum of the action-type points of their
    ``APPROVED`` actions whose action date falls in the month.  Mission
    bonuses and manual awards are not attributed to a month.  Users with
    no such actions appear with zero.
    """
    if not 1 <= month <= 12:
        raise ValidationError(f"Invalid month: {month}")
    offset = page_offset(page, page_size)
    first_day = date(year, month, 1)
    last_day = date(year, month, monthrange(year, month)[1])

    monthly = (
        select(
            Action.user_id.label("user_id"),
            func.sum(ActionType.points).label("points"),
        )
        .join(ActionType, ActionType.id == Action.action_type_id)
        .where(
            Action.organization_id == organization_id,
            Action.status == ActionStatus.APPROVED,
            and_(Action.action_date >= first_day, Action.action_date <= last_day),
        )
        .group_by(Action.user_id)
        .subquery()
    )
    score = func.coalesce(monthly.c.points, 0)

    with Session(engine) as session:
        _require_org(session, organization_id)
        rows = session.execute(
            select(User, RankConfiguration, score)
            .outerjoin(monthly, monthly.c.user_id == User.id)
            .outerjoin(RankConfiguration, RankConfiguration.id == User.current_rank_id)
            .where(User.organization_id == organization_id)
            .order_by(score.desc(), User.id)
        ).all()

    scores = [int(s) for _, _, s in rows]
    positions = competition_positions(scores)
    entries = [
        _entry(user, rank, pos, pts)
        for (user, rank, _), pos, pts in zip(rows, positions, scores)
    ]
    return {
        "year": year,
        "month": month,
        "entries": entries[offset:offset + page_size],
        "page": page,
        "page_size": page_size,
        "total_users": len(entries),
    }
