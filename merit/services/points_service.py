"""
merit.services.points_service — Points & Rank Engine
=====================================================

The only code path that writes ``User.total_points`` or
``User.current_rank_id``.  Every award (approved action, imported action,
mission bonus, manual grant) flows through :func:`apply_award`, which:

    1. adds the amount to the user's running total,
    2. appends ``POINTS_AWARDED``,
    3. moves the user to the highest eligible active rank (never down) and
       appends ``RANK_PROMOTED`` when that changes anything.

Callers must hold the user row locked (see :func:`lock_user`) for the
lifetime of their transaction, which serializes awards per user.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from sqlalchemy import select
from sqlalchemy.orm import Session

from merit.constants import MSG_POINTS_AWARDED, MSG_RANK_PROMOTED
from merit.database.engine import commit_or_conflict
from merit.database.models import EventType, RankConfiguration, User
from merit.engine.ranks import promotion_target
from merit.errors import NotFoundError, ValidationError
from merit.services.event_service import record_event

if TYPE_CHECKING:
    from sqlalchemy import Engine

logger = logging.getLogger(__name__)


@dataclass
class AwardResult:
    """What a single award changed."""

    user_id: int
    points_awarded: int
    total_points: int
    promoted_to_rank_id: int | None = None
    promoted_to_rank_name: str | None = None


def lock_user(session: Session, user_id: int) -> User:
    """Load *user_id* with a row lock (``SELECT … FOR UPDATE``)."""
    user = session.scalars(
        select(User)
        .where(User.id == user_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    ).first()
    if user is None:
        raise NotFoundError(f"User not found: {user_id}")
    return user


def organization_ranks(session: Session, organization_id: int) -> list[RankConfiguration]:
    return list(session.scalars(
        select(RankConfiguration).where(
            RankConfiguration.organization_id == organization_id
        )
    ).all())


def apply_award(session: Session, user: User, amount: int, reason: str) -> AwardResult:
    """Award *amount* points to *user* inside the caller's transaction.

    Raises
    ------
    ValidationError
        If *amount* is negative or not an integer.
    """
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise ValidationError("Point amount must be an integer")
    if amount < 0:
        raise ValidationError(f"Point amount cannot be negative: {amount}")

    user.total_points = (user.total_points or 0) + amount
    record_event(
        session,
        organization_id=user.organization_id,
        user_id=user.id,
        event_type=EventType.POINTS_AWARDED,
        message=MSG_POINTS_AWARDED % (amount, reason),
        payload={"points": amount, "reason": reason, "total_points": user.total_points},
    )
    result = AwardResult(
        user_id=user.id, points_awarded=amount, total_points=user.total_points
    )
    logger.info(
        "Awarded %d points to user %d (%s) → total %d",
        amount, user.id, reason, user.total_points,
    )

    ranks = organization_ranks(session, user.organization_id)
    current = next((r for r in ranks if r.id == user.current_rank_id), None)
    target = promotion_target(current, ranks, user.total_points)
    if target is not None:
        user.current_rank_id = target.id
        record_event(
            session,
            organization_id=user.organization_id,
            user_id=user.id,
            event_type=EventType.RANK_PROMOTED,
            message=MSG_RANK_PROMOTED % (target.insignia or "", target.name),
            payload={
                "previous_rank_id": current.id if current else None,
                "rank_id": target.id,
                "rank_name": target.name,
                "insignia": target.insignia,
                "total_points": user.total_points,
            },
        )
        result.promoted_to_rank_id = target.id
        result.promoted_to_rank_name = target.name
        logger.info("User %d promoted to rank %s (id=%d)", user.id, target.name, target.id)

    session.flush()
    return result


def award_points(engine: Engine, user_id: int, amount: int, reason: str) -> User:
    """Award points in a transaction of their own and return the user.

    Returns the updated (expunged) :class:`User`.
    """
    with Session(engine, expire_on_commit=False) as session:
        user = lock_user(session, user_id)
        apply_award(session, user, amount, reason)
        commit_or_conflict(session)
        session.refresh(user)
        session.expunge(user)
        return user
