"""
merit.services.mission_service — Mission Progress Tracker
==========================================================

Invoked after every approved action.  For each active mission that needs
the completed action type, records it in the user's progress set and,
once the set covers every requirement, completes the mission: stamps the
completion, awards the bonus through :mod:`merit.services.points_service`,
and appends ``MISSION_COMPLETED``.

Re-applying the same action type is a no-op, and a completed mission is
never touched again.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy import select
from sqlalchemy.orm import Session

from merit.constants import MSG_MISSION_COMPLETED, REASON_MISSION_COMPLETED
from merit.database.engine import commit_or_conflict
from merit.database.models import ActionType, EventType, MissionProgress, MissionType, User
from merit.engine.missions import advance, completion_counts
from merit.errors import NotFoundError
from merit.services.event_service import record_event
from merit.services.points_service import apply_award, lock_user

if TYPE_CHECKING:
    from sqlalchemy import Engine

logger = logging.getLogger(__name__)


def missions_requiring(
    session: Session, organization_id: int, action_type_id: int
) -> list[MissionType]:
    """Active missions in the organization that list *action_type_id*."""
    return list(session.scalars(
        select(MissionType)
        .where(
            MissionType.organization_id == organization_id,
            MissionType.active.is_(True),
            MissionType.required_action_types.any(ActionType.id == action_type_id),
        )
        .order_by(MissionType.id)
    ).all())


def get_or_create_progress(session: Session, user_id: int, mission_id: int) -> MissionProgress:
    """Fetch or insert the progress row for user + mission."""
    progress = session.get(MissionProgress, (user_id, mission_id))
    if progress is None:
        progress = MissionProgress(
            user_id=user_id,
            mission_type_id=mission_id,
            completed_action_type_ids=[],
            completed=False,
        )
        session.add(progress)
        session.flush()
    return progress


def apply_action_completed(
    session: Session, user: User, action_type_id: int
) -> list[MissionType]:
    """Advance every relevant mission; return the ones completed just now.

    The caller holds *user* locked and owns the transaction.
    """
    completed_now: list[MissionType] = []
    for mission in missions_requiring(session, user.organization_id, action_type_id):
        progress = get_or_create_progress(session, user.id, mission.id)
        step = advance(
            progress.completed_action_type_ids or [],
            mission.required_action_type_ids,
            action_type_id,
            already_completed=progress.completed,
        )
        if not step.changed and not step.completes_mission:
            continue

        if step.changed:
            # New list object so the JSONB column is flagged dirty.
            progress.completed_action_type_ids = sorted(step.completed_ids)
        if not step.completes_mission:
            continue

        progress.completed = True
        progress.completed_at = datetime.now(UTC)
        apply_award(
            session, user, mission.bonus_points, REASON_MISSION_COMPLETED % mission.name
        )
        record_event(
            session,
            organization_id=user.organization_id,
            user_id=user.id,
            event_type=EventType.MISSION_COMPLETED,
            message=MSG_MISSION_COMPLETED % (mission.name, mission.badge, mission.bonus_points),
            payload={
                "mission_id": mission.id,
                "mission_name": mission.name,
                "badge": mission.badge,
                "bonus_points": mission.bonus_points,
            },
        )
        logger.info(
            "Mission completed: %s (id=%d) by user %d, +%d bonus",
            mission.name, mission.id, user.id, mission.bonus_points,
        )
        completed_now.append(mission)

    session.flush()
    return completed_now


def on_action_type_completed(engine: Engine, user_id: int, action_type_id: int) -> list[int]:
    """Public entry point; returns ids of missions completed by this call."""
    with Session(engine, expire_on_commit=False) as session:
        user = lock_user(session, user_id)
        completed = apply_action_completed(session, user, action_type_id)
        mission_ids = [m.id for m in completed]
        commit_or_conflict(session)
        return mission_ids


# ---------------------------------------------------------------------------
# Read side
# ---------------------------------------------------------------------------
def _summary(mission: MissionType, progress: MissionProgress | None) -> dict:
    completed_ids = progress.completed_action_type_ids if progress else []
    done, total = completion_counts(completed_ids, mission.required_action_type_ids)
    return {
        "mission_id": mission.id,
        "name": mission.name,
        "description": mission.description,
        "badge": mission.badge,
        "category": mission.category,
        "bonus_points": mission.bonus_points,
        "completed_actions": done,
        "total_actions": total,
        "completed": bool(progress and progress.completed),
        "completed_at": (
            progress.completed_at.isoformat()
            if progress and progress.completed_at else None
        ),
    }


def _load_user(session: Session, user_id: int) -> User:
    user = session.get(User, user_id)
    if user is None:
        raise NotFoundError(f"User not found: {user_id}")
    return user


def _progress_by_mission(session: Session, user_id: int) -> dict[int, MissionProgress]:
    rows = session.scalars(
        select(MissionProgress).where(MissionProgress.user_id == user_id)
    ).all()
    return {p.mission_type_id: p for p in rows}


def mission_progress(engine: Engine, user_id: int) -> list[dict]:
    """Progress summaries for every active mission in the user's organization."""
    with Session(engine) as session:
        user = _load_user(session, user_id)
        progress = _progress_by_mission(session, user.id)
        missions = session.scalars(
            select(MissionType)
            .where(
                MissionType.organization_id == user.organization_id,
                MissionType.active.is_(True),
            )
            .order_by(MissionType.id)
        ).all()
        return [_summary(m, progress.get(m.id)) for m in missions]


def mission_detail(engine: Engine, user_id: int, mission_id: int) -> dict:
    """One mission with per-required-action completion flags."""
    with Session(engine) as session:
        user = _load_user(session, user_id)
        mission = session.get(MissionType, mission_id)
        if mission is None or mission.organization_id != user.organization_id:
            raise NotFoundError(f"Mission type not found: {mission_id}")
        progress = session.get(MissionProgress, (user.id, mission.id))
        completed_ids = set(progress.completed_action_type_ids if progress else [])

        detail = _summary(mission, progress)
        detail["actions"] = [
            {
                "action_type_id": at.id,
                "name": at.name,
                "description": at.description,
                "category": at.category,
                "points": at.points,
                "completed": at.id in completed_ids,
            }
            for at in sorted(mission.required_action_types, key=lambda a: a.id)
        ]
        return detail


def earned_badges(engine: Engine, user_id: int) -> list[dict]:
    """Badges from completed missions, oldest first."""
    with Session(engine) as session:
        _load_user(session, user_id)
        rows = session.execute(
            select(MissionType, MissionProgress)
            .join(MissionProgress, MissionProgress.mission_type_id == MissionType.id)
            .where(
                MissionProgress.user_id == user_id,
                MissionProgress.completed.is_(True),
            )
            .order_by(MissionProgress.completed_at, MissionType.id)
        ).all()
        return [
            {
                "mission_id": mission.id,
                "mission_name": mission.name,
                "badge": mission.badge,
                "bonus_points": mission.bonus_points,
                "earned_at": progress.completed_at.isoformat() if progress.completed_at else None,
            }
            for mission, progress in rows
        ]
