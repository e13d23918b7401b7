"""
tests/test_mission_service.py — Mission Progress Tracker Integration Tests
===========================================================================
"""

from __future__ import annotations

import pytest
from conftest import make_action_type, make_user
from sqlalchemy import select
from sqlalchemy.orm import Session

from merit.database.models import Event, EventType, MissionProgress, User
from merit.errors import NotFoundError
from merit.services import catalog_service, mission_service


@pytest.fixture
def engine(db_engine):
    return db_engine


@pytest.fixture
def mission(engine, org):
    """Mission requiring action types A and B, bonus 50."""
    a = make_action_type(engine, org, "A", 10)
    b = make_action_type(engine, org, "B", 20)
    m = catalog_service.create_mission_type(
        engine, org, name="AB", badge="ab-badge", bonus_points=50,
        required_action_type_ids=[a, b],
    )
    return {"id": m.id, "a": a, "b": b}


def _user(engine, uid) -> User:
    with Session(engine) as session:
        return session.get(User, uid)


def _completions(engine, uid) -> list[Event]:
    with Session(engine) as session:
        return list(session.scalars(
            select(Event).where(
                Event.user_id == uid, Event.event_type == EventType.MISSION_COMPLETED
            )
        ).all())


class TestProgress:
    def test_bonus_awarded_once(self, engine, org, mission):
        uid = make_user(engine, org, "e1")

        assert mission_service.on_action_type_completed(engine, uid, mission["a"]) == []
        assert mission_service.on_action_type_completed(engine, uid, mission["a"]) == []
        assert mission_service.on_action_type_completed(engine, uid, mission["b"]) == [
            mission["id"]
        ]
        assert mission_service.on_action_type_completed(engine, uid, mission["b"]) == []

        assert _user(engine, uid).total_points == 50
        events = _completions(engine, uid)
        assert len(events) == 1
        assert events[0].payload["badge"] == "ab-badge"
        assert events[0].payload["bonus_points"] == 50

    def test_completed_set_is_idempotent(self, engine, org, mission):
        uid = make_user(engine, org, "e1")
        for _ in range(3):
            mission_service.on_action_type_completed(engine, uid, mission["a"])
        with Session(engine) as session:
            progress = session.get(MissionProgress, (uid, mission["id"]))
            assert progress.completed_action_type_ids == [mission["a"]]
            assert not progress.completed

    def test_unrelated_action_type_creates_no_progress(self, engine, org, mission):
        other = make_action_type(engine, org, "Other")
        uid = make_user(engine, org, "e1")
        mission_service.on_action_type_completed(engine, uid, other)
        with Session(engine) as session:
            assert session.get(MissionProgress, (uid, mission["id"])) is None

    def test_inactive_mission_not_advanced(self, engine, org, mission):
        catalog_service.delete_mission_type(engine, org, mission["id"])
        uid = make_user(engine, org, "e1")
        mission_service.on_action_type_completed(engine, uid, mission["a"])
        mission_service.on_action_type_completed(engine, uid, mission["b"])
        assert _user(engine, uid).total_points == 0

    def test_zero_bonus_still_completes(self, engine, org):
        a = make_action_type(engine, org, "Solo")
        m = catalog_service.create_mission_type(
            engine, org, name="Solo run", bonus_points=0, required_action_type_ids=[a]
        )
        uid = make_user(engine, org, "e1")
        assert mission_service.on_action_type_completed(engine, uid, a) == [m.id]
        assert len(_completions(engine, uid)) == 1


class TestReadSide:
    def test_progress_summary(self, engine, org, mission):
        uid = make_user(engine, org, "e1")
        mission_service.on_action_type_completed(engine, uid, mission["a"])

        (summary,) = mission_service.mission_progress(engine, uid)
        assert summary["completed_actions"] == 1
        assert summary["total_actions"] == 2
        assert summary["completed"] is False

    def test_detail_flags_each_action(self, engine, org, mission):
        uid = make_user(engine, org, "e1")
        mission_service.on_action_type_completed(engine, uid, mission["b"])

        detail = mission_service.mission_detail(engine, uid, mission["id"])
        flags = {a["name"]: a["completed"] for a in detail["actions"]}
        assert flags == {"A": False, "B": True}

    def test_detail_unknown_mission(self, engine, org, mission):
        uid = make_user(engine, org, "e1")
        with pytest.raises(NotFoundError):
            mission_service.mission_detail(engine, uid, 9999)

    def test_badges(self, engine, org, mission):
        uid = make_user(engine, org, "e1")
        assert mission_service.earned_badges(engine, uid) == []
        mission_service.on_action_type_completed(engine, uid, mission["a"])
        mission_service.on_action_type_completed(engine, uid, mission["b"])

        (badge,) = mission_service.earned_badges(engine, uid)
        assert badge["badge"] == "ab-badge"
        assert badge["earned_at"] is not None
