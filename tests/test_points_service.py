"""
tests/test_points_service.py — Points & Rank Engine Integration Tests
======================================================================
award_points is the single write path for totals and ranks.  Uses an
in-memory SQLite database via the shared conftest fixtures.
"""

from __future__ import annotations

import pytest
from conftest import make_ranks, make_user
from sqlalchemy import select
from sqlalchemy.orm import Session

from merit.database.models import Event, EventType, RankConfiguration, User
from merit.errors import NotFoundError, ValidationError
from merit.services import catalog_service, points_service


@pytest.fixture
def engine(db_engine):
    """Re-use the shared conftest db_engine (SQLite, StaticPool)."""
    return db_engine


def _rank_name(engine, rank_id):
    with Session(engine) as session:
        return session.get(RankConfiguration, rank_id).name


def _events(engine, user_id, event_type):
    with Session(engine) as session:
        return list(session.scalars(
            select(Event)
            .where(Event.user_id == user_id, Event.event_type == event_type)
            .order_by(Event.id)
        ).all())


class TestAwardPoints:
    def test_promotion_scenario(self, engine, org):
        """Cadet:0, Ensign:100, Lieutenant:300 — 100 then 250 points."""
        uid = make_user(engine, org, "e1")

        user = points_service.award_points(engine, uid, 100, "x")
        assert user.total_points == 100
        assert _rank_name(engine, user.current_rank_id) == "Ensign"

        user = points_service.award_points(engine, uid, 250, "y")
        assert user.total_points == 350
        assert _rank_name(engine, user.current_rank_id) == "Lieutenant"

        promotions = _events(engine, uid, EventType.RANK_PROMOTED)
        assert [e.payload["rank_name"] for e in promotions] == ["Ensign", "Lieutenant"]

    def test_always_emits_points_awarded(self, engine, org):
        uid = make_user(engine, org, "e1")
        points_service.award_points(engine, uid, 5, "first")
        points_service.award_points(engine, uid, 0, "nothing")

        awarded = _events(engine, uid, EventType.POINTS_AWARDED)
        assert [e.payload["points"] for e in awarded] == [5, 0]
        assert awarded[0].payload["reason"] == "first"

    def test_first_award_assigns_base_rank(self, engine, org):
        uid = make_user(engine, org, "e1")
        user = points_service.award_points(engine, uid, 10, "hello")
        assert _rank_name(engine, user.current_rank_id) == "Cadet"

    def test_no_promotion_event_when_rank_unchanged(self, engine, org):
        uid = make_user(engine, org, "e1")
        points_service.award_points(engine, uid, 110, "a")
        points_service.award_points(engine, uid, 10, "b")
        assert len(_events(engine, uid, EventType.RANK_PROMOTED)) == 1

    def test_promotion_follows_points_awarded(self, engine, org):
        uid = make_user(engine, org, "e1")
        points_service.award_points(engine, uid, 150, "a")
        with Session(engine) as session:
            types = list(session.scalars(
                select(Event.event_type).where(Event.user_id == uid).order_by(Event.id)
            ).all())
        assert types[-2:] == [EventType.POINTS_AWARDED, EventType.RANK_PROMOTED]

    def test_rank_sticky_after_threshold_raised(self, engine, org):
        uid = make_user(engine, org, "e1")
        user = points_service.award_points(engine, uid, 150, "a")
        ensign_id = user.current_rank_id
        catalog_service.update_rank(engine, org, ensign_id, points_threshold=200)

        user = points_service.award_points(engine, uid, 1, "b")
        assert user.current_rank_id == ensign_id

    def test_negative_amount_rejected(self, engine, org):
        uid = make_user(engine, org, "e1")
        with pytest.raises(ValidationError):
            points_service.award_points(engine, uid, -5, "oops")

    def test_unknown_user(self, engine, org):
        with pytest.raises(NotFoundError):
            points_service.award_points(engine, 424242, 5, "ghost")

    def test_no_ranks_configured(self, engine):
        from conftest import make_org

        org_id = make_org(engine, "Bare")
        uid = make_user(engine, org_id, "e1")
        user = points_service.award_points(engine, uid, 50, "x")
        assert user.total_points == 50
        assert user.current_rank_id is None

    def test_inactive_rank_skipped(self, engine):
        from conftest import make_org

        org_id = make_org(engine, "Ladder")
        ids = make_ranks(engine, org_id, {"Low": 0, "Mid": 100, "High": 200})
        catalog_service.delete_rank(engine, org_id, ids["High"])
        uid = make_user(engine, org_id, "e1")

        user = points_service.award_points(engine, uid, 500, "x")
        assert user.current_rank_id == ids["Mid"]


class TestTotalPointsGuard:
    def test_total_never_decreases(self, engine, org):
        uid = make_user(engine, org, "e1")
        points_service.award_points(engine, uid, 50, "seed")
        with Session(engine) as session:
            user = session.get(User, uid)
            with pytest.raises(ValidationError, match="cannot decrease"):
                user.total_points = 10
            with pytest.raises(ValidationError, match="cannot be negative"):
                user.total_points = -1
            assert user.total_points == 50

    def test_zero_award_keeps_total(self, engine, org):
        uid = make_user(engine, org, "e1")
        points_service.award_points(engine, uid, 30, "seed")
        user = points_service.award_points(engine, uid, 0, "nothing")
        assert user.total_points == 30
