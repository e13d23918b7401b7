"""
tests/test_leaderboard_service.py — Leaderboard Query Integration Tests
========================================================================
"""

from __future__ import annotations

from datetime import date

import pytest
from conftest import make_action_type, make_org, make_user

from merit.errors import NotFoundError, ValidationError
from merit.services import action_service, leaderboard_service, points_service


@pytest.fixture
def engine(db_engine):
    return db_engine


@pytest.fixture
def scored(engine, org) -> dict[str, int]:
    """Five users with points 500, 200, 200, 50, 0 (registered in that order)."""
    ids = {}
    for emp, pts in (("u1", 500), ("u2", 200), ("u3", 200), ("u4", 50), ("u5", 0)):
        ids[emp] = make_user(engine, org, emp)
        if pts:
            points_service.award_points(engine, ids[emp], pts, "seed")
    return ids


class TestAllTime:
    def test_order_and_shared_positions(self, engine, org, scored):
        board = leaderboard_service.leaderboard(engine, org)
        assert [e["points"] for e in board["entries"]] == [500, 200, 200, 50, 0]
        assert [e["position"] for e in board["entries"]] == [1, 2, 2, 4, 5]
        assert board["total_users"] == 5

    def test_ties_broken_by_user_id(self, engine, org, scored):
        board = leaderboard_service.leaderboard(engine, org)
        assert [e["user_id"] for e in board["entries"][1:3]] == [scored["u2"], scored["u3"]]

    def test_entries_carry_rank_and_badge(self, engine, org, scored):
        top = leaderboard_service.leaderboard(engine, org)["entries"][0]
        assert top["rank_name"] == "Lieutenant"
        assert top["badge"] == "\U0001f947"
        last = leaderboard_service.leaderboard(engine, org)["entries"][-1]
        assert last["rank_name"] is None
        assert last["badge"] is None

    def test_pagination_keeps_global_positions(self, engine, org, scored):
        page2 = leaderboard_service.leaderboard(engine, org, page=2, page_size=2)
        assert [e["user_id"] for e in page2["entries"]] == [scored["u3"], scored["u4"]]
        assert [e["position"] for e in page2["entries"]] == [2, 4]

    def test_page_past_end_is_empty(self, engine, org, scored):
        assert leaderboard_service.leaderboard(engine, org, page=9)["entries"] == []

    def test_invalid_page(self, engine, org):
        with pytest.raises(ValidationError):
            leaderboard_service.leaderboard(engine, org, page=0)

    def test_scoped_to_organization(self, engine, org, scored):
        other = make_org(engine, "Other")
        make_user(engine, other, "outsider")
        assert leaderboard_service.leaderboard(engine, other)["total_users"] == 1


class TestUserPosition:
    def test_position_is_one_plus_strictly_greater(self, engine, org, scored):
        pos = leaderboard_service.user_position(engine, org, scored["u3"])
        assert pos["position"] == 2
        assert pos["total_users"] == 5
        assert pos["points"] == 200

    def test_nearby_window(self, engine, org, scored):
        pos = leaderboard_service.user_position(engine, org, scored["u4"], window=1)
        assert [e["user_id"] for e in pos["nearby"]] == [
            scored["u3"], scored["u4"], scored["u5"]
        ]
        assert [e["position"] for e in pos["nearby"]] == [2, 4, 5]

    def test_nearby_clamped_at_top(self, engine, org, scored):
        pos = leaderboard_service.user_position(engine, org, scored["u1"])
        assert len(pos["nearby"]) == 5
        assert pos["nearby"][0]["user_id"] == scored["u1"]

    def test_user_from_other_org(self, engine, org, scored):
        other = make_org(engine, "Other")
        outsider = make_user(engine, other, "outsider")
        with pytest.raises(NotFoundError):
            leaderboard_service.user_position(engine, org, outsider)


class TestStatistics:
    def test_statistics(self, engine, org, scored):
        stats = leaderboard_service.statistics(engine, org)
        assert stats["total_users"] == 5
        assert stats["active_users"] == 4
        assert stats["average_points"] == 190
        assert stats["top_scorer_points"] == 500
        assert stats["top_scorer_name"] == "U1 Tester"

    def test_empty_org(self, engine, org):
        stats = leaderboard_service.statistics(engine, org)
        assert stats["total_users"] == 0
        assert stats["top_scorer_name"] is None

    def test_rank_distribution(self, engine, org, scored):
        stats = leaderboard_service.rank_statistics(engine, org)
        counts = {d["rank_name"]: d["user_count"] for d in stats["distribution"]}
        assert counts == {"Cadet": 1, "Ensign": 2, "Lieutenant": 1}
        assert stats["average_points"] == 190


class TestMonthly:
    def test_monthly_scores_from_approved_actions(self, engine, org):
        quick = make_action_type(engine, org, "Quick", 30, approval=False)
        slow = make_action_type(engine, org, "Slow", 70)
        a = make_user(engine, org, "a")
        b = make_user(engine, org, "b")
        make_user(engine, org, "c")

        for uid, day in ((a, date(2026, 4, 3)), (a, date(2026, 4, 9)), (b, date(2026, 4, 3))):
            action_service.capture_action(
                engine, org, user_id=uid, action_type_id=quick,
                action_date=day, reporter_id=uid,
            )
        # Outside the month and still pending: both ignored.
        action_service.capture_action(
            engine, org, user_id=b, action_type_id=quick,
            action_date=date(2026, 5, 1), reporter_id=b,
        )
        action_service.capture_action(
            engine, org, user_id=b, action_type_id=slow,
            action_date=date(2026, 4, 20), reporter_id=b,
        )

        board = leaderboard_service.monthly_leaderboard(engine, org, 2026, 4)
        assert [(e["user_id"], e["points"]) for e in board["entries"]][:2] == [(a, 60), (b, 30)]
        assert board["entries"][2]["points"] == 0
        assert [e["position"] for e in board["entries"]] == [1, 2, 3]

    def test_invalid_month(self, engine, org):
        with pytest.raises(ValidationError):
            leaderboard_service.monthly_leaderboard(engine, org, 2026, 13)


class TestUnknownOrganization:
    @pytest.mark.parametrize(
        "query",
        [
            leaderboard_service.leaderboard,
            leaderboard_service.statistics,
            leaderboard_service.rank_statistics,
        ],
    )
    def test_not_found(self, engine, query):
        with pytest.raises(NotFoundError, match="Organization not found: 999"):
            query(engine, 999)

    def test_monthly_not_found(self, engine):
        with pytest.raises(NotFoundError):
            leaderboard_service.monthly_leaderboard(engine, 999, 2026, 4)
