"""
tests/test_catalog_service.py — Configuration Store Integration Tests
======================================================================
Organization + catalog CRUD, uniqueness rules, soft deletes and the
CONFIGURATION_CHANGED audit trail.
"""

from __future__ import annotations

from datetime import date

import pytest
from conftest import make_action_type, make_org, make_user
from sqlalchemy import select
from sqlalchemy.orm import Session

from merit.config import MeritConfig
from merit.database.models import Event, EventType, Organization
from merit.errors import ConflictError, NotFoundError, ValidationError
from merit.services import action_service, catalog_service


@pytest.fixture
def engine(db_engine):
    return db_engine


def _config_events(engine, org_id) -> list[Event]:
    with Session(engine) as session:
        return list(session.scalars(
            select(Event)
            .where(
                Event.organization_id == org_id,
                Event.event_type == EventType.CONFIGURATION_CHANGED,
            )
            .order_by(Event.id)
        ).all())


class TestOrganizations:
    def test_create_and_get(self, engine):
        org = catalog_service.create_organization(
            engine, name="Initech", federation_id="ini-1", description="TPS reports"
        )
        fetched = catalog_service.get_organization(engine, org.id)
        assert fetched.name == "Initech"
        assert fetched.active

    def test_duplicate_name(self, engine):
        make_org(engine, "Initech", "a")
        with pytest.raises(ConflictError):
            make_org(engine, "Initech", "b")

    def test_duplicate_federation_id(self, engine):
        make_org(engine, "One", "same")
        with pytest.raises(ConflictError):
            make_org(engine, "Two", "same")

    def test_unknown(self, engine):
        with pytest.raises(NotFoundError):
            catalog_service.get_organization(engine, 123)

    def test_deactivate_hides_from_list(self, engine):
        keep = make_org(engine, "Keep")
        gone = make_org(engine, "Gone")
        catalog_service.deactivate_organization(engine, gone)
        assert [o.id for o in catalog_service.list_organizations(engine)] == [keep]
        assert len(catalog_service.list_organizations(engine, include_inactive=True)) == 2

    def test_every_edit_bumps_version(self, engine):
        org_id = make_org(engine)
        with Session(engine) as session:
            before = session.get(Organization, org_id).version
        make_action_type(engine, org_id, "Anything")
        with Session(engine) as session:
            assert session.get(Organization, org_id).version > before


class TestActionTypes:
    def test_create_normalizes_lists(self, engine, org):
        at = catalog_service.create_action_type(
            engine, org, name="  Demo  ", points=5,
            capture_methods=["ui", "UI"], allowed_reporters=["self"],
        )
        assert at.name == "Demo"
        assert at.capture_methods == ["UI"]
        assert at.allowed_reporters == ["SELF"]

    @pytest.mark.parametrize("points", [0, -1, 1001])
    def test_points_out_of_range(self, engine, org, points):
        with pytest.raises(ValidationError):
            make_action_type(engine, org, "Bad", points)

    def test_points_limit_from_config(self, engine, org):
        with pytest.raises(ValidationError, match="between 1 and 50"):
            catalog_service.create_action_type(
                engine, org, name="Big", points=60,
                capture_methods=["UI"], allowed_reporters=["SELF"],
                config=MeritConfig(max_action_points=50),
            )

    def test_empty_capture_methods(self, engine, org):
        with pytest.raises(ValidationError):
            make_action_type(engine, org, "Nothing", methods=())

    def test_system_reporter_not_configurable(self, engine, org):
        with pytest.raises(ValidationError, match="SYSTEM"):
            make_action_type(engine, org, "Bot", reporters=("SYSTEM",))

    def test_name_clash_includes_inactive(self, engine, org):
        at_id = make_action_type(engine, org, "Shared")
        catalog_service.delete_action_type(engine, org, at_id)
        with pytest.raises(ConflictError):
            make_action_type(engine, org, "shared")

    def test_same_name_in_other_org(self, engine, org):
        make_action_type(engine, org, "Shared")
        other = make_org(engine, "Other")
        make_action_type(engine, other, "Shared")

    def test_lookup_by_name(self, engine, org):
        at_id = make_action_type(engine, org, "Code Review")
        with Session(engine) as session:
            assert catalog_service.get_action_type_by_name(session, org, "code review").id == at_id
            with pytest.raises(NotFoundError, match="Action type not found: Nope"):
                catalog_service.get_action_type_by_name(session, org, "Nope")

    def test_lookup_respects_org(self, engine, org):
        at_id = make_action_type(engine, org, "Mine")
        other = make_org(engine, "Other")
        with Session(engine) as session:
            with pytest.raises(NotFoundError):
                catalog_service.get_action_type(session, other, at_id)

    def test_list_filters(self, engine, org):
        make_action_type(engine, org, "UI only", methods=("UI",))
        make_action_type(engine, org, "Import only", methods=("IMPORT",))
        retired = make_action_type(engine, org, "Retired")
        catalog_service.delete_action_type(engine, org, retired)

        names = {at.name for at in catalog_service.list_action_types(engine, org)}
        assert names == {"UI only", "Import only"}
        ui = catalog_service.list_action_types(engine, org, capture_method="UI")
        assert [at.name for at in ui] == ["UI only"]
        everything = catalog_service.list_action_types(engine, org, include_inactive=True)
        assert len(everything) == 3

    def test_points_frozen_after_approval(self, engine, org):
        at_id = make_action_type(engine, org, "Quick", 10, approval=False)
        uid = make_user(engine, org, "e1")
        action_service.capture_action(
            engine, org, user_id=uid, action_type_id=at_id,
            action_date=date(2026, 1, 1), reporter_id=uid,
        )
        with pytest.raises(ConflictError):
            catalog_service.update_action_type(engine, org, at_id, points=20)
        updated = catalog_service.update_action_type(engine, org, at_id, description="still ok")
        assert updated.description == "still ok"

    def test_update_records_before_and_after(self, engine, org):
        at_id = make_action_type(engine, org, "Old name")
        catalog_service.update_action_type(engine, org, at_id, name="New name", actor_id=42)

        last = _config_events(engine, org)[-1]
        assert last.payload["entity"] == "ActionType"
        assert last.payload["operation"] == "UPDATE"
        assert last.payload["actor_id"] == 42
        assert last.payload["before"]["name"] == "Old name"
        assert last.payload["after"]["name"] == "New name"
        assert last.user_id is None


class TestMissionTypes:
    def test_create(self, engine, org):
        a = make_action_type(engine, org, "A")
        b = make_action_type(engine, org, "B")
        mission = catalog_service.create_mission_type(
            engine, org, name="Both", bonus_points=10, required_action_type_ids=[a, b, a]
        )
        assert mission.required_action_type_ids == {a, b}

    def test_empty_requirements(self, engine, org):
        with pytest.raises(ValidationError):
            catalog_service.create_mission_type(
                engine, org, name="Empty", required_action_type_ids=[]
            )

    def test_unknown_requirement(self, engine, org):
        with pytest.raises(ValidationError, match="9999"):
            catalog_service.create_mission_type(
                engine, org, name="Ghost", required_action_type_ids=[9999]
            )

    def test_negative_bonus(self, engine, org):
        a = make_action_type(engine, org, "A")
        with pytest.raises(ValidationError):
            catalog_service.create_mission_type(
                engine, org, name="Neg", bonus_points=-1, required_action_type_ids=[a]
            )

    def test_duplicate_name(self, engine, org):
        a = make_action_type(engine, org, "A")
        catalog_service.create_mission_type(engine, org, name="M", required_action_type_ids=[a])
        with pytest.raises(ConflictError):
            catalog_service.create_mission_type(
                engine, org, name="m", required_action_type_ids=[a]
            )

    def test_update_requirements(self, engine, org):
        a = make_action_type(engine, org, "A")
        b = make_action_type(engine, org, "B")
        mission = catalog_service.create_mission_type(
            engine, org, name="M", required_action_type_ids=[a]
        )
        updated = catalog_service.update_mission_type(
            engine, org, mission.id, required_action_type_ids=[b], bonus_points=5
        )
        assert updated.required_action_type_ids == {b}
        assert updated.bonus_points == 5

    def test_soft_delete(self, engine, org):
        a = make_action_type(engine, org, "A")
        mission = catalog_service.create_mission_type(
            engine, org, name="M", required_action_type_ids=[a]
        )
        catalog_service.delete_mission_type(engine, org, mission.id)
        assert catalog_service.list_mission_types(engine, org) == []
        assert len(catalog_service.list_mission_types(engine, org, include_inactive=True)) == 1


class TestRanks:
    def test_threshold_unique(self, engine, org):
        with pytest.raises(ConflictError, match="threshold"):
            catalog_service.create_rank(engine, org, name="Twin", points_threshold=100)

    def test_name_unique(self, engine, org):
        with pytest.raises(ConflictError, match="name"):
            catalog_service.create_rank(engine, org, name="cadet", points_threshold=5)

    def test_negative_threshold(self, engine, org):
        with pytest.raises(ValidationError):
            catalog_service.create_rank(engine, org, name="Below", points_threshold=-1)

    def test_display_order_appended(self, engine, org):
        rank = catalog_service.create_rank(engine, org, name="Captain", points_threshold=600)
        assert rank.display_order == 4

    def test_listing_uses_display_order(self, engine, org):
        catalog_service.create_rank(
            engine, org, name="Admiral", points_threshold=2000, display_order=0
        )
        names = [r.name for r in catalog_service.list_available_ranks(engine, org)]
        assert names == ["Admiral", "Cadet", "Ensign", "Lieutenant"]

    def test_eligible_and_next(self, engine, org):
        assert catalog_service.get_eligible_rank(engine, org, 150).name == "Ensign"
        assert catalog_service.get_next_rank(engine, org, 150).name == "Lieutenant"
        assert catalog_service.get_next_rank(engine, org, 300) is None

    def test_deleted_rank_not_eligible(self, engine, org):
        ensign = next(
            r for r in catalog_service.list_available_ranks(engine, org) if r.name == "Ensign"
        )
        catalog_service.delete_rank(engine, org, ensign.id)
        assert catalog_service.get_eligible_rank(engine, org, 150).name == "Cadet"
        assert catalog_service.get_next_rank(engine, org, 50).name == "Lieutenant"

    def test_unknown_org(self, engine):
        with pytest.raises(NotFoundError):
            catalog_service.create_rank(engine, 404, name="X", points_threshold=1)
