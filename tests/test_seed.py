"""
tests/test_seed.py — Default catalog seeding
=============================================
"""

from __future__ import annotations

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from merit.database.engine import init_db
from merit.database.models import ActionType, MissionType, Organization, RankConfiguration
from merit.database.seed import (
    DEFAULT_ACTION_TYPES,
    DEFAULT_MISSIONS,
    DEFAULT_RANKS,
    seed_default_catalog,
)


class TestSeed:
    def test_seeds_once(self, db_engine):
        org_id = seed_default_catalog(db_engine)
        assert org_id is not None
        assert seed_default_catalog(db_engine) is None

        with Session(db_engine) as session:
            assert session.scalar(select(func.count(Organization.id))) == 1
            assert session.scalar(select(func.count(RankConfiguration.id))) == len(DEFAULT_RANKS)
            assert session.scalar(select(func.count(ActionType.id))) == len(DEFAULT_ACTION_TYPES)
            missions = session.scalars(select(MissionType)).all()
            assert len(missions) == len(DEFAULT_MISSIONS)
            assert all(len(m.required_action_type_ids) == 2 for m in missions)

    def test_init_db_without_seed(self, db_engine):
        init_db(db_engine, seed=False)
        with Session(db_engine) as session:
            assert session.scalar(select(func.count(Organization.id))) == 0

    def test_init_db_with_seed(self, db_engine):
        init_db(db_engine)
        with Session(db_engine) as session:
            assert session.scalar(select(func.count(Organization.id))) == 1
