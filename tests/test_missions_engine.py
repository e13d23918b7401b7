"""
tests/test_missions_engine.py — Mission progress set arithmetic
================================================================
"""

from __future__ import annotations

from merit.engine.missions import advance, completion_counts, is_satisfied


class TestAdvance:
    def test_records_required_action(self):
        step = advance(set(), {1, 2}, 1)
        assert step.completed_ids == {1}
        assert step.changed
        assert not step.completes_mission

    def test_completes_when_superset(self):
        step = advance({1}, {1, 2}, 2)
        assert step.completed_ids == {1, 2}
        assert step.completes_mission

    def test_repeat_is_noop(self):
        step = advance({1}, {1, 2}, 1)
        assert not step.changed
        assert not step.completes_mission
        assert step.completed_ids == {1}

    def test_unrelated_action_ignored(self):
        step = advance({1}, {1, 2}, 9)
        assert not step.changed
        assert step.completed_ids == {1}

    def test_completed_mission_never_recompletes(self):
        step = advance({1, 2}, {1, 2}, 2, already_completed=True)
        assert not step.changed
        assert not step.completes_mission

    def test_satisfied_but_uncompleted_completes(self):
        # Requirements shrank after progress was recorded.
        step = advance({1, 2}, {1}, 1)
        assert not step.changed
        assert step.completes_mission


class TestHelpers:
    def test_empty_requirement_unreachable(self):
        assert not is_satisfied({1, 2}, set())

    def test_completion_counts_against_current_requirements(self):
        assert completion_counts({1, 5}, {1, 2, 3}) == (1, 3)
