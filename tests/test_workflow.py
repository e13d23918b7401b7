"""
tests/test_workflow.py — Approval state machine & hierarchy rules
==================================================================
"""

from __future__ import annotations

from types import SimpleNamespace

import pytest

from merit.database.models import ActionStatus, CaptureMethod, ReporterType
from merit.engine.workflow import (
    check_capture_allowed,
    creates_cycle,
    ensure_transition,
    initial_status,
    is_direct_manager,
    reporter_type_for,
)
from merit.errors import ForbiddenError, InvalidStateError, ValidationError


def _user(uid, emp, manager=None, org=1):
    return SimpleNamespace(
        id=uid, employee_id=emp, manager_employee_id=manager, organization_id=org
    )


def _action_type(methods=("UI",), reporters=("SELF",), active=True):
    return SimpleNamespace(
        id=7,
        active=active,
        supports=lambda m: str(m) in methods,
        allows_reporter=lambda r: str(r) in reporters,
    )


class TestTransitions:
    def test_pending_to_approved(self):
        ensure_transition(ActionStatus.PENDING_APPROVAL, ActionStatus.APPROVED)

    def test_pending_to_rejected(self):
        ensure_transition(ActionStatus.PENDING_APPROVAL, ActionStatus.REJECTED)

    @pytest.mark.parametrize("terminal", [ActionStatus.APPROVED, ActionStatus.REJECTED])
    def test_terminal_states_are_final(self, terminal):
        with pytest.raises(InvalidStateError, match="cannot move"):
            ensure_transition(terminal, ActionStatus.APPROVED)

    def test_initial_status(self):
        assert initial_status(True, CaptureMethod.UI) == ActionStatus.PENDING_APPROVAL
        assert initial_status(False, CaptureMethod.UI) == ActionStatus.APPROVED
        assert initial_status(True, CaptureMethod.IMPORT) == ActionStatus.APPROVED


class TestHierarchy:
    def test_direct_manager(self):
        boss, alice = _user(1, "boss"), _user(2, "alice", "boss")
        assert is_direct_manager(boss, alice)
        assert not is_direct_manager(alice, boss)

    def test_other_org_is_not_manager(self):
        boss, alice = _user(1, "boss", org=2), _user(2, "alice", "boss")
        assert not is_direct_manager(boss, alice)

    def test_reporter_type(self):
        boss, alice, bob = _user(1, "boss"), _user(2, "alice", "boss"), _user(3, "bob")
        assert reporter_type_for(alice, alice) == ReporterType.SELF
        assert reporter_type_for(boss, alice) == ReporterType.MANAGER
        assert reporter_type_for(bob, alice) == ReporterType.PEER

    def test_cycle_detection(self):
        manager_of = {"a": None, "b": "a", "c": "b"}
        assert creates_cycle("a", "c", manager_of)
        assert not creates_cycle("c", "a", manager_of)
        assert not creates_cycle("a", None, manager_of)


class TestCaptureRules:
    def test_allowed(self):
        check_capture_allowed(_action_type(), CaptureMethod.UI, ReporterType.SELF)

    def test_inactive_type(self):
        with pytest.raises(ValidationError, match="inactive"):
            check_capture_allowed(
                _action_type(active=False), CaptureMethod.UI, ReporterType.SELF
            )

    def test_ui_not_supported(self):
        with pytest.raises(ValidationError, match="does not support UI capture"):
            check_capture_allowed(
                _action_type(methods=("IMPORT",)), CaptureMethod.UI, ReporterType.SELF
            )

    def test_reporter_not_allowed(self):
        with pytest.raises(ForbiddenError):
            check_capture_allowed(_action_type(), CaptureMethod.UI, ReporterType.PEER)

    def test_system_reporter_bypasses_reporter_list(self):
        check_capture_allowed(
            _action_type(methods=("IMPORT",)), CaptureMethod.IMPORT, ReporterType.SYSTEM
        )
