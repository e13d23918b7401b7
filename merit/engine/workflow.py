"""
merit.engine.workflow — Action Approval State Machine
======================================================

Pure rules for the capture → approve/reject lifecycle and the manager
hierarchy.  No DB I/O; services pass in already-loaded rows.

    PENDING_APPROVAL ──approve──▶ APPROVED   (terminal)
           │
           └──────reject──────▶ REJECTED   (terminal)
"""

from __future__ import annotations

from collections.abc import Mapping

from merit.database.models import ActionStatus, CaptureMethod, ReporterType
from merit.errors import ForbiddenError, InvalidStateError, ValidationError

_TRANSITIONS: dict[str, frozenset[str]] = {
    ActionStatus.PENDING_APPROVAL: frozenset(
        {ActionStatus.APPROVED, ActionStatus.REJECTED}
    ),
    ActionStatus.APPROVED: frozenset(),
    ActionStatus.REJECTED: frozenset(),
}


def ensure_transition(current: str, target: str) -> None:
    """Raise :class:`InvalidStateError` unless *current* → *target* is legal."""
    if target not in _TRANSITIONS.get(current, frozenset()):
        raise InvalidStateError(
            f"Action is {current}; cannot move to {target}"
        )


def initial_status(requires_manager_approval: bool, method: str) -> ActionStatus:
    """Imported actions and approval-free types start out approved."""
    if method == CaptureMethod.IMPORT or not requires_manager_approval:
        return ActionStatus.APPROVED
    return ActionStatus.PENDING_APPROVAL


# ---------------------------------------------------------------------------
# Hierarchy
# ---------------------------------------------------------------------------
def is_direct_manager(manager, subordinate) -> bool:
    """True when *manager* is *subordinate*'s direct manager in the same org."""
    if manager is None or subordinate is None:
        return False
    if manager.organization_id != subordinate.organization_id:
        return False
    if manager.id == subordinate.id:
        return False
    return (
        subordinate.manager_employee_id is not None
        and subordinate.manager_employee_id == manager.employee_id
    )


def reporter_type_for(reporter, subject) -> ReporterType:
    """Classify *reporter* relative to the action's beneficiary."""
    if reporter.id == subject.id:
        return ReporterType.SELF
    if is_direct_manager(reporter, subject):
        return ReporterType.MANAGER
    return ReporterType.PEER


def check_capture_allowed(action_type, method: str, reporter_type: str) -> None:
    """Validate an action type against the capture method and reporter."""
    if not action_type.active:
        raise ValidationError(f"Action type is inactive: {action_type.id}")
    if not action_type.supports(method):
        label = "UI capture" if method == CaptureMethod.UI else "import"
        raise ValidationError(
            f"Action type does not support {label}: {action_type.id}"
        )
    if reporter_type != ReporterType.SYSTEM and not action_type.allows_reporter(
        reporter_type
    ):
        raise ForbiddenError(
            f"Reporter type {reporter_type} is not allowed for action type: "
            f"{action_type.id}"
        )


def creates_cycle(
    employee_id: str,
    new_manager_employee_id: str | None,
    manager_of: Mapping[str, str | None],
) -> bool:
    """Would pointing *employee_id* at *new_manager_employee_id* form a loop?

    *manager_of* maps every employee id in the organization to its current
    manager's employee id.
    """
    seen: set[str] = set()
    cursor = new_manager_employee_id
    while cursor is not None:
        if cursor == employee_id:
            return True
        if cursor in seen:
            # Pre-existing loop elsewhere; not introduced by this edit.
            return False
        seen.add(cursor)
        cursor = manager_of.get(cursor)
    return False
