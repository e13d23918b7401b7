"""
merit.engine.missions — Mission Progress Rules
===============================================

Pure set arithmetic for mission progress.  No DB I/O.

* Completed sets only grow; duplicates are absorbed.
* A completed mission never reverts and never completes twice.
* A mission with no required action types is unreachable.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass


@dataclass
class ProgressStep:
    """Result of applying one completed action type to a mission."""

    completed_ids: set[int]
    changed: bool = False
    completes_mission: bool = False


def is_satisfied(completed_ids: Iterable[int], required_ids: Iterable[int]) -> bool:
    required = set(required_ids)
    return bool(required) and required <= set(completed_ids)


def advance(
    completed_ids: Iterable[int],
    required_ids: Iterable[int],
    action_type_id: int,
    *,
    already_completed: bool = False,
) -> ProgressStep:
    """Record *action_type_id* against a mission's progress.

    Parameters
    ----------
    completed_ids:
        Action-type ids already recorded for this user + mission.
    required_ids:
        The mission's required action-type ids.
    action_type_id:
        The action type just completed.
    already_completed:
        Whether the mission was completed earlier.

    Returns
    -------
    ProgressStep
        The new completed set, whether it changed, and whether this step
        completes the mission.
    """
    current = set(completed_ids)
    required = set(required_ids)
    if already_completed or action_type_id not in required:
        return ProgressStep(completed_ids=current)

    updated = current | {action_type_id}
    return ProgressStep(
        completed_ids=updated,
        changed=updated != current,
        completes_mission=is_satisfied(updated, required),
    )


def completion_counts(
    completed_ids: Iterable[int], required_ids: Iterable[int]
) -> tuple[int, int]:
    """``(completed, total)`` counted against the current required set."""
    required = set(required_ids)
    return len(required & set(completed_ids)), len(required)
