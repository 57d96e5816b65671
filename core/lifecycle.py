"""
Incident report lifecycle.

Status only ever moves forward: New -> Acknowledged -> Resolved.
Only administrators may move it, and a request for a state the report has
already reached (or passed) is a no-op rather than a rewrite.
"""
from typing import List, NamedTuple

from database.models import ReportStatus, UserType
from core.exceptions import InvalidTransition, PermissionDenied


STATUS_ORDER = {
    ReportStatus.NEW: 0,
    ReportStatus.ACKNOWLEDGED: 1,
    ReportStatus.RESOLVED: 2,
}

INITIAL_STATUS = ReportStatus.NEW


class TransitionPlan(NamedTuple):
    """Outcome of checking a transition against the current status."""
    current: ReportStatus
    target: ReportStatus
    changed: bool
    reason: str  # "applied" | "already_in_state" | "already_past_state"


def rank(status: ReportStatus) -> int:
    return STATUS_ORDER[status]


def parse_status(value: str) -> ReportStatus:
    """Parse a status string (case-insensitive) into a ReportStatus."""
    for status in ReportStatus:
        if status.value.lower() == str(value).strip().lower():
            return status
    raise InvalidTransition(
        f"Invalid status: {value}. Use: {', '.join(s.value for s in ReportStatus)}."
    )


def lower_states(target: ReportStatus) -> List[ReportStatus]:
    """States from which a move to target is a forward move."""
    return [s for s in ReportStatus if rank(s) < rank(target)]


def ensure_can_change_status(user_type: UserType) -> None:
    if user_type != UserType.ADMIN:
        raise PermissionDenied("Only administrators can change report status")


def plan_transition(current: ReportStatus, target: ReportStatus) -> TransitionPlan:
    """
    Decide whether moving a report from current to target changes anything.

    Raises:
        InvalidTransition: target is the initial state (nothing moves a report to New)
    """
    if target == INITIAL_STATUS:
        raise InvalidTransition(f"Reports cannot be moved to {INITIAL_STATUS.value}")
    if rank(target) > rank(current):
        return TransitionPlan(current, target, True, "applied")
    if target == current:
        return TransitionPlan(current, target, False, "already_in_state")
    return TransitionPlan(current, target, False, "already_past_state")
