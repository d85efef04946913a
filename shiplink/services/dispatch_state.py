"""
Dispatch request state machine.

    pending -> accepted -> picked_up -> in_transit -> delivered
    pending -> cancelled

Legality of a (from, to) pair is decided here; who may perform it is
decided by ``required_party``; the dispatch service enforces both and then
writes conditionally on the observed status.
"""

from typing import Dict, FrozenSet

from shiplink.core.errors import ConflictError
from shiplink.models.dispatch_request import DispatchStatus

TRANSITIONS: Dict[DispatchStatus, FrozenSet[DispatchStatus]] = {
    DispatchStatus.PENDING: frozenset({DispatchStatus.ACCEPTED, DispatchStatus.CANCELLED}),
    DispatchStatus.ACCEPTED: frozenset({DispatchStatus.PICKED_UP}),
    DispatchStatus.PICKED_UP: frozenset({DispatchStatus.IN_TRANSIT}),
    DispatchStatus.IN_TRANSIT: frozenset({DispatchStatus.DELIVERED}),
    DispatchStatus.DELIVERED: frozenset(),
    DispatchStatus.CANCELLED: frozenset(),
}

# Column stamped when a status is entered
STATUS_TIMESTAMPS: Dict[DispatchStatus, str] = {
    DispatchStatus.ACCEPTED: "accepted_at",
    DispatchStatus.PICKED_UP: "picked_up_at",
    DispatchStatus.IN_TRANSIT: "in_transit_at",
    DispatchStatus.DELIVERED: "actual_delivery_time",
    DispatchStatus.CANCELLED: "cancelled_at",
}

# Statuses in which the assignee still holds the job
IN_PROGRESS: FrozenSet[DispatchStatus] = frozenset({
    DispatchStatus.ACCEPTED,
    DispatchStatus.PICKED_UP,
    DispatchStatus.IN_TRANSIT,
})

REQUESTER = "requester"
ASSIGNEE = "assignee"
ELIGIBLE_PARTY = "eligible_party"


def allowed_targets(current: DispatchStatus) -> FrozenSet[DispatchStatus]:
    return TRANSITIONS[DispatchStatus(current)]


def is_terminal(status: DispatchStatus) -> bool:
    return not TRANSITIONS[DispatchStatus(status)]


def is_idempotent_repeat(current: DispatchStatus, target: DispatchStatus) -> bool:
    """Re-submitting delivered on a delivered request is accepted as a no-op."""
    return current == DispatchStatus.DELIVERED and target == DispatchStatus.DELIVERED


def ensure_transition(current: DispatchStatus, target: DispatchStatus) -> None:
    """
    Raise ConflictError unless target is the legal successor of current.

    Raises:
        ConflictError: code ``invalid_transition`` naming both states
    """
    current = DispatchStatus(current)
    target = DispatchStatus(target)
    if target in TRANSITIONS[current] or is_idempotent_repeat(current, target):
        return
    raise ConflictError(
        "invalid_transition",
        f"Cannot change status from {current.value} to {target.value}",
    )


def required_party(target: DispatchStatus) -> str:
    """Which party may move a request into ``target``."""
    target = DispatchStatus(target)
    if target == DispatchStatus.CANCELLED:
        return REQUESTER
    if target == DispatchStatus.ACCEPTED:
        return ELIGIBLE_PARTY
    return ASSIGNEE
