"""
State machine for the design review lifecycle.

The table is enforced by the lifecycle manager on every transition,
independent of which actions a client chooses to offer.
"""

from typing import Dict, List, Tuple

from src.kernel.errors import InvalidStatus, InvalidTransition
from src.kernel.models.design import DesignStatus


# current status -> statuses it may move to, in display order
_TRANSITIONS: Dict[str, Tuple[str, ...]] = {
    DesignStatus.PENDING.value: (
        DesignStatus.ACCEPTED.value,
        DesignStatus.REJECTED.value,
    ),
    DesignStatus.ACCEPTED.value: (
        DesignStatus.IN_DEVELOPMENT.value,
        DesignStatus.PENDING.value,
    ),
    DesignStatus.IN_DEVELOPMENT.value: (
        DesignStatus.COMPLETED.value,
        DesignStatus.ACCEPTED.value,
    ),
    # Reopen
    DesignStatus.COMPLETED.value: (
        DesignStatus.IN_DEVELOPMENT.value,
    ),
    DesignStatus.REJECTED.value: (),
}

# Action captions for each edge
TRANSITION_ACTIONS: Dict[Tuple[str, str], str] = {
    (DesignStatus.PENDING.value, DesignStatus.ACCEPTED.value): "Accept",
    (DesignStatus.PENDING.value, DesignStatus.REJECTED.value): "Reject",
    (DesignStatus.ACCEPTED.value, DesignStatus.IN_DEVELOPMENT.value): "Start Development",
    (DesignStatus.ACCEPTED.value, DesignStatus.PENDING.value): "Back to Pending",
    (DesignStatus.IN_DEVELOPMENT.value, DesignStatus.COMPLETED.value): "Mark Complete",
    (DesignStatus.IN_DEVELOPMENT.value, DesignStatus.ACCEPTED.value): "Back to Accepted",
    (DesignStatus.COMPLETED.value, DesignStatus.IN_DEVELOPMENT.value): "Reopen",
}


def parse_status(value: str) -> DesignStatus:
    """Return the DesignStatus for a raw value or raise InvalidStatus."""
    try:
        return DesignStatus(value)
    except ValueError:
        raise InvalidStatus(str(value)) from None


def valid_transitions(from_status: str) -> List[str]:
    """Return the statuses reachable from from_status (empty when terminal or unknown)."""
    return list(_TRANSITIONS.get(from_status, ()))


def can_transition(from_status: str, to_status: str) -> bool:
    """Check whether from_status -> to_status is a legal edge."""
    return to_status in _TRANSITIONS.get(from_status, ())


def is_terminal(status: str) -> bool:
    return status in _TRANSITIONS and not _TRANSITIONS[status]


def ensure_transition(from_status: str, to_status: str) -> None:
    """Raise InvalidTransition unless from_status -> to_status is legal."""
    if not can_transition(from_status, to_status):
        raise InvalidTransition(from_status, to_status)
