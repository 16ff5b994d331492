"""Khairat claim state machine.

States: pending → under_review → approved → paid, with rejection,
re-review and cancellation edges. ``paid`` and ``cancelled`` are terminal.
"""

from app.core.exceptions import ValidationError

CLAIM_TRANSITIONS: dict[str, set[str]] = {
    "pending": {"under_review", "approved", "rejected", "cancelled"},
    "under_review": {"approved", "rejected", "cancelled", "pending"},
    "approved": {"paid", "cancelled"},
    "rejected": {"under_review", "pending"},  # Re-review allowed
    "paid": set(),
    "cancelled": set(),
}

CLAIM_STATUSES = frozenset(CLAIM_TRANSITIONS)

# Statuses from which an admin may approve or reject directly
DECIDABLE_STATUSES = frozenset({"pending", "under_review"})


def can_transition(current: str, target: str) -> bool:
    return target in CLAIM_TRANSITIONS.get(current, set())


def assert_claim_transition(current: str, target: str) -> None:
    """Validate claim state transition."""
    if not can_transition(current, target):
        raise ValidationError(f"Cannot change status from {current} to {target}")


def is_terminal(status: str) -> bool:
    return status in CLAIM_STATUSES and not CLAIM_TRANSITIONS[status]
