"""Contribution payment state machine."""

CONTRIBUTION_TRANSITIONS = {
    "pending": {"completed", "failed"},
    "failed": {"completed", "pending"},  # Gateway bills can be retried
    "completed": set(),
}

CONTRIBUTION_STATUSES = frozenset(CONTRIBUTION_TRANSITIONS)


def can_transition(current: str, target: str) -> bool:
    return target in CONTRIBUTION_TRANSITIONS.get(current, set())
