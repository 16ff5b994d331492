"""Claim and contribution state machine tests."""

import itertools

import pytest

from app.core.exceptions import ValidationError
from app.domain import contribution_state
from app.domain.claim_state import (
    CLAIM_STATUSES,
    assert_claim_transition,
    can_transition,
    is_terminal,
)

ALLOWED = {
    ("pending", "under_review"),
    ("pending", "approved"),
    ("pending", "rejected"),
    ("pending", "cancelled"),
    ("under_review", "approved"),
    ("under_review", "rejected"),
    ("under_review", "cancelled"),
    ("under_review", "pending"),
    ("approved", "paid"),
    ("approved", "cancelled"),
    ("rejected", "under_review"),
    ("rejected", "pending"),
}


@pytest.mark.parametrize(
    ("current", "target"), list(itertools.product(sorted(CLAIM_STATUSES), repeat=2))
)
def test_transition_table(current, target):
    assert can_transition(current, target) is ((current, target) in ALLOWED)


def test_assert_transition_rejects_with_message():
    with pytest.raises(ValidationError) as exc_info:
        assert_claim_transition("paid", "pending")

    assert exc_info.value.status_code == 400
    assert exc_info.value.detail == "Cannot change status from paid to pending"


def test_unknown_statuses_never_transition():
    assert not can_transition("archived", "pending")
    assert not can_transition("pending", "archived")


def test_terminal_statuses():
    assert is_terminal("paid")
    assert is_terminal("cancelled")
    assert not is_terminal("rejected")
    assert not is_terminal("approved")


def test_contribution_completed_is_final():
    assert contribution_state.can_transition("pending", "completed")
    assert contribution_state.can_transition("failed", "completed")
    assert not contribution_state.can_transition("completed", "failed")
    assert not contribution_state.can_transition("completed", "pending")
