import itertools

import pytest

from app.errors import InvalidOperationError, InvalidTransitionError
from app.transitions import (
    TRANSITIONS,
    OrderStatus,
    ensure_cancellable,
    ensure_returnable,
    validate_transition,
)

S = OrderStatus

LEGAL_EDGES = {
    (S.PLACED, S.CONFIRMED),
    (S.PLACED, S.CANCELLED),
    (S.CONFIRMED, S.PROCESSING),
    (S.CONFIRMED, S.CANCELLED),
    (S.PROCESSING, S.SHIPPED),
    (S.PROCESSING, S.CANCELLED),
    (S.SHIPPED, S.DELIVERED),
    (S.DELIVERED, S.RETURNED),
}


@pytest.mark.parametrize("current,requested", sorted(LEGAL_EDGES))
def test_legal_edges_pass(current, requested):
    validate_transition(current, requested)


@pytest.mark.parametrize("status", list(S))
def test_same_status_always_passes(status):
    validate_transition(status, status)


def test_every_other_pair_is_rejected():
    for current, requested in itertools.product(S, S):
        if current == requested or (current, requested) in LEGAL_EDGES:
            continue
        with pytest.raises(InvalidTransitionError) as exc_info:
            validate_transition(current, requested)
        assert exc_info.value.current is current
        assert exc_info.value.requested is requested


def test_invalid_transition_is_an_invalid_operation():
    with pytest.raises(InvalidOperationError, match="PROCESSING -> DELIVERED"):
        validate_transition(S.PROCESSING, S.DELIVERED)


def test_terminal_states():
    assert {s for s in S if not TRANSITIONS[s]} == {S.CANCELLED, S.RETURNED}


@pytest.mark.parametrize("status", [S.SHIPPED, S.DELIVERED, S.CANCELLED])
def test_cancel_guard_rejects(status):
    with pytest.raises(InvalidOperationError):
        ensure_cancellable(status)


@pytest.mark.parametrize("status", [S.PLACED, S.CONFIRMED, S.PROCESSING, S.RETURNED])
def test_cancel_guard_accepts(status):
    ensure_cancellable(status)


def test_return_guard_only_accepts_delivered():
    ensure_returnable(S.DELIVERED)
    for status in S:
        if status is S.DELIVERED:
            continue
        with pytest.raises(InvalidOperationError):
            ensure_returnable(status)
