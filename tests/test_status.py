"""Tests for the status transition table"""

import pytest

from bites_api.orders.status import OrderStatus, TRANSITIONS, can_transition

S = OrderStatus

ALLOWED = {
    (S.PENDING, S.CONFIRMED),
    (S.PENDING, S.CANCELLED),
    (S.CONFIRMED, S.PREPARING),
    (S.CONFIRMED, S.CANCELLED),
    (S.PREPARING, S.READY),
    (S.PREPARING, S.CANCELLED),
    (S.READY, S.OUT_FOR_DELIVERY),
    (S.READY, S.CANCELLED),
    (S.OUT_FOR_DELIVERY, S.DELIVERED),
    (S.OUT_FOR_DELIVERY, S.CANCELLED),
}


@pytest.mark.parametrize("current", list(OrderStatus))
@pytest.mark.parametrize("requested", list(OrderStatus))
def test_transition_table(current, requested):
    assert can_transition(current, requested) == ((current, requested) in ALLOWED)


def test_terminal_states_have_no_exits():
    assert S.DELIVERED.is_terminal
    assert S.CANCELLED.is_terminal
    assert not S.PENDING.is_terminal
    assert TRANSITIONS[S.DELIVERED] == frozenset()


def test_no_self_transitions():
    for status in OrderStatus:
        assert not can_transition(status, status)


def test_accepts_wire_values():
    assert can_transition("pending", "confirmed")
    assert not can_transition("ready", "pending")


def test_labels():
    assert S.READY.label == "Ready for Pickup"
    assert S.OUT_FOR_DELIVERY.label == "Out for Delivery"
