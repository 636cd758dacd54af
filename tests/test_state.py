"""Tests for the order state machine."""

import pytest

from bazaar.domain import OrderStatus as S
from bazaar.errors import InvalidTransitionError
from bazaar.orders import can_transition, ensure_transition

ALLOWED = [
    (S.PENDING, S.PROCESSING),
    (S.PENDING, S.CANCELLED),
    (S.PROCESSING, S.SHIPPED),
    (S.PROCESSING, S.CANCELLED),
    (S.SHIPPED, S.DELIVERED),
    (S.DELIVERED, S.COMPLETED),
]


@pytest.mark.parametrize("current,target", ALLOWED)
def test_allowed(current, target):
    assert can_transition(current, target)
    ensure_transition(current, target)


@pytest.mark.parametrize(
    "current,target",
    [
        (S.PENDING, S.SHIPPED),
        (S.PENDING, S.COMPLETED),
        (S.SHIPPED, S.CANCELLED),
        (S.DELIVERED, S.CANCELLED),
        (S.CANCELLED, S.PENDING),
        (S.CANCELLED, S.PROCESSING),
        (S.COMPLETED, S.PENDING),
        (S.PROCESSING, S.PROCESSING),
    ],
)
def test_rejected(current, target):
    assert not can_transition(current, target)
    with pytest.raises(InvalidTransitionError) as exc:
        ensure_transition(current, target)
    assert exc.value.current == current.value
    assert exc.value.target == target.value


def test_non_physical_order_completes_from_processing():
    assert can_transition(S.PROCESSING, S.COMPLETED, requires_shipping=False)
    assert not can_transition(S.PROCESSING, S.COMPLETED, requires_shipping=True)


def test_terminal_states_have_no_exits():
    for target in S:
        assert not can_transition(S.CANCELLED, target, requires_shipping=False)
        assert not can_transition(S.COMPLETED, target, requires_shipping=False)
