"""
Order state machine.

    PENDING ──> PROCESSING ──> SHIPPED ──> DELIVERED ──> COMPLETED
       │            │  └──────────────────────────────────────^ (no shipping)
       └────────────┴──> CANCELLED
"""

from __future__ import annotations

from bazaar.domain import OrderStatus
from bazaar.errors import InvalidTransitionError

TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.PROCESSING, OrderStatus.CANCELLED}),
    OrderStatus.PROCESSING: frozenset({OrderStatus.SHIPPED, OrderStatus.CANCELLED}),
    OrderStatus.SHIPPED: frozenset({OrderStatus.DELIVERED}),
    OrderStatus.DELIVERED: frozenset({OrderStatus.COMPLETED}),
    OrderStatus.CANCELLED: frozenset(),
    OrderStatus.COMPLETED: frozenset(),
}


def can_transition(current: OrderStatus, target: OrderStatus, *, requires_shipping: bool = True) -> bool:
    if target in TRANSITIONS[current]:
        return True
    # Non-physical orders skip fulfilment.
    return (
        not requires_shipping
        and current is OrderStatus.PROCESSING
        and target is OrderStatus.COMPLETED
    )


def ensure_transition(current: OrderStatus, target: OrderStatus, *, requires_shipping: bool = True) -> None:
    if not can_transition(current, target, requires_shipping=requires_shipping):
        raise InvalidTransitionError(current.value, target.value)


__all__ = ("TRANSITIONS", "can_transition", "ensure_transition")
