"""
Orders — state machine, checkout saga and status management.
"""

from bazaar.orders._state import TRANSITIONS, can_transition, ensure_transition
from bazaar.orders._numbering import OrderNumberGenerator
from bazaar.orders._lifecycle import move, cancel
from bazaar.orders._checkout import CheckoutService
from bazaar.orders._service import OrderService

__all__ = (
    "TRANSITIONS",
    "can_transition",
    "ensure_transition",
    "OrderNumberGenerator",
    "move",
    "cancel",
    "CheckoutService",
    "OrderService",
)
