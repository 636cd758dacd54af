"""Cart — per-user basket and its checkout snapshot."""

from bazaar.cart._snapshot import (
    read_cart,
    load_snapshot,
    claim_items,
    unclaim_items,
    clear_items,
)
from bazaar.cart._service import CartService

__all__ = (
    "read_cart",
    "load_snapshot",
    "claim_items",
    "unclaim_items",
    "clear_items",
    "CartService",
)
