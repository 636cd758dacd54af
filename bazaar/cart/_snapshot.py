"""
Cart snapshot — session-level reads, the checkout claim and the post-checkout clear.

A checkout claims the snapshot's items inside its placing transaction. A
second checkout of the same items finds them taken and fails; claimed items
disappear from the cart until the checkout clears them or gives them back.
"""

from __future__ import annotations

from collections.abc import Sequence

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from bazaar.db._tables import CartItemTable, CartTable, CatalogEntryTable
from bazaar.domain import CartLine, CartSnapshot
from bazaar.errors import CartChangedError, EmptyCartError


async def read_cart(session: AsyncSession, user_id: str) -> CartSnapshot:
    """Current cart contents; empty snapshot when the user has no cart."""
    cart_id = await session.scalar(select(CartTable.id).where(CartTable.user_id == user_id))
    if cart_id is None:
        return CartSnapshot(user_id=user_id, cart_id=None, lines=())

    rows = await session.execute(
        select(CartItemTable, CatalogEntryTable)
        .join(CatalogEntryTable, CatalogEntryTable.id == CartItemTable.catalog_entry_id)
        .where(CartItemTable.cart_id == cart_id, CartItemTable.checkout_order_id.is_(None))
        .order_by(CartItemTable.id)
    )
    lines = tuple(
        CartLine(
            item_id=item.id,
            catalog_entry_id=entry.id,
            kind=entry.kind,
            franchise_id=item.franchise_id,
            name=entry.name,
            unit_price=item.unit_price,
            quantity=item.quantity,
        )
        for item, entry in rows.tuples()
    )
    return CartSnapshot(user_id=user_id, cart_id=cart_id, lines=lines)


async def load_snapshot(session: AsyncSession, user_id: str) -> CartSnapshot:
    """Like read_cart, but an empty cart is an error."""
    snapshot = await read_cart(session, user_id)
    if snapshot.is_empty:
        raise EmptyCartError(user_id)
    return snapshot


async def claim_items(session: AsyncSession, snapshot: CartSnapshot, order_id: int) -> None:
    """
    Mark every snapshot item as held by order_id.

    Raises CartChangedError if any item is gone or already claimed; the
    caller's transaction then rolls back.
    """
    ids = list(snapshot.item_ids)
    result = await session.execute(
        update(CartItemTable)
        .where(CartItemTable.id.in_(ids), CartItemTable.checkout_order_id.is_(None))
        .values(checkout_order_id=order_id)
        .execution_options(synchronize_session=False)
    )
    if (result.rowcount or 0) != len(ids):
        raise CartChangedError(snapshot.user_id)


async def unclaim_items(session: AsyncSession, order_id: int) -> int:
    """Put the items held by order_id back into the cart."""
    result = await session.execute(
        update(CartItemTable)
        .where(CartItemTable.checkout_order_id == order_id)
        .values(checkout_order_id=None)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount or 0


async def clear_items(session: AsyncSession, order_id: int) -> int:
    """
    Delete exactly the items held by order_id.

    Items added after the snapshot was taken are left alone.
    """
    result = await session.execute(
        delete(CartItemTable)
        .where(CartItemTable.checkout_order_id == order_id)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount or 0


__all__ = ("read_cart", "load_snapshot", "claim_items", "unclaim_items", "clear_items")
