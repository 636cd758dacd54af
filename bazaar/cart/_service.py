"""
Cart service — add, update, remove, view.
"""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from kungfu import LazyCoroResult
from combinators import lift as L

from bazaar.cart._snapshot import read_cart
from bazaar.db._tables import CartItemTable, CartTable, CatalogEntryTable
from bazaar.domain import Actor, CartSnapshot
from bazaar.errors import BazaarError, NotFoundError, lift_error

logger = logging.getLogger(__name__)


class CartService:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session = session_factory

    # ═══════════════════════════════════════════════════════════════════════════
    # Public API
    # ═══════════════════════════════════════════════════════════════════════════

    def view(self, actor: Actor) -> LazyCoroResult[CartSnapshot, BazaarError]:
        return L.catching_async(lambda: self._view(actor), on_error=lift_error)

    def add_item(
        self,
        actor: Actor,
        catalog_entry_id: int,
        quantity: int,
        franchise_id: int | None = None,
    ) -> LazyCoroResult[CartSnapshot, BazaarError]:
        """
        Add an entry, or raise its quantity if it is already in the cart.

        The live catalog price is captured as the item's unit price.
        """
        return L.catching_async(
            lambda: self._add_item(actor, catalog_entry_id, quantity, franchise_id),
            on_error=lift_error,
        )

    def update_item(
        self, actor: Actor, item_id: int, quantity: int
    ) -> LazyCoroResult[CartSnapshot, BazaarError]:
        return L.catching_async(
            lambda: self._update_item(actor, item_id, quantity),
            on_error=lift_error,
        )

    def remove_item(self, actor: Actor, item_id: int) -> LazyCoroResult[CartSnapshot, BazaarError]:
        return L.catching_async(
            lambda: self._remove_item(actor, item_id),
            on_error=lift_error,
        )

    # ═══════════════════════════════════════════════════════════════════════════
    # Implementation
    # ═══════════════════════════════════════════════════════════════════════════

    async def _view(self, actor: Actor) -> CartSnapshot:
        async with self._session() as session:
            return await read_cart(session, actor.user_id)

    async def _add_item(
        self,
        actor: Actor,
        catalog_entry_id: int,
        quantity: int,
        franchise_id: int | None,
    ) -> CartSnapshot:
        async with self._session() as session, session.begin():
            entry = await session.get(CatalogEntryTable, catalog_entry_id)
            if entry is None or not entry.is_active:
                raise NotFoundError("catalog_entry", catalog_entry_id)

            cart = await self._get_or_create_cart(session, actor.user_id)
            existing = await session.scalar(
                select(CartItemTable).where(
                    CartItemTable.cart_id == cart.id,
                    CartItemTable.catalog_entry_id == catalog_entry_id,
                    CartItemTable.checkout_order_id.is_(None),
                    CartItemTable.franchise_id.is_(None)
                    if franchise_id is None
                    else CartItemTable.franchise_id == franchise_id,
                )
            )
            if existing is not None:
                existing.quantity += quantity
            else:
                session.add(CartItemTable(
                    cart_id=cart.id,
                    catalog_entry_id=catalog_entry_id,
                    franchise_id=franchise_id,
                    quantity=quantity,
                    unit_price=entry.price,
                ))
            await session.flush()
            snapshot = await read_cart(session, actor.user_id)

        logger.debug("cart %s: added entry %s x%s", actor.user_id, catalog_entry_id, quantity)
        return snapshot

    async def _update_item(self, actor: Actor, item_id: int, quantity: int) -> CartSnapshot:
        async with self._session() as session, session.begin():
            item = await self._owned_item(session, actor.user_id, item_id)
            item.quantity = quantity
            await session.flush()
            return await read_cart(session, actor.user_id)

    async def _remove_item(self, actor: Actor, item_id: int) -> CartSnapshot:
        async with self._session() as session, session.begin():
            item = await self._owned_item(session, actor.user_id, item_id)
            await session.delete(item)
            await session.flush()
            return await read_cart(session, actor.user_id)

    @staticmethod
    async def _get_or_create_cart(session: AsyncSession, user_id: str) -> CartTable:
        cart = await session.scalar(select(CartTable).where(CartTable.user_id == user_id))
        if cart is None:
            cart = CartTable(user_id=user_id)
            session.add(cart)
            await session.flush()
        return cart

    @staticmethod
    async def _owned_item(session: AsyncSession, user_id: str, item_id: int) -> CartItemTable:
        item = await session.scalar(
            select(CartItemTable)
            .join(CartTable, CartTable.id == CartItemTable.cart_id)
            .where(
                CartItemTable.id == item_id,
                CartTable.user_id == user_id,
                CartItemTable.checkout_order_id.is_(None),
            )
        )
        if item is None:
            raise NotFoundError("cart_item", item_id)
        return item


__all__ = ("CartService",)
