"""
Inventory reservation — conditional decrements and their reversal.

Every change is a single UPDATE ... WHERE quantity >= :q. There is no
read-then-write; two checkouts racing for the last unit cannot both win.

Both functions run inside the caller's transaction. A failed reserve() raises,
and the caller's rollback undoes every decrement made before the miss.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence

from sqlalchemy import ColumnElement, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from bazaar.db._tables import FranchiseTable, InventoryTable, OrderItemTable, OrderTable
from bazaar.domain import CatalogKind, LowStock, StockRequest
from bazaar.errors import InsufficientStockError

logger = logging.getLogger(__name__)


def _tenant(franchise_id: int | None) -> ColumnElement[bool]:
    if franchise_id is None:
        return InventoryTable.franchise_id.is_(None)
    return InventoryTable.franchise_id == franchise_id


def merge_requests(requests: Iterable[StockRequest]) -> list[StockRequest]:
    """
    Sum quantities per (entry, tenant), in a stable lock order.

    Reserving one combined quantity keeps the check honest when a cart holds
    the same entry twice.
    """
    totals: dict[tuple[int, int | None], int] = {}
    for r in requests:
        key = (r.catalog_entry_id, r.franchise_id)
        totals[key] = totals.get(key, 0) + r.quantity
    return [
        StockRequest(catalog_entry_id=entry, franchise_id=tenant, quantity=qty)
        for (entry, tenant), qty in sorted(totals.items(), key=lambda kv: (kv[0][0], kv[0][1] or 0))
    ]


# ═══════════════════════════════════════════════════════════════════════════════
# reserve()
# ═══════════════════════════════════════════════════════════════════════════════

async def reserve(session: AsyncSession, requests: Sequence[StockRequest]) -> list[LowStock]:
    """
    Decrement stock for every request or raise InsufficientStockError.

    Returns the entries that fell to or below their reorder threshold. The
    caller announces them after commit.
    """
    low: list[LowStock] = []

    for r in merge_requests(requests):
        stmt = (
            update(InventoryTable)
            .where(
                InventoryTable.catalog_entry_id == r.catalog_entry_id,
                _tenant(r.franchise_id),
                InventoryTable.quantity >= r.quantity,
            )
            .values(quantity=InventoryTable.quantity - r.quantity)
            .returning(InventoryTable.quantity, InventoryTable.min_stock)
            .execution_options(synchronize_session=False)
        )
        row = (await session.execute(stmt)).first()
        if row is None:
            logger.info(
                "Reservation miss: entry=%s franchise=%s qty=%s",
                r.catalog_entry_id, r.franchise_id, r.quantity,
            )
            raise InsufficientStockError(r.catalog_entry_id)

        quantity, min_stock = row
        if quantity <= min_stock:
            low.append(LowStock(
                catalog_entry_id=r.catalog_entry_id,
                franchise_id=r.franchise_id,
                quantity=quantity,
                min_stock=min_stock,
            ))

    if not low:
        return low
    return await _attach_owners(session, low)


async def _attach_owners(session: AsyncSession, low: list[LowStock]) -> list[LowStock]:
    tenant_ids = {item.franchise_id for item in low if item.franchise_id is not None}
    owners: dict[int, str] = {}
    if tenant_ids:
        rows = await session.execute(
            select(FranchiseTable.id, FranchiseTable.owner_email)
            .where(FranchiseTable.id.in_(tenant_ids))
        )
        owners = {fid: email for fid, email in rows.tuples()}
    return [
        LowStock(
            catalog_entry_id=item.catalog_entry_id,
            franchise_id=item.franchise_id,
            quantity=item.quantity,
            min_stock=item.min_stock,
            notify_to=owners.get(item.franchise_id) if item.franchise_id is not None else None,
        )
        for item in low
    ]


# ═══════════════════════════════════════════════════════════════════════════════
# release()
# ═══════════════════════════════════════════════════════════════════════════════

async def release(session: AsyncSession, order_id: int) -> bool:
    """
    Put an order's reserved stock back. Idempotent per order.

    The stock_released flag flips exactly once; only the caller that flips it
    restores quantities. Returns whether this call did the release.
    """
    claimed = await session.execute(
        update(OrderTable)
        .where(OrderTable.id == order_id, OrderTable.stock_released.is_(False))
        .values(stock_released=True)
        .returning(OrderTable.id)
        .execution_options(synchronize_session=False)
    )
    if claimed.first() is None:
        return False

    rows = await session.execute(
        select(OrderItemTable.catalog_entry_id, OrderItemTable.franchise_id, OrderItemTable.quantity)
        .where(OrderItemTable.order_id == order_id, OrderItemTable.kind != CatalogKind.DIGITAL)
    )
    restock = merge_requests(
        StockRequest(catalog_entry_id=entry, franchise_id=tenant, quantity=qty)
        for entry, tenant, qty in rows.tuples()
    )
    for r in restock:
        await session.execute(
            update(InventoryTable)
            .where(InventoryTable.catalog_entry_id == r.catalog_entry_id, _tenant(r.franchise_id))
            .values(quantity=InventoryTable.quantity + r.quantity)
            .execution_options(synchronize_session=False)
        )

    logger.info("Released stock for order %s (%d entries)", order_id, len(restock))
    return True


__all__ = ("merge_requests", "reserve", "release")
