"""
Order lifecycle — guarded status moves and cancellation.

Moves are compare-and-set on the status the caller observed; a concurrent
writer makes the move report False instead of overwriting.
"""

from __future__ import annotations

import logging

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from bazaar._types import utcnow
from bazaar.db._tables import OrderTable
from bazaar.domain import OrderStatus
from bazaar.inventory._reservation import release
from bazaar.orders._state import ensure_transition
from bazaar.db._payment_rows import fail_for_order

logger = logging.getLogger(__name__)


async def move(
    session: AsyncSession,
    order_id: int,
    observed: OrderStatus,
    target: OrderStatus,
    *,
    requires_shipping: bool = True,
) -> bool:
    """Apply observed -> target if the state machine allows it and nobody got there first."""
    ensure_transition(observed, target, requires_shipping=requires_shipping)
    result = await session.execute(
        update(OrderTable)
        .where(OrderTable.id == order_id, OrderTable.status == observed)
        .values(status=target, updated_at=utcnow())
        .returning(OrderTable.id)
        .execution_options(synchronize_session=False)
    )
    moved = result.first() is not None
    if moved:
        logger.info("Order %s: %s -> %s", order_id, observed.value, target.value)
    return moved


async def cancel(
    session: AsyncSession,
    order_id: int,
    observed: OrderStatus,
    *,
    reason: str,
) -> bool:
    """Cancel, fail any still-pending payment and put the stock back."""
    if not await move(session, order_id, observed, OrderStatus.CANCELLED):
        return False
    await fail_for_order(session, order_id, reason)
    await release(session, order_id)
    return True


__all__ = ("move", "cancel")
