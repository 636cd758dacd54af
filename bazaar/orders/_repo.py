"""
Order rows — insert, lookups and row -> domain conversion.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from bazaar.db._tables import OrderItemTable, OrderTable, PaymentTable
from bazaar.domain import (
    Actor,
    CheckoutRequest,
    Order,
    OrderLine,
    OrderStatus,
    PaymentInfo,
    PriceBreakdown,
    Quote,
)
from bazaar.errors import OrderNumberCollisionError

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════════════
# Conversion
# ═══════════════════════════════════════════════════════════════════════════════

def _payment_info(row: PaymentTable | None) -> PaymentInfo | None:
    if row is None:
        return None
    return PaymentInfo(
        status=row.status,
        method=row.method,
        amount=row.amount,
        currency=row.currency,
        gateway_order_id=row.gateway_order_id,
        gateway_payment_id=row.gateway_payment_id,
        failure_reason=row.failure_reason,
    )


def to_domain(row: OrderTable) -> Order:
    return Order(
        id=row.id,
        order_number=row.order_number,
        user_id=row.user_id,
        customer_email=row.customer_email,
        franchise_id=row.franchise_id,
        status=row.status,
        payment_method=row.payment_method,
        shipping_address_id=row.shipping_address_id,
        pricing=PriceBreakdown(
            subtotal=row.subtotal,
            delivery_charge=row.delivery_charge,
            cod_surcharge=row.cod_surcharge,
            discount_amount=row.discount_amount,
            total=row.total,
            coupon_code=row.coupon_code,
        ),
        requires_shipping=row.requires_shipping,
        lines=tuple(
            OrderLine(
                catalog_entry_id=item.catalog_entry_id,
                kind=item.kind,
                franchise_id=item.franchise_id,
                name=item.name,
                unit_price=item.unit_price,
                quantity=item.quantity,
                subtotal=item.subtotal,
            )
            for item in row.items
        ),
        created_at=row.created_at,
        updated_at=row.updated_at,
        payment=_payment_info(row.payment),
    )


# ═══════════════════════════════════════════════════════════════════════════════
# Reads
# ═══════════════════════════════════════════════════════════════════════════════

# Rows may have been changed by bulk UPDATEs in this session.
_FRESH = {"populate_existing": True}


async def find_by_number(session: AsyncSession, order_number: str) -> OrderTable | None:
    return await session.scalar(
        select(OrderTable)
        .where(OrderTable.order_number == order_number)
        .execution_options(**_FRESH)
    )


async def find_by_id(session: AsyncSession, order_id: int) -> OrderTable | None:
    return await session.scalar(
        select(OrderTable).where(OrderTable.id == order_id).execution_options(**_FRESH)
    )


async def list_for_user(
    session: AsyncSession,
    user_id: str,
    status: OrderStatus | None = None,
) -> list[OrderTable]:
    stmt = select(OrderTable).where(OrderTable.user_id == user_id)
    if status is not None:
        stmt = stmt.where(OrderTable.status == status)
    rows = await session.scalars(stmt.order_by(OrderTable.created_at.desc(), OrderTable.id.desc()))
    return list(rows)


# ═══════════════════════════════════════════════════════════════════════════════
# Insert
# ═══════════════════════════════════════════════════════════════════════════════

async def insert_order(
    session: AsyncSession,
    actor: Actor,
    request: CheckoutRequest,
    quote: Quote,
    next_number: Callable[[], str],
    attempts: int,
) -> OrderTable:
    """
    Insert the order and its copied lines.

    A clash on order_number rolls back to a savepoint and tries a fresh
    number, up to attempts times.
    """
    snapshot, pricing = quote.snapshot, quote.pricing

    for attempt in range(1, attempts + 1):
        number = next_number()
        row = OrderTable(
            order_number=number,
            user_id=actor.user_id,
            customer_email=actor.email,
            franchise_id=snapshot.franchise_id,
            status=OrderStatus.PENDING,
            payment_method=quote.payment_method,
            shipping_address_id=request.shipping_address_id,
            coupon_code=pricing.coupon_code,
            subtotal=pricing.subtotal,
            delivery_charge=pricing.delivery_charge,
            cod_surcharge=pricing.cod_surcharge,
            discount_amount=pricing.discount_amount,
            total=pricing.total,
            requires_shipping=snapshot.requires_shipping,
            stock_released=False,
        )
        try:
            async with session.begin_nested():
                session.add(row)
        except IntegrityError as e:
            if "order_number" not in str(e.orig):
                raise
            logger.warning("Order number %s taken (attempt %d/%d)", number, attempt, attempts)
            continue
        break
    else:
        raise OrderNumberCollisionError(attempts)

    session.add_all(
        OrderItemTable(
            order_id=row.id,
            catalog_entry_id=line.catalog_entry_id,
            kind=line.kind,
            franchise_id=line.franchise_id,
            name=line.name,
            unit_price=line.unit_price,
            quantity=line.quantity,
            subtotal=line.line_total,
        )
        for line in snapshot.lines
    )
    await session.flush()
    return row


__all__ = ("to_domain", "find_by_number", "find_by_id", "list_for_user", "insert_order")
