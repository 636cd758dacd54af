"""
Payment rows — creation and the single PENDING -> terminal move.

Every status change is conditional on status = PENDING, so a payment is
settled at most once no matter how many callbacks arrive.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import ColumnElement, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from bazaar._types import Money, utcnow
from bazaar.db._tables import PaymentTable
from bazaar.domain import PaymentCallback, PaymentMethod, PaymentStatus


async def open_payment(session: AsyncSession, order_id: int, amount: Money, currency: str) -> None:
    session.add(PaymentTable(
        order_id=order_id,
        amount=amount,
        currency=currency,
        method=PaymentMethod.ONLINE,
        status=PaymentStatus.PENDING,
    ))
    await session.flush()


async def attach_gateway_order(session: AsyncSession, order_id: int, gateway_order_id: str) -> None:
    await session.execute(
        update(PaymentTable)
        .where(PaymentTable.order_id == order_id)
        .values(gateway_order_id=gateway_order_id, updated_at=utcnow())
        .execution_options(synchronize_session=False)
    )


async def mark_succeeded(session: AsyncSession, callback: PaymentCallback) -> int | None:
    """PENDING -> SUCCESS. Returns the order id, or None if nothing moved."""
    result = await session.execute(
        update(PaymentTable)
        .where(
            PaymentTable.gateway_order_id == callback.gateway_order_id,
            PaymentTable.status == PaymentStatus.PENDING,
        )
        .values(
            status=PaymentStatus.SUCCESS,
            gateway_payment_id=callback.gateway_payment_id,
            gateway_signature=callback.signature,
            updated_at=utcnow(),
        )
        .returning(PaymentTable.order_id)
        .execution_options(synchronize_session=False)
    )
    return result.scalar_one_or_none()


async def mark_failed(
    session: AsyncSession,
    condition: ColumnElement[bool],
    reason: str,
    gateway_payment_id: str | None = None,
) -> int | None:
    """PENDING -> FAILED for the payment matching condition."""
    values: dict[str, object] = {
        "status": PaymentStatus.FAILED,
        "failure_reason": reason,
        "updated_at": utcnow(),
    }
    if gateway_payment_id is not None:
        values["gateway_payment_id"] = gateway_payment_id
    result = await session.execute(
        update(PaymentTable)
        .where(condition, PaymentTable.status == PaymentStatus.PENDING)
        .values(**values)
        .returning(PaymentTable.order_id)
        .execution_options(synchronize_session=False)
    )
    return result.scalar_one_or_none()


async def fail_for_order(session: AsyncSession, order_id: int, reason: str) -> bool:
    return await mark_failed(session, PaymentTable.order_id == order_id, reason) is not None


async def stale_payment_ids(session: AsyncSession, cutoff: datetime) -> list[int]:
    rows = await session.scalars(
        select(PaymentTable.id)
        .where(PaymentTable.status == PaymentStatus.PENDING, PaymentTable.created_at < cutoff)
        .order_by(PaymentTable.id)
    )
    return list(rows)


__all__ = (
    "open_payment",
    "attach_gateway_order",
    "mark_succeeded",
    "mark_failed",
    "fail_for_order",
    "stale_payment_ids",
)
