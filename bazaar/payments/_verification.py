"""
Payment verification — gateway callbacks and the shared failure path.

A callback is trusted only after its HMAC checks out. The payment row then
moves PENDING -> terminal with one conditional UPDATE; duplicates find no
PENDING row and become no-ops, so fulfilment and notifications run once.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta

from sqlalchemy import ColumnElement
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from kungfu import LazyCoroResult
from combinators import lift as L

from bazaar._types import utcnow
from bazaar.db._payment_rows import mark_failed, mark_succeeded, stale_payment_ids
from bazaar.db._tables import OrderTable, PaymentTable
from bazaar.domain import (
    FailureCallback,
    OrderStatus,
    PaymentCallback,
    PaymentStatus,
    SweepReport,
    VerificationOutcome,
)
from bazaar.errors import (
    BazaarError,
    NotFoundError,
    OrderConflictError,
    SignatureVerificationError,
    lift_error,
)
from bazaar.inventory._reservation import release
from bazaar.notify._dispatcher import NotificationDispatcher
from bazaar.notify._sender import PAYMENT_CONFIRMED, PAYMENT_FAILED
from bazaar.orders._lifecycle import cancel, move
from bazaar.orders._repo import find_by_id
from bazaar.payments._signature import verify_signature

logger = logging.getLogger(__name__)


class PaymentService:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        key_secret: str,
        dispatcher: NotificationDispatcher,
        *,
        payment_expiry: timedelta = timedelta(minutes=30),
    ) -> None:
        self._session = session_factory
        self._secret = key_secret
        self._dispatcher = dispatcher
        self._expiry = payment_expiry

    # ═══════════════════════════════════════════════════════════════════════════
    # Public API
    # ═══════════════════════════════════════════════════════════════════════════

    def verify_payment(self, callback: PaymentCallback) -> LazyCoroResult[VerificationOutcome, BazaarError]:
        """Settle a successful payment. Safe to call any number of times."""
        return L.catching_async(lambda: self._verify(callback), on_error=lift_error)

    def fail_payment(self, callback: FailureCallback) -> LazyCoroResult[VerificationOutcome, BazaarError]:
        """Settle a failed payment: cancel the order and put the stock back."""
        return L.catching_async(lambda: self._fail_callback(callback), on_error=lift_error)

    def sweep_expired_payments(self, now: datetime | None = None) -> LazyCoroResult[SweepReport, BazaarError]:
        """Fail every payment still PENDING after the expiry window."""
        return L.catching_async(lambda: self._sweep(now or utcnow()), on_error=lift_error)

    # ═══════════════════════════════════════════════════════════════════════════
    # Success
    # ═══════════════════════════════════════════════════════════════════════════

    def _check_signature(self, gateway_order_id: str, gateway_payment_id: str, signature: str) -> None:
        if not verify_signature(self._secret, gateway_order_id, gateway_payment_id, signature):
            logger.warning(
                "Rejected callback with bad signature: gateway_order=%s payment=%s",
                gateway_order_id, gateway_payment_id,
            )
            raise SignatureVerificationError(gateway_order_id)

    async def _verify(self, callback: PaymentCallback) -> VerificationOutcome:
        self._check_signature(callback.gateway_order_id, callback.gateway_payment_id, callback.signature)

        async with self._session() as session, session.begin():
            order_id = await mark_succeeded(session, callback)
            if order_id is None:
                logger.info("Callback for %s is a no-op", callback.gateway_order_id)
                return VerificationOutcome(applied=False)

            order = await find_by_id(session, order_id)
            if order is None:
                raise NotFoundError("order", order_id)
            if order.status is OrderStatus.PENDING:
                if not await move(
                    session,
                    order.id,
                    OrderStatus.PENDING,
                    OrderStatus.PROCESSING,
                    requires_shipping=order.requires_shipping,
                ):
                    raise OrderConflictError(order.order_number)
            else:
                logger.warning(
                    "Payment confirmed for order %s already in %s; status left as is",
                    order.order_number, order.status.value,
                )
            order_number, email = order.order_number, order.customer_email

        logger.info("Payment confirmed for order %s", order_number)
        self._dispatcher.dispatch(email, PAYMENT_CONFIRMED, {
            "order_number": order_number,
            "gateway_payment_id": callback.gateway_payment_id,
        })
        return VerificationOutcome(
            applied=True,
            order_number=order_number,
            payment_status=PaymentStatus.SUCCESS,
        )

    # ═══════════════════════════════════════════════════════════════════════════
    # Failure
    # ═══════════════════════════════════════════════════════════════════════════

    async def _fail_callback(self, callback: FailureCallback) -> VerificationOutcome:
        self._check_signature(callback.gateway_order_id, callback.gateway_payment_id, callback.signature)
        return await self._fail(
            PaymentTable.gateway_order_id == callback.gateway_order_id,
            callback.reason,
            gateway_payment_id=callback.gateway_payment_id,
        )

    async def _fail(
        self,
        condition: ColumnElement[bool],
        reason: str,
        gateway_payment_id: str | None = None,
    ) -> VerificationOutcome:
        async with self._session() as session, session.begin():
            order_id = await mark_failed(session, condition, reason, gateway_payment_id)
            if order_id is None:
                return VerificationOutcome(applied=False)

            order = await find_by_id(session, order_id)
            if order is None:
                raise NotFoundError("order", order_id)
            await self._settle_failed_order(session, order, reason)
            order_number, email = order.order_number, order.customer_email

        logger.info("Payment failed for order %s (%s)", order_number, reason)
        self._dispatcher.dispatch(email, PAYMENT_FAILED, {
            "order_number": order_number,
            "reason": reason,
        })
        return VerificationOutcome(
            applied=True,
            order_number=order_number,
            payment_status=PaymentStatus.FAILED,
        )

    @staticmethod
    async def _settle_failed_order(session: AsyncSession, order: OrderTable, reason: str) -> None:
        match order.status:
            case OrderStatus.PENDING:
                if not await cancel(session, order.id, OrderStatus.PENDING, reason=reason):
                    raise OrderConflictError(order.order_number)
            case OrderStatus.CANCELLED:
                await release(session, order.id)
            case _:
                logger.warning(
                    "Payment for order %s failed while order is %s; left as is",
                    order.order_number, order.status.value,
                )

    # ═══════════════════════════════════════════════════════════════════════════
    # Expiry sweep
    # ═══════════════════════════════════════════════════════════════════════════

    async def _sweep(self, now: datetime) -> SweepReport:
        cutoff = now - self._expiry
        async with self._session() as session:
            candidates = await stale_payment_ids(session, cutoff)

        expired: list[str] = []
        for payment_id in candidates:
            # One transaction per payment; a callback may settle it first.
            outcome = await self._fail(PaymentTable.id == payment_id, "expired")
            if outcome.applied and outcome.order_number is not None:
                expired.append(outcome.order_number)

        if expired:
            logger.info("Expired %d pending payments", len(expired))
        return SweepReport(expired=tuple(expired))


__all__ = ("PaymentService",)
