"""
Checkout — cart to order as a compensated saga.

    place ──> open gateway order ──> finalize
      │              │                  │
      └──── cancel + fail payment + release stock on any later failure

place is one transaction: order row, copied lines, cart item claim, stock
reservation and the PENDING payment row commit together or not at all. The
claim makes a second checkout of the same cart fail instead of placing a
duplicate order. Claimed items are deleted in finalize, after everything else
has succeeded, and handed back to the cart on rollback.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, replace
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from kungfu import Ok, Error, LazyCoroResult
from combinators import lift as L

from bazaar import saga as S
from bazaar._types import Money, utcnow
from bazaar.cart._snapshot import claim_items, clear_items, unclaim_items
from bazaar.domain import (
    Actor,
    CheckoutRequest,
    LowStock,
    OrderStatus,
    PaymentMethod,
    PlacedOrder,
    Quote,
    StockRequest,
)
from bazaar.errors import BazaarError, NotFoundError, PaymentGatewayError, lift_error
from bazaar.inventory._alerts import announce_low_stock
from bazaar.inventory._reservation import reserve
from bazaar.notify._dispatcher import NotificationDispatcher
from bazaar.notify._sender import ORDER_PLACED
from bazaar.orders._lifecycle import cancel
from bazaar.orders._numbering import OrderNumberGenerator
from bazaar.orders._repo import find_by_id, insert_order, to_domain
from bazaar.payments._gateway import PaymentGateway, to_minor_units
from bazaar.db._payment_rows import attach_gateway_order, open_payment
from bazaar.pricing._graph import PricingContext, QuoteInput, QuoteNode
from bazaar.settings import Settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class _Placed:
    order_id: int
    order_number: str
    user_id: str
    method: PaymentMethod
    total: Money
    gateway_order_id: str | None = None


def _gateway_error(e: Exception) -> BazaarError:
    if isinstance(e, BazaarError):
        return e
    logger.error("Gateway call failed", exc_info=e)
    return PaymentGatewayError(f"{type(e).__name__}: {e}")


class CheckoutService:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        gateway: PaymentGateway,
        dispatcher: NotificationDispatcher,
        settings: Settings,
        *,
        next_number: Callable[[], str] | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._session = session_factory
        self._gateway = gateway
        self._dispatcher = dispatcher
        self._settings = settings
        self._next_number = next_number or OrderNumberGenerator()
        self._pricing = PricingContext(session_factory, settings.pricing, clock)

    @property
    def pricing(self) -> PricingContext:
        return self._pricing

    # ═══════════════════════════════════════════════════════════════════════════
    # Public API
    # ═══════════════════════════════════════════════════════════════════════════

    def quote(self, actor: Actor, request: CheckoutRequest) -> LazyCoroResult[Quote, BazaarError]:
        async def impl():
            return await QuoteNode.execute(
                QuoteInput(actor.user_id, request.payment_method, request.coupon_code),
                self._pricing,
            )
        return LazyCoroResult(impl)

    def checkout(self, actor: Actor, request: CheckoutRequest) -> LazyCoroResult[PlacedOrder, BazaarError]:
        """
        Price the cart, place the order, open the gateway order, clear the cart.

        Errors:
            EmptyCartError, InvalidCouponError: nothing written
            InsufficientStockError: nothing written, cart untouched
            CartChangedError: the cart is already being checked out, nothing written
            PaymentGatewayError: order cancelled, stock released, cart untouched
            OrderNumberCollisionError: nothing written, safe to retry
        """
        return L.catching_async(lambda: self._checkout(actor, request), on_error=lift_error)

    # ═══════════════════════════════════════════════════════════════════════════
    # Saga
    # ═══════════════════════════════════════════════════════════════════════════

    async def _checkout(self, actor: Actor, request: CheckoutRequest) -> PlacedOrder:
        match await self.quote(actor, request):
            case Ok(quote):
                pass
            case Error(e):
                raise e

        saga = (
            S.step(
                L.catching_async(lambda: self._place(actor, request, quote), on_error=lift_error),
                compensate=self._abort,
                name="place",
            )
            .then(lambda placed: S.from_async(
                lambda: self._open_gateway_order(placed),
                on_error=_gateway_error,
                name="gateway",
            ))
            .then(lambda opened: S.from_async(
                lambda: self._finalize(opened),
                on_error=lift_error,
                name="finalize",
            ))
        )

        match await S.run(saga):
            case Ok(done):
                placed = done.value
            case Error(failure):
                logger.info(
                    "Checkout for %s failed at %s (%s), rollback %s",
                    actor.user_id,
                    failure.step_name,
                    failure.error.code,
                    "complete" if failure.rollback_complete else "INCOMPLETE",
                )
                raise failure.error

        async with self._session() as session:
            row = await find_by_id(session, placed.order_id)
            if row is None:
                raise NotFoundError("order", placed.order_id)
            order = to_domain(row)

        self._dispatcher.dispatch(order.customer_email, ORDER_PLACED, {
            "order_number": order.order_number,
            "total": str(order.pricing.total),
            "payment_method": order.payment_method.value,
        })
        return PlacedOrder(
            order=order,
            gateway_order_id=placed.gateway_order_id,
            gateway_key=self._gateway.public_key if placed.gateway_order_id else None,
        )

    async def _place(self, actor: Actor, request: CheckoutRequest, quote: Quote) -> _Placed:
        low: list[LowStock]
        async with self._session() as session, session.begin():
            row = await insert_order(
                session,
                actor,
                request,
                quote,
                self._next_number,
                self._settings.order_number_attempts,
            )
            await claim_items(session, quote.snapshot, row.id)
            low = await reserve(session, [
                StockRequest(line.catalog_entry_id, line.franchise_id, line.quantity)
                for line in quote.snapshot.lines
                if line.kind.is_physical
            ])
            if quote.payment_method is PaymentMethod.ONLINE:
                await open_payment(session, row.id, quote.pricing.total, self._settings.currency)
            placed = _Placed(
                order_id=row.id,
                order_number=row.order_number,
                user_id=actor.user_id,
                method=quote.payment_method,
                total=quote.pricing.total,
            )

        logger.info("Placed order %s for %s", placed.order_number, actor.user_id)
        announce_low_stock(self._dispatcher, low, self._settings.platform_ops_email)
        return placed

    async def _open_gateway_order(self, placed: _Placed) -> _Placed:
        if placed.method is not PaymentMethod.ONLINE:
            return placed
        gateway_order = await self._gateway.create_order(
            to_minor_units(placed.total),
            self._settings.currency,
            placed.order_number,
            {"order_number": placed.order_number, "user_id": placed.user_id},
        )
        return replace(placed, gateway_order_id=gateway_order.id)

    async def _finalize(self, placed: _Placed) -> _Placed:
        async with self._session() as session, session.begin():
            if placed.gateway_order_id is not None:
                await attach_gateway_order(session, placed.order_id, placed.gateway_order_id)
            await clear_items(session, placed.order_id)
        return placed

    async def _abort(self, placed: _Placed) -> None:
        async with self._session() as session, session.begin():
            cancelled = await cancel(
                session, placed.order_id, OrderStatus.PENDING, reason="checkout_aborted"
            )
            await unclaim_items(session, placed.order_id)
        if not cancelled:
            logger.error("Could not cancel aborted order %s", placed.order_number)
        else:
            logger.info("Rolled back order %s", placed.order_number)


__all__ = ("CheckoutService",)
