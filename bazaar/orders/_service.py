"""
Order service — reads and admin/franchise status updates.
"""

from __future__ import annotations

import logging

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from kungfu import LazyCoroResult
from combinators import lift as L

from bazaar.db._tables import OrderTable
from bazaar.domain import Actor, Order, OrderStatus, PaymentStatus, Role
from bazaar.errors import (
    BazaarError,
    ForbiddenError,
    NotFoundError,
    OrderConflictError,
    PaymentPendingError,
    lift_error,
)
from bazaar.notify._dispatcher import NotificationDispatcher
from bazaar.notify._sender import ORDER_STATUS_CHANGED
from bazaar.orders._lifecycle import cancel, move
from bazaar.orders._repo import find_by_number, list_for_user, to_domain

logger = logging.getLogger(__name__)


def can_view(actor: Actor, row: OrderTable) -> bool:
    if actor.role is Role.ADMIN or row.user_id == actor.user_id:
        return True
    return can_manage(actor, row)


def can_manage(actor: Actor, row: OrderTable) -> bool:
    """Admins manage every order; a franchise manages the orders it owns."""
    if actor.role is Role.ADMIN:
        return True
    return (
        actor.role is Role.FRANCHISE
        and actor.franchise_id is not None
        and row.franchise_id == actor.franchise_id
    )


def awaiting_payment(row: OrderTable) -> bool:
    """PENDING online order whose payment has not settled yet."""
    return (
        row.status is OrderStatus.PENDING
        and row.payment is not None
        and row.payment.status is PaymentStatus.PENDING
    )


class OrderService:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        dispatcher: NotificationDispatcher,
    ) -> None:
        self._session = session_factory
        self._dispatcher = dispatcher

    def get(self, actor: Actor, order_number: str) -> LazyCoroResult[Order, BazaarError]:
        return L.catching_async(lambda: self._get(actor, order_number), on_error=lift_error)

    def list_orders(
        self, actor: Actor, status: OrderStatus | None = None
    ) -> LazyCoroResult[list[Order], BazaarError]:
        return L.catching_async(lambda: self._list(actor, status), on_error=lift_error)

    def update_status(
        self, actor: Actor, order_number: str, target: OrderStatus
    ) -> LazyCoroResult[Order, BazaarError]:
        """
        Move an order along the state machine.

        Cancelling also fails a still-pending payment and restores stock.
        """
        return L.catching_async(
            lambda: self._update_status(actor, order_number, target),
            on_error=lift_error,
        )

    async def _get(self, actor: Actor, order_number: str) -> Order:
        async with self._session() as session:
            row = await find_by_number(session, order_number)
            # Other users' orders are reported as missing.
            if row is None or not can_view(actor, row):
                raise NotFoundError("order", order_number)
            return to_domain(row)

    async def _list(self, actor: Actor, status: OrderStatus | None) -> list[Order]:
        async with self._session() as session:
            return [to_domain(row) for row in await list_for_user(session, actor.user_id, status)]

    async def _update_status(self, actor: Actor, order_number: str, target: OrderStatus) -> Order:
        async with self._session() as session, session.begin():
            row = await find_by_number(session, order_number)
            if row is None:
                raise NotFoundError("order", order_number)
            if not can_manage(actor, row):
                raise ForbiddenError(f"update order {order_number}")

            observed = row.status
            if target is not OrderStatus.CANCELLED and awaiting_payment(row):
                raise PaymentPendingError(order_number)
            if target is OrderStatus.CANCELLED:
                changed = await cancel(session, row.id, observed, reason="order_cancelled")
            else:
                changed = await move(
                    session, row.id, observed, target, requires_shipping=row.requires_shipping
                )
            if not changed:
                raise OrderConflictError(order_number)

            refreshed = await find_by_number(session, order_number)
            if refreshed is None:
                raise NotFoundError("order", order_number)
            order = to_domain(refreshed)

        logger.info("Order %s moved to %s by %s", order_number, target.value, actor.user_id)
        self._dispatcher.dispatch(order.customer_email, ORDER_STATUS_CHANGED, {
            "order_number": order.order_number,
            "status": order.status.value,
        })
        return order


__all__ = ("OrderService", "can_view", "can_manage", "awaiting_payment")
