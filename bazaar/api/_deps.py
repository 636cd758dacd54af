"""
Request dependencies — caller identity and the service container.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Annotated

from fastapi import Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from bazaar.cart._service import CartService
from bazaar.domain import Actor, Role
from bazaar.errors import UnauthenticatedError
from bazaar.notify._dispatcher import NotificationDispatcher
from bazaar.notify._sender import NotificationSender
from bazaar.orders._checkout import CheckoutService
from bazaar.orders._service import OrderService
from bazaar.payments._gateway import PaymentGateway
from bazaar.payments._verification import PaymentService
from bazaar.settings import Settings


@dataclass(frozen=True, slots=True)
class Services:
    settings: Settings
    dispatcher: NotificationDispatcher
    carts: CartService
    checkout: CheckoutService
    orders: OrderService
    payments: PaymentService
    engine: AsyncEngine | None = None


def build_services(
    settings: Settings,
    session_factory: async_sessionmaker[AsyncSession],
    gateway: PaymentGateway,
    sender: NotificationSender,
    engine: AsyncEngine | None = None,
) -> Services:
    dispatcher = NotificationDispatcher(sender)
    return Services(
        settings=settings,
        dispatcher=dispatcher,
        carts=CartService(session_factory),
        checkout=CheckoutService(session_factory, gateway, dispatcher, settings),
        orders=OrderService(session_factory, dispatcher),
        payments=PaymentService(
            session_factory,
            settings.gateway_key_secret,
            dispatcher,
            payment_expiry=settings.payment_expiry,
        ),
        engine=engine,
    )


def get_services(request: Request) -> Services:
    return request.app.state.services


def current_actor(
    x_user_id: Annotated[str | None, Header()] = None,
    x_user_email: Annotated[str | None, Header()] = None,
    x_user_role: Annotated[str | None, Header()] = None,
    x_franchise_id: Annotated[int | None, Header()] = None,
) -> Actor:
    """Identity asserted by the upstream auth service."""
    if not x_user_id:
        raise UnauthenticatedError()
    try:
        role = Role((x_user_role or "USER").upper())
    except ValueError:
        role = Role.USER
    return Actor(
        user_id=x_user_id,
        email=x_user_email,
        role=role,
        franchise_id=x_franchise_id,
    )


ServicesDep = Annotated[Services, Depends(get_services)]
ActorDep = Annotated[Actor, Depends(current_actor)]


__all__ = (
    "Services",
    "build_services",
    "get_services",
    "current_actor",
    "ServicesDep",
    "ActorDep",
)
