"""
HTTP surface — FastAPI routes over the services.

Every handler converts its request model to_domain(), awaits a service
Result and either builds the response model or raises the domain error for
the single error handler below.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Annotated

import fastapi
from fastapi import APIRouter, Query
from fastapi.responses import JSONResponse
from kungfu import Ok, Error, Result

from bazaar.api._deps import ActorDep, Services, ServicesDep, build_services
from bazaar.api._schemas import (
    AddCartItemIn,
    CartOut,
    CheckoutIn,
    ErrorOut,
    FailPaymentIn,
    OrderListOut,
    OrderOut,
    OrderStatusIn,
    PlacedOrderOut,
    QuoteIn,
    QuoteOut,
    UpdateCartItemIn,
    UpdateStatusIn,
    VerificationOut,
    VerifyPaymentIn,
)
from bazaar.db._engine import create_database
from bazaar.domain import OrderStatus
from bazaar.errors import BazaarError
from bazaar.log import configure_logging
from bazaar.notify._sender import LogSender
from bazaar.payments._gateway import RazorpayGateway
from bazaar.settings import Settings

logger = logging.getLogger(__name__)

# ═══════════════════════════════════════════════════════════════════════════════
# Error mapping
# ═══════════════════════════════════════════════════════════════════════════════

STATUS_BY_CODE: dict[str, int] = {
    "EMPTY_CART": 400,
    "INVALID_COUPON": 400,
    "SIGNATURE_MISMATCH": 400,
    "UNAUTHENTICATED": 401,
    "FORBIDDEN": 403,
    "NOT_FOUND": 404,
    "INSUFFICIENT_STOCK": 409,
    "ORDER_CONFLICT": 409,
    "CART_CHANGED": 409,
    "PAYMENT_PENDING": 409,
    "INVALID_TRANSITION": 409,
    "STORAGE_ERROR": 500,
    "CONFIGURATION_ERROR": 500,
    "PAYMENT_GATEWAY_ERROR": 502,
    "ORDER_NUMBER_COLLISION": 503,
}


async def _bazaar_error_handler(request: fastapi.Request, exc: BazaarError) -> JSONResponse:
    status = STATUS_BY_CODE.get(exc.code, 500)
    body = ErrorOut(error=exc.code, message=exc.message)
    return JSONResponse(status_code=status, content=body.model_dump())


def unwrap[T](result: Result[T, BazaarError]) -> T:
    match result:
        case Ok(value):
            return value
        case Error(e):
            raise e
    raise TypeError(f"Not a Result: {result!r}")


# ═══════════════════════════════════════════════════════════════════════════════
# Routes
# ═══════════════════════════════════════════════════════════════════════════════

router = APIRouter(
    responses={status: {"model": ErrorOut} for status in sorted(set(STATUS_BY_CODE.values()))},
)


@router.get("/cart", response_model=CartOut)
async def get_cart(actor: ActorDep, services: ServicesDep) -> CartOut:
    return CartOut.from_domain(unwrap(await services.carts.view(actor)))


@router.post("/cart/items", response_model=CartOut)
async def add_cart_item(body: AddCartItemIn, actor: ActorDep, services: ServicesDep) -> CartOut:
    snapshot = unwrap(await services.carts.add_item(
        actor, body.catalog_entry_id, body.quantity, body.franchise_id
    ))
    return CartOut.from_domain(snapshot)


@router.patch("/cart/items/{item_id}", response_model=CartOut)
async def update_cart_item(
    item_id: int, body: UpdateCartItemIn, actor: ActorDep, services: ServicesDep
) -> CartOut:
    return CartOut.from_domain(unwrap(await services.carts.update_item(actor, item_id, body.quantity)))


@router.delete("/cart/items/{item_id}", response_model=CartOut)
async def remove_cart_item(item_id: int, actor: ActorDep, services: ServicesDep) -> CartOut:
    return CartOut.from_domain(unwrap(await services.carts.remove_item(actor, item_id)))


@router.post("/checkout/quote", response_model=QuoteOut)
async def quote(body: QuoteIn, actor: ActorDep, services: ServicesDep) -> QuoteOut:
    return QuoteOut.from_domain(unwrap(await services.checkout.quote(actor, body.to_domain())))


@router.post("/orders", response_model=PlacedOrderOut)
async def place_order(body: CheckoutIn, actor: ActorDep, services: ServicesDep) -> PlacedOrderOut:
    placed = unwrap(await services.checkout.checkout(actor, body.to_domain()))
    return PlacedOrderOut.from_domain(placed)


@router.get("/orders", response_model=OrderListOut)
async def list_orders(
    actor: ActorDep,
    services: ServicesDep,
    status: Annotated[OrderStatusIn | None, Query()] = None,
) -> OrderListOut:
    target = OrderStatus(status) if status is not None else None
    return OrderListOut.from_domain(unwrap(await services.orders.list_orders(actor, target)))


@router.get("/orders/{order_number}", response_model=OrderOut)
async def get_order(order_number: str, actor: ActorDep, services: ServicesDep) -> OrderOut:
    return OrderOut.from_domain(unwrap(await services.orders.get(actor, order_number)))


@router.patch("/orders/{order_number}/status", response_model=OrderOut)
async def update_order_status(
    order_number: str, body: UpdateStatusIn, actor: ActorDep, services: ServicesDep
) -> OrderOut:
    order = unwrap(await services.orders.update_status(actor, order_number, body.to_domain()))
    return OrderOut.from_domain(order)


@router.post("/payments/verify", response_model=VerificationOut)
async def verify_payment(body: VerifyPaymentIn, services: ServicesDep) -> VerificationOut:
    return VerificationOut.from_domain(unwrap(await services.payments.verify_payment(body.to_domain())))


@router.post("/payments/fail", response_model=VerificationOut)
async def fail_payment(body: FailPaymentIn, services: ServicesDep) -> VerificationOut:
    return VerificationOut.from_domain(unwrap(await services.payments.fail_payment(body.to_domain())))


# ═══════════════════════════════════════════════════════════════════════════════
# Application
# ═══════════════════════════════════════════════════════════════════════════════

async def _build_default_services(settings: Settings) -> tuple[Services, RazorpayGateway]:
    settings.require_gateway_credentials()
    session_factory, engine = await create_database(settings.database_url)
    gateway = RazorpayGateway(
        settings.gateway_key_id,
        settings.gateway_key_secret,
        base_url=settings.gateway_base_url,
        timeout=settings.gateway_timeout_seconds,
    )
    return build_services(settings, session_factory, gateway, LogSender(), engine), gateway


def create_app(settings: Settings | None = None, services: Services | None = None) -> fastapi.FastAPI:
    """
    Build the FastAPI app.

    With services given (tests) they are used as is; otherwise the lifespan
    builds them from settings and tears them down on shutdown.
    """
    settings = settings or (services.settings if services else Settings.from_env())

    @asynccontextmanager
    async def lifespan(app: fastapi.FastAPI) -> AsyncIterator[None]:
        if services is not None:
            yield
            await services.dispatcher.drain()
            return

        configure_logging(settings.log_level)
        built, gateway = await _build_default_services(settings)
        app.state.services = built
        logger.info("bazaar started")
        try:
            yield
        finally:
            await built.dispatcher.drain()
            await gateway.aclose()
            if built.engine is not None:
                await built.engine.dispose()

    app = fastapi.FastAPI(title="bazaar", lifespan=lifespan)
    if services is not None:
        app.state.services = services
    app.add_exception_handler(BazaarError, _bazaar_error_handler)
    app.include_router(router)
    return app


__all__ = ("STATUS_BY_CODE", "router", "create_app", "unwrap")
