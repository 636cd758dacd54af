"""
Wire schemas — one pydantic model per request and response.

Requests reject unknown fields and convert with to_domain(); responses are
built from domain values with from_domain().
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from bazaar.domain import (
    CartSnapshot,
    CheckoutRequest,
    FailureCallback,
    Order,
    OrderStatus,
    PaymentCallback,
    PaymentInfo,
    PaymentMethod,
    PlacedOrder,
    PriceBreakdown,
    Quote,
    VerificationOutcome,
)

PaymentMethodIn = Literal["COD", "ONLINE"]
OrderStatusIn = Literal["PENDING", "PROCESSING", "SHIPPED", "DELIVERED", "CANCELLED", "COMPLETED"]


class RequestModel(BaseModel):
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)


# ═══════════════════════════════════════════════════════════════════════════════
# Requests
# ═══════════════════════════════════════════════════════════════════════════════

class AddCartItemIn(RequestModel):
    catalog_entry_id: int = Field(gt=0)
    quantity: int = Field(default=1, ge=1, le=1000)
    franchise_id: int | None = Field(default=None, gt=0)


class UpdateCartItemIn(RequestModel):
    quantity: int = Field(ge=1, le=1000)


class CheckoutIn(RequestModel):
    shipping_address_id: str = Field(min_length=1, max_length=64)
    payment_method: PaymentMethodIn
    coupon_code: str | None = Field(default=None, min_length=1, max_length=64)

    def to_domain(self) -> CheckoutRequest:
        return CheckoutRequest(
            shipping_address_id=self.shipping_address_id,
            payment_method=PaymentMethod(self.payment_method),
            coupon_code=self.coupon_code,
        )


class QuoteIn(RequestModel):
    payment_method: PaymentMethodIn
    coupon_code: str | None = Field(default=None, min_length=1, max_length=64)

    def to_domain(self) -> CheckoutRequest:
        # Address does not affect price.
        return CheckoutRequest(
            shipping_address_id="",
            payment_method=PaymentMethod(self.payment_method),
            coupon_code=self.coupon_code,
        )


class VerifyPaymentIn(RequestModel):
    gateway_order_id: str = Field(min_length=1, max_length=64)
    gateway_payment_id: str = Field(min_length=1, max_length=64)
    signature: str = Field(min_length=1, max_length=128)

    def to_domain(self) -> PaymentCallback:
        return PaymentCallback(
            gateway_order_id=self.gateway_order_id,
            gateway_payment_id=self.gateway_payment_id,
            signature=self.signature,
        )


class FailPaymentIn(RequestModel):
    gateway_order_id: str = Field(min_length=1, max_length=64)
    gateway_payment_id: str = Field(min_length=1, max_length=64)
    signature: str = Field(min_length=1, max_length=128)
    reason: str = Field(default="payment_failed", min_length=1, max_length=255)

    def to_domain(self) -> FailureCallback:
        return FailureCallback(
            gateway_order_id=self.gateway_order_id,
            gateway_payment_id=self.gateway_payment_id,
            signature=self.signature,
            reason=self.reason,
        )


class UpdateStatusIn(RequestModel):
    status: OrderStatusIn

    def to_domain(self) -> OrderStatus:
        return OrderStatus(self.status)


# ═══════════════════════════════════════════════════════════════════════════════
# Responses
# ═══════════════════════════════════════════════════════════════════════════════

class CartLineOut(BaseModel):
    item_id: int
    catalog_entry_id: int
    kind: str
    franchise_id: int | None
    name: str
    unit_price: Decimal
    quantity: int
    line_total: Decimal


class CartOut(BaseModel):
    items: list[CartLineOut]
    item_count: int

    @classmethod
    def from_domain(cls, snapshot: CartSnapshot) -> CartOut:
        return cls(
            items=[
                CartLineOut(
                    item_id=line.item_id,
                    catalog_entry_id=line.catalog_entry_id,
                    kind=line.kind.value,
                    franchise_id=line.franchise_id,
                    name=line.name,
                    unit_price=line.unit_price,
                    quantity=line.quantity,
                    line_total=line.line_total,
                )
                for line in snapshot.lines
            ],
            item_count=sum(line.quantity for line in snapshot.lines),
        )


class PricingOut(BaseModel):
    subtotal: Decimal
    delivery_charge: Decimal
    cod_surcharge: Decimal
    discount_amount: Decimal
    total: Decimal
    coupon_code: str | None

    @classmethod
    def from_domain(cls, pricing: PriceBreakdown) -> PricingOut:
        return cls(
            subtotal=pricing.subtotal,
            delivery_charge=pricing.delivery_charge,
            cod_surcharge=pricing.cod_surcharge,
            discount_amount=pricing.discount_amount,
            total=pricing.total,
            coupon_code=pricing.coupon_code,
        )


class QuoteOut(BaseModel):
    payment_method: str
    pricing: PricingOut
    cart: CartOut

    @classmethod
    def from_domain(cls, quote: Quote) -> QuoteOut:
        return cls(
            payment_method=quote.payment_method.value,
            pricing=PricingOut.from_domain(quote.pricing),
            cart=CartOut.from_domain(quote.snapshot),
        )


class OrderLineOut(BaseModel):
    catalog_entry_id: int
    kind: str
    franchise_id: int | None
    name: str
    unit_price: Decimal
    quantity: int
    subtotal: Decimal


class PaymentOut(BaseModel):
    status: str
    method: str
    amount: Decimal
    currency: str
    gateway_order_id: str | None
    failure_reason: str | None

    @classmethod
    def from_domain(cls, payment: PaymentInfo) -> PaymentOut:
        return cls(
            status=payment.status.value,
            method=payment.method.value,
            amount=payment.amount,
            currency=payment.currency,
            gateway_order_id=payment.gateway_order_id,
            failure_reason=payment.failure_reason,
        )


class OrderOut(BaseModel):
    order_number: str
    status: str
    payment_method: str
    franchise_id: int | None
    shipping_address_id: str
    requires_shipping: bool
    pricing: PricingOut
    items: list[OrderLineOut]
    payment: PaymentOut | None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_domain(cls, order: Order) -> OrderOut:
        return cls(
            order_number=order.order_number,
            status=order.status.value,
            payment_method=order.payment_method.value,
            franchise_id=order.franchise_id,
            shipping_address_id=order.shipping_address_id,
            requires_shipping=order.requires_shipping,
            pricing=PricingOut.from_domain(order.pricing),
            items=[
                OrderLineOut(
                    catalog_entry_id=line.catalog_entry_id,
                    kind=line.kind.value,
                    franchise_id=line.franchise_id,
                    name=line.name,
                    unit_price=line.unit_price,
                    quantity=line.quantity,
                    subtotal=line.subtotal,
                )
                for line in order.lines
            ],
            payment=PaymentOut.from_domain(order.payment) if order.payment else None,
            created_at=order.created_at,
            updated_at=order.updated_at,
        )


class OrderListOut(BaseModel):
    orders: list[OrderOut]

    @classmethod
    def from_domain(cls, orders: list[Order]) -> OrderListOut:
        return cls(orders=[OrderOut.from_domain(o) for o in orders])


class PlacedOrderOut(BaseModel):
    order: OrderOut
    gateway_order_id: str | None
    gateway_key: str | None

    @classmethod
    def from_domain(cls, placed: PlacedOrder) -> PlacedOrderOut:
        return cls(
            order=OrderOut.from_domain(placed.order),
            gateway_order_id=placed.gateway_order_id,
            gateway_key=placed.gateway_key,
        )


class VerificationOut(BaseModel):
    applied: bool
    order_number: str | None
    payment_status: str | None

    @classmethod
    def from_domain(cls, outcome: VerificationOutcome) -> VerificationOut:
        return cls(
            applied=outcome.applied,
            order_number=outcome.order_number,
            payment_status=outcome.payment_status.value if outcome.payment_status else None,
        )


class ErrorOut(BaseModel):
    error: str
    message: str


__all__ = (
    "AddCartItemIn",
    "UpdateCartItemIn",
    "CheckoutIn",
    "QuoteIn",
    "VerifyPaymentIn",
    "FailPaymentIn",
    "UpdateStatusIn",
    "CartOut",
    "PricingOut",
    "QuoteOut",
    "OrderOut",
    "OrderListOut",
    "PlacedOrderOut",
    "VerificationOut",
    "ErrorOut",
)
