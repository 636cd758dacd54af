"""
Price calculation — pure, no I/O.

    breakdown = price_lines(snapshot.lines, PaymentMethod.COD, None, rules, now)
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime
from decimal import Decimal

from bazaar._types import Money, ZERO, money
from bazaar.domain import CartLine, Coupon, PaymentMethod, PriceBreakdown
from bazaar.errors import InvalidCouponError
from bazaar.settings import PricingRules

HUNDRED = Decimal(100)


def subtotal_of(lines: Sequence[CartLine]) -> Money:
    return money(sum((line.line_total for line in lines), ZERO))


def delivery_charge_for(lines: Sequence[CartLine], subtotal: Money, rules: PricingRules) -> Money:
    if not any(line.kind.is_physical for line in lines):
        return ZERO
    if subtotal > rules.free_shipping_threshold:
        return ZERO
    return money(rules.flat_shipping_rate)


def validate_coupon(coupon: Coupon, subtotal: Money, rules: PricingRules, now: datetime) -> None:
    """Raise InvalidCouponError unless coupon applies to this subtotal at now."""
    if not coupon.is_active:
        raise InvalidCouponError(coupon.code, "inactive")
    if coupon.expires_at is not None and coupon.expires_at <= now:
        raise InvalidCouponError(coupon.code, "expired")
    floor = max(coupon.min_order_value or ZERO, rules.coupon_min_cart_value)
    if subtotal < floor:
        raise InvalidCouponError(coupon.code, f"minimum order value is {money(floor)}")


def price_lines(
    lines: Sequence[CartLine],
    method: PaymentMethod,
    coupon: Coupon | None,
    rules: PricingRules,
    now: datetime,
) -> PriceBreakdown:
    """
    Price a cart.

    Same inputs, same output. The discount is clamped so total never goes
    below zero.
    """
    subtotal = subtotal_of(lines)
    delivery = delivery_charge_for(lines, subtotal, rules)
    cod = money(rules.cod_surcharge) if method is PaymentMethod.COD else ZERO
    gross = subtotal + delivery + cod

    discount = ZERO
    if coupon is not None:
        validate_coupon(coupon, subtotal, rules, now)
        discount = min(money(subtotal * coupon.discount_percent / HUNDRED), gross)

    return PriceBreakdown(
        subtotal=subtotal,
        delivery_charge=delivery,
        cod_surcharge=cod,
        discount_amount=discount,
        total=money(max(ZERO, gross - discount)),
        coupon_code=coupon.code if coupon is not None else None,
    )


__all__ = ("subtotal_of", "delivery_charge_for", "validate_coupon", "price_lines")
