"""
Pricing — subtotal, delivery, COD surcharge and coupon discount.

    quote = await QuoteNode.execute(QuoteInput(user_id, PaymentMethod.ONLINE), ctx)
"""

from bazaar.pricing._calc import (
    subtotal_of,
    delivery_charge_for,
    validate_coupon,
    price_lines,
)
from bazaar.pricing._coupon import normalize_code, load_coupon
from bazaar.pricing._graph import (
    QuoteInput,
    PricingContext,
    SnapshotNode,
    CouponNode,
    QuoteNode,
)

__all__ = (
    "subtotal_of",
    "delivery_charge_for",
    "validate_coupon",
    "price_lines",
    "normalize_code",
    "load_coupon",
    "QuoteInput",
    "PricingContext",
    "SnapshotNode",
    "CouponNode",
    "QuoteNode",
)
