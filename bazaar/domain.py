"""
Domain — marketplace checkout.

Immutable values that flow between the cart, pricing, ordering, payment and
notification layers. Persistence rows live in bazaar.db and are converted to
these values at the edge of every service.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from bazaar._types import Money


# ═══════════════════════════════════════════════════════════════════════════════
# Enums
# ═══════════════════════════════════════════════════════════════════════════════


class CatalogKind(Enum):
    SHOPPING = "SHOPPING"
    PRODUCT = "PRODUCT"
    DIGITAL = "DIGITAL"

    @property
    def is_physical(self) -> bool:
        return self is not CatalogKind.DIGITAL


class OrderStatus(Enum):
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    SHIPPED = "SHIPPED"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"
    COMPLETED = "COMPLETED"


class PaymentStatus(Enum):
    PENDING = "PENDING"
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"


class PaymentMethod(Enum):
    COD = "COD"
    ONLINE = "ONLINE"


class Role(Enum):
    USER = "USER"
    ADMIN = "ADMIN"
    FRANCHISE = "FRANCHISE"


# ═══════════════════════════════════════════════════════════════════════════════
# Identity
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class Actor:
    """Caller identity as asserted by the upstream auth service."""

    user_id: str
    email: str | None = None
    role: Role = Role.USER
    franchise_id: int | None = None


# ═══════════════════════════════════════════════════════════════════════════════
# Cart
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class CartLine:
    item_id: int
    catalog_entry_id: int
    kind: CatalogKind
    franchise_id: int | None
    name: str
    unit_price: Money
    quantity: int

    @property
    def line_total(self) -> Money:
        return self.unit_price * self.quantity


@dataclass(frozen=True, slots=True)
class CartSnapshot:
    """Cart contents frozen at checkout time."""

    user_id: str
    cart_id: int | None
    lines: tuple[CartLine, ...]

    @property
    def item_ids(self) -> tuple[int, ...]:
        return tuple(line.item_id for line in self.lines)

    @property
    def is_empty(self) -> bool:
        return not self.lines

    @property
    def requires_shipping(self) -> bool:
        return any(line.kind.is_physical for line in self.lines)

    @property
    def franchise_id(self) -> int | None:
        """Owning franchise when every line draws stock from the same one."""
        tenants = {line.franchise_id for line in self.lines}
        if len(tenants) == 1:
            return tenants.pop()
        return None


# ═══════════════════════════════════════════════════════════════════════════════
# Pricing
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class Coupon:
    code: str
    discount_percent: Money
    is_active: bool
    expires_at: datetime | None = None
    min_order_value: Money | None = None


@dataclass(frozen=True, slots=True)
class PriceBreakdown:
    subtotal: Money
    delivery_charge: Money
    cod_surcharge: Money
    discount_amount: Money
    total: Money
    coupon_code: str | None = None


@dataclass(frozen=True, slots=True)
class Quote:
    """Priced cart, before any order exists."""

    snapshot: CartSnapshot
    payment_method: PaymentMethod
    pricing: PriceBreakdown


# ═══════════════════════════════════════════════════════════════════════════════
# Orders
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class OrderLine:
    catalog_entry_id: int
    kind: CatalogKind
    franchise_id: int | None
    name: str
    unit_price: Money
    quantity: int
    subtotal: Money


@dataclass(frozen=True, slots=True)
class PaymentInfo:
    status: PaymentStatus
    method: PaymentMethod
    amount: Money
    currency: str
    gateway_order_id: str | None = None
    gateway_payment_id: str | None = None
    failure_reason: str | None = None


@dataclass(frozen=True, slots=True)
class Order:
    id: int
    order_number: str
    user_id: str
    customer_email: str | None
    franchise_id: int | None
    status: OrderStatus
    payment_method: PaymentMethod
    shipping_address_id: str
    pricing: PriceBreakdown
    requires_shipping: bool
    lines: tuple[OrderLine, ...]
    created_at: datetime
    updated_at: datetime
    payment: PaymentInfo | None = None


@dataclass(frozen=True, slots=True)
class CheckoutRequest:
    shipping_address_id: str
    payment_method: PaymentMethod
    coupon_code: str | None = None


@dataclass(frozen=True, slots=True)
class PlacedOrder:
    """Checkout result handed to the client payment widget."""

    order: Order
    gateway_order_id: str | None = None
    gateway_key: str | None = None


# ═══════════════════════════════════════════════════════════════════════════════
# Inventory
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class StockRequest:
    catalog_entry_id: int
    franchise_id: int | None
    quantity: int


@dataclass(frozen=True, slots=True)
class LowStock:
    catalog_entry_id: int
    franchise_id: int | None
    quantity: int
    min_stock: int
    notify_to: str | None = None


# ═══════════════════════════════════════════════════════════════════════════════
# Payments
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class GatewayOrder:
    id: str
    amount_minor: int
    currency: str
    receipt: str
    status: str = "created"


@dataclass(frozen=True, slots=True)
class PaymentCallback:
    gateway_order_id: str
    gateway_payment_id: str
    signature: str


@dataclass(frozen=True, slots=True)
class FailureCallback:
    gateway_order_id: str
    gateway_payment_id: str
    signature: str
    reason: str = "payment_failed"


@dataclass(frozen=True, slots=True)
class VerificationOutcome:
    """applied is False for duplicate, unknown or already-terminal callbacks."""

    applied: bool
    order_number: str | None = None
    payment_status: PaymentStatus | None = None


@dataclass(frozen=True, slots=True)
class SweepReport:
    expired: tuple[str, ...] = field(default_factory=tuple)

    @property
    def count(self) -> int:
        return len(self.expired)


__all__ = (
    "CatalogKind",
    "OrderStatus",
    "PaymentStatus",
    "PaymentMethod",
    "Role",
    "Actor",
    "CartLine",
    "CartSnapshot",
    "Coupon",
    "PriceBreakdown",
    "Quote",
    "OrderLine",
    "PaymentInfo",
    "Order",
    "CheckoutRequest",
    "PlacedOrder",
    "StockRequest",
    "LowStock",
    "GatewayOrder",
    "PaymentCallback",
    "FailureCallback",
    "VerificationOutcome",
    "SweepReport",
)
