"""
Tables — SQLAlchemy declarative models.

Money columns are Numeric(12, 2) and come back as Decimal.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from bazaar._types import utcnow
from bazaar.domain import CatalogKind, OrderStatus, PaymentMethod, PaymentStatus


def _enum(cls: type) -> Enum:
    return Enum(cls, native_enum=False, length=20, validate_strings=True)


# ═══════════════════════════════════════════════════════════════════════════════
# Base
# ═══════════════════════════════════════════════════════════════════════════════

class Base(DeclarativeBase):
    type_annotation_map = {
        Decimal: Numeric(12, 2, asdecimal=True),
        datetime: DateTime(),
    }


# ═══════════════════════════════════════════════════════════════════════════════
# Catalog / tenancy
# ═══════════════════════════════════════════════════════════════════════════════

class FranchiseTable(Base):
    __tablename__ = "franchises"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(120))
    owner_email: Mapped[str] = mapped_column(String(255))


class CatalogEntryTable(Base):
    __tablename__ = "catalog_entries"

    id: Mapped[int] = mapped_column(primary_key=True)
    kind: Mapped[CatalogKind] = mapped_column(_enum(CatalogKind))
    name: Mapped[str] = mapped_column(String(255))
    price: Mapped[Decimal]
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)


class InventoryTable(Base):
    """Stock per catalog entry and tenant. franchise_id NULL is platform stock."""
    __tablename__ = "inventory"
    __table_args__ = (
        UniqueConstraint("catalog_entry_id", "franchise_id"),
        CheckConstraint("quantity >= 0", name="ck_inventory_quantity_non_negative"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    catalog_entry_id: Mapped[int] = mapped_column(ForeignKey("catalog_entries.id"), index=True)
    franchise_id: Mapped[int | None] = mapped_column(ForeignKey("franchises.id"))
    quantity: Mapped[int] = mapped_column(Integer, default=0)
    min_stock: Mapped[int] = mapped_column(Integer, default=0)


# ═══════════════════════════════════════════════════════════════════════════════
# Cart
# ═══════════════════════════════════════════════════════════════════════════════

class CartTable(Base):
    __tablename__ = "carts"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[str] = mapped_column(String(64), unique=True)
    created_at: Mapped[datetime] = mapped_column(default=utcnow)


class CartItemTable(Base):
    __tablename__ = "cart_items"
    __table_args__ = (
        CheckConstraint("quantity >= 1", name="ck_cart_items_quantity_positive"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    cart_id: Mapped[int] = mapped_column(ForeignKey("carts.id", ondelete="CASCADE"), index=True)
    catalog_entry_id: Mapped[int] = mapped_column(ForeignKey("catalog_entries.id"))
    franchise_id: Mapped[int | None] = mapped_column(ForeignKey("franchises.id"))
    quantity: Mapped[int] = mapped_column(Integer)
    # Price snapshot captured when the item was added.
    unit_price: Mapped[Decimal]
    # Set while a checkout holds the item; claimed items are not part of the cart.
    checkout_order_id: Mapped[int | None] = mapped_column(
        ForeignKey("orders.id", ondelete="SET NULL"), index=True
    )
    created_at: Mapped[datetime] = mapped_column(default=utcnow)


# ═══════════════════════════════════════════════════════════════════════════════
# Coupons
# ═══════════════════════════════════════════════════════════════════════════════

class CouponTable(Base):
    __tablename__ = "coupons"

    id: Mapped[int] = mapped_column(primary_key=True)
    code: Mapped[str] = mapped_column(String(64), unique=True)
    discount_percent: Mapped[Decimal] = mapped_column(Numeric(5, 2, asdecimal=True))
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    expires_at: Mapped[datetime | None]
    min_order_value: Mapped[Decimal | None]


# ═══════════════════════════════════════════════════════════════════════════════
# Orders
# ═══════════════════════════════════════════════════════════════════════════════

class OrderTable(Base):
    __tablename__ = "orders"

    id: Mapped[int] = mapped_column(primary_key=True)
    order_number: Mapped[str] = mapped_column(String(40), unique=True)
    user_id: Mapped[str] = mapped_column(String(64), index=True)
    customer_email: Mapped[str | None] = mapped_column(String(255))
    franchise_id: Mapped[int | None] = mapped_column(ForeignKey("franchises.id"), index=True)
    status: Mapped[OrderStatus] = mapped_column(_enum(OrderStatus), default=OrderStatus.PENDING)
    payment_method: Mapped[PaymentMethod] = mapped_column(_enum(PaymentMethod))
    shipping_address_id: Mapped[str] = mapped_column(String(64))
    coupon_code: Mapped[str | None] = mapped_column(String(64))

    subtotal: Mapped[Decimal]
    delivery_charge: Mapped[Decimal]
    cod_surcharge: Mapped[Decimal]
    discount_amount: Mapped[Decimal]
    total: Mapped[Decimal]

    requires_shipping: Mapped[bool] = mapped_column(Boolean, default=True)
    stock_released: Mapped[bool] = mapped_column(Boolean, default=False)

    created_at: Mapped[datetime] = mapped_column(default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(default=utcnow)

    items: Mapped[list["OrderItemTable"]] = relationship(
        lazy="selectin", order_by="OrderItemTable.id"
    )
    payment: Mapped["PaymentTable | None"] = relationship(lazy="selectin")


class OrderItemTable(Base):
    __tablename__ = "order_items"

    id: Mapped[int] = mapped_column(primary_key=True)
    order_id: Mapped[int] = mapped_column(ForeignKey("orders.id", ondelete="CASCADE"), index=True)
    catalog_entry_id: Mapped[int] = mapped_column(ForeignKey("catalog_entries.id"))
    kind: Mapped[CatalogKind] = mapped_column(_enum(CatalogKind))
    franchise_id: Mapped[int | None] = mapped_column(ForeignKey("franchises.id"))
    name: Mapped[str] = mapped_column(String(255))
    unit_price: Mapped[Decimal]
    quantity: Mapped[int] = mapped_column(Integer)
    subtotal: Mapped[Decimal]


# ═══════════════════════════════════════════════════════════════════════════════
# Payments
# ═══════════════════════════════════════════════════════════════════════════════

class PaymentTable(Base):
    """One row per online order. COD orders have none."""
    __tablename__ = "payments"

    id: Mapped[int] = mapped_column(primary_key=True)
    order_id: Mapped[int] = mapped_column(ForeignKey("orders.id", ondelete="CASCADE"), unique=True)
    amount: Mapped[Decimal]
    currency: Mapped[str] = mapped_column(String(3))
    method: Mapped[PaymentMethod] = mapped_column(_enum(PaymentMethod))
    status: Mapped[PaymentStatus] = mapped_column(
        _enum(PaymentStatus), default=PaymentStatus.PENDING, index=True
    )
    gateway_order_id: Mapped[str | None] = mapped_column(String(64), unique=True)
    gateway_payment_id: Mapped[str | None] = mapped_column(String(64))
    gateway_signature: Mapped[str | None] = mapped_column(String(128))
    failure_reason: Mapped[str | None] = mapped_column(String(255))

    created_at: Mapped[datetime] = mapped_column(default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(default=utcnow)


__all__ = (
    "Base",
    "FranchiseTable",
    "CatalogEntryTable",
    "InventoryTable",
    "CartTable",
    "CartItemTable",
    "CouponTable",
    "OrderTable",
    "OrderItemTable",
    "PaymentTable",
)
