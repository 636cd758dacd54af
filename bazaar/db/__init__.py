"""Persistence — tables, engine setup and payment row updates."""

from bazaar.db._tables import (
    Base,
    FranchiseTable,
    CatalogEntryTable,
    InventoryTable,
    CartTable,
    CartItemTable,
    CouponTable,
    OrderTable,
    OrderItemTable,
    PaymentTable,
)
from bazaar.db._engine import create_engine, init_schema, create_database
from bazaar.db._payment_rows import (
    open_payment,
    attach_gateway_order,
    mark_succeeded,
    mark_failed,
    fail_for_order,
    stale_payment_ids,
)

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
    "create_engine",
    "init_schema",
    "create_database",
    "open_payment",
    "attach_gateway_order",
    "mark_succeeded",
    "mark_failed",
    "fail_for_order",
    "stale_payment_ids",
)
