"""
Error taxonomy.

Every failure the core can report derives from BazaarError and carries a
stable code. The API layer maps codes to HTTP statuses; services return them
inside kungfu Error(...) or raise them inside a transaction so the
transaction rolls back.
"""

from __future__ import annotations

import logging

logger = logging.getLogger(__name__)


class BazaarError(Exception):
    code = "BAZAAR_ERROR"
    retryable = False

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


# ═══════════════════════════════════════════════════════════════════════════════
# Client errors
# ═══════════════════════════════════════════════════════════════════════════════


class EmptyCartError(BazaarError):
    code = "EMPTY_CART"

    def __init__(self, user_id: str) -> None:
        super().__init__("Your cart is empty")
        self.user_id = user_id


class InvalidCouponError(BazaarError):
    code = "INVALID_COUPON"

    def __init__(self, coupon_code: str, reason: str) -> None:
        super().__init__(f"Coupon {coupon_code} cannot be applied: {reason}")
        self.coupon_code = coupon_code
        self.reason = reason


class NotFoundError(BazaarError):
    code = "NOT_FOUND"

    def __init__(self, entity: str, id: int | str) -> None:
        super().__init__(f"{entity}:{id} not found")
        self.entity = entity
        self.id = id


# ═══════════════════════════════════════════════════════════════════════════════
# Business conflicts
# ═══════════════════════════════════════════════════════════════════════════════


class InsufficientStockError(BazaarError):
    code = "INSUFFICIENT_STOCK"

    def __init__(self, catalog_entry_id: int) -> None:
        super().__init__("Item no longer available in the requested quantity")
        self.catalog_entry_id = catalog_entry_id


class OrderConflictError(BazaarError):
    code = "ORDER_CONFLICT"
    retryable = True

    def __init__(self, order_number: str) -> None:
        super().__init__(f"Order {order_number} was updated concurrently")
        self.order_number = order_number


class CartChangedError(BazaarError):
    code = "CART_CHANGED"

    def __init__(self, user_id: str) -> None:
        super().__init__("Your cart changed during checkout, please review it")
        self.user_id = user_id


class PaymentPendingError(BazaarError):
    code = "PAYMENT_PENDING"

    def __init__(self, order_number: str) -> None:
        super().__init__(f"Order {order_number} is awaiting payment")
        self.order_number = order_number


# ═══════════════════════════════════════════════════════════════════════════════
# Infrastructure faults
# ═══════════════════════════════════════════════════════════════════════════════


class PaymentGatewayError(BazaarError):
    code = "PAYMENT_GATEWAY_ERROR"
    retryable = True

    def __init__(self, detail: str, status_code: int | None = None) -> None:
        super().__init__("Payment setup failed, please retry")
        self.detail = detail
        self.status_code = status_code


class OrderNumberCollisionError(BazaarError):
    code = "ORDER_NUMBER_COLLISION"
    retryable = True

    def __init__(self, attempts: int) -> None:
        super().__init__("Could not allocate an order number, please retry")
        self.attempts = attempts


class StorageError(BazaarError):
    code = "STORAGE_ERROR"
    retryable = True

    def __init__(self, detail: str) -> None:
        super().__init__("Something went wrong, please retry")
        self.detail = detail


class ConfigurationError(BazaarError):
    code = "CONFIGURATION_ERROR"

    def __init__(self, setting: str) -> None:
        super().__init__(f"Missing required setting {setting}")
        self.setting = setting


# ═══════════════════════════════════════════════════════════════════════════════
# Security / integrity faults
# ═══════════════════════════════════════════════════════════════════════════════


class SignatureVerificationError(BazaarError):
    code = "SIGNATURE_MISMATCH"

    def __init__(self, gateway_order_id: str) -> None:
        super().__init__("Invalid payment signature")
        self.gateway_order_id = gateway_order_id


class InvalidTransitionError(BazaarError):
    """Raised for a status change the order state machine does not allow."""

    code = "INVALID_TRANSITION"

    def __init__(self, current: str, target: str) -> None:
        super().__init__(f"Cannot move order from {current} to {target}")
        self.current = current
        self.target = target


class UnauthenticatedError(BazaarError):
    code = "UNAUTHENTICATED"

    def __init__(self) -> None:
        super().__init__("Authentication required")


class ForbiddenError(BazaarError):
    code = "FORBIDDEN"

    def __init__(self, action: str) -> None:
        super().__init__(f"Not allowed to {action}")
        self.action = action


def lift_error(e: Exception) -> BazaarError:
    """
    on_error mapper for combinators.lift.catching_async.

    Domain errors pass through; anything else is an unexpected fault.
    """
    if isinstance(e, BazaarError):
        return e
    logger.error("Unexpected failure", exc_info=e)
    return StorageError(f"{type(e).__name__}: {e}")


__all__ = (
    "BazaarError",
    "EmptyCartError",
    "InvalidCouponError",
    "NotFoundError",
    "InsufficientStockError",
    "OrderConflictError",
    "CartChangedError",
    "PaymentPendingError",
    "PaymentGatewayError",
    "OrderNumberCollisionError",
    "StorageError",
    "ConfigurationError",
    "SignatureVerificationError",
    "InvalidTransitionError",
    "UnauthenticatedError",
    "ForbiddenError",
    "lift_error",
)
