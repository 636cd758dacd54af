"""
Notify — best-effort customer and operator messages.

    dispatcher = NotificationDispatcher(LogSender())
    dispatcher.dispatch("a@b.c", ORDER_PLACED, {"order_number": "ORD-..."})
    await dispatcher.drain()
"""

from bazaar.notify._sender import (
    ORDER_PLACED,
    PAYMENT_CONFIRMED,
    PAYMENT_FAILED,
    ORDER_STATUS_CHANGED,
    LOW_STOCK,
    NotificationSender,
    LogSender,
)
from bazaar.notify._dispatcher import NotificationDispatcher

__all__ = (
    "ORDER_PLACED",
    "PAYMENT_CONFIRMED",
    "PAYMENT_FAILED",
    "ORDER_STATUS_CHANGED",
    "LOW_STOCK",
    "NotificationSender",
    "LogSender",
    "NotificationDispatcher",
)
