"""
Senders — where notifications actually go.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, Protocol

logger = logging.getLogger(__name__)

# ═══════════════════════════════════════════════════════════════════════════════
# Templates
# ═══════════════════════════════════════════════════════════════════════════════

ORDER_PLACED = "order_placed"
PAYMENT_CONFIRMED = "payment_confirmed"
PAYMENT_FAILED = "payment_failed"
ORDER_STATUS_CHANGED = "order_status_changed"
LOW_STOCK = "low_stock"


class NotificationSender(Protocol):
    """Email/SMS transport. Implementations may raise; the dispatcher absorbs it."""

    async def send(self, to: str, template: str, data: Mapping[str, Any]) -> None: ...


class LogSender:
    """Default sender: writes every message to the log."""

    async def send(self, to: str, template: str, data: Mapping[str, Any]) -> None:
        logger.info("notify to=%s template=%s data=%s", to, template, dict(data))


__all__ = (
    "ORDER_PLACED",
    "PAYMENT_CONFIRMED",
    "PAYMENT_FAILED",
    "ORDER_STATUS_CHANGED",
    "LOW_STOCK",
    "NotificationSender",
    "LogSender",
)
