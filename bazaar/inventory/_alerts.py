"""Low-stock announcements."""

from __future__ import annotations

from collections.abc import Iterable

from bazaar.domain import LowStock
from bazaar.notify._dispatcher import NotificationDispatcher
from bazaar.notify._sender import LOW_STOCK


def announce_low_stock(
    dispatcher: NotificationDispatcher,
    items: Iterable[LowStock],
    platform_ops_email: str,
) -> None:
    """Queue one alert per entry: franchise owner, or platform ops for platform stock."""
    for item in items:
        dispatcher.dispatch(
            item.notify_to or platform_ops_email,
            LOW_STOCK,
            {
                "catalog_entry_id": item.catalog_entry_id,
                "franchise_id": item.franchise_id,
                "quantity": item.quantity,
                "min_stock": item.min_stock,
            },
        )


__all__ = ("announce_low_stock",)
