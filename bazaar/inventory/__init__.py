"""Inventory — atomic stock reservation and compensating release."""

from bazaar.inventory._reservation import merge_requests, reserve, release
from bazaar.inventory._alerts import announce_low_stock

__all__ = ("merge_requests", "reserve", "release", "announce_low_stock")
