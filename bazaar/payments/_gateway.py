"""
Payment gateway adapter.

Opens a remote order sized in minor units (paise) and returns the gateway's
order id for the client widget. to_minor_units() is the only place major
amounts become integers.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Protocol

import httpx

from bazaar.domain import GatewayOrder
from bazaar.errors import PaymentGatewayError

logger = logging.getLogger(__name__)

MINOR_UNITS = Decimal(100)


def to_minor_units(amount: Decimal) -> int:
    """Decimal("1349.00") -> 134900. Rounds half-up."""
    return int((amount * MINOR_UNITS).quantize(Decimal(1), rounding=ROUND_HALF_UP))


class PaymentGateway(Protocol):
    @property
    def public_key(self) -> str: ...

    async def create_order(
        self,
        amount_minor: int,
        currency: str,
        receipt: str,
        notes: Mapping[str, str],
    ) -> GatewayOrder: ...


# ═══════════════════════════════════════════════════════════════════════════════
# Razorpay
# ═══════════════════════════════════════════════════════════════════════════════

class RazorpayGateway:
    """
    Razorpay Orders API over httpx.

    Example:
        gateway = RazorpayGateway("rzp_test_xxx", "secret")
        order = await gateway.create_order(134900, "INR", "ORD-1-2", {})
        await gateway.aclose()
    """

    def __init__(
        self,
        key_id: str,
        key_secret: str,
        *,
        base_url: str = "https://api.razorpay.com/v1",
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._key_id = key_id
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._owns_client = client is None
        self._auth = httpx.BasicAuth(key_id, key_secret)
        self._orders_url = base_url.rstrip("/") + "/orders"

    @property
    def public_key(self) -> str:
        return self._key_id

    async def create_order(
        self,
        amount_minor: int,
        currency: str,
        receipt: str,
        notes: Mapping[str, str],
    ) -> GatewayOrder:
        body: dict[str, Any] = {
            "amount": amount_minor,
            "currency": currency,
            "receipt": receipt,
            "notes": dict(notes),
        }
        try:
            response = await self._client.post(self._orders_url, json=body, auth=self._auth)
        except httpx.HTTPError as e:
            logger.error("Gateway unreachable for receipt %s: %s", receipt, e)
            raise PaymentGatewayError(f"{type(e).__name__}: {e}") from e

        if response.is_error:
            logger.error(
                "Gateway rejected receipt %s: %s %s",
                receipt, response.status_code, response.text[:200],
            )
            raise PaymentGatewayError(response.text[:200], status_code=response.status_code)

        try:
            data = response.json()
            return GatewayOrder(
                id=str(data["id"]),
                amount_minor=int(data.get("amount", amount_minor)),
                currency=str(data.get("currency", currency)),
                receipt=str(data.get("receipt", receipt)),
                status=str(data.get("status", "created")),
            )
        except (ValueError, KeyError, TypeError) as e:
            raise PaymentGatewayError(f"Malformed gateway response: {e}") from e

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()


__all__ = ("to_minor_units", "PaymentGateway", "RazorpayGateway")
