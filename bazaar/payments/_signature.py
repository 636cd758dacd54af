"""Gateway callback signatures: HMAC-SHA256 over "<order_id>|<payment_id>"."""

from __future__ import annotations

import hashlib
import hmac


def compute_signature(secret: str, gateway_order_id: str, gateway_payment_id: str) -> str:
    payload = f"{gateway_order_id}|{gateway_payment_id}".encode()
    return hmac.new(secret.encode(), payload, hashlib.sha256).hexdigest()


def verify_signature(
    secret: str,
    gateway_order_id: str,
    gateway_payment_id: str,
    signature: str,
) -> bool:
    """
    Constant-time comparison against the locally computed signature.

    Compared as bytes so arbitrary client input is a mismatch, not a TypeError.
    Nothing verifies against an empty secret.
    """
    if not secret:
        return False
    expected = compute_signature(secret, gateway_order_id, gateway_payment_id)
    return hmac.compare_digest(expected.encode(), signature.encode())


__all__ = ("compute_signature", "verify_signature")
