"""
Payments — gateway adapter, callback signatures and verification.

    service = PaymentService(session_factory, settings.gateway_key_secret, dispatcher)
    outcome = await service.verify_payment(callback)
"""

from bazaar.payments._signature import compute_signature, verify_signature
from bazaar.payments._gateway import to_minor_units, PaymentGateway, RazorpayGateway
from bazaar.payments._verification import PaymentService

__all__ = (
    "compute_signature",
    "verify_signature",
    "to_minor_units",
    "PaymentGateway",
    "RazorpayGateway",
    "PaymentService",
)
