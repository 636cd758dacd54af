"""
Settings — immutable runtime configuration.

Defaults carry the marketplace's pricing rules; every value can be
overridden through BAZAAR_* environment variables.

    settings = Settings.from_env()
    settings.pricing.free_shipping_threshold   # Decimal("999.00")
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import timedelta
from decimal import Decimal

from bazaar._types import Money, money
from bazaar.errors import ConfigurationError

ENV_PREFIX = "BAZAAR_"


@dataclass(frozen=True, slots=True)
class PricingRules:
    """Checkout charges. All amounts in major currency units."""

    free_shipping_threshold: Money = Decimal("999.00")
    flat_shipping_rate: Money = Decimal("99.00")
    cod_surcharge: Money = Decimal("49.00")
    # Floor applied on top of each coupon's own min_order_value.
    coupon_min_cart_value: Money = Decimal("0.00")


@dataclass(frozen=True, slots=True)
class Settings:
    """
    Application settings.

    Note: Immutable. Use dataclasses.replace() for overrides.
    """

    database_url: str = "sqlite+aiosqlite:///./bazaar.db"
    pricing: PricingRules = PricingRules()

    gateway_base_url: str = "https://api.razorpay.com/v1"
    gateway_key_id: str = ""
    gateway_key_secret: str = ""
    gateway_timeout_seconds: float = 10.0
    currency: str = "INR"

    payment_expiry: timedelta = timedelta(minutes=30)
    order_number_attempts: int = 3
    platform_ops_email: str = "ops@bazaar.local"
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> Settings:
        """
        Build settings from BAZAAR_* variables.

        Example:
            BAZAAR_DATABASE_URL=postgresql+asyncpg://...
            BAZAAR_GATEWAY_KEY_ID=rzp_live_xxx
            BAZAAR_FREE_SHIPPING_THRESHOLD=1499
            BAZAAR_PAYMENT_EXPIRY_MINUTES=15
        """
        env = os.environ if environ is None else environ
        defaults = cls()

        def get(name: str, default: str) -> str:
            return env.get(ENV_PREFIX + name, default)

        pricing = PricingRules(
            free_shipping_threshold=money(
                get("FREE_SHIPPING_THRESHOLD", str(defaults.pricing.free_shipping_threshold))
            ),
            flat_shipping_rate=money(
                get("FLAT_SHIPPING_RATE", str(defaults.pricing.flat_shipping_rate))
            ),
            cod_surcharge=money(get("COD_SURCHARGE", str(defaults.pricing.cod_surcharge))),
            coupon_min_cart_value=money(
                get("COUPON_MIN_CART_VALUE", str(defaults.pricing.coupon_min_cart_value))
            ),
        )
        expiry_minutes = float(
            get("PAYMENT_EXPIRY_MINUTES", str(defaults.payment_expiry.total_seconds() / 60))
        )

        return cls(
            database_url=get("DATABASE_URL", defaults.database_url),
            pricing=pricing,
            gateway_base_url=get("GATEWAY_BASE_URL", defaults.gateway_base_url),
            gateway_key_id=get("GATEWAY_KEY_ID", defaults.gateway_key_id),
            gateway_key_secret=get("GATEWAY_KEY_SECRET", defaults.gateway_key_secret),
            gateway_timeout_seconds=float(
                get("GATEWAY_TIMEOUT_SECONDS", str(defaults.gateway_timeout_seconds))
            ),
            currency=get("CURRENCY", defaults.currency),
            payment_expiry=timedelta(minutes=expiry_minutes),
            order_number_attempts=int(
                get("ORDER_NUMBER_ATTEMPTS", str(defaults.order_number_attempts))
            ),
            platform_ops_email=get("PLATFORM_OPS_EMAIL", defaults.platform_ops_email),
            log_level=get("LOG_LEVEL", defaults.log_level),
        )

    def require_gateway_credentials(self) -> None:
        """Raise ConfigurationError unless both gateway keys are set."""
        for name, value in (
            ("GATEWAY_KEY_ID", self.gateway_key_id),
            ("GATEWAY_KEY_SECRET", self.gateway_key_secret),
        ):
            if not value:
                raise ConfigurationError(ENV_PREFIX + name)


__all__ = ("ENV_PREFIX", "PricingRules", "Settings")
