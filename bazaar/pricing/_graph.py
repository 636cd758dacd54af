"""
Quote graph — cart and coupon load concurrently, then get priced.

    SnapshotNode ──┐
                   ├──> QuoteNode
    CouponNode ────┘

Note: no `from __future__ import annotations` here; nodnod resolves
__compose__ parameter types at runtime.
"""

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from kungfu import Ok, Error, Result

from bazaar import graph as G
from bazaar._types import utcnow
from bazaar.cart._snapshot import load_snapshot
from bazaar.domain import CartSnapshot, Coupon, PaymentMethod, Quote
from bazaar.errors import BazaarError, lift_error
from bazaar.pricing._calc import price_lines
from bazaar.pricing._coupon import load_coupon
from bazaar.settings import PricingRules


# ═══════════════════════════════════════════════════════════════════════════════
# Inputs
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True, slots=True)
class QuoteInput:
    user_id: str
    payment_method: PaymentMethod
    coupon_code: str | None = None


@dataclass(frozen=True, slots=True)
class PricingContext:
    session_factory: async_sessionmaker[AsyncSession]
    rules: PricingRules
    clock: Callable[[], datetime] = utcnow


# ═══════════════════════════════════════════════════════════════════════════════
# Nodes
# ═══════════════════════════════════════════════════════════════════════════════

@G.node
class SnapshotNode:
    """The user's cart, frozen. Empty cart fails the whole graph."""

    def __init__(self, data: CartSnapshot) -> None:
        self.data = data

    @classmethod
    async def __compose__(cls, request: QuoteInput, ctx: PricingContext) -> "SnapshotNode":
        async with ctx.session_factory() as session:
            return cls(await load_snapshot(session, request.user_id))


@G.node
class CouponNode:
    def __init__(self, data: Coupon | None) -> None:
        self.data = data

    @classmethod
    async def __compose__(cls, request: QuoteInput, ctx: PricingContext) -> "CouponNode":
        if not request.coupon_code:
            return cls(None)
        async with ctx.session_factory() as session:
            return cls(await load_coupon(session, request.coupon_code))


@G.node
class QuoteNode:
    def __init__(self, data: Quote) -> None:
        self.data = data

    @classmethod
    async def __compose__(
        cls,
        snapshot: SnapshotNode,
        coupon: CouponNode,
        request: QuoteInput,
        ctx: PricingContext,
    ) -> "QuoteNode":
        pricing = price_lines(
            snapshot.data.lines,
            request.payment_method,
            coupon.data,
            ctx.rules,
            ctx.clock(),
        )
        return cls(Quote(
            snapshot=snapshot.data,
            payment_method=request.payment_method,
            pricing=pricing,
        ))

    @classmethod
    async def execute(cls, request: QuoteInput, ctx: PricingContext) -> Result[Quote, BazaarError]:
        try:
            result = await G.compose(cls, request, ctx)
            return Ok(result.data)
        except BazaarError as e:
            return Error(e)
        except Exception as e:
            return Error(lift_error(e))


__all__ = ("QuoteInput", "PricingContext", "SnapshotNode", "CouponNode", "QuoteNode")
