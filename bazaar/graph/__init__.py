"""
Graph — dependency graphs whose independent nodes run concurrently.

    from bazaar import graph as G

    @G.node
    class CouponNode:
        @classmethod
        async def __compose__(cls, request: QuoteInput, ctx: PricingContext) -> "CouponNode":
            ...

    quote = await G.compose(QuoteNode, request, ctx)
"""

from nodnod import scalar_node as node

from bazaar.graph._run import compose

__all__ = ("node", "compose")
