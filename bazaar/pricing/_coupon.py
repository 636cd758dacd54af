"""Coupon lookup."""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from bazaar.db._tables import CouponTable
from bazaar.domain import Coupon
from bazaar.errors import InvalidCouponError


def normalize_code(code: str) -> str:
    return code.strip().upper()


async def load_coupon(session: AsyncSession, code: str) -> Coupon:
    code = normalize_code(code)
    row = await session.scalar(select(CouponTable).where(CouponTable.code == code))
    if row is None:
        raise InvalidCouponError(code, "unknown code")
    return Coupon(
        code=row.code,
        discount_percent=row.discount_percent,
        is_active=row.is_active,
        expires_at=row.expires_at,
        min_order_value=row.min_order_value,
    )


__all__ = ("normalize_code", "load_coupon")
