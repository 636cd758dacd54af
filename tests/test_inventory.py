"""Tests for stock reservation and release."""

import asyncio
from decimal import Decimal

import pytest
from sqlalchemy import update

from bazaar.db import OrderItemTable, OrderTable
from bazaar.domain import CatalogKind, OrderStatus, PaymentMethod, StockRequest
from bazaar.errors import InsufficientStockError
from bazaar.inventory import merge_requests, release, reserve

pytestmark = pytest.mark.anyio


async def try_reserve(session_factory, requests) -> bool:
    try:
        async with session_factory() as session, session.begin():
            await reserve(session, requests)
    except InsufficientStockError:
        return False
    return True


async def make_order(session_factory, lines: list[tuple[int, int | None, int]]) -> int:
    async with session_factory() as session, session.begin():
        order = OrderTable(
            order_number=f"ORD-TEST-{len(lines)}-{lines[0][0]}",
            user_id="u",
            status=OrderStatus.PENDING,
            payment_method=PaymentMethod.COD,
            shipping_address_id="addr",
            subtotal=Decimal("0"),
            delivery_charge=Decimal("0"),
            cod_surcharge=Decimal("0"),
            discount_amount=Decimal("0"),
            total=Decimal("0"),
        )
        session.add(order)
        await session.flush()
        for entry, tenant, qty in lines:
            session.add(OrderItemTable(
                order_id=order.id,
                catalog_entry_id=entry,
                kind=CatalogKind.PRODUCT,
                franchise_id=tenant,
                name="x",
                unit_price=Decimal("1"),
                quantity=qty,
                subtotal=Decimal(qty),
            ))
        return order.id


class TestMerge:
    def test_sums_same_entry_and_tenant(self):
        merged = merge_requests([
            StockRequest(2, None, 1),
            StockRequest(1, 7, 2),
            StockRequest(2, None, 3),
        ])

        assert merged == [StockRequest(1, 7, 2), StockRequest(2, None, 4)]

    def test_tenants_stay_separate(self):
        merged = merge_requests([StockRequest(1, None, 1), StockRequest(1, 5, 1)])

        assert len(merged) == 2


class TestReserve:
    async def test_decrements(self, session_factory, seed):
        a = await seed.entry("A", "500", stock=5)
        b = await seed.entry("B", "300", stock=5)

        assert await try_reserve(session_factory, [StockRequest(a, None, 2), StockRequest(b, None, 1)])

        assert await seed.stock(a) == 3
        assert await seed.stock(b) == 4

    async def test_exact_quantity_succeeds(self, session_factory, seed):
        a = await seed.entry("A", "500", stock=2)

        assert await try_reserve(session_factory, [StockRequest(a, None, 2)])
        assert await seed.stock(a) == 0

    async def test_partial_failure_leaves_no_decrement(self, session_factory, seed):
        a = await seed.entry("A", "500", stock=5)
        b = await seed.entry("B", "300", stock=1)
        c = await seed.entry("C", "100", stock=5)

        ok = await try_reserve(session_factory, [
            StockRequest(a, None, 2),
            StockRequest(b, None, 2),
            StockRequest(c, None, 1),
        ])

        assert not ok
        assert (await seed.stock(a), await seed.stock(b), await seed.stock(c)) == (5, 1, 5)

    async def test_error_names_the_entry(self, session_factory, seed):
        a = await seed.entry("A", "500", stock=1)

        with pytest.raises(InsufficientStockError) as exc:
            async with session_factory() as session, session.begin():
                await reserve(session, [StockRequest(a, None, 2)])
        assert exc.value.catalog_entry_id == a

    async def test_duplicate_lines_are_checked_together(self, session_factory, seed):
        a = await seed.entry("A", "500", stock=3)

        ok = await try_reserve(session_factory, [StockRequest(a, None, 2), StockRequest(a, None, 2)])

        assert not ok
        assert await seed.stock(a) == 3

    async def test_franchise_stock_is_separate(self, session_factory, seed):
        f = await seed.franchise()
        a = await seed.entry("A", "500", stock=1)

        assert not await try_reserve(session_factory, [StockRequest(a, f, 1)])
        assert await seed.stock(a) == 1

    async def test_concurrent_reservations_never_oversell(self, session_factory, seed):
        a = await seed.entry("A", "500", stock=5)

        results = await asyncio.gather(*[
            try_reserve(session_factory, [StockRequest(a, None, 2)]) for _ in range(6)
        ])

        assert sum(results) == 2
        assert await seed.stock(a) == 1

    async def test_reports_low_stock_with_owner(self, session_factory, seed):
        f = await seed.franchise(owner_email="owner@shop.test")
        a = await seed.entry("A", "500", stock=5, min_stock=3, franchise_id=f)

        async with session_factory() as session, session.begin():
            low = await reserve(session, [StockRequest(a, f, 2)])

        assert len(low) == 1
        assert low[0].quantity == 3
        assert low[0].notify_to == "owner@shop.test"

    async def test_platform_low_stock_has_no_owner(self, session_factory, seed):
        a = await seed.entry("A", "500", stock=2, min_stock=5)

        async with session_factory() as session, session.begin():
            low = await reserve(session, [StockRequest(a, None, 1)])

        assert low[0].notify_to is None


class TestRelease:
    async def test_restores_once(self, session_factory, seed):
        a = await seed.entry("A", "500", stock=5)
        assert await try_reserve(session_factory, [StockRequest(a, None, 3)])
        order_id = await make_order(session_factory, [(a, None, 3)])

        async with session_factory() as session, session.begin():
            first = await release(session, order_id)
        async with session_factory() as session, session.begin():
            second = await release(session, order_id)

        assert (first, second) == (True, False)
        assert await seed.stock(a) == 5

    async def test_concurrent_release_restores_once(self, session_factory, seed):
        a = await seed.entry("A", "500", stock=5)
        assert await try_reserve(session_factory, [StockRequest(a, None, 2)])
        order_id = await make_order(session_factory, [(a, None, 2)])

        async def one() -> bool:
            async with session_factory() as session, session.begin():
                return await release(session, order_id)

        results = await asyncio.gather(one(), one(), one())

        assert sorted(results) == [False, False, True]
        assert await seed.stock(a) == 5

    async def test_already_released_flag_is_respected(self, session_factory, seed):
        a = await seed.entry("A", "500", stock=5)
        order_id = await make_order(session_factory, [(a, None, 2)])
        async with session_factory() as session, session.begin():
            await session.execute(
                update(OrderTable).where(OrderTable.id == order_id).values(stock_released=True)
            )

        async with session_factory() as session, session.begin():
            assert not await release(session, order_id)
        assert await seed.stock(a) == 5
