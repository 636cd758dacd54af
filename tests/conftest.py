"""Pytest fixtures for bazaar tests."""

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any

import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from bazaar.api._deps import Services, build_services
from bazaar.db import (
    CatalogEntryTable,
    CouponTable,
    FranchiseTable,
    InventoryTable,
    OrderTable,
    PaymentTable,
    create_database,
)
from bazaar.domain import Actor, CatalogKind, GatewayOrder
from bazaar.errors import PaymentGatewayError
from bazaar.settings import Settings

GATEWAY_KEY_ID = "rzp_test_key"
GATEWAY_SECRET = "test_secret"


@pytest.fixture
def anyio_backend():
    return "asyncio"


# ═══════════════════════════════════════════════════════════════════════════════
# Fakes
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass
class FakeGateway:
    """Records create_order calls; fail=True simulates a gateway outage."""

    fail: bool = False
    calls: list[dict[str, Any]] = field(default_factory=list)

    @property
    def public_key(self) -> str:
        return GATEWAY_KEY_ID

    @property
    def call_count(self) -> int:
        return len(self.calls)

    async def create_order(
        self, amount_minor: int, currency: str, receipt: str, notes: Mapping[str, str]
    ) -> GatewayOrder:
        self.calls.append({
            "amount": amount_minor,
            "currency": currency,
            "receipt": receipt,
            "notes": dict(notes),
        })
        if self.fail:
            raise PaymentGatewayError("simulated outage", status_code=503)
        return GatewayOrder(
            id=f"order_test_{len(self.calls)}",
            amount_minor=amount_minor,
            currency=currency,
            receipt=receipt,
        )


@dataclass
class RecordingSender:
    fail: bool = False
    sent: list[tuple[str, str, dict[str, Any]]] = field(default_factory=list)

    async def send(self, to: str, template: str, data: Mapping[str, Any]) -> None:
        if self.fail:
            raise ConnectionError("smtp down")
        self.sent.append((to, template, dict(data)))

    def templates(self) -> list[str]:
        return [template for _, template, _ in self.sent]


# ═══════════════════════════════════════════════════════════════════════════════
# Seeding
# ═══════════════════════════════════════════════════════════════════════════════

class Seeder:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session = session_factory

    async def franchise(self, name: str = "Koramangala", owner_email: str = "owner@franchise.test") -> int:
        async with self._session() as session, session.begin():
            row = FranchiseTable(name=name, owner_email=owner_email)
            session.add(row)
            await session.flush()
            return row.id

    async def entry(
        self,
        name: str,
        price: str | Decimal,
        *,
        stock: int = 10,
        min_stock: int = 0,
        kind: CatalogKind = CatalogKind.PRODUCT,
        franchise_id: int | None = None,
    ) -> int:
        async with self._session() as session, session.begin():
            row = CatalogEntryTable(kind=kind, name=name, price=Decimal(price), is_active=True)
            session.add(row)
            await session.flush()
            if kind is not CatalogKind.DIGITAL:
                session.add(InventoryTable(
                    catalog_entry_id=row.id,
                    franchise_id=franchise_id,
                    quantity=stock,
                    min_stock=min_stock,
                ))
            return row.id

    async def coupon(
        self,
        code: str,
        percent: str | Decimal,
        *,
        is_active: bool = True,
        expires_at: datetime | None = None,
        min_order_value: str | Decimal | None = None,
    ) -> None:
        async with self._session() as session, session.begin():
            session.add(CouponTable(
                code=code,
                discount_percent=Decimal(percent),
                is_active=is_active,
                expires_at=expires_at,
                min_order_value=Decimal(min_order_value) if min_order_value is not None else None,
            ))

    async def stock(self, entry_id: int, franchise_id: int | None = None) -> int:
        async with self._session() as session:
            stmt = select(InventoryTable.quantity).where(InventoryTable.catalog_entry_id == entry_id)
            if franchise_id is None:
                stmt = stmt.where(InventoryTable.franchise_id.is_(None))
            else:
                stmt = stmt.where(InventoryTable.franchise_id == franchise_id)
            return (await session.execute(stmt)).scalar_one()

    async def order(self, order_number: str) -> OrderTable:
        async with self._session() as session:
            return (await session.execute(
                select(OrderTable).where(OrderTable.order_number == order_number)
            )).scalar_one()

    async def payment(self, order_number: str) -> PaymentTable | None:
        async with self._session() as session:
            return (await session.execute(
                select(PaymentTable)
                .join(OrderTable, OrderTable.id == PaymentTable.order_id)
                .where(OrderTable.order_number == order_number)
            )).scalar_one_or_none()

    async def count(self, table: type) -> int:
        async with self._session() as session:
            return len((await session.execute(select(table))).scalars().all())


# ═══════════════════════════════════════════════════════════════════════════════
# Fixtures
# ═══════════════════════════════════════════════════════════════════════════════

@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'bazaar.db'}",
        gateway_key_id=GATEWAY_KEY_ID,
        gateway_key_secret=GATEWAY_SECRET,
        platform_ops_email="ops@bazaar.test",
    )


@pytest.fixture
async def session_factory(settings):
    factory, engine = await create_database(settings.database_url)
    yield factory
    await engine.dispose()


@pytest.fixture
def seed(session_factory) -> Seeder:
    return Seeder(session_factory)


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def sender() -> RecordingSender:
    return RecordingSender()


@pytest.fixture
def services(settings, session_factory, gateway, sender) -> Services:
    return build_services(settings, session_factory, gateway, sender)


@pytest.fixture
def alice() -> Actor:
    return Actor(user_id="user-alice", email="alice@example.com")


@pytest.fixture
def bob() -> Actor:
    return Actor(user_id="user-bob", email="bob@example.com")
