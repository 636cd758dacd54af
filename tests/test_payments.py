"""Tests for payment verification, failure callbacks and the expiry sweep."""

import asyncio
from datetime import timedelta

import pytest
from kungfu import Error, Ok

from bazaar._types import utcnow
from bazaar.domain import (
    Actor,
    CheckoutRequest,
    FailureCallback,
    OrderStatus,
    PaymentCallback,
    PaymentMethod,
    PaymentStatus,
    Role,
)
from bazaar.errors import SignatureVerificationError
from bazaar.orders import move
from bazaar.payments import compute_signature, verify_signature

pytestmark = pytest.mark.anyio

ONLINE = CheckoutRequest("addr-1", PaymentMethod.ONLINE)


def ok(result):
    match result:
        case Ok(value):
            return value
        case Error(e):
            pytest.fail(f"unexpected error {e.code}: {e.message}")


def err(result):
    match result:
        case Error(e):
            return e
        case Ok(value):
            pytest.fail(f"unexpected success: {value}")


@pytest.fixture
async def online_order(services, seed, alice):
    entry = await seed.entry("A", "650", stock=4)
    ok(await services.carts.add_item(alice, entry, 2))
    placed = ok(await services.checkout.checkout(alice, ONLINE))
    return entry, placed


@pytest.fixture
def sign(settings):
    def sign(gateway_order_id: str, gateway_payment_id: str) -> str:
        return compute_signature(settings.gateway_key_secret, gateway_order_id, gateway_payment_id)
    return sign


class TestSignature:
    def test_is_hex_sha256(self):
        sig = compute_signature("secret", "order_1", "pay_1")

        assert len(sig) == 64
        assert verify_signature("secret", "order_1", "pay_1", sig)

    def test_rejects_tampered_ids(self):
        sig = compute_signature("secret", "order_1", "pay_1")

        assert not verify_signature("secret", "order_1", "pay_2", sig)
        assert not verify_signature("other", "order_1", "pay_1", sig)
        assert not verify_signature("secret", "order_1", "pay_1", "")

    def test_non_ascii_signature_is_a_mismatch(self):
        assert not verify_signature("secret", "order_1", "pay_1", "sig-\u00e9\u00e9")

    def test_empty_secret_never_verifies(self):
        sig = compute_signature("", "order_1", "pay_1")

        assert not verify_signature("", "order_1", "pay_1", sig)


class TestVerify:
    async def test_success_moves_order_to_processing(self, services, seed, online_order, sign, sender):
        _, placed = online_order
        oid = placed.gateway_order_id

        outcome = ok(await services.payments.verify_payment(
            PaymentCallback(oid, "pay_1", sign(oid, "pay_1"))
        ))
        await services.dispatcher.drain()

        assert outcome.applied
        assert outcome.order_number == placed.order.order_number
        assert outcome.payment_status is PaymentStatus.SUCCESS

        order = await seed.order(placed.order.order_number)
        payment = await seed.payment(placed.order.order_number)
        assert order.status is OrderStatus.PROCESSING
        assert payment.status is PaymentStatus.SUCCESS
        assert payment.gateway_payment_id == "pay_1"
        assert sender.templates().count("payment_confirmed") == 1

    async def test_duplicate_callback_is_a_noop(self, services, seed, online_order, sign, sender):
        _, placed = online_order
        oid = placed.gateway_order_id
        callback = PaymentCallback(oid, "pay_1", sign(oid, "pay_1"))

        first = ok(await services.payments.verify_payment(callback))
        second = ok(await services.payments.verify_payment(callback))
        await services.dispatcher.drain()

        assert (first.applied, second.applied) == (True, False)
        assert (await seed.order(placed.order.order_number)).status is OrderStatus.PROCESSING
        assert sender.templates().count("payment_confirmed") == 1

    async def test_concurrent_callbacks_apply_once(self, services, online_order, sign, sender):
        _, placed = online_order
        oid = placed.gateway_order_id
        callback = PaymentCallback(oid, "pay_1", sign(oid, "pay_1"))

        async def deliver():
            return ok(await services.payments.verify_payment(callback))

        outcomes = await asyncio.gather(deliver(), deliver(), deliver())
        await services.dispatcher.drain()

        assert sorted(o.applied for o in outcomes) == [False, False, True]
        assert sender.templates().count("payment_confirmed") == 1

    async def test_bad_signature_changes_nothing(self, services, seed, online_order):
        _, placed = online_order
        oid = placed.gateway_order_id

        e = err(await services.payments.verify_payment(PaymentCallback(oid, "pay_1", "forged")))

        assert isinstance(e, SignatureVerificationError)
        assert e.code == "SIGNATURE_MISMATCH"
        assert (await seed.payment(placed.order.order_number)).status is PaymentStatus.PENDING
        assert (await seed.order(placed.order.order_number)).status is OrderStatus.PENDING

    async def test_unknown_gateway_order_is_not_applied(self, services, sign):
        outcome = ok(await services.payments.verify_payment(
            PaymentCallback("order_missing", "pay_1", sign("order_missing", "pay_1"))
        ))

        assert not outcome.applied
        assert outcome.order_number is None

    async def test_success_after_cancellation_is_ignored(self, services, seed, online_order, sign):
        entry, placed = online_order
        admin = Actor("admin-1", role=Role.ADMIN)
        ok(await services.orders.update_status(admin, placed.order.order_number, OrderStatus.CANCELLED))
        oid = placed.gateway_order_id

        outcome = ok(await services.payments.verify_payment(
            PaymentCallback(oid, "pay_1", sign(oid, "pay_1"))
        ))

        assert not outcome.applied
        assert (await seed.order(placed.order.order_number)).status is OrderStatus.CANCELLED
        assert await seed.stock(entry) == 4

    async def test_non_ascii_signature_changes_nothing(self, services, seed, online_order):
        _, placed = online_order
        oid = placed.gateway_order_id

        e = err(await services.payments.verify_payment(PaymentCallback(oid, "pay_1", "\u0441\u0438\u0433")))

        assert isinstance(e, SignatureVerificationError)
        assert (await seed.payment(placed.order.order_number)).status is PaymentStatus.PENDING

    async def test_success_for_order_already_moved_on(
        self, services, seed, session_factory, online_order, sign, sender
    ):
        _, placed = online_order
        async with session_factory() as session, session.begin():
            await move(session, placed.order.id, OrderStatus.PENDING, OrderStatus.PROCESSING)
        oid = placed.gateway_order_id

        outcome = ok(await services.payments.verify_payment(
            PaymentCallback(oid, "pay_1", sign(oid, "pay_1"))
        ))
        await services.dispatcher.drain()

        assert outcome.applied
        assert (await seed.payment(placed.order.order_number)).status is PaymentStatus.SUCCESS
        assert (await seed.order(placed.order.order_number)).status is OrderStatus.PROCESSING
        assert sender.templates().count("payment_confirmed") == 1


class TestFail:
    async def test_failure_cancels_and_restores_stock(self, services, seed, online_order, sign, sender):
        entry, placed = online_order
        oid = placed.gateway_order_id
        assert await seed.stock(entry) == 2

        outcome = ok(await services.payments.fail_payment(
            FailureCallback(oid, "pay_1", sign(oid, "pay_1"), reason="card_declined")
        ))
        await services.dispatcher.drain()

        assert outcome.applied
        assert outcome.payment_status is PaymentStatus.FAILED
        payment = await seed.payment(placed.order.order_number)
        assert payment.status is PaymentStatus.FAILED
        assert payment.failure_reason == "card_declined"
        order = await seed.order(placed.order.order_number)
        assert order.status is OrderStatus.CANCELLED
        assert order.stock_released
        assert await seed.stock(entry) == 4
        assert "payment_failed" in sender.templates()

    async def test_failure_after_success_is_ignored(self, services, seed, online_order, sign):
        entry, placed = online_order
        oid = placed.gateway_order_id
        ok(await services.payments.verify_payment(PaymentCallback(oid, "pay_1", sign(oid, "pay_1"))))

        outcome = ok(await services.payments.fail_payment(
            FailureCallback(oid, "pay_2", sign(oid, "pay_2"))
        ))

        assert not outcome.applied
        assert (await seed.payment(placed.order.order_number)).status is PaymentStatus.SUCCESS
        assert await seed.stock(entry) == 2

    async def test_repeated_failure_releases_once(self, services, seed, online_order, sign):
        entry, placed = online_order
        oid = placed.gateway_order_id
        callback = FailureCallback(oid, "pay_1", sign(oid, "pay_1"))

        ok(await services.payments.fail_payment(callback))
        again = ok(await services.payments.fail_payment(callback))

        assert not again.applied
        assert await seed.stock(entry) == 4

    async def test_failure_needs_valid_signature(self, services, seed, online_order):
        _, placed = online_order

        e = err(await services.payments.fail_payment(
            FailureCallback(placed.gateway_order_id, "pay_1", "forged")
        ))

        assert isinstance(e, SignatureVerificationError)
        assert (await seed.order(placed.order.order_number)).status is OrderStatus.PENDING


class TestSweep:
    async def test_expires_stale_pending_payments(self, services, seed, online_order):
        entry, placed = online_order

        report = ok(await services.payments.sweep_expired_payments(utcnow() + timedelta(hours=1)))

        assert report.expired == (placed.order.order_number,)
        assert report.count == 1
        payment = await seed.payment(placed.order.order_number)
        assert payment.status is PaymentStatus.FAILED
        assert payment.failure_reason == "expired"
        assert (await seed.order(placed.order.order_number)).status is OrderStatus.CANCELLED
        assert await seed.stock(entry) == 4

    async def test_second_sweep_is_a_noop(self, services, online_order):
        later = utcnow() + timedelta(hours=1)
        ok(await services.payments.sweep_expired_payments(later))

        report = ok(await services.payments.sweep_expired_payments(later))

        assert report.count == 0

    async def test_recent_payments_are_left_alone(self, services, seed, online_order):
        _, placed = online_order

        report = ok(await services.payments.sweep_expired_payments())

        assert report.count == 0
        assert (await seed.payment(placed.order.order_number)).status is PaymentStatus.PENDING

    async def test_settled_payments_are_skipped(self, services, online_order, sign):
        _, placed = online_order
        oid = placed.gateway_order_id
        ok(await services.payments.verify_payment(PaymentCallback(oid, "pay_1", sign(oid, "pay_1"))))

        report = ok(await services.payments.sweep_expired_payments(utcnow() + timedelta(hours=1)))

        assert report.count == 0
