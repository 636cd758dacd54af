"""Tests for the notification dispatcher."""

import logging

import pytest

from bazaar.notify import LOW_STOCK, ORDER_PLACED, LogSender, NotificationDispatcher

pytestmark = pytest.mark.anyio


async def test_dispatch_delivers_in_background(sender):
    dispatcher = NotificationDispatcher(sender)

    dispatcher.dispatch("a@example.com", ORDER_PLACED, {"order_number": "ORD-1-1"})
    assert dispatcher.pending == 1
    await dispatcher.drain()

    assert dispatcher.pending == 0
    assert sender.sent == [("a@example.com", "order_placed", {"order_number": "ORD-1-1"})]


async def test_sender_failure_is_logged_and_dropped(sender, caplog):
    sender.fail = True
    dispatcher = NotificationDispatcher(sender)

    with caplog.at_level(logging.ERROR, logger="bazaar.notify"):
        dispatcher.dispatch("a@example.com", ORDER_PLACED, {})
        await dispatcher.drain()

    assert sender.sent == []
    assert "order_placed" in caplog.text


async def test_missing_recipient_is_skipped(sender, caplog):
    dispatcher = NotificationDispatcher(sender)

    with caplog.at_level(logging.WARNING, logger="bazaar.notify"):
        dispatcher.dispatch(None, ORDER_PLACED, {})
        dispatcher.dispatch("", LOW_STOCK, {})

    assert dispatcher.pending == 0
    assert "no recipient" in caplog.text


async def test_data_is_copied_at_dispatch(sender):
    dispatcher = NotificationDispatcher(sender)
    data = {"quantity": 1}

    dispatcher.dispatch("a@example.com", LOW_STOCK, data)
    data["quantity"] = 99
    await dispatcher.drain()

    assert sender.sent[0][2] == {"quantity": 1}


def test_dispatch_without_loop_is_dropped(sender):
    dispatcher = NotificationDispatcher(sender)

    dispatcher.dispatch("a@example.com", ORDER_PLACED, {})

    assert dispatcher.pending == 0


async def test_log_sender_writes_to_log(caplog):
    with caplog.at_level(logging.INFO, logger="bazaar.notify"):
        await LogSender().send("a@example.com", ORDER_PLACED, {"order_number": "ORD-1-1"})

    assert "template=order_placed" in caplog.text
