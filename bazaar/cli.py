"""
Command line.

    bazaar init-db                  create tables
    bazaar sweep                    fail payments pending longer than the expiry window
    bazaar sweep --older-than 45    custom window, minutes

Run sweep from cron or any scheduler; nothing here stays resident.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from collections.abc import Sequence
from dataclasses import replace
from datetime import timedelta

from kungfu import Ok, Error

from bazaar.db._engine import create_database
from bazaar.log import configure_logging
from bazaar.notify._dispatcher import NotificationDispatcher
from bazaar.notify._sender import LogSender
from bazaar.payments._verification import PaymentService
from bazaar.settings import Settings

logger = logging.getLogger("bazaar.cli")


async def cmd_init_db(settings: Settings) -> int:
    _, engine = await create_database(settings.database_url)
    await engine.dispose()
    logger.info("Schema ready at %s", settings.database_url)
    return 0


async def cmd_sweep(settings: Settings, older_than: float | None) -> int:
    session_factory, engine = await create_database(settings.database_url)
    dispatcher = NotificationDispatcher(LogSender())
    expiry = timedelta(minutes=older_than) if older_than is not None else settings.payment_expiry
    service = PaymentService(
        session_factory,
        settings.gateway_key_secret,
        dispatcher,
        payment_expiry=expiry,
    )
    try:
        match await service.sweep_expired_payments():
            case Ok(report):
                logger.info("Sweep done: %d expired %s", report.count, list(report.expired))
                return 0
            case Error(e):
                logger.error("Sweep failed: %s (%s)", e.code, e.message)
                return 1
    finally:
        await dispatcher.drain()
        await engine.dispose()
    return 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="bazaar", description="Marketplace checkout core")
    parser.add_argument("--database-url", help="overrides BAZAAR_DATABASE_URL")
    parser.add_argument("--log-level", help="overrides BAZAAR_LOG_LEVEL")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("init-db", help="create database tables")

    sweep = sub.add_parser("sweep", help="expire abandoned online payments")
    sweep.add_argument(
        "--older-than",
        type=float,
        metavar="MINUTES",
        help="expiry window (default: BAZAAR_PAYMENT_EXPIRY_MINUTES or 30)",
    )
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    settings = Settings.from_env()
    overrides: dict[str, str] = {}
    if args.database_url:
        overrides["database_url"] = args.database_url
    if args.log_level:
        overrides["log_level"] = args.log_level
    if overrides:
        settings = replace(settings, **overrides)

    configure_logging(settings.log_level)

    match args.command:
        case "init-db":
            return asyncio.run(cmd_init_db(settings))
        case "sweep":
            return asyncio.run(cmd_sweep(settings, args.older_than))
    return 2


if __name__ == "__main__":
    sys.exit(main())
