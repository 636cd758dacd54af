"""
Dispatcher — fire-and-forget delivery.

dispatch() returns immediately; the send runs as a background task. A failed
send is logged and dropped, never retried.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from typing import Any

from bazaar.notify._sender import NotificationSender

logger = logging.getLogger(__name__)


class NotificationDispatcher:
    __slots__ = ("_sender", "_tasks")

    def __init__(self, sender: NotificationSender) -> None:
        self._sender = sender
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def dispatch(self, to: str | None, template: str, data: Mapping[str, Any]) -> None:
        """Queue one message. Never raises."""
        if not to:
            logger.warning("Dropping %s notification: no recipient", template)
            return
        try:
            task = asyncio.get_running_loop().create_task(
                self._deliver(to, template, dict(data))
            )
        except RuntimeError:
            logger.error("Dropping %s notification: no running event loop", template)
            return
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _deliver(self, to: str, template: str, data: dict[str, Any]) -> None:
        try:
            await self._sender.send(to, template, data)
        except Exception:
            logger.exception("Notification %s to %s failed", template, to)

    async def drain(self) -> None:
        """Wait for every queued delivery. Used on shutdown and in tests."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))


__all__ = ("NotificationDispatcher",)
