"""Durable per-chat alarms."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Awaitable, Callable

from relay.db import Database

LOGGER = logging.getLogger(__name__)


class AlarmScheduler:
    """Polls due alarms and fires each one via callback.

    An alarm row is deleted before its callback starts, so a reply that is
    still running does not block a new alarm for the same chat. Alarms survive
    restarts because they live in the database.
    """

    def __init__(
        self,
        db: Database,
        handler: Callable[[int], Awaitable[None]],
        poll_interval_seconds: float = 1.0,
    ) -> None:
        self._db = db
        self._handler = handler
        self._poll_interval_seconds = poll_interval_seconds
        self._stop_event = asyncio.Event()
        self._running: set[asyncio.Task[None]] = set()

    def fire_due(self, now: datetime | None = None) -> list[asyncio.Task[None]]:
        """Claim every due alarm and start its callback in its own task."""

        now = now or self._db.now()
        tasks: list[asyncio.Task[None]] = []
        for chat_id in self._db.get_due_alarms(now):
            if not self._db.claim_alarm(chat_id, now):
                continue
            task = asyncio.create_task(self._fire(chat_id), name=f"alarm-{chat_id}")
            self._running.add(task)
            task.add_done_callback(self._running.discard)
            tasks.append(task)
        return tasks

    async def _fire(self, chat_id: int) -> None:
        LOGGER.info("Alarm fired for chat %s", chat_id)
        try:
            await self._handler(chat_id)
        except Exception:
            LOGGER.exception("Alarm handler failed for chat %s", chat_id)

    async def run_forever(self) -> None:
        """Run scheduler loop until stop() is called."""

        while not self._stop_event.is_set():
            self.fire_due()
            await asyncio.sleep(self._poll_interval_seconds)

    def stop(self) -> None:
        """Signal the loop to stop."""

        self._stop_event.set()
