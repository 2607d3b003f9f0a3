"""Key-addressed registry of conversation actors."""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import AsyncIterator, Callable

from relay.actor import ConversationActor
from relay.models import ReplyPayload

LOGGER = logging.getLogger(__name__)


class ConversationHub:
    """Owns one actor per chat and runs its operations one at a time.

    Actors are created lazily and dropped as soon as no operation for their
    chat is running or waiting; the next one recovers from the database.
    Different chats never wait on each other.
    """

    def __init__(self, actor_factory: Callable[[int], ConversationActor]) -> None:
        self._actor_factory = actor_factory
        self._actors: dict[int, ConversationActor] = {}
        self._locks: dict[int, asyncio.Lock] = {}
        self._pending: dict[int, int] = {}

    @property
    def active_chats(self) -> list[int]:
        """Chats with an operation running or queued."""

        return sorted(self._pending)

    def actor(self, chat_id: int) -> ConversationActor:
        actor = self._actors.get(chat_id)
        if actor is None:
            actor = self._actor_factory(chat_id)
            self._actors[chat_id] = actor
        return actor

    def evict(self, chat_id: int) -> None:
        self._actors.pop(chat_id, None)

    @asynccontextmanager
    async def _session(self, chat_id: int) -> AsyncIterator[ConversationActor]:
        self._pending[chat_id] = self._pending.get(chat_id, 0) + 1
        lock = self._locks.setdefault(chat_id, asyncio.Lock())
        try:
            async with lock:
                yield self.actor(chat_id)
        finally:
            self._pending[chat_id] -= 1
            if not self._pending[chat_id]:
                del self._pending[chat_id]
                self._locks.pop(chat_id, None)
                self.evict(chat_id)

    async def reply(self, payload: ReplyPayload) -> None:
        async with self._session(payload.chat_id) as actor:
            await actor.reply(payload)

    async def reply_with_delay(self, payload: ReplyPayload) -> datetime | None:
        async with self._session(payload.chat_id) as actor:
            return await actor.reply_with_delay(payload)

    async def fire(self, chat_id: int) -> None:
        """Alarm callback: run the pending reply of ``chat_id``."""

        async with self._session(chat_id) as actor:
            await actor.process_reply()
