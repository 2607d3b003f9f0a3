"""Stored animation inventory."""

from __future__ import annotations

import logging

from relay.db import Database
from relay.models import Gif
from relay.prompts import GIFS_PROMPT_ID, PromptComposer
from relay.response_helper import ResponseHelper
from relay.telegram_adapter import StoreGifEvent

LOGGER = logging.getLogger(__name__)


class GifStore:
    def __init__(self, db: Database) -> None:
        self._db = db

    def get_gif(self, gif_id: str | int) -> Gif | None:
        try:
            key = int(gif_id)
        except (TypeError, ValueError):
            return None
        row = self._db.get_gif(key)
        return Gif(**row) if row else None

    def add_gif(self, file_id: str, description: str) -> int:
        """Store or re-describe an animation; returns its id."""

        return self._db.upsert_gif(file_id, description)

    def get_prompt(self) -> str:
        lines = [f"{row['id']} - {row['description']}" for row in self._db.list_gifs()]
        return "Available gifs:\n" + "\n".join(lines)


class StoreGifHandler:
    """Adds an animation to the inventory and refreshes the stored gif prompt."""

    def __init__(self, gifs: GifStore, prompts: PromptComposer, response_helper: ResponseHelper) -> None:
        self._gifs = gifs
        self._prompts = prompts
        self._response_helper = response_helper

    async def handle(self, event: StoreGifEvent) -> None:
        gif_id = self._gifs.add_gif(event.file_id, event.description)
        self._prompts.update_system_prompt(GIFS_PROMPT_ID, self._gifs.get_prompt())
        LOGGER.info("Stored gif %s for chat %s: %s", gif_id, event.chat_id, event.description)
        await self._response_helper.send_json(
            event.chat_id,
            {"id": gif_id, "file_id": event.file_id, "description": event.description},
            event.message_id,
        )
