"""Google custom search image plugin."""

from __future__ import annotations

import logging
import re

from relay.models import InvocationContext
from relay.plugins.base import RegexPlugin, fetch_json
from relay.telegram import TelegramApi

LOGGER = logging.getLogger(__name__)

CUSTOM_SEARCH_URL = "https://www.googleapis.com/customsearch/v1"
ITEMS_PER_PAGE = 10
MAX_RETRIES = 5


class ImageSearchPlugin(RegexPlugin):
    """Replies with a photo for ``picture <query>``.

    Telegram rejects some remote images, so a failed send moves on to the
    next result, up to ``MAX_RETRIES`` times.
    """

    name = "image_search"
    pattern = re.compile(r"^(?:img|image|pic|picture)(?: (.+))?$", re.IGNORECASE)

    def __init__(self, api: TelegramApi, api_key: str, search_engine_id: str) -> None:
        super().__init__(api)
        self._api_key = api_key
        self._search_engine_id = search_engine_id

    async def run(self, ctx: InvocationContext) -> None:
        for attempt in range(MAX_RETRIES + 1):
            link = await self._find(ctx, attempt)
            if not link:
                await self.not_found(ctx)
                return
            try:
                await self._api.send_photo(
                    ctx.chat_id,
                    link,
                    reply_to=self.reply_to(ctx),
                    caption=ctx.caption,
                    disable_notification=True,
                )
                return
            except Exception as exc:
                if attempt == MAX_RETRIES:
                    raise
                LOGGER.warning("Retrying image send (%d): %s", attempt + 1, exc)

    async def _find(self, ctx: InvocationContext, result_number: int) -> str | None:
        start = (result_number // ITEMS_PER_PAGE) * ITEMS_PER_PAGE + 1
        data = await fetch_json(
            CUSTOM_SEARCH_URL,
            {
                "searchType": "image",
                "q": self.query(ctx),
                "key": self._api_key,
                "cx": self._search_engine_id,
                "num": ITEMS_PER_PAGE,
                "start": start,
                "safe": "off",
                "fields": "items.link,queries.nextPage",
            },
        )
        items = data.get("items") or []
        index = result_number % ITEMS_PER_PAGE
        return items[index].get("link") if index < len(items) else None
