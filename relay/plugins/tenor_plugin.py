"""Tenor animation search plugin."""

from __future__ import annotations

import re

from relay.models import InvocationContext
from relay.plugins.base import RegexPlugin, fetch_json
from relay.telegram import TelegramApi

TENOR_SEARCH_URL = "https://tenor.googleapis.com/v2/search"


class TenorPlugin(RegexPlugin):
    """Replies with an mp4 animation for ``gif <query>``."""

    name = "tenor"
    pattern = re.compile(r"^(?:gif)(?: (.+))?$", re.IGNORECASE)

    def __init__(self, api: TelegramApi, api_key: str, client_key: str = "relay_bot") -> None:
        super().__init__(api)
        self._api_key = api_key
        self._client_key = client_key

    async def run(self, ctx: InvocationContext) -> None:
        data = await fetch_json(
            TENOR_SEARCH_URL,
            {
                "q": self.query(ctx),
                "key": self._api_key,
                "limit": 1,
                "contentfilter": "off",
                "media_filter": "mp4",
                "client_key": self._client_key,
            },
        )
        results = data.get("results") or []
        url = None
        if results:
            url = results[0].get("media_formats", {}).get("mp4", {}).get("url")
        if not url:
            await self.not_found(ctx)
            return

        await self._api.send_animation(
            ctx.chat_id,
            url,
            reply_to=self.reply_to(ctx),
            caption=ctx.caption,
            disable_notification=True,
        )
