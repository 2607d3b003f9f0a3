"""YouTube video search plugin."""

from __future__ import annotations

import re

from relay.models import InvocationContext
from relay.plugins.base import RegexPlugin, fetch_json
from relay.telegram import TelegramApi

YOUTUBE_SEARCH_URL = "https://www.googleapis.com/youtube/v3/search"


class YoutubePlugin(RegexPlugin):
    """Replies with a watch link for ``video <query>``."""

    name = "youtube"
    pattern = re.compile(r"^(?:video|youtube)(?: (.+))?$", re.IGNORECASE)

    def __init__(self, api: TelegramApi, api_key: str) -> None:
        super().__init__(api)
        self._api_key = api_key

    async def run(self, ctx: InvocationContext) -> None:
        data = await fetch_json(
            YOUTUBE_SEARCH_URL,
            {
                "type": "video",
                "q": self.query(ctx),
                "key": self._api_key,
                "maxResults": 1,
                "safeSearch": "none",
                "fields": "items.id.videoId",
            },
        )
        items = data.get("items") or []
        video_id = items[0].get("id", {}).get("videoId") if items else None
        if not video_id:
            await self.not_found(ctx)
            return

        caption = f"{ctx.caption}\n" if ctx.caption else ""
        await self._api.send_message(
            ctx.chat_id,
            f"{caption}https://www.youtube.com/watch?v={video_id}",
            reply_to=self.reply_to(ctx),
            disable_notification=True,
        )
