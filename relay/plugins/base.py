"""Post-processing plugin contracts."""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from typing import Any

import httpx

from relay.models import InvocationContext
from relay.telegram import TelegramApi

NOT_FOUND_TEXT = "Nothing found \U0001F614"


class Plugin(ABC):
    """Base class for all post-processing plugins."""

    name: str

    @abstractmethod
    def match(self, ctx: InvocationContext) -> bool:
        """Return True when this plugin should handle the context."""

    @abstractmethod
    async def run(self, ctx: InvocationContext) -> None:
        """Produce the plugin's side effect for a matched context."""


class RegexPlugin(Plugin):
    """Plugin triggered by ``<keyword> <query>`` text.

    Subclasses set ``pattern`` with one optional capture group holding the
    query. When the text carries no query, the replied-to text is used.
    """

    pattern: re.Pattern[str]
    query_required = True

    def __init__(self, api: TelegramApi) -> None:
        self._api = api

    def match(self, ctx: InvocationContext) -> bool:
        if not self.pattern.search(ctx.text):
            return False
        return not self.query_required or bool(self.query(ctx))

    def query(self, ctx: InvocationContext) -> str:
        found = self.pattern.search(ctx.text)
        captured = found.group(1) if found else None
        if captured is None and ctx.reply_to_text:
            return ctx.reply_to_text
        return captured or ""

    def reply_to(self, ctx: InvocationContext) -> int:
        return ctx.reply_to_id if ctx.reply_to_id is not None else ctx.message_id

    async def not_found(self, ctx: InvocationContext) -> None:
        await self._api.send_message(
            ctx.chat_id,
            NOT_FOUND_TEXT,
            reply_to=self.reply_to(ctx),
            disable_notification=True,
        )


async def fetch_json(url: str, params: dict[str, Any], timeout: float = 15.0) -> dict[str, Any]:
    async with httpx.AsyncClient() as client:
        resp = await client.get(url, params=params, timeout=timeout)
        resp.raise_for_status()
        return resp.json()
