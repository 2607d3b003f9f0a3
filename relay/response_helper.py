"""Formatted replies: raw JSON blocks and user-facing error reports."""

from __future__ import annotations

import json
import logging
import re
from typing import Iterable

from relay.telegram import TelegramApi

LOGGER = logging.getLogger(__name__)

REDACTED = "<REDACTED>"
# Bot API URLs embed the token right after "/bot".
_BOT_URL_TOKEN = re.compile(r"/bot[^/\s]+/")


class ResponseHelper:
    """Sends code-block replies and sanitized error diagnostics."""

    def __init__(self, api: TelegramApi, secrets: Iterable[str] = ()) -> None:
        self._api = api
        values = sorted({s for s in secrets if s}, key=len, reverse=True)
        self._sanitize_expr = re.compile("|".join(re.escape(v) for v in values)) if values else None

    async def send_json(self, chat_id: int, payload: object, reply_to: int | None = None) -> None:
        if isinstance(payload, str):
            body = payload
        else:
            body = json.dumps(payload, indent=2, ensure_ascii=False).replace('\\"', '\\\\"')
        await self._api.send_message(
            chat_id,
            f"```json\n{body}\n```",
            reply_to=reply_to,
            parse_mode="MarkdownV2",
        )

    async def send_error(self, chat_id: int, error: BaseException, reply_to: int | None = None) -> None:
        """Report an exception to the chat. Never raises."""

        try:
            await self.send_json(chat_id, self.describe_error(error), reply_to)
        except Exception:
            LOGGER.exception("An additional error occurred while reporting an error to chat %s", chat_id)

    def describe_error(self, error: BaseException) -> dict[str, str]:
        return {
            "name": type(error).__name__,
            "message": self.sanitize(str(error)),
        }

    def sanitize(self, text: str) -> str:
        text = _BOT_URL_TOKEN.sub(f"/bot{REDACTED}/", text)
        if self._sanitize_expr is None:
            return text
        return self._sanitize_expr.sub(REDACTED, text)
