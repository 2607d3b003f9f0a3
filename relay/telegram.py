"""Telegram Bot API client."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from relay.models import SentMessage, Sticker, StickerSet

LOGGER = logging.getLogger(__name__)


class TelegramError(RuntimeError):
    """Raised when the Bot API answers with ``ok: false``."""

    def __init__(self, method: str, description: str, error_code: int | None = None) -> None:
        super().__init__(f"{method} failed ({error_code}): {description}")
        self.method = method
        self.description = description
        self.error_code = error_code


class TelegramApi:
    """Thin async wrapper around the Bot API JSON methods used by the relay."""

    def __init__(
        self,
        token: str,
        base_url: str = "https://api.telegram.org",
        timeout_seconds: float = 30.0,
    ) -> None:
        self._token = token
        self._base_url = base_url.rstrip("/")
        self._timeout_seconds = timeout_seconds

    async def _request(self, method: str, payload: dict[str, Any], timeout: float | None = None) -> Any:
        body = {key: value for key, value in payload.items() if value is not None}
        async with httpx.AsyncClient(timeout=httpx.Timeout(timeout or self._timeout_seconds)) as client:
            response = await client.post(f"{self._base_url}/bot{self._token}/{method}", json=body)
            response.raise_for_status()
            data = response.json()
        if not data.get("ok"):
            raise TelegramError(method, str(data.get("description", "")), data.get("error_code"))
        return data.get("result")

    async def send_message(
        self,
        chat_id: int,
        text: str,
        reply_to: int | None = None,
        business_connection_id: str | None = None,
        parse_mode: str | None = None,
        disable_notification: bool | None = None,
    ) -> SentMessage:
        result = await self._request(
            "sendMessage",
            {
                "chat_id": chat_id,
                "text": text,
                "reply_to_message_id": reply_to,
                "business_connection_id": business_connection_id,
                "parse_mode": parse_mode,
                "disable_notification": disable_notification,
            },
        )
        return _to_sent_message(result)

    async def send_sticker(
        self,
        chat_id: int,
        sticker: str,
        reply_to: int | None = None,
        business_connection_id: str | None = None,
    ) -> SentMessage:
        result = await self._request(
            "sendSticker",
            {
                "chat_id": chat_id,
                "sticker": sticker,
                "reply_to_message_id": reply_to,
                "business_connection_id": business_connection_id,
            },
        )
        return _to_sent_message(result)

    async def send_animation(
        self,
        chat_id: int,
        animation: str,
        reply_to: int | None = None,
        business_connection_id: str | None = None,
        caption: str | None = None,
        disable_notification: bool | None = None,
    ) -> SentMessage:
        result = await self._request(
            "sendAnimation",
            {
                "chat_id": chat_id,
                "animation": animation,
                "reply_to_message_id": reply_to,
                "business_connection_id": business_connection_id,
                "caption": caption,
                "disable_notification": disable_notification,
            },
        )
        return _to_sent_message(result)

    async def send_photo(
        self,
        chat_id: int,
        photo: str,
        reply_to: int | None = None,
        business_connection_id: str | None = None,
        caption: str | None = None,
        disable_notification: bool | None = None,
    ) -> SentMessage:
        result = await self._request(
            "sendPhoto",
            {
                "chat_id": chat_id,
                "photo": photo,
                "reply_to_message_id": reply_to,
                "business_connection_id": business_connection_id,
                "caption": caption,
                "disable_notification": disable_notification,
            },
        )
        return _to_sent_message(result)

    async def send_chat_action(
        self,
        chat_id: int,
        action: str = "typing",
        business_connection_id: str | None = None,
    ) -> None:
        await self._request(
            "sendChatAction",
            {"chat_id": chat_id, "action": action, "business_connection_id": business_connection_id},
        )

    async def read_business_message(self, business_connection_id: str, chat_id: int, message_id: int) -> None:
        await self._request(
            "readBusinessMessage",
            {
                "business_connection_id": business_connection_id,
                "chat_id": chat_id,
                "message_id": message_id,
            },
        )

    async def set_message_reaction(self, chat_id: int, message_id: int, emoji: str, is_big: bool = False) -> None:
        await self._request(
            "setMessageReaction",
            {
                "chat_id": chat_id,
                "message_id": message_id,
                "reaction": [{"type": "emoji", "emoji": emoji}],
                "is_big": is_big,
            },
        )

    async def get_sticker_set(self, name: str) -> StickerSet:
        result = await self._request("getStickerSet", {"name": name})
        return StickerSet(
            name=result.get("name", name),
            title=result.get("title", name),
            stickers=[
                Sticker(
                    file_id=item["file_id"],
                    emoji=item.get("emoji"),
                    set_name=item.get("set_name"),
                )
                for item in result.get("stickers", [])
            ],
        )

    async def get_updates(self, offset: int | None = None, timeout_seconds: int = 30) -> list[dict[str, Any]]:
        result = await self._request(
            "getUpdates",
            {
                "offset": offset,
                "timeout": timeout_seconds,
                "allowed_updates": ["message", "business_message", "edited_business_message"],
            },
            timeout=timeout_seconds + self._timeout_seconds,
        )
        return list(result or [])


def _to_sent_message(result: dict[str, Any]) -> SentMessage:
    sender = result.get("from") or {}
    return SentMessage(
        message_id=int(result["message_id"]),
        chat_id=int((result.get("chat") or {}).get("id", 0)),
        text=result.get("text"),
        from_id=sender.get("id"),
        from_username=sender.get("username"),
    )
