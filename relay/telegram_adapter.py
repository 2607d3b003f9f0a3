"""Telegram update polling and normalization."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, AsyncIterator

from relay.models import RESET_COMMAND, STORE_GIF_COMMAND, ReplyPayload
from relay.telegram import TelegramApi

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class InboundEvent:
    """A normalized update and whether it should be answered with a delay."""

    payload: ReplyPayload
    delayed: bool


@dataclass(slots=True)
class StoreGifEvent:
    """An animation sent in reply to the store command in a private chat."""

    chat_id: int
    message_id: int
    file_id: str
    description: str


class TelegramAdapter:
    """Long-polls ``getUpdates`` and yields events addressed to the bot."""

    def __init__(
        self,
        api: TelegramApi,
        bot_username: str,
        poll_timeout_seconds: int = 30,
        force_business: bool = False,
    ) -> None:
        self._api = api
        self._bot_username = bot_username.lstrip("@")
        self._poll_timeout_seconds = poll_timeout_seconds
        self._force_business = force_business
        self._offset: int | None = None

    async def poll_events(self) -> AsyncIterator[InboundEvent | StoreGifEvent]:
        while True:
            try:
                updates = await self._api.get_updates(self._offset, self._poll_timeout_seconds)
            except Exception:
                LOGGER.warning("getUpdates failed", exc_info=True)
                await asyncio.sleep(1)
                continue

            for update in updates:
                self._offset = int(update["update_id"]) + 1
                try:
                    event = to_event(update, self._bot_username, self._force_business)
                except (KeyError, TypeError, ValueError):
                    LOGGER.warning("Skipping malformed update %s", update.get("update_id"))
                    continue
                if event is not None:
                    yield event


def to_event(
    update: dict[str, Any], bot_username: str, force_business: bool = False
) -> InboundEvent | StoreGifEvent | None:
    business = update.get("business_message") or update.get("edited_business_message")
    if business is not None:
        # Only messages the account owner received, not ones they sent.
        sender_id = (business.get("from") or {}).get("id")
        if not force_business and sender_id != business["chat"]["id"]:
            return None
        text = _input_text(business)
        if text is None:
            return None
        return InboundEvent(
            payload=ReplyPayload(
                text=text,
                chat_id=int(business["chat"]["id"]),
                message_id=int(business["message_id"]),
                business_connection_id=business.get("business_connection_id"),
            ),
            delayed=True,
        )

    message = update.get("message")
    if message is None:
        return None
    chat = message["chat"]
    is_private = chat.get("type") == "private"
    if is_private and is_store_gif(message):
        animation = message["animation"]
        return StoreGifEvent(
            chat_id=int(chat["id"]),
            message_id=int(message["message_id"]),
            file_id=animation["file_id"],
            description=gif_description(message),
        )
    if not (is_private or is_addressed_to(message, bot_username)):
        return None
    text = _input_text(message)
    if text is None:
        return None
    return InboundEvent(
        payload=ReplyPayload(
            text=text,
            chat_id=int(chat["id"]),
            message_id=int(message["message_id"]),
            reply_to=int(message["message_id"]),
            chat_title=chat.get("title") if chat.get("type") in ("group", "supergroup") else None,
            display_errors=is_private,
            raw_fallback=is_private,
            post_processing=True,
        ),
        delayed=False,
    )


def is_addressed_to(message: dict[str, Any], bot_username: str) -> bool:
    text = message.get("text") or message.get("caption") or ""
    if f"@{bot_username}" in text:
        return True
    replied = message.get("reply_to_message") or {}
    return (replied.get("from") or {}).get("username") == bot_username


def is_store_gif(message: dict[str, Any]) -> bool:
    replied = message.get("reply_to_message") or {}
    return bool(message.get("animation")) and (replied.get("text") or "").strip() == STORE_GIF_COMMAND


def gif_description(message: dict[str, Any]) -> str:
    """Caption of the animation, falling back to its file name."""

    animation = message.get("animation") or {}
    return (message.get("caption") or "").strip() or animation.get("file_name") or "animation"


def _input_text(message: dict[str, Any]) -> str | None:
    # Commands reach the actor verbatim, without the sender tag.
    if (message.get("text") or "").strip() == RESET_COMMAND:
        return RESET_COMMAND
    return format_message(message)


def format_message(message: dict[str, Any]) -> str | None:
    """Render a message as model input, prefixed with the sender's name.

    Returns None for updates that carry nothing to answer.
    """

    if (message.get("media_group_id") and not message.get("text")) or message.get(
        "message_auto_delete_timer_changed"
    ):
        return None
    return f"{enclose('USERNAME', full_name(message))}\n{content_to_text(message)}"


def full_name(message: dict[str, Any]) -> str:
    sender = message.get("from") or {}
    return " ".join(part for part in (sender.get("first_name"), sender.get("last_name")) if part)


def enclose(tag: str, *parts: object) -> str:
    text = " - ".join(str(part) for part in parts if part not in (None, ""))
    if not text:
        return f"<{tag}/>"
    return f"<{tag}>{text}</{tag}>"


def content_to_text(message: dict[str, Any]) -> str:
    caption = message.get("caption")
    if gift := message.get("gift") or message.get("unique_gift"):
        return enclose("GIFT", (gift.get("gift") or {}).get("id"), message.get("text"))
    if message.get("text"):
        return message["text"]
    if animation := message.get("animation"):
        return enclose("GIF", animation.get("file_name"), caption)
    if audio := message.get("audio"):
        return enclose("AUDIO", audio.get("file_name"), audio.get("performer"), audio.get("title"), caption)
    if document := message.get("document"):
        return enclose("FILE", document.get("file_name"), caption)
    if message.get("paid_media"):
        return enclose("PAID_MEDIA", caption)
    if message.get("photo"):
        return enclose("PHOTO", caption)
    if sticker := message.get("sticker"):
        return enclose("STICKER", sticker.get("set_name"), sticker.get("emoji"))
    if "story" in message:
        return enclose("STORY")
    if video := message.get("video"):
        return enclose("VIDEO", video.get("file_name"), caption)
    if "video_note" in message:
        return enclose("VIDEO_MESSAGE")
    if "voice" in message:
        return enclose("VOICE_MESSAGE", caption)
    if contact := message.get("contact"):
        return enclose(
            "CONTACT", contact.get("first_name"), contact.get("last_name"), contact.get("phone_number")
        )
    if dice := message.get("dice"):
        return enclose("DICE", dice.get("emoji"), f"result:{dice.get('value')}")
    if game := message.get("game"):
        return enclose("GAME", game.get("title"), game.get("description"), game.get("text"))
    if poll := message.get("poll"):
        options = ", ".join(option.get("text", "") for option in poll.get("options", []))
        return enclose("POLL", f"{poll.get('question')}?", options)
    if venue := message.get("venue"):
        return enclose("VENUE", venue.get("title"), venue.get("address"))
    if location := message.get("location"):
        return enclose("LOCATION", f"{location.get('latitude')} {location.get('longitude')}")
    return enclose("NOT_PARSED_TEXT")
