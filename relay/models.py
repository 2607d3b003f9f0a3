"""Core domain models used across layers."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any

RESET_COMMAND = "!restart"
STORE_GIF_COMMAND = "/storegif"


@dataclass(slots=True)
class ReplyPayload:
    """Inbound event normalized by adapters for the conversation actor."""

    text: str
    chat_id: int
    message_id: int
    chat_title: str | None = None
    reply_to: int | None = None
    business_connection_id: str | None = None
    display_errors: bool = False
    raw_fallback: bool = False
    post_processing: bool = False

    @property
    def is_reset(self) -> bool:
        return self.text.strip() == RESET_COMMAND


@dataclass(slots=True)
class ConversationState:
    """Durable continuation state of one conversation actor."""

    chat_id: int
    message_id: int
    reply_to: int | None = None
    business_connection_id: str | None = None
    chat_title: str | None = None
    display_errors: bool = False
    raw_fallback: bool = False
    post_processing: bool = False
    should_read: bool = False

    @classmethod
    def from_payload(cls, payload: ReplyPayload) -> ConversationState:
        return cls(
            chat_id=payload.chat_id,
            message_id=payload.message_id,
            reply_to=payload.reply_to,
            business_connection_id=payload.business_connection_id,
            chat_title=payload.chat_title,
            display_errors=payload.display_errors,
            raw_fallback=payload.raw_fallback,
            post_processing=payload.post_processing,
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ConversationState:
        known = {name: data[name] for name in cls.__dataclass_fields__ if name in data}
        return cls(**known)


@dataclass(slots=True)
class StructuredResponse:
    """Parsed model output. ``raw`` is always the literal model text."""

    valid: bool
    raw: str
    text: str | None = None
    sticker: str | None = None
    gif: str | int | None = None


@dataclass(slots=True)
class SendOptions:
    """Where and how a structured response is delivered."""

    chat_id: int
    reply_to: int | None = None
    business_connection_id: str | None = None
    raw_fallback: bool = False
    post_processing: bool = False


@dataclass(slots=True)
class SentMessage:
    """Echo of a message the bot has just sent."""

    message_id: int
    chat_id: int
    text: str | None = None
    from_id: int | None = None
    from_username: str | None = None


@dataclass(slots=True)
class InvocationContext:
    """Input handed to post-processing plugins."""

    text: str
    chat_id: int
    message_id: int
    reply_to_id: int | None = None
    business_connection_id: str | None = None
    initiator_id: int | None = None
    initiator_name: str | None = None
    reply_to_text: str | None = None
    caption: str | None = None


@dataclass(slots=True)
class Sticker:
    file_id: str
    emoji: str | None = None
    set_name: str | None = None


@dataclass(slots=True)
class StickerSet:
    name: str
    title: str
    stickers: list[Sticker] = field(default_factory=list)


@dataclass(slots=True)
class Gif:
    id: int
    file_id: str
    description: str


@dataclass(slots=True)
class LLMResponse:
    """Result from an LLM generation request."""

    content: str | None
    raw: dict[str, Any] | None = None
