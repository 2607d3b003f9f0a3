from unittest.mock import AsyncMock, MagicMock

import pytest

from relay.models import RESET_COMMAND, STORE_GIF_COMMAND
from relay.telegram_adapter import (
    StoreGifEvent,
    TelegramAdapter,
    content_to_text,
    enclose,
    format_message,
    to_event,
)

BOT = "relay_bot"


def _message(chat_type="private", chat_id=123, **fields):
    message = {
        "message_id": 10,
        "chat": {"id": chat_id, "type": chat_type, "title": "Chat Title"},
        "from": {"id": 55, "first_name": "Ada", "last_name": "Lovelace"},
    }
    message.update(fields)
    return message


class TestFormatting:
    def test_text_is_prefixed_with_sender_name(self):
        assert format_message(_message(text="hi")) == "<USERNAME>Ada Lovelace</USERNAME>\nhi"

    def test_enclose_without_parts(self):
        assert enclose("STORY") == "<STORY/>"

    def test_enclose_skips_empty_parts(self):
        assert enclose("FILE", "report.pdf", None, "") == "<FILE>report.pdf</FILE>"

    def test_media_tags(self):
        assert content_to_text({"photo": [{}], "caption": "sunset"}) == "<PHOTO>sunset</PHOTO>"
        assert content_to_text({"sticker": {"set_name": "pack", "emoji": "😀"}}) == "<STICKER>pack - 😀</STICKER>"
        assert content_to_text({"voice": {}}) == "<VOICE_MESSAGE/>"
        assert content_to_text({"dice": {"emoji": "🎲", "value": 4}}) == "<DICE>🎲 - result:4</DICE>"
        assert content_to_text({"location": {"latitude": 1.5, "longitude": 2.5}}) == "<LOCATION>1.5 2.5</LOCATION>"
        assert content_to_text({"new_chat_title": "x"}) == "<NOT_PARSED_TEXT/>"

    def test_poll(self):
        poll = {"question": "Lunch", "options": [{"text": "pizza"}, {"text": "sushi"}]}
        assert content_to_text({"poll": poll}) == "<POLL>Lunch? - pizza, sushi</POLL>"

    def test_gift_keeps_text(self):
        message = {"gift": {"gift": {"id": "g1"}}, "text": "for you"}
        assert content_to_text(message) == "<GIFT>g1 - for you</GIFT>"

    def test_media_group_fragments_are_skipped(self):
        assert format_message(_message(media_group_id="m1", photo=[{}])) is None

    def test_auto_delete_notice_is_skipped(self):
        assert format_message(_message(message_auto_delete_timer_changed={"message_auto_delete_time": 60})) is None


class TestRouting:
    def test_private_message_replies_immediately(self):
        event = to_event({"update_id": 1, "message": _message(text="hi")}, BOT)

        assert event.delayed is False
        assert event.payload.chat_id == 123
        assert event.payload.reply_to == 10
        assert event.payload.chat_title is None
        assert event.payload.display_errors is True
        assert event.payload.raw_fallback is True
        assert event.payload.post_processing is True

    def test_group_message_needs_mention(self):
        assert to_event({"update_id": 1, "message": _message("group", chat_id=-5, text="hi all")}, BOT) is None

        event = to_event({"update_id": 2, "message": _message("group", chat_id=-5, text=f"@{BOT} hi")}, BOT)
        assert event.payload.chat_title == "Chat Title"
        assert event.payload.display_errors is False
        assert event.payload.raw_fallback is False

    def test_group_reply_to_bot_is_addressed(self):
        message = _message("supergroup", chat_id=-5, text="and?", reply_to_message={"from": {"username": BOT}})
        assert to_event({"update_id": 1, "message": message}, BOT) is not None

    def test_business_message_is_delayed(self):
        business = _message(text="hello", business_connection_id="bc-1")
        business["from"]["id"] = 123

        event = to_event({"update_id": 1, "business_message": business}, BOT)

        assert event.delayed is True
        assert event.payload.business_connection_id == "bc-1"
        assert event.payload.reply_to is None
        assert event.payload.post_processing is False

    def test_business_message_sent_by_owner_is_ignored(self):
        business = _message(text="hello", business_connection_id="bc-1")

        assert to_event({"update_id": 1, "business_message": business}, BOT) is None
        assert to_event({"update_id": 1, "business_message": business}, BOT, force_business=True) is not None

    def test_reset_command_passes_verbatim(self):
        event = to_event({"update_id": 1, "message": _message(text=RESET_COMMAND)}, BOT)
        assert event.payload.text == RESET_COMMAND
        assert event.payload.is_reset

    def test_unrelated_update_is_ignored(self):
        assert to_event({"update_id": 1, "edited_message": _message(text="x")}, BOT) is None


class TestStoreGif:
    def _animation_message(self, chat_type="private", **fields):
        return _message(
            chat_type,
            animation={"file_id": "gif-file", "file_name": "dance.mp4"},
            reply_to_message={"text": STORE_GIF_COMMAND},
            **fields,
        )

    def test_animation_replying_to_command_is_stored(self):
        event = to_event({"update_id": 1, "message": self._animation_message(caption="cat dancing")}, BOT)

        assert event == StoreGifEvent(chat_id=123, message_id=10, file_id="gif-file", description="cat dancing")

    def test_description_falls_back_to_file_name(self):
        event = to_event({"update_id": 1, "message": self._animation_message()}, BOT)

        assert event.description == "dance.mp4"

    def test_group_animation_is_not_stored(self):
        message = self._animation_message("group", caption=f"@{BOT} look")

        event = to_event({"update_id": 1, "message": message}, BOT)

        assert not isinstance(event, StoreGifEvent)

    def test_animation_without_command_is_a_normal_message(self):
        message = _message(animation={"file_id": "gif-file", "file_name": "dance.mp4"})

        event = to_event({"update_id": 1, "message": message}, BOT)

        assert event.payload.text.endswith("<GIF>dance.mp4</GIF>")


@pytest.mark.asyncio
async def test_poll_events_advances_offset_and_skips_malformed():
    api = MagicMock()
    api.get_updates = AsyncMock(
        side_effect=[
            [
                {"update_id": 5, "message": {"chat": {"type": "private"}}},
                {"update_id": 6, "message": _message(text="hi")},
            ],
            [],
        ]
    )
    adapter = TelegramAdapter(api, "@relay_bot", poll_timeout_seconds=1)

    events = adapter.poll_events()
    event = await anext(events)
    await events.aclose()

    assert event.payload.text.endswith("hi")
    api.get_updates.assert_awaited_once_with(None, 1)
