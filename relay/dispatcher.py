"""Delivery of structured model responses."""

from __future__ import annotations

import logging

from relay.gifs import GifStore
from relay.models import InvocationContext, SendOptions, SentMessage, StructuredResponse
from relay.plugins.chain import PluginChain
from relay.response_helper import ResponseHelper
from relay.stickers import StickerCatalog
from relay.telegram import TelegramApi

LOGGER = logging.getLogger(__name__)


class ResponseDispatcher:
    """Sends the text, sticker and gif parts of a response.

    Parts are independent: every present part is sent, in that order.
    """

    def __init__(
        self,
        api: TelegramApi,
        response_helper: ResponseHelper,
        stickers: StickerCatalog,
        gifs: GifStore,
        plugins: PluginChain,
    ) -> None:
        self._api = api
        self._response_helper = response_helper
        self._stickers = stickers
        self._gifs = gifs
        self._plugins = plugins

    async def send(self, response: StructuredResponse, options: SendOptions) -> None:
        if not response.valid:
            if options.raw_fallback:
                await self._response_helper.send_json(options.chat_id, response.raw, options.reply_to)
            return

        if response.text:
            sent = await self._api.send_message(
                options.chat_id,
                response.text,
                reply_to=options.reply_to,
                business_connection_id=options.business_connection_id,
            )
            if options.post_processing:
                await self._post_process(sent, options)

        if response.sticker:
            await self._send_sticker(response.sticker, options)

        if response.gif is not None:
            await self._send_gif(response.gif, options)

    async def _post_process(self, sent: SentMessage, options: SendOptions) -> None:
        # Plugins act on the message we just sent, not on the inbound one.
        ctx = InvocationContext(
            text=sent.text or "",
            chat_id=options.chat_id,
            message_id=sent.message_id,
            reply_to_id=sent.message_id,
            business_connection_id=options.business_connection_id,
            initiator_id=sent.from_id,
            initiator_name=sent.from_username,
        )
        await self._plugins.run_first(ctx)

    async def _send_sticker(self, emoji: str, options: SendOptions) -> None:
        sticker = await self._stickers.get_sticker(emoji)
        if sticker is None:
            await self._api.send_message(
                options.chat_id,
                emoji,
                business_connection_id=options.business_connection_id,
            )
            return
        await self._api.send_sticker(
            options.chat_id,
            sticker.file_id,
            business_connection_id=options.business_connection_id,
        )

    async def _send_gif(self, gif_id: str | int, options: SendOptions) -> None:
        gif = self._gifs.get_gif(gif_id)
        if gif is None:
            LOGGER.warning("Unknown gif id %r for chat %s, skipping", gif_id, options.chat_id)
            return
        await self._api.send_animation(
            options.chat_id,
            gif.file_id,
            business_connection_id=options.business_connection_id,
        )
