"""Application entrypoint."""

from __future__ import annotations

import asyncio
import logging

from relay.actor import ConversationActor
from relay.completion import CompletionClient
from relay.config import load_settings, secret_values, sticker_set_names, timing_from_settings
from relay.db import Database
from relay.dispatcher import ResponseDispatcher
from relay.gifs import GifStore, StoreGifHandler
from relay.hub import ConversationHub
from relay.llm.openrouter import OpenRouterProvider
from relay.plugins.chain import PluginChain
from relay.plugins.image_search_plugin import ImageSearchPlugin
from relay.plugins.tenor_plugin import TenorPlugin
from relay.plugins.youtube_plugin import YoutubePlugin
from relay.prompts import PromptComposer
from relay.response_helper import ResponseHelper
from relay.scheduler import AlarmScheduler
from relay.stickers import StickerCatalog
from relay.telegram import TelegramApi
from relay.telegram_adapter import InboundEvent, StoreGifEvent, TelegramAdapter

logging.basicConfig(level=logging.INFO)
LOGGER = logging.getLogger(__name__)


async def run() -> None:
    """Initialize app layers and start processing loop."""

    settings = load_settings()

    db = Database(settings.database_path)
    db.initialize()

    api = TelegramApi(
        settings.telegram_bot_token,
        base_url=settings.telegram_api_base_url,
        timeout_seconds=settings.request_timeout_seconds,
    )
    prompts = PromptComposer.from_file(db, settings.demo_prompts_path)
    stickers = StickerCatalog(api, sticker_set_names(settings))
    gifs = GifStore(db)
    try:
        await prompts.refresh_inventory(stickers, gifs)
    except Exception:
        LOGGER.warning("Could not refresh sticker/gif inventory prompts", exc_info=True)

    response_helper = ResponseHelper(api, secret_values(settings))
    store_gif = StoreGifHandler(gifs, prompts, response_helper)
    plugins = PluginChain()
    plugins.register(ImageSearchPlugin(api, settings.google_api_key, settings.custom_search_engine_id))
    plugins.register(YoutubePlugin(api, settings.google_api_key))
    plugins.register(TenorPlugin(api, settings.google_api_key))

    completion = CompletionClient(OpenRouterProvider(settings), prompts)
    dispatcher = ResponseDispatcher(api, response_helper, stickers, gifs, plugins)
    timing = timing_from_settings(settings)

    def make_actor(chat_id: int) -> ConversationActor:
        return ConversationActor(
            chat_id=chat_id,
            db=db,
            api=api,
            prompts=prompts,
            completion=completion,
            dispatcher=dispatcher,
            response_helper=response_helper,
            timing=timing,
        )

    hub = ConversationHub(make_actor)
    scheduler = AlarmScheduler(db, hub.fire, poll_interval_seconds=settings.alarm_poll_interval_seconds)
    adapter = TelegramAdapter(
        api,
        settings.telegram_bot_username,
        poll_timeout_seconds=settings.telegram_poll_timeout_seconds,
        force_business=settings.force_business,
    )

    scheduler_task = asyncio.create_task(scheduler.run_forever(), name="alarm-scheduler")
    in_flight: set[asyncio.Task[None]] = set()

    try:
        async for event in adapter.poll_events():
            task = asyncio.create_task(handle_event(event, hub, store_gif))
            in_flight.add(task)
            task.add_done_callback(in_flight.discard)
    finally:
        scheduler.stop()
        scheduler_task.cancel()
        LOGGER.info("Relay shutdown complete")


async def handle_event(
    event: InboundEvent | StoreGifEvent,
    hub: ConversationHub,
    store_gif: StoreGifHandler,
) -> None:
    """Route one inbound event; failures are logged, never raised."""

    try:
        if isinstance(event, StoreGifEvent):
            await store_gif.handle(event)
        elif event.delayed:
            await hub.reply_with_delay(event.payload)
        else:
            await hub.reply(event.payload)
    except Exception:
        chat_id = event.chat_id if isinstance(event, StoreGifEvent) else event.payload.chat_id
        LOGGER.exception("Failed to handle update for chat %s", chat_id)


def main() -> None:
    """Synchronous wrapper for asyncio entrypoint."""

    asyncio.run(run())


if __name__ == "__main__":
    main()
