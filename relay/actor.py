"""Per-conversation reply scheduler."""

from __future__ import annotations

import asyncio
import logging
import random
from datetime import datetime, timedelta
from typing import Awaitable, Callable

from relay.completion import CompletionClient
from relay.db import Database
from relay.dispatcher import ResponseDispatcher
from relay.models import ConversationState, ReplyPayload, SendOptions, StructuredResponse
from relay.prompts import PromptComposer
from relay.response_helper import ResponseHelper
from relay.telegram import TelegramApi
from relay.timing import ReplyTiming, delay_range, pick_delay_ms

LOGGER = logging.getLogger(__name__)

RESET_REACTION = "\U0001F44D"


class ConversationActor:
    """Stateful reply scheduler owning exactly one chat.

    The in-memory state is only a cache: everything the alarm callback needs
    is written to the database before an alarm is armed, so ``process_reply``
    works on a freshly constructed actor.

    Callers must not run two operations of the same actor concurrently;
    ``ConversationHub`` serializes them per chat.
    """

    def __init__(
        self,
        chat_id: int,
        db: Database,
        api: TelegramApi,
        prompts: PromptComposer,
        completion: CompletionClient,
        dispatcher: ResponseDispatcher,
        response_helper: ResponseHelper,
        timing: ReplyTiming,
        rng: random.Random | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.chat_id = chat_id
        self._db = db
        self._api = api
        self._prompts = prompts
        self._completion = completion
        self._dispatcher = dispatcher
        self._response_helper = response_helper
        self._timing = timing
        self._rng = rng or random.Random()
        self._sleep = sleep
        self._state: ConversationState | None = None

    async def reply(self, payload: ReplyPayload) -> None:
        """Append the inbound turn and reply right away."""

        if payload.is_reset:
            await self.reset(payload)
            return
        state = ConversationState.from_payload(payload)
        self._state = state
        self._db.save_state(self.chat_id, state.to_dict())
        self._db.append_thread(self.chat_id, "user", payload.text)
        await self.process_reply()

    async def reply_with_delay(self, payload: ReplyPayload) -> datetime | None:
        """Append the inbound turn and make sure a reply is scheduled.

        Returns the due time of a newly armed alarm, or None when an alarm was
        already pending (the new turn joins that reply) or the thread was reset.
        """

        if payload.is_reset:
            await self.reset(payload)
            return None

        state = ConversationState.from_payload(payload)
        # Activity is judged on history before this turn.
        is_active = self._db.is_active(self.chat_id, self._timing.staleness_business_seconds)
        self._db.append_thread(self.chat_id, "user", payload.text)

        if self._db.get_alarm(self.chat_id) is not None:
            # The pending reply keeps the read decision made when it was armed.
            pending = self._state or self._load_state()
            state.should_read = pending.should_read if pending else True
            self._state = state
            self._db.save_state(self.chat_id, state.to_dict())
            LOGGER.info("Chat %s already has a pending reply, turn coalesced", self.chat_id)
            return None

        if is_active and state.business_connection_id:
            await self._mark_read(state)
        else:
            state.should_read = True

        self._state = state
        self._db.save_state(self.chat_id, state.to_dict())

        delay_ms = pick_delay_ms(delay_range(is_active, self._timing), self._rng)
        due_at = self._db.now() + timedelta(milliseconds=delay_ms)
        self._db.set_alarm(self.chat_id, due_at)
        LOGGER.info(
            "Reply for chat %s scheduled in %d ms (%s)",
            self.chat_id,
            delay_ms,
            "active" if is_active else "idle",
        )
        return due_at

    async def reset(self, payload: ReplyPayload) -> None:
        """Forget the conversation: thread, pending alarm and state."""

        self._db.delete_alarm(self.chat_id)
        self._db.clear_thread(self.chat_id)
        self._db.delete_state(self.chat_id)
        self._state = None
        LOGGER.info("Chat %s reset", self.chat_id)
        try:
            await self._api.set_message_reaction(payload.chat_id, payload.message_id, RESET_REACTION, is_big=True)
        except Exception:
            LOGGER.warning("Error on reset reaction for chat %s", self.chat_id, exc_info=True)

    async def process_reply(self) -> None:
        """Run one reply cycle: presence, completion, dispatch, thread append."""

        state = self._state or self._load_state()
        if state is None:
            LOGGER.error("Missing state for chat %s, no reply sent", self.chat_id)
            return

        try:
            if state.should_read and state.business_connection_id:
                await self._mark_read(state)
                await self._sleep(pick_delay_ms(self._timing.read, self._rng) / 1000)

            typing_seconds = pick_delay_ms(self._timing.typing, self._rng) / 1000
            await self._send_typing(state)
            # The typing pause is a floor: dispatch waits for both.
            response, _ = await asyncio.gather(self._run_completion(state), self._sleep(typing_seconds))

            try:
                await self._dispatcher.send(
                    response,
                    SendOptions(
                        chat_id=state.chat_id,
                        reply_to=state.reply_to,
                        business_connection_id=state.business_connection_id,
                        raw_fallback=state.raw_fallback,
                        post_processing=state.post_processing,
                    ),
                )
            finally:
                self._db.append_thread(self.chat_id, "assistant", response.raw)
        except Exception as exc:
            LOGGER.exception("Error while replying in chat %s", self.chat_id)
            if state.display_errors:
                await self._response_helper.send_error(state.chat_id, exc, state.reply_to)

    async def _run_completion(self, state: ConversationState) -> StructuredResponse:
        thread = self._db.get_thread(self.chat_id)
        if state.chat_title:
            thread = [self._prompts.get_chat_prompt(state.chat_title), *thread]
        return await self._completion.completion(thread)

    def _load_state(self) -> ConversationState | None:
        data = self._db.load_state(self.chat_id)
        if data is None:
            return None
        self._state = ConversationState.from_dict(data)
        return self._state

    async def _mark_read(self, state: ConversationState) -> None:
        if not state.business_connection_id:
            return
        try:
            await self._api.read_business_message(state.business_connection_id, state.chat_id, state.message_id)
        except Exception:
            LOGGER.warning("Error on read_business_message for chat %s", state.chat_id, exc_info=True)

    async def _send_typing(self, state: ConversationState) -> None:
        try:
            await self._api.send_chat_action(
                state.chat_id,
                "typing",
                business_connection_id=state.business_connection_id,
            )
        except Exception:
            LOGGER.warning("Error on send typing for chat %s", state.chat_id, exc_info=True)
