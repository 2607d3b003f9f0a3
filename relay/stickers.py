"""Sticker inventory backed by configured sticker sets."""

from __future__ import annotations

import asyncio
import random

from relay.models import Sticker, StickerSet
from relay.telegram import TelegramApi


class StickerCatalog:
    """Resolves emoji keys to stickers from the enabled sets."""

    def __init__(self, api: TelegramApi, set_names: list[str], rng: random.Random | None = None) -> None:
        self._api = api
        self._set_names = set_names
        self._rng = rng or random.Random()

    async def get_all_sticker_sets(self) -> list[StickerSet]:
        return list(await asyncio.gather(*[self._api.get_sticker_set(name) for name in self._set_names]))

    async def get_sticker(self, emoji: str) -> Sticker | None:
        """Return a random sticker tagged with ``emoji``, or None when no set has one."""

        sets = await self.get_all_sticker_sets()
        matched = [sticker for sticker_set in sets for sticker in sticker_set.stickers if sticker.emoji == emoji]
        if not matched:
            return None
        return self._rng.choice(matched)

    async def get_prompt(self) -> str:
        sets = await self.get_all_sticker_sets()
        lines = [
            f"{s.title} ({s.name}): {','.join(st.emoji or '' for st in s.stickers)}"
            for s in sets
        ]
        return "Available stickers:\n" + "\n".join(lines)
