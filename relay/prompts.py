"""System prompt assembly."""

from __future__ import annotations

import json
from pathlib import Path
from typing import TYPE_CHECKING, Iterable

from relay.db import Database

if TYPE_CHECKING:
    from relay.gifs import GifStore
    from relay.stickers import StickerCatalog

STICKERS_PROMPT_ID = "stickers"
GIFS_PROMPT_ID = "gifs"

# Few-shot turns teaching the model the reply shape and the plugin keywords.
BASIC_EXAMPLES: list[dict[str, str]] = [
    {"role": "user", "content": "got a picture?"},
    {"role": "assistant", "content": '{"text": "picture sunset over the sea"}'},
    {"role": "user", "content": "seen any vtubers?"},
    {"role": "assistant", "content": '{"text": "video vtuber highlights"}'},
]


class PromptComposer:
    """Builds the prompt prefix sent ahead of every conversation thread."""

    def __init__(
        self,
        db: Database,
        basic_examples: Iterable[dict[str, str]] | None = None,
        aggressive_examples: Iterable[dict[str, str]] | None = None,
    ) -> None:
        self._db = db
        self._basic = list(BASIC_EXAMPLES if basic_examples is None else basic_examples)
        self._aggressive = list(aggressive_examples or [])

    @classmethod
    def from_file(cls, db: Database, path: Path | None) -> PromptComposer:
        """Load example turns from a ``{"basic": [...], "aggressive": [...]}`` file."""

        if path is None:
            return cls(db)
        data = json.loads(path.read_text(encoding="utf-8"))
        return cls(db, basic_examples=data.get("basic"), aggressive_examples=data.get("aggressive"))

    def get_system_prompt(self) -> list[dict[str, str]]:
        entries = [*self._basic, *self._db.list_prompts(), *self._aggressive]
        return system_first(entries)

    def get_chat_prompt(self, title: str) -> dict[str, str]:
        return {"role": "system", "content": f"Chat name: {title}"}

    def update_system_prompt(self, prompt_id: str, content: str) -> None:
        self._db.upsert_prompt(prompt_id, content, role="system")

    async def refresh_inventory(self, stickers: StickerCatalog, gifs: GifStore) -> None:
        """Store the current sticker and gif inventories as system entries."""

        self.update_system_prompt(STICKERS_PROMPT_ID, await stickers.get_prompt())
        self.update_system_prompt(GIFS_PROMPT_ID, gifs.get_prompt())


def system_first(entries: Iterable[dict[str, str]]) -> list[dict[str, str]]:
    """Stable partition: system entries first, relative order kept on both sides."""

    system: list[dict[str, str]] = []
    rest: list[dict[str, str]] = []
    for entry in entries:
        (system if entry["role"] == "system" else rest).append(entry)
    return system + rest
