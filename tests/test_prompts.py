import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from relay.db import Database
from relay.gifs import GifStore
from relay.prompts import GIFS_PROMPT_ID, STICKERS_PROMPT_ID, PromptComposer, system_first


def _db(tmp_path) -> Database:
    db = Database(tmp_path / "relay.db")
    db.initialize()
    return db


def test_system_first_is_a_stable_partition():
    entries = [
        {"role": "user", "content": "u1"},
        {"role": "system", "content": "s1"},
        {"role": "assistant", "content": "a1"},
        {"role": "user", "content": "u2"},
        {"role": "system", "content": "s2"},
    ]
    assert [e["content"] for e in system_first(entries)] == ["s1", "s2", "u1", "a1", "u2"]


def test_system_prompt_orders_examples_and_stored_entries(tmp_path):
    db = _db(tmp_path)
    db.upsert_prompt("persona", "you are terse")
    db.upsert_prompt("stickers", "Available stickers:")
    composer = PromptComposer(
        db,
        basic_examples=[{"role": "user", "content": "hi"}, {"role": "assistant", "content": "yo"}],
        aggressive_examples=[{"role": "user", "content": "again"}, {"role": "assistant", "content": "no"}],
    )

    assert composer.get_system_prompt() == [
        {"role": "system", "content": "you are terse"},
        {"role": "system", "content": "Available stickers:"},
        {"role": "user", "content": "hi"},
        {"role": "assistant", "content": "yo"},
        {"role": "user", "content": "again"},
        {"role": "assistant", "content": "no"},
    ]


def test_chat_prompt(tmp_path):
    composer = PromptComposer(_db(tmp_path))
    assert composer.get_chat_prompt("Chat Title") == {"role": "system", "content": "Chat name: Chat Title"}


def test_from_file_loads_examples(tmp_path):
    path = tmp_path / "demo.json"
    path.write_text(
        json.dumps({"basic": [{"role": "user", "content": "b"}], "aggressive": [{"role": "user", "content": "a"}]}),
        encoding="utf-8",
    )
    composer = PromptComposer.from_file(_db(tmp_path), path)

    assert composer.get_system_prompt() == [
        {"role": "user", "content": "b"},
        {"role": "user", "content": "a"},
    ]


@pytest.mark.asyncio
async def test_refresh_inventory_stores_sticker_and_gif_prompts(tmp_path):
    db = _db(tmp_path)
    gifs = GifStore(db)
    gifs.add_gif("file-1", "cat dancing")
    stickers = MagicMock()
    stickers.get_prompt = AsyncMock(return_value="Available stickers:\nPack (pack): 😀")
    composer = PromptComposer(db, basic_examples=[])

    await composer.refresh_inventory(stickers, gifs)
    await composer.refresh_inventory(stickers, gifs)

    assert composer.get_system_prompt() == [
        {"role": "system", "content": "Available stickers:\nPack (pack): 😀"},
        {"role": "system", "content": "Available gifs:\n1 - cat dancing"},
    ]
    assert STICKERS_PROMPT_ID != GIFS_PROMPT_ID
