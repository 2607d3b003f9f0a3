from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from relay.models import InvocationContext
from relay.plugins.base import NOT_FOUND_TEXT, fetch_json
from relay.plugins.chain import PluginChain
from relay.plugins.image_search_plugin import MAX_RETRIES, ImageSearchPlugin
from relay.plugins.tenor_plugin import TenorPlugin
from relay.plugins.youtube_plugin import YoutubePlugin


def _ctx(text, **kwargs) -> InvocationContext:
    return InvocationContext(text=text, chat_id=123, message_id=77, **kwargs)


def _api():
    api = MagicMock()
    api.send_message = AsyncMock()
    api.send_photo = AsyncMock()
    api.send_animation = AsyncMock()
    return api


class TestMatching:
    def test_keywords_with_query(self):
        api = _api()
        assert ImageSearchPlugin(api, "k", "cx").match(_ctx("picture sunset"))
        assert YoutubePlugin(api, "k").match(_ctx("Video cats"))
        assert TenorPlugin(api, "k").match(_ctx("gif dancing"))

    def test_keyword_must_start_the_text(self):
        assert not YoutubePlugin(_api(), "k").match(_ctx("watch a video cats"))

    def test_query_falls_back_to_replied_text(self):
        plugin = TenorPlugin(_api(), "k")
        ctx = _ctx("gif", reply_to_text="party")
        assert plugin.match(ctx)
        assert plugin.query(ctx) == "party"

    def test_keyword_without_query_does_not_match(self):
        assert not TenorPlugin(_api(), "k").match(_ctx("gif"))


class TestPluginChain:
    @pytest.mark.asyncio
    async def test_first_matching_plugin_wins(self):
        first = MagicMock(name="first")
        first.name = "first"
        first.match = MagicMock(return_value=False)
        second = MagicMock()
        second.name = "second"
        second.match = MagicMock(return_value=True)
        second.run = AsyncMock()
        third = MagicMock()
        third.name = "third"
        third.match = MagicMock(return_value=True)
        third.run = AsyncMock()
        chain = PluginChain([first, second])
        chain.register(third)

        result = await chain.run_first(_ctx("anything"))

        assert result == "second"
        second.run.assert_awaited_once()
        third.run.assert_not_awaited()
        assert [p.name for p in chain.plugins] == ["first", "second", "third"]

    @pytest.mark.asyncio
    async def test_no_match_returns_none(self):
        assert await PluginChain().run_first(_ctx("hello")) is None


@pytest.mark.asyncio
async def test_fetch_json_uses_httpx_client():
    resp = MagicMock()
    resp.raise_for_status = MagicMock()
    resp.json = MagicMock(return_value={"items": []})
    mock_client = AsyncMock()
    mock_client.__aenter__ = AsyncMock(return_value=mock_client)
    mock_client.__aexit__ = AsyncMock(return_value=False)
    mock_client.get = AsyncMock(return_value=resp)

    with patch("relay.plugins.base.httpx.AsyncClient", return_value=mock_client):
        data = await fetch_json("https://example.com/search", {"q": "cats"})

    assert data == {"items": []}
    mock_client.get.assert_awaited_once_with("https://example.com/search", params={"q": "cats"}, timeout=15.0)


@pytest.mark.asyncio
async def test_youtube_sends_watch_link():
    api = _api()
    plugin = YoutubePlugin(api, "key")
    fetch = AsyncMock(return_value={"items": [{"id": {"videoId": "abc123"}}]})

    with patch("relay.plugins.youtube_plugin.fetch_json", fetch):
        await plugin.run(_ctx("video cats", reply_to_id=77))

    assert fetch.await_args.args[1]["q"] == "cats"
    assert fetch.await_args.args[1]["maxResults"] == 1
    api.send_message.assert_awaited_once_with(
        123,
        "https://www.youtube.com/watch?v=abc123",
        reply_to=77,
        disable_notification=True,
    )


@pytest.mark.asyncio
async def test_youtube_without_results_replies_not_found():
    api = _api()

    with patch("relay.plugins.youtube_plugin.fetch_json", AsyncMock(return_value={})):
        await YoutubePlugin(api, "key").run(_ctx("video nothing"))

    api.send_message.assert_awaited_once_with(123, NOT_FOUND_TEXT, reply_to=77, disable_notification=True)


@pytest.mark.asyncio
async def test_tenor_sends_mp4_animation():
    api = _api()
    data = {"results": [{"media_formats": {"mp4": {"url": "https://media.tenor.com/x.mp4"}}}]}

    with patch("relay.plugins.tenor_plugin.fetch_json", AsyncMock(return_value=data)):
        await TenorPlugin(api, "key").run(_ctx("gif dance", caption="look"))

    api.send_animation.assert_awaited_once_with(
        123,
        "https://media.tenor.com/x.mp4",
        reply_to=77,
        caption="look",
        disable_notification=True,
    )


@pytest.mark.asyncio
async def test_image_search_retries_with_next_result():
    api = _api()
    api.send_photo.side_effect = [RuntimeError("bad image"), None]
    data = {"items": [{"link": f"https://img/{i}.jpg"} for i in range(10)]}

    with patch("relay.plugins.image_search_plugin.fetch_json", AsyncMock(return_value=data)):
        await ImageSearchPlugin(api, "key", "cx").run(_ctx("picture sunset"))

    links = [c.args[1] for c in api.send_photo.await_args_list]
    assert links == ["https://img/0.jpg", "https://img/1.jpg"]


@pytest.mark.asyncio
async def test_image_search_gives_up_after_retries():
    api = _api()
    api.send_photo.side_effect = RuntimeError("bad image")
    data = {"items": [{"link": f"https://img/{i}.jpg"} for i in range(10)]}

    with patch("relay.plugins.image_search_plugin.fetch_json", AsyncMock(return_value=data)):
        with pytest.raises(RuntimeError):
            await ImageSearchPlugin(api, "key", "cx").run(_ctx("picture sunset"))

    assert api.send_photo.await_count == MAX_RETRIES + 1


@pytest.mark.asyncio
async def test_image_search_pages_through_results():
    fetch = AsyncMock(return_value={"items": [{"link": f"https://img/{i}.jpg"} for i in range(10)]})
    plugin = ImageSearchPlugin(_api(), "key", "cx")

    with patch("relay.plugins.image_search_plugin.fetch_json", fetch):
        link = await plugin._find(_ctx("picture sunset"), 12)

    assert fetch.await_args.args[1]["start"] == 11
    assert link == "https://img/2.jpg"


@pytest.mark.asyncio
async def test_image_search_without_results_replies_not_found():
    api = _api()

    with patch("relay.plugins.image_search_plugin.fetch_json", AsyncMock(return_value={"items": []})):
        await ImageSearchPlugin(api, "key", "cx").run(_ctx("picture nothing"))

    api.send_photo.assert_not_awaited()
    api.send_message.assert_awaited_once_with(123, NOT_FOUND_TEXT, reply_to=77, disable_notification=True)
