"""Ordered, short-circuiting plugin chain."""

from __future__ import annotations

import logging

from relay.models import InvocationContext
from relay.plugins.base import Plugin

LOGGER = logging.getLogger(__name__)


class PluginChain:
    """Explicit, ordered list of plugins; the first match wins."""

    def __init__(self, plugins: list[Plugin] | None = None) -> None:
        self._plugins: list[Plugin] = list(plugins or [])

    def register(self, plugin: Plugin) -> None:
        self._plugins.append(plugin)

    @property
    def plugins(self) -> list[Plugin]:
        return list(self._plugins)

    async def run_first(self, ctx: InvocationContext) -> str | None:
        """Run the first matching plugin and return its name."""

        for plugin in self._plugins:
            if plugin.match(ctx):
                LOGGER.info("Post-processing chat %s with %s", ctx.chat_id, plugin.name)
                await plugin.run(ctx)
                return plugin.name
        return None
