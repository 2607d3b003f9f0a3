"""OpenRouter implementation of LLMProvider."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx

from relay.config import Settings
from relay.llm.base import LLMProvider
from relay.models import LLMResponse

_LOGGER = logging.getLogger(__name__)

# Seconds to wait before each new attempt after a 429.
_RATE_LIMIT_BACKOFF = (5, 15, 45)
_TOO_MANY_REQUESTS = 429


class OpenRouterProvider(LLMProvider):
    """Chat completions through OpenRouter's OpenAI-compatible endpoint."""

    def __init__(self, settings: Settings) -> None:
        self._settings = settings

    async def generate(
        self,
        messages: list[dict[str, str]],
        response_format: dict[str, Any] | None = None,
    ) -> LLMResponse:
        payload: dict[str, Any] = {"model": self._settings.openrouter_model, "messages": messages}
        if response_format:
            payload["response_format"] = response_format
        return _to_llm_response(await self._post_completion(payload))

    async def _post_completion(self, payload: dict[str, Any]) -> dict[str, Any]:
        async with httpx.AsyncClient(
            base_url=self._settings.openrouter_base_url,
            headers={"Authorization": f"Bearer {self._settings.openrouter_api_key}"},
            timeout=httpx.Timeout(self._settings.request_timeout_seconds),
        ) as client:
            response = await client.post("/chat/completions", json=payload)
            for attempt, wait in enumerate(_RATE_LIMIT_BACKOFF, start=1):
                if response.status_code != _TOO_MANY_REQUESTS:
                    break
                _LOGGER.warning("Model endpoint rate limited, attempt %d in %ds", attempt + 1, wait)
                await asyncio.sleep(wait)
                response = await client.post("/chat/completions", json=payload)
            response.raise_for_status()
            return response.json()


def _to_llm_response(data: dict[str, Any]) -> LLMResponse:
    choices = data.get("choices") or []
    first = choices[0] if choices else {}
    content = (first.get("message") or {}).get("content")
    if not isinstance(content, str):
        content = None
    _LOGGER.info(
        "LLM response: finish_reason=%r content=%r",
        first.get("finish_reason"),
        content[:200] if content else content,
    )
    return LLMResponse(content=content, raw=data)
