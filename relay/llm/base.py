"""LLM provider interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from relay.models import LLMResponse


class LLMProvider(ABC):
    """Abstract model provider used by the completion client."""

    @abstractmethod
    async def generate(
        self,
        messages: list[dict[str, str]],
        response_format: dict[str, Any] | None = None,
    ) -> LLMResponse:
        """Generate a model response."""
