"""Model completion and structured response parsing."""

from __future__ import annotations

import json
import logging
from typing import Annotated

from pydantic import BaseModel, ConfigDict, StringConstraints, ValidationError

from relay.llm.base import LLMProvider
from relay.models import StructuredResponse
from relay.prompts import PromptComposer

LOGGER = logging.getLogger(__name__)

JSON_OBJECT_FORMAT = {"type": "json_object"}

NonEmptyStr = Annotated[str, StringConstraints(min_length=1)]


class _ResponseShape(BaseModel):
    model_config = ConfigDict(strict=True, extra="ignore")

    text: NonEmptyStr | None = None
    sticker: NonEmptyStr | None = None
    gif: NonEmptyStr | int | None = None


class CompletionClient:
    """Sends the composed prompt plus a thread to the model."""

    def __init__(self, llm: LLMProvider, prompts: PromptComposer) -> None:
        self._llm = llm
        self._prompts = prompts

    async def completion(self, thread: list[dict[str, str]]) -> StructuredResponse:
        messages = [*self._prompts.get_system_prompt(), *thread]
        response = await self._llm.generate(messages, response_format=JSON_OBJECT_FORMAT)
        content = response.content
        if not isinstance(content, str) or not content:
            LOGGER.warning("Model returned no usable content")
            return StructuredResponse(valid=False, raw="null")
        return parse_response(content)


def parse_response(raw: str) -> StructuredResponse:
    """Parse and validate model output, keeping ``raw`` verbatim."""

    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError:
        return StructuredResponse(valid=False, raw=raw)

    try:
        shape = _ResponseShape.model_validate(parsed)
    except ValidationError:
        return StructuredResponse(valid=False, raw=raw)

    # An explicit null is rejected once the key is present.
    if any(getattr(shape, name) is None for name in shape.model_fields_set):
        return StructuredResponse(valid=False, raw=raw)
    if shape.text is None and shape.sticker is None and shape.gif is None:
        return StructuredResponse(valid=False, raw=raw)

    return StructuredResponse(valid=True, raw=raw, text=shape.text, sticker=shape.sticker, gif=shape.gif)
