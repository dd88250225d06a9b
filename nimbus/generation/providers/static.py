"""Deterministic canned replies, no external service required."""

from __future__ import annotations

from typing import Mapping

from nimbus.generation.providers.base import TextGenerator
from nimbus.generation.schema import GenerationRequest, GenerationResponse


class StaticGenerator(TextGenerator):
    """Reply with a fixed text per persona.

    Parameters
    ----------
    replies:
        Persona name -> reply text.  Personas not listed get a generic
        acknowledgement naming the persona.
    """

    def __init__(self, replies: Mapping[str, str] | None = None) -> None:
        self.replies = dict(replies or {})

    def is_available(self) -> bool:
        return True

    async def generate(self, request: GenerationRequest) -> GenerationResponse:
        text = self.replies.get(request.persona)
        if text is None:
            text = f"{request.persona} received your request: {request.prompt.strip()[:200]}"
        return GenerationResponse(text=text)
