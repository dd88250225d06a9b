"""Request and response shapes exchanged with a text generator."""

from __future__ import annotations

from pydantic import BaseModel


class GenerationRequest(BaseModel):
    persona: str
    prompt: str

    system: str = ""
    """System instruction describing the persona to adopt."""


class GenerationResponse(BaseModel):
    text: str
