"""Text generation — persona-driven replies from an external language model."""

from nimbus.generation.personas import PERSONAS, Persona, persona_for
from nimbus.generation.providers import OllamaGenerator, StaticGenerator, TextGenerator
from nimbus.generation.schema import GenerationRequest, GenerationResponse

__all__ = [
    "GenerationRequest",
    "GenerationResponse",
    "OllamaGenerator",
    "PERSONAS",
    "Persona",
    "StaticGenerator",
    "TextGenerator",
    "persona_for",
]
