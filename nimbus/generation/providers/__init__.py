"""Text generator providers: abstract base + concrete providers."""

from nimbus.generation.providers.base import TextGenerator
from nimbus.generation.providers.ollama import OllamaGenerator
from nimbus.generation.providers.static import StaticGenerator

__all__ = ["OllamaGenerator", "StaticGenerator", "TextGenerator"]
