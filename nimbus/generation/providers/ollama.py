"""Ollama/local LLM text generator."""

from __future__ import annotations

import asyncio
import json
import logging
import urllib.error
import urllib.request

from nimbus.config import DEFAULT_GENERATION_TIMEOUT, DEFAULT_MODEL, DEFAULT_OLLAMA_HOST
from nimbus.errors import CollaboratorFailure
from nimbus.generation.providers.base import TextGenerator
from nimbus.generation.schema import GenerationRequest, GenerationResponse

logger = logging.getLogger(__name__)


class OllamaGenerator(TextGenerator):
    """Generator that calls a local Ollama instance.

    The blocking HTTP call runs in a worker thread so concurrent pipeline
    invocations are not serialised behind it.
    """

    def __init__(
        self,
        *,
        base_url: str = DEFAULT_OLLAMA_HOST,
        model: str = DEFAULT_MODEL,
        timeout: float = DEFAULT_GENERATION_TIMEOUT,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.timeout = timeout

    def is_available(self) -> bool:
        """Check if Ollama is running by hitting the tags endpoint."""
        try:
            req = urllib.request.Request(f"{self.base_url}/api/tags")
            with urllib.request.urlopen(req, timeout=2) as resp:
                return resp.status == 200
        except (urllib.error.URLError, OSError, TimeoutError):
            return False

    async def generate(self, request: GenerationRequest) -> GenerationResponse:
        text = await asyncio.to_thread(self._post, request)
        return GenerationResponse(text=text)

    def _build_payload(self, request: GenerationRequest) -> bytes:
        body: dict[str, object] = {
            "model": self.model,
            "prompt": request.prompt,
            "stream": False,
            "options": {
                "temperature": 0.7,
                "top_p": 0.9,
            },
        }
        if request.system:
            body["system"] = request.system
        return json.dumps(body).encode("utf-8")

    def _post(self, request: GenerationRequest) -> str:
        req = urllib.request.Request(
            f"{self.base_url}/api/generate",
            data=self._build_payload(request),
            headers={"Content-Type": "application/json"},
            method="POST",
        )
        try:
            with urllib.request.urlopen(req, timeout=self.timeout) as resp:
                body = json.loads(resp.read().decode("utf-8"))
        except (urllib.error.URLError, OSError, TimeoutError, json.JSONDecodeError) as exc:
            logger.debug("Ollama call failed: %s", exc)
            raise CollaboratorFailure(f"Ollama call failed: {exc}") from exc

        text = body.get("response") if isinstance(body, dict) else None
        if not isinstance(text, str) or not text.strip():
            raise CollaboratorFailure("Ollama returned an empty response")
        return text
