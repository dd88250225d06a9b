"""Abstract text generator interface."""

from __future__ import annotations

import abc

from nimbus.generation.schema import GenerationRequest, GenerationResponse


class TextGenerator(abc.ABC):
    """Base class for external text-generation collaborators.

    Implementations must be safe to await from many concurrent pipeline
    invocations and must tolerate cancellation of the awaiting task.
    """

    @abc.abstractmethod
    async def generate(self, request: GenerationRequest) -> GenerationResponse:
        """Return a reply for *request*.

        Raises
        ------
        CollaboratorFailure
            If the backend is unreachable or returns unusable output.
        """

    @abc.abstractmethod
    def is_available(self) -> bool:
        """Return *True* if the provider is ready to serve requests."""
