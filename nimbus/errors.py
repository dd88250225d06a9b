"""Exception taxonomy for the audit pipeline."""

from __future__ import annotations


class NimbusError(Exception):
    """Base class for all errors raised by this package."""


class ConfigurationError(NimbusError):
    """Raised at startup when a rule table or setting is unusable.

    Fatal: the process should refuse to start.
    """


class ValidationError(NimbusError):
    """Raised when a single request payload is malformed.

    Parameters
    ----------
    message:
        Short description of the failure.
    details:
        One entry per offending field, e.g. ``"lineItems.0.selector: Field required"``.
    """

    def __init__(self, message: str, details: list[str] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = list(details or [])

    def __str__(self) -> str:
        if not self.details:
            return self.message
        return f"{self.message}: {'; '.join(self.details)}"


class CollaboratorFailure(NimbusError):
    """Raised by a text generator when the external call errors or times out."""


class PipelineStateError(NimbusError):
    """Raised when a pipeline invocation attempts a non-forward state transition."""
