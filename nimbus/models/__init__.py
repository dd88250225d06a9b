"""Request-scoped data models."""

from nimbus.models.estimate import Estimate, LineItem

__all__ = ["Estimate", "LineItem"]
