"""Decide which vertical handles a free-text request."""

from nimbus.routing.intent import (
    DEFAULT_INTENT_RULES,
    IntentClassifier,
    KeywordIntentRouter,
    Vertical,
    keywords,
)

__all__ = [
    "DEFAULT_INTENT_RULES",
    "IntentClassifier",
    "KeywordIntentRouter",
    "Vertical",
    "keywords",
]
