"""Intent classification — map a request to a Vertical by keyword rules."""

from __future__ import annotations

import abc
import logging
import re
from enum import Enum
from typing import Callable, Iterable, Union

logger = logging.getLogger(__name__)


class Vertical(str, Enum):
    ROOFING = "roofing"
    MARKETING = "marketing"
    GENERAL = "general"


# A compiled pattern (searched) or any callable taking the lowercased text
Matcher = Union[re.Pattern[str], Callable[[str], bool]]


class IntentClassifier(abc.ABC):
    """Single-method capability: text in, Vertical out."""

    @abc.abstractmethod
    def classify(self, text: str) -> Vertical:
        """Return the Vertical that should handle *text*."""


def _keyword_regex(word: str) -> str:
    stem = word.endswith("*")
    parts = word.rstrip("*").split()
    body = r"\s+".join(re.escape(p) for p in parts)
    return body + r"\w*" if stem else body


def keywords(*words: str) -> re.Pattern[str]:
    """Compile *words* into one case-insensitive whole-word pattern.

    A trailing ``*`` also matches longer forms (``'roof*'`` matches
    ``'roofing'`` but not ``'waterproof'``).  Multi-word phrases allow any
    whitespace between words.
    """
    alternatives = "|".join(_keyword_regex(w) for w in words)
    # Lookarounds instead of \b so keywords ending in '&' or '.' still anchor
    return re.compile(rf"(?<!\w)(?:{alternatives})(?!\w)", re.I)


# Ordered by priority; first match wins
DEFAULT_INTENT_RULES: list[tuple[Matcher, Vertical]] = [
    (keywords(
        "roof*", "shingle*", "xactimate", "esx", "hail", "hailstorm*",
        "storm damage", "ice and water", "ice & water", "gutter*", "flashing",
        "soffit*", "fascia", "insurance supplement*", "drip edge*",
    ), Vertical.ROOFING),
    (keywords(
        "marketing", "campaign*", "seo", "brand", "branding", "social media",
        "advertis*", "lead gen*", "newsletter*", "funnel*", "content calendar*",
    ), Vertical.MARKETING),
]


def _label(matcher: Matcher) -> str:
    if isinstance(matcher, re.Pattern):
        return matcher.pattern
    return getattr(matcher, "__qualname__", repr(matcher))


class KeywordIntentRouter(IntentClassifier):
    """First-match classifier over an ordered list of (matcher, Vertical) pairs.

    Compiled patterns are searched against the text; other matchers are
    called with the lowercased text.  Text matching no rule is routed to
    :attr:`Vertical.GENERAL`.

    Parameters
    ----------
    rules:
        Ordered rules.  Defaults to :data:`DEFAULT_INTENT_RULES`.
    """

    def __init__(self, rules: Iterable[tuple[Matcher, Vertical]] | None = None) -> None:
        self._rules: tuple[tuple[Matcher, Vertical], ...] = tuple(
            DEFAULT_INTENT_RULES if rules is None else rules
        )

    @property
    def rules(self) -> list[tuple[Matcher, Vertical]]:
        return list(self._rules)

    def classify(self, text: str) -> Vertical:
        text_lower = (text or "").lower().strip()
        for matcher, vertical in self._rules:
            if isinstance(matcher, re.Pattern):
                hit = matcher.search(text_lower) is not None
            else:
                hit = bool(matcher(text_lower))
            if hit:
                logger.debug("Routed to %s by %s", vertical.value, _label(matcher))
                return vertical
        return Vertical.GENERAL
