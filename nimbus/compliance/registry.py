"""RuleRegistry — jurisdiction-scoped lookup of code rules.

The auditor only depends on :class:`RuleRegistry`, so a deployment can
swap :class:`StaticRuleRegistry` for a database-backed implementation.
"""

from __future__ import annotations

import abc
import logging
from typing import Any, Iterable, Mapping

from pydantic import ValidationError as PydanticValidationError

from nimbus.compliance.rules import CodeRule, Jurisdiction
from nimbus.errors import ConfigurationError

logger = logging.getLogger(__name__)


class RuleRegistry(abc.ABC):
    """Read-only source of code rules keyed by jurisdiction."""

    @abc.abstractmethod
    def rules_for(self, jurisdiction: Jurisdiction | str) -> list[CodeRule]:
        """Return the rules registered for *jurisdiction*, in registration order.

        Returns an empty list when none are registered.  Must be
        deterministic and free of side effects.
        """


class StaticRuleRegistry(RuleRegistry):
    """In-memory registry populated once from a static table.

    Parameters
    ----------
    rules:
        Rules in registration order.  Selector codes must be unique per
        (jurisdiction, category).

    Raises
    ------
    ConfigurationError
        On a duplicate (jurisdiction, category, selector) key.
    """

    def __init__(self, rules: Iterable[CodeRule] = ()) -> None:
        by_jurisdiction: dict[str, list[CodeRule]] = {}
        seen: set[tuple[str, str, str]] = set()

        for rule in rules:
            key = (rule.jurisdiction, rule.category, rule.selector)
            if key in seen:
                raise ConfigurationError(
                    f"Duplicate rule for jurisdiction {rule.jurisdiction!r}, "
                    f"category {rule.category!r}, selector {rule.selector!r}"
                )
            seen.add(key)
            by_jurisdiction.setdefault(rule.jurisdiction, []).append(rule)

        self._rules: dict[str, tuple[CodeRule, ...]] = {
            code: tuple(items) for code, items in by_jurisdiction.items()
        }

    @classmethod
    def from_table(cls, entries: Iterable[Mapping[str, Any] | CodeRule]) -> StaticRuleRegistry:
        """Build a registry from rule dicts (or ready-made CodeRules).

        Raises
        ------
        ConfigurationError
            If an entry is malformed or duplicates an earlier one.
        """
        rules: list[CodeRule] = []
        for index, entry in enumerate(entries):
            if isinstance(entry, CodeRule):
                rules.append(entry)
                continue
            if not isinstance(entry, Mapping):
                raise ConfigurationError(
                    f"Rule table entry {index} must be a mapping, got {type(entry).__name__}"
                )
            try:
                rules.append(CodeRule.model_validate(dict(entry)))
            except PydanticValidationError as exc:
                problems = "; ".join(
                    f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}"
                    for err in exc.errors()
                )
                raise ConfigurationError(
                    f"Malformed rule table entry {index}: {problems}"
                ) from None

        registry = cls(rules)
        logger.info(
            "Loaded %d compliance rules for %d jurisdictions.",
            registry.count(),
            len(registry.jurisdictions()),
        )
        return registry

    def rules_for(self, jurisdiction: Jurisdiction | str) -> list[CodeRule]:
        code = jurisdiction.code if isinstance(jurisdiction, Jurisdiction) else jurisdiction
        return list(self._rules.get(code, ()))

    def jurisdictions(self) -> list[str]:
        """Return the codes of jurisdictions with at least one rule."""
        return list(self._rules)

    def count(self) -> int:
        return sum(len(rules) for rules in self._rules.values())


def default_registry() -> StaticRuleRegistry:
    """Registry seeded with the embedded rule table."""
    from nimbus.compliance.seed_data import SEED_RULES

    return StaticRuleRegistry.from_table(SEED_RULES)
