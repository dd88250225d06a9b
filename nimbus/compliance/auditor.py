"""ComplianceAuditor — inject missing mandatory items into an estimate.

Usage::

    from nimbus.compliance import ComplianceAuditor, default_registry, default_resolver

    auditor = ComplianceAuditor(default_registry(), default_resolver())
    result = auditor.audit(estimate)
"""

from __future__ import annotations

import logging
from typing import Callable

from nimbus.audit.trail import AuditTrail, Severity, Stage
from nimbus.compliance.location import LocationResolver
from nimbus.compliance.registry import RuleRegistry
from nimbus.compliance.report import ComplianceResult
from nimbus.compliance.rules import CodeRule
from nimbus.models.estimate import Estimate, LineItem

logger = logging.getLogger(__name__)


def _no_hook(stage: Stage) -> None:
    pass


class ComplianceAuditor:
    """Check an estimate against its jurisdiction's rules and amend it.

    Matching is by selector code only; quantities of items already
    present are not checked.

    Parameters
    ----------
    registry:
        Source of code rules.
    resolver:
        Maps the estimate's location token to a jurisdiction.
    """

    def __init__(self, registry: RuleRegistry, resolver: LocationResolver) -> None:
        self.registry = registry
        self.resolver = resolver

    def audit(
        self,
        estimate: Estimate,
        trail: AuditTrail | None = None,
        *,
        before_stage: Callable[[Stage], None] | None = None,
    ) -> ComplianceResult:
        """Audit *estimate* and return the amended copy with its trail.

        The caller's estimate is left untouched.  Original line items keep
        their order and content; injected items are appended after them in
        rule-registration order.  Running the audit again on the result
        injects nothing.

        Parameters
        ----------
        estimate:
            The estimate to audit.
        trail:
            Trail to append records to.  A fresh one is created if *None*.
        before_stage:
            Called with each stage before it starts.  An exception it raises
            aborts the audit; the pipeline uses this for cancellation.
        """
        if trail is None:
            trail = AuditTrail()
        if before_stage is None:
            before_stage = _no_hook

        before_stage(Stage.RESOLVE_LOCATION)

        jurisdiction = self.resolver.resolve(estimate.location_token)
        if jurisdiction.is_known:
            trail.record(
                Stage.RESOLVE_LOCATION,
                f"Location {estimate.location_token!r} resolved to "
                f"{jurisdiction.name} ({jurisdiction.code}).",
            )
            rules = self.registry.rules_for(jurisdiction)
        else:
            trail.record(
                Stage.RESOLVE_LOCATION,
                f"Location {estimate.location_token!r} did not resolve to a known jurisdiction.",
            )
            rules = []

        before_stage(Stage.QUERY_RULES)
        if rules:
            trail.record(
                Stage.QUERY_RULES,
                f"{len(rules)} rule(s) apply in {jurisdiction.name or jurisdiction.code}.",
            )
        else:
            trail.record(
                Stage.QUERY_RULES,
                f"No applicable rules found for {jurisdiction.name or jurisdiction.code}.",
            )

        before_stage(Stage.AUDIT)
        present = estimate.selectors()
        missing: list[CodeRule] = []

        trail.record(
            Stage.AUDIT,
            f"Evaluating {len(rules)} rule(s) against {len(estimate.line_items)} line item(s).",
        )
        for rule in rules:
            if rule.selector in present:
                trail.record(
                    Stage.AUDIT,
                    f"Rule already satisfied: {rule.required_item.description} "
                    f"({rule.selector}) is present.",
                    citation=rule.citation,
                )
            else:
                missing.append(rule)
                # Selector matching ignores category
                present.add(rule.selector)

        before_stage(Stage.INJECT)
        injected: list[LineItem] = []
        for rule in missing:
            item = rule.required_item.to_line_item()
            injected.append(item)
            trail.record(
                Stage.INJECT,
                f"Missing mandatory item injected: {item.description} ({item.selector}), "
                f"{item.quantity:g} {item.unit}, per {rule.source}.",
                Severity.WARNING,
                citation=rule.citation,
            )
            logger.info(
                "Injected %s into estimate for %s per %s",
                item.selector,
                jurisdiction.code,
                rule.source,
            )

        if not injected:
            trail.record(Stage.INJECT, "No items injected; estimate unchanged.")

        audited = estimate.model_copy(update={"line_items": [*estimate.line_items, *injected]})

        return ComplianceResult(
            estimate=audited,
            audit_trail=trail.records,
            injected=bool(injected),
            jurisdiction=jurisdiction,
            injected_items=injected,
        )
