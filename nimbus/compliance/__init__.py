"""Code compliance audit — jurisdiction rules applied to estimate line items."""

from nimbus.compliance.auditor import ComplianceAuditor
from nimbus.compliance.location import LocationResolver, default_resolver
from nimbus.compliance.registry import RuleRegistry, StaticRuleRegistry, default_registry
from nimbus.compliance.report import ComplianceResult
from nimbus.compliance.rules import UNKNOWN_JURISDICTION, CodeRule, Jurisdiction, RequiredItem

__all__ = [
    "CodeRule",
    "ComplianceAuditor",
    "ComplianceResult",
    "Jurisdiction",
    "LocationResolver",
    "RequiredItem",
    "RuleRegistry",
    "StaticRuleRegistry",
    "UNKNOWN_JURISDICTION",
    "default_registry",
    "default_resolver",
]
