"""Nimbus IQ — building-code compliance audit and intent routing for roofing estimates."""

__version__ = "1.0.0"

from nimbus.audit.trail import AuditRecord, AuditTrail, ListSink, LoggingSink, LogSink, Severity, Stage
from nimbus.compliance.auditor import ComplianceAuditor
from nimbus.compliance.location import LocationResolver, default_resolver
from nimbus.compliance.registry import RuleRegistry, StaticRuleRegistry, default_registry
from nimbus.compliance.report import ComplianceResult
from nimbus.compliance.rules import UNKNOWN_JURISDICTION, CodeRule, Jurisdiction, RequiredItem
from nimbus.config import Settings, configure_logging, load_settings
from nimbus.errors import (
    CollaboratorFailure,
    ConfigurationError,
    NimbusError,
    PipelineStateError,
    ValidationError,
)
from nimbus.generation.providers import OllamaGenerator, StaticGenerator, TextGenerator
from nimbus.models.estimate import Estimate, LineItem
from nimbus.pipeline import (
    AuditPipeline,
    PipelineRequest,
    PipelineResult,
    PipelineState,
    RoutedResponse,
    build_pipeline,
)
from nimbus.routing.intent import IntentClassifier, KeywordIntentRouter, Vertical

__all__ = [
    "__version__",
    # Pipeline
    "AuditPipeline",
    "PipelineRequest",
    "PipelineResult",
    "PipelineState",
    "RoutedResponse",
    "build_pipeline",
    # Compliance
    "CodeRule",
    "ComplianceAuditor",
    "ComplianceResult",
    "Estimate",
    "Jurisdiction",
    "LineItem",
    "LocationResolver",
    "RequiredItem",
    "RuleRegistry",
    "StaticRuleRegistry",
    "UNKNOWN_JURISDICTION",
    "default_registry",
    "default_resolver",
    # Audit trail
    "AuditRecord",
    "AuditTrail",
    "ListSink",
    "LogSink",
    "LoggingSink",
    "Severity",
    "Stage",
    # Routing and generation
    "IntentClassifier",
    "KeywordIntentRouter",
    "OllamaGenerator",
    "StaticGenerator",
    "TextGenerator",
    "Vertical",
    # Configuration and errors
    "CollaboratorFailure",
    "ConfigurationError",
    "NimbusError",
    "PipelineStateError",
    "Settings",
    "ValidationError",
    "configure_logging",
    "load_settings",
]
