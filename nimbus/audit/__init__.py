"""Ordered, append-only decision log for one request."""

from nimbus.audit.trail import (
    AuditRecord,
    AuditTrail,
    ListSink,
    LoggingSink,
    LogSink,
    Severity,
    Stage,
)

__all__ = [
    "AuditRecord",
    "AuditTrail",
    "ListSink",
    "LogSink",
    "LoggingSink",
    "Severity",
    "Stage",
]
