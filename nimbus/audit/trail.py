"""AuditRecord, AuditTrail and the log sinks records are emitted to."""

from __future__ import annotations

import abc
import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Iterator

from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger(__name__)

_audit_logger = logging.getLogger("nimbus.audit")


class Severity(str, Enum):
    INFO = "info"
    WARNING = "warning"


class Stage(str, Enum):
    """Pipeline stages, in the order they may be emitted."""

    BOOT = "Boot"
    ROUTE = "Route"
    LOAD_PAYLOAD = "Load payload"
    RESOLVE_LOCATION = "Resolve location"
    QUERY_RULES = "Query rules"
    AUDIT = "Audit"
    INJECT = "Inject"
    GENERATE = "Generate"
    COMPLETE = "Complete"


class AuditRecord(BaseModel):
    """One immutable entry of an audit trail."""

    model_config = ConfigDict(frozen=True, use_enum_values=True)

    stage: str
    message: str
    severity: Severity = Severity.INFO
    timestamp: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    citation: str | None = None
    """Source of the rule that produced this record, when there is one."""


class LogSink(abc.ABC):
    """Receives every AuditRecord as soon as it is appended."""

    @abc.abstractmethod
    def emit(self, record: AuditRecord) -> None:
        """Deliver *record*.  Must not raise."""


class LoggingSink(LogSink):
    """Forward records to the ``nimbus.audit`` logger."""

    def emit(self, record: AuditRecord) -> None:
        level = logging.WARNING if record.severity == Severity.WARNING else logging.INFO
        _audit_logger.log(level, "[%s] %s", record.stage, record.message)


class ListSink(LogSink):
    """Collect records in memory; handy for observers asserting on order."""

    def __init__(self) -> None:
        self.records: list[AuditRecord] = []

    def emit(self, record: AuditRecord) -> None:
        self.records.append(record)

    @property
    def stages(self) -> list[str]:
        return [r.stage for r in self.records]


class AuditTrail:
    """Append-only sequence of AuditRecords owned by one invocation.

    Parameters
    ----------
    sink:
        Where each record is emitted on append.  Defaults to
        :class:`LoggingSink`.
    """

    def __init__(self, sink: LogSink | None = None) -> None:
        self._sink = sink if sink is not None else LoggingSink()
        self._records: list[AuditRecord] = []

    def record(
        self,
        stage: Stage | str,
        message: str,
        severity: Severity = Severity.INFO,
        *,
        citation: str | None = None,
    ) -> AuditRecord:
        """Append a record and emit it to the sink."""
        entry = AuditRecord(
            stage=Stage(stage).value,
            message=message,
            severity=severity,
            citation=citation,
        )
        self._records.append(entry)
        try:
            self._sink.emit(entry)
        except Exception:
            logger.warning("Audit sink failed to emit %s record", entry.stage, exc_info=True)
        return entry

    @property
    def records(self) -> list[AuditRecord]:
        """A copy of the records appended so far."""
        return list(self._records)

    def warnings(self) -> list[AuditRecord]:
        return [r for r in self._records if r.severity == Severity.WARNING]

    def for_stage(self, stage: Stage | str) -> list[AuditRecord]:
        name = Stage(stage).value
        return [r for r in self._records if r.stage == name]

    def __iter__(self) -> Iterator[AuditRecord]:
        return iter(list(self._records))

    def __len__(self) -> int:
        return len(self._records)
