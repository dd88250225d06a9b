"""ComplianceResult model and Markdown report generation."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from nimbus.audit.trail import AuditRecord, Severity, Stage
from nimbus.compliance.rules import UNKNOWN_JURISDICTION, Jurisdiction
from nimbus.models.estimate import Estimate, LineItem


class ComplianceResult(BaseModel):
    """The audited estimate, its audit trail, and whether anything was injected."""

    estimate: Estimate
    audit_trail: list[AuditRecord] = Field(default_factory=list)
    injected: bool = False

    jurisdiction: Jurisdiction = UNKNOWN_JURISDICTION
    """Jurisdiction the estimate's location resolved to."""

    injected_items: list[LineItem] = Field(default_factory=list)
    """Items appended by the audit, in rule order."""

    def to_payload(self) -> dict[str, Any]:
        """Serialise to the wire format: the estimate plus ``auditTrail`` and ``injected``."""
        payload = self.estimate.to_payload()
        payload["auditTrail"] = [
            r.model_dump(exclude_none=True, mode="json") for r in self.audit_trail
        ]
        payload["injected"] = self.injected
        return payload

    def to_markdown(self) -> str:
        """Render the result as a Markdown compliance report."""
        lines: list[str] = []

        lines.append(f"# Compliance Audit — {self.jurisdiction.name or self.jurisdiction.code}")
        lines.append("")
        lines.append(f"**Location:** `{self.estimate.location_token}`")
        lines.append(f"**Status:** {'AMENDED' if self.injected else 'UNCHANGED'}")
        lines.append(f"**Line items:** {len(self.estimate.line_items)}")
        lines.append("")

        if self.injected_items:
            lines.append("## Injected Items")
            lines.append("")
            lines.append("| Category | Selector | Description | Quantity | Unit |")
            lines.append("|----------|----------|-------------|----------|------|")
            for item in self.injected_items:
                desc = item.description.replace("|", "\\|")
                lines.append(
                    f"| {item.category} | {item.selector} | {desc} "
                    f"| {item.quantity:g} | {item.unit} |"
                )
            lines.append("")

        citations = [r for r in self.audit_trail if r.severity == Severity.WARNING and r.citation]
        if citations:
            lines.append("## Citations")
            lines.append("")
            for r in citations:
                lines.append(f"- {r.message}")
                lines.append(f"  *Citation:* {r.citation}")
            lines.append("")

        satisfied = [
            r for r in self.audit_trail
            if r.stage == Stage.AUDIT.value and r.citation and r.severity == Severity.INFO
        ]
        if satisfied:
            lines.append("## Satisfied Rules")
            lines.append("")
            for r in satisfied:
                lines.append(f"- {r.message} ({r.citation})")
            lines.append("")

        return "\n".join(lines)
