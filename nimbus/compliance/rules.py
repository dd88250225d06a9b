"""Jurisdiction, RequiredItem and CodeRule models."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from nimbus.models.estimate import LineItem


class Jurisdiction(BaseModel):
    """A governing body whose building code applies by location."""

    model_config = ConfigDict(frozen=True)

    code: str
    """Identifier, e.g. 'DEN-CO'."""

    name: str = ""

    @property
    def is_known(self) -> bool:
        return self.code != UNKNOWN_JURISDICTION_CODE


UNKNOWN_JURISDICTION_CODE = "UNKNOWN"

UNKNOWN_JURISDICTION = Jurisdiction(code=UNKNOWN_JURISDICTION_CODE, name="Unknown jurisdiction")


class RequiredItem(BaseModel):
    """The canonical line item a rule mandates be present."""

    model_config = ConfigDict(frozen=True)

    category: str = Field(min_length=1)
    selector: str = Field(min_length=1)
    description: str
    quantity: float
    unit: str
    note: str = ""
    """Provenance: why the item is added when missing."""

    def to_line_item(self) -> LineItem:
        return LineItem(
            category=self.category,
            selector=self.selector,
            description=self.description,
            quantity=self.quantity,
            unit=self.unit,
            note=self.note or None,
        )


class CodeRule(BaseModel):
    """A single mandatory-item requirement of one jurisdiction's code."""

    model_config = ConfigDict(frozen=True)

    jurisdiction: str = Field(min_length=1)
    """Code of the owning Jurisdiction."""

    text: str
    """Human-readable rule text."""

    source: str = Field(min_length=1)
    """Citation, e.g. 'Denver Building Code 2022'."""

    required_item: RequiredItem

    section: str = ""
    """Section reference within the source, e.g. 'R905.1.2'."""

    effective_date: str = ""
    """ISO date string when rule takes effect."""

    @property
    def category(self) -> str:
        return self.required_item.category

    @property
    def selector(self) -> str:
        return self.required_item.selector

    @property
    def citation(self) -> str:
        if self.section:
            return f"{self.source} §{self.section}"
        return self.source
