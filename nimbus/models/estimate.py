"""Estimate and LineItem — the structured property-damage estimate.

The wire format uses camelCase keys::

    {
        "locationToken": "80202",
        "measurements": {"area": 3000, "pitch": "6/12"},
        "lineItems": [
            {"category": "RFG", "selector": "300", "description": "...",
             "quantity": 30.0, "unit": "SQ"}
        ]
    }
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from nimbus.errors import ValidationError


class LineItem(BaseModel):
    """A single priced line of an estimate.

    ``selector`` is the natural key matched against a rule's required item.
    """

    model_config = ConfigDict(frozen=True)

    category: str = Field(min_length=1)
    """Trade category code, e.g. 'RFG' for roofing."""

    selector: str = Field(min_length=1)
    """Line-item type code, e.g. 'IWS' for ice & water shield."""

    description: str
    quantity: float
    unit: str

    note: str | None = None
    """Provenance note; set on items added by the compliance auditor."""


class Estimate(BaseModel):
    """A location token, opaque measurements, and an ordered list of line items."""

    model_config = ConfigDict(populate_by_name=True)

    location_token: str = Field(alias="locationToken", min_length=1)
    measurements: dict[str, Any] = Field(default_factory=dict)
    line_items: list[LineItem] = Field(alias="lineItems", default_factory=list)

    @classmethod
    def from_payload(cls, payload: Any) -> Estimate:
        """Build an Estimate from a request payload.

        Raises
        ------
        ValidationError
            If required fields are missing or have the wrong type.
        """
        if not isinstance(payload, dict):
            raise ValidationError(
                "Estimate payload must be an object",
                [f"got {type(payload).__name__}"],
            )
        try:
            return cls.model_validate(payload)
        except PydanticValidationError as exc:
            details = [
                f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}"
                for err in exc.errors()
            ]
            raise ValidationError("Malformed estimate payload", details) from None

    def selectors(self) -> set[str]:
        """Return the set of selector codes present on the estimate."""
        return {item.selector for item in self.line_items}

    def to_payload(self) -> dict[str, Any]:
        """Serialise back to the camelCase wire format."""
        return self.model_dump(by_alias=True, exclude_none=True)
