"""Listing record schema: the recognized field set and field-level helpers.

Every record the extraction engine produces is a flat ``dict`` whose keys are
drawn from ``LISTING_SCHEMA``. Fields outside the schema are never carried
silently: ``project_record`` drops them and says so in the debug log.
"""

from __future__ import annotations

import logging
import re
from typing import Any

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

LISTING_SCHEMA: dict[str, str] = {
    # Identification
    "id": "string",
    "url": "string",
    "source": "string",
    "source_url": "string",
    # Basic listing info
    "address": "string",
    "display_address": "string",
    "price": "string",
    "description": "string",
    "property_type": "string",
    "bedrooms": "number",
    "bathrooms": "number",
    # Location
    "coordinates": "object",
    "outcode": "string",
    "incode": "string",
    "country_code": "string",
    "tenure": "string",
    "council_tax_band": "string",
    # Media
    "image": "string",
    "images": "array",
    "floorplans": "array",
    "brochures": "array",
    # Agent
    "agent": "string",
    "agent_phone": "string",
    "agent_logo": "string",
    "agent_display_address": "string",
    "agent_profile_url": "string",
    "features": "array",
    "nearest_stations": "array",
    # Dates
    "added_on": "string",
    "first_visible_date": "string",
    "listing_update_date": "string",
    # Status
    "published": "boolean",
    "archived": "boolean",
    "sold": "boolean",
    # Distress detection
    "distress_keywords_matched": "array",
    "distress_score": "number",
    "price_history": "array",
    # Reconciliation metadata
    "sources": "array",
    "duplicate_of": "array",
    "is_duplicate": "boolean",
    "additional_data": "object",
    "scraped_at": "string",
}

REQUIRED_FIELDS: tuple[str, ...] = ("id", "url", "source", "address", "price")

_POSTCODE_RE = re.compile(r"\b([A-Z]{1,2}\d{1,2}[A-Z]?)\s*(\d[A-Z]{2})\b", re.IGNORECASE)
_WHITESPACE_RE = re.compile(r"\s+")
_REPEATED_COMMA_RE = re.compile(r",(\s*,)+")
_TRAILING_COMMA_RE = re.compile(r",\s*$")


class RecordValidation(BaseModel):
    """Result of checking a record against the listing schema."""

    valid: bool
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)


class Postcode(BaseModel):
    """A UK postcode split into its outward and inward parts."""

    outcode: str
    incode: str

    @property
    def full(self) -> str:
        return f"{self.outcode} {self.incode}"


def kind_of(value: Any) -> str:
    """Map a Python value onto the schema's kind vocabulary."""
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, list):
        return "array"
    if isinstance(value, dict):
        return "object"
    return type(value).__name__


def is_filled(value: Any) -> bool:
    """A field counts as filled when it is neither ``None`` nor an empty string."""
    return value is not None and value != ""


def count_filled_fields(record: dict[str, Any]) -> int:
    return sum(1 for value in record.values() if is_filled(value))


def project_record(raw: dict[str, Any]) -> dict[str, Any]:
    """Keep only recognized schema fields, preserving the input's key order."""
    record = {key: value for key, value in raw.items() if key in LISTING_SCHEMA}
    dropped = [key for key in raw if key not in LISTING_SCHEMA]
    if dropped:
        logger.debug("Dropped unrecognized record fields", extra={"fields": dropped})
    return record


def validate_record(record: Any) -> RecordValidation:
    """Check required fields and field kinds.

    Missing required fields are errors; kind mismatches and unknown fields are
    warnings, since sites routinely emit numbers where strings are expected.
    """
    if not isinstance(record, dict):
        return RecordValidation(valid=False, errors=["Record must be a mapping"])

    errors = [
        f"Required field missing: {name}"
        for name in REQUIRED_FIELDS
        if record.get(name) is None
    ]
    warnings: list[str] = []
    for name, value in record.items():
        expected = LISTING_SCHEMA.get(name)
        if expected is None:
            warnings.append(f"Unknown field: {name}")
            continue
        if value is None:
            continue
        actual = kind_of(value)
        if actual != expected:
            warnings.append(f'Field "{name}" expected type {expected}, got {actual}')

    return RecordValidation(valid=not errors, errors=errors, warnings=warnings)


def fill_missing_fields(record: dict[str, Any]) -> dict[str, Any]:
    """Return a copy with every schema field present.

    Arrays default to ``[]``, booleans to ``False``, everything else to ``None``.
    """
    filled = dict(record)
    for name, kind in LISTING_SCHEMA.items():
        if name in filled:
            continue
        if kind == "array":
            filled[name] = []
        elif kind == "boolean":
            filled[name] = False
        else:
            filled[name] = None
    return filled


def normalize_address(address: Any) -> str:
    """Trim, collapse whitespace, collapse repeated commas and drop a trailing comma."""
    if not isinstance(address, str) or not address:
        return ""
    text = _WHITESPACE_RE.sub(" ", address.strip())
    text = _REPEATED_COMMA_RE.sub(",", text)
    return _TRAILING_COMMA_RE.sub("", text).strip()


def extract_postcode(text: Any) -> Postcode | None:
    """Find the first UK postcode in an address or postcode string."""
    if not isinstance(text, str) or not text:
        return None
    match = _POSTCODE_RE.search(text)
    if not match:
        return None
    return Postcode(outcode=match.group(1).upper(), incode=match.group(2).upper())


def normalize_price(price: Any) -> str | None:
    """Format a price as ``£350,000``; values already carrying ``£`` pass through."""
    if price is None:
        return None
    text = str(price).strip()
    if text.startswith("£"):
        return text
    digits = re.sub(r"[^\d]", "", text.split(".", 1)[0])
    if not digits:
        return text
    return f"£{int(digits):,}"
