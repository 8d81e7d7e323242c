"""Harvester configuration settings."""

from __future__ import annotations

import os
import re
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator, model_validator


def _csv_env(var_name: str) -> list[str]:
    raw = os.getenv(var_name, "")
    return [item.strip().lower() for item in raw.split(",") if item.strip()]


class CandidateLocation(BaseModel):
    """One place a page may embed its data object.

    ``binding`` probes read a dotted page-global path (``__NEXT_DATA__.props``);
    ``script`` probes parse the payload of every script element matching a CSS query.
    """

    kind: Literal["binding", "script"]
    query: str
    label: str = ""

    model_config = {"frozen": True}

    @model_validator(mode="before")
    @classmethod
    def _default_label(cls, data: Any) -> Any:
        if isinstance(data, dict) and not data.get("label"):
            prefix = "window." if data.get("kind") == "binding" else "script "
            data = {**data, "label": f"{prefix}{data.get('query', '')}"}
        return data


DEFAULT_LOCATIONS: tuple[CandidateLocation, ...] = (
    CandidateLocation(kind="binding", query="PAGE_MODEL"),
    CandidateLocation(kind="binding", query="__NEXT_DATA__"),
    CandidateLocation(kind="binding", query="__NEXT_DATA__.props"),
    CandidateLocation(kind="binding", query="__NEXT_DATA__.props.pageProps"),
    CandidateLocation(kind="binding", query="__INITIAL_STATE__"),
    CandidateLocation(kind="binding", query="__PRELOADED_STATE__"),
    CandidateLocation(
        kind="script",
        query=(
            'script[type="application/json"], '
            'script[type="application/ld+json"], '
            'script[id*="__NEXT_DATA__"]'
        ),
        label="script tag",
    ),
)


class LocatorConfig(BaseModel):
    """Structured-data probe order."""

    locations: list[CandidateLocation] = Field(default_factory=lambda: list(DEFAULT_LOCATIONS))


class RecordArrayConfig(BaseModel):
    """Key names used by the record-array structural test."""

    identifier_keys: list[str] = Field(default_factory=lambda: ["id", "listingId"])
    id_like_keys: list[str] = Field(default_factory=lambda: ["propertyId", "listing_id"])
    price_keys: list[str] = Field(default_factory=lambda: ["price", "displayPrice"])
    address_keys: list[str] = Field(default_factory=lambda: ["displayAddress", "address"])
    container_keys: list[str] = Field(
        default_factory=lambda: [
            "propertyData",
            "properties",
            "records",
            "results",
            "listings",
            "searchResults",
            "items",
            "data",
            "props",
        ]
    )
    max_depth: int = 5

    @field_validator("max_depth")
    @classmethod
    def _validate_max_depth(cls, value: int) -> int:
        if value < 0:
            raise ValueError("max_depth must be >= 0")
        return value


class WeightedPattern(BaseModel):
    """A regular expression that adds ``weight`` to an element score when it matches."""

    pattern: str
    weight: int
    ignore_case: bool = False

    model_config = {"frozen": True}

    @field_validator("pattern")
    @classmethod
    def _validate_pattern(cls, value: str) -> str:
        try:
            re.compile(value)
        except re.error as exc:
            raise ValueError(f"Invalid pattern {value!r}: {exc}") from exc
        return value

    @field_validator("weight")
    @classmethod
    def _validate_weight(cls, value: int) -> int:
        if value < 0:
            raise ValueError("weight must be >= 0")
        return value

    def compile(self) -> re.Pattern[str]:
        return re.compile(self.pattern, re.IGNORECASE if self.ignore_case else 0)


class AttributeRule(BaseModel):
    """Adds ``weight`` once when an element carries any of ``names``."""

    names: list[str]
    weight: int

    model_config = {"frozen": True}


class SelectorHeuristics(BaseModel):
    """Listing-card scoring table for adaptive selector discovery."""

    class_patterns: list[WeightedPattern] = Field(
        default_factory=lambda: [
            WeightedPattern(pattern=p, weight=10, ignore_case=True)
            for p in (
                r"property.*card",
                r"search.*result",
                r"listing.*item",
                r"property.*item",
                r"result.*card",
                r"property.*wrapper",
            )
        ]
    )
    id_patterns: list[WeightedPattern] = Field(
        default_factory=lambda: [
            WeightedPattern(pattern=p, weight=10)
            for p in (r"^property-\d+$", r"^listing-\d+$", r"property_\d+")
        ]
    )
    attribute_rules: list[AttributeRule] = Field(
        default_factory=lambda: [
            AttributeRule(names=["data-test", "data-testid"], weight=5),
            AttributeRule(names=["data-property-id", "data-listing-id"], weight=8),
        ]
    )
    content_patterns: list[WeightedPattern] = Field(
        default_factory=lambda: [
            WeightedPattern(pattern=r"£[\d,]+", weight=3),
            WeightedPattern(pattern=r"\d+\s+bed", weight=2, ignore_case=True),
            WeightedPattern(
                pattern=r"\b[A-Z][a-z]+\s+(Street|Road|Avenue|Lane|Drive)\b", weight=2
            ),
        ]
    )
    min_element_score: int = 10
    min_group_size: int = 3
    # Characters of text content read per element; cards are far shorter.
    text_limit: int = 4000

    @field_validator("min_group_size")
    @classmethod
    def _validate_group_size(cls, value: int) -> int:
        if value < 1:
            raise ValueError("min_group_size must be >= 1")
        return value


class ConfidenceField(BaseModel):
    """A weighted field; any of ``aliases`` also counts as the field being present."""

    name: str
    weight: int
    aliases: list[str] = Field(default_factory=list)

    model_config = {"frozen": True}


class ConfidenceConfig(BaseModel):
    """Expected-field weights for extraction confidence scoring."""

    fields: list[ConfidenceField] = Field(
        default_factory=lambda: [
            ConfidenceField(name="url", weight=20),
            ConfidenceField(name="address", weight=20),
            ConfidenceField(name="price", weight=20),
            ConfidenceField(name="description", weight=15),
            ConfidenceField(name="image", weight=15, aliases=["images"]),
            ConfidenceField(name="added_on", weight=10),
        ]
    )
    low_confidence_threshold: int = Field(
        default_factory=lambda: int(os.getenv("HARVESTER_LOW_CONFIDENCE_THRESHOLD", "30"))
    )

    @field_validator("fields")
    @classmethod
    def _validate_weights(cls, value: list[ConfidenceField]) -> list[ConfidenceField]:
        total = sum(f.weight for f in value)
        if total != 100:
            raise ValueError(f"Confidence weights must sum to 100, got {total}")
        return value

    @field_validator("low_confidence_threshold")
    @classmethod
    def _validate_threshold(cls, value: int) -> int:
        if not 0 <= value <= 100:
            raise ValueError("low_confidence_threshold must be within 0..100")
        return value


class ReconcileConfig(BaseModel):
    """Cross-source reconciliation options."""

    derive_postcode_from_address: bool = True


class RetryConfig(BaseModel):
    """Retry and backoff configuration."""

    max_retries: int = 3
    backoff_base_ms: int = 1000
    backoff_max_ms: int = 30000
    jitter: bool = True


class TimeoutConfig(BaseModel):
    """Timeout budgets for page loads."""

    page_load_timeout_s: int = 30
    settle_after_load_ms: int = 1000


class BrowserConfig(BaseModel):
    """Browser layer configuration."""

    headless: bool = True
    viewport_width: int = 1280
    viewport_height: int = 720
    user_agent: str | None = None
    locale: str = "en-GB"


class ExtractionConfig(BaseModel):
    """Everything the adaptive extraction engine consumes."""

    locator: LocatorConfig = Field(default_factory=LocatorConfig)
    record_array: RecordArrayConfig = Field(default_factory=RecordArrayConfig)
    selector: SelectorHeuristics = Field(default_factory=SelectorHeuristics)
    confidence: ConfidenceConfig = Field(default_factory=ConfidenceConfig)


class HarvestConfig(BaseModel):
    """Root configuration for a harvest run."""

    urls: list[str] = Field(default_factory=list)
    max_pages: int = Field(default_factory=lambda: int(os.getenv("HARVESTER_MAX_PAGES", "1")))
    max_items: int = Field(default_factory=lambda: int(os.getenv("HARVESTER_MAX_ITEMS", "50")))
    distress_keywords: list[str] = Field(
        default_factory=lambda: _csv_env("HARVESTER_DISTRESS_KEYWORDS")
    )
    extraction: ExtractionConfig = Field(default_factory=ExtractionConfig)
    reconcile: ReconcileConfig = Field(default_factory=ReconcileConfig)
    retry: RetryConfig = Field(default_factory=RetryConfig)
    timeouts: TimeoutConfig = Field(default_factory=TimeoutConfig)
    browser: BrowserConfig = Field(default_factory=BrowserConfig)
    log_level: str = Field(default_factory=lambda: os.getenv("HARVESTER_LOG_LEVEL", "INFO"))

    @field_validator("max_pages")
    @classmethod
    def _validate_max_pages(cls, value: int) -> int:
        if value < 1:
            raise ValueError("max_pages must be >= 1")
        return value

    @field_validator("max_items")
    @classmethod
    def _validate_max_items(cls, value: int) -> int:
        if value < 1:
            raise ValueError("max_items must be >= 1")
        return value
