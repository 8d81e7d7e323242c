"""Adaptive extraction driver: structured data first, DOM discovery as fallback.

Chain for one rendered page:
1. Locate an embedded data object and find the listing array inside it.
2. Otherwise discover the repeating card selector (then the site's predefined
   card selectors) and read card fields.
3. Score whatever was extracted.

Every step that finds nothing adds a diagnostic line to the outcome instead of
raising; a hostile page can only reduce the yield.
"""

from __future__ import annotations

import logging
from typing import Any, Literal, Sequence

from playwright.async_api import Page
from pydantic import BaseModel, Field

from harvester.config.settings import ExtractionConfig
from harvester.extraction.cards import extract_card_records
from harvester.extraction.confidence import is_low_confidence, score
from harvester.extraction.discovery import find_record_array
from harvester.extraction.locator import locate
from harvester.extraction.selector import discover_selector
from harvester.sites.mapper import map_raw_listings
from harvester.sites.profiles import SiteProfile

logger = logging.getLogger(__name__)


class ExtractionOutcome(BaseModel):
    """Records extracted from one page plus how they were found."""

    records: list[dict[str, Any]] = Field(default_factory=list)
    strategy: Literal["structured", "dom", "none"] = "none"
    source_label: str | None = None
    selector: str | None = None
    confidence: int = 0
    low_confidence: bool = False
    diagnostics: list[str] = Field(default_factory=list)


def _finish(
    outcome: ExtractionOutcome,
    config: ExtractionConfig,
    site: str,
) -> ExtractionOutcome:
    outcome.confidence = score(outcome.records, config.confidence)
    outcome.low_confidence = is_low_confidence(outcome.confidence, config.confidence)
    logger.info(
        "Extraction complete",
        extra={
            "site": site,
            "strategy": outcome.strategy,
            "record_count": len(outcome.records),
            "confidence": outcome.confidence,
        },
    )
    if outcome.low_confidence:
        outcome.diagnostics.append(
            f"low confidence ({outcome.confidence}%), data may be incomplete"
        )
        logger.warning(
            "Low extraction confidence",
            extra={"site": site, "confidence": outcome.confidence},
        )
    return outcome


async def extract_structured(
    page: Page,
    profile: SiteProfile,
    config: ExtractionConfig,
    distress_keywords: Sequence[str] | None,
    diagnostics: list[str],
) -> ExtractionOutcome | None:
    locations = profile.locations or config.locator.locations
    blob, label = await locate(page, locations)
    if blob is None:
        diagnostics.append("no structured data found")
        return None

    diagnostics.append(f"structured data found at {label}")
    array = find_record_array(blob, config=config.record_array)
    if not array:
        diagnostics.append("no record array inside structured data")
        return None

    records = map_raw_listings(array, profile, distress_keywords)
    if not records:
        diagnostics.append("record array held no mappable listings")
        return None

    return ExtractionOutcome(
        records=records,
        strategy="structured",
        source_label=label,
        diagnostics=diagnostics,
    )


async def extract_from_dom(
    page: Page,
    profile: SiteProfile,
    config: ExtractionConfig,
    distress_keywords: Sequence[str] | None,
    diagnostics: list[str],
) -> ExtractionOutcome | None:
    discovered = await discover_selector(page, config.selector)
    if discovered:
        diagnostics.append(f"discovered card selector {discovered}")
        selectors = [discovered]
    else:
        diagnostics.append("selector discovery found no card group")
        selectors = []
    selectors += [s for s in profile.card_selectors if s != discovered]

    for selector in selectors:
        records = await extract_card_records(
            page,
            selector,
            profile.card_fields,
            source=profile.name,
            base_url=profile.base_url,
            distress_keywords=distress_keywords,
        )
        if records:
            return ExtractionOutcome(
                records=records,
                strategy="dom",
                selector=selector,
                diagnostics=diagnostics,
            )
        diagnostics.append(f"selector {selector} yielded no records")
    return None


async def extract_listings(
    page: Page,
    profile: SiteProfile,
    config: ExtractionConfig | None = None,
    distress_keywords: Sequence[str] | None = None,
) -> ExtractionOutcome:
    """Extract listing records from one rendered page of ``profile``'s site."""
    config = config or ExtractionConfig()
    diagnostics: list[str] = []

    outcome = await extract_structured(page, profile, config, distress_keywords, diagnostics)
    if outcome is None:
        logger.info("Falling back to DOM extraction", extra={"site": profile.name})
        outcome = await extract_from_dom(page, profile, config, distress_keywords, diagnostics)

    if outcome is None:
        logger.info("No listings extracted", extra={"site": profile.name})
        return ExtractionOutcome(diagnostics=diagnostics)

    return _finish(outcome, config, profile.name)
