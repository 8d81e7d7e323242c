"""Card field extraction: CSS selectors applied inside each repeating listing card.

Deterministic and cheap. The container selector comes from adaptive discovery
or the site profile; field selectors come from the site profile.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Sequence
from urllib.parse import urljoin

from playwright.async_api import ElementHandle, Page

from harvester.records.schema import project_record
from harvester.sites.distress import detect_distress
from harvester.telemetry.errors import ErrorCode, emit_structured_error

logger = logging.getLogger(__name__)

# Fields read from an attribute instead of text content, in attribute priority order.
ATTRIBUTE_FIELDS: dict[str, tuple[str, ...]] = {
    "url": ("href",),
    "image": ("data-src", "data-lazy-src", "src"),
}
URL_FIELDS = frozenset({"url", "image"})


def absolutize(value: str, base_url: str) -> str:
    """Resolve site-relative links against the site's base URL."""
    if value.startswith(("http://", "https://")) or not base_url:
        return value
    return urljoin(base_url.rstrip("/") + "/", value)


async def _read_field(card: ElementHandle, field: str, selectors: Sequence[str]) -> str | None:
    attributes = ATTRIBUTE_FIELDS.get(field)
    for selector in selectors:
        element = await card.query_selector(selector)
        if element is None:
            continue
        if attributes:
            for attribute in attributes:
                value = await element.get_attribute(attribute)
                if value and value.strip():
                    return value.strip()
        else:
            text = await element.text_content()
            if text and text.strip():
                return text.strip()
    return None


async def extract_card_records(
    page: Page,
    container_selector: str,
    field_selectors: dict[str, list[str]],
    source: str,
    base_url: str = "",
    distress_keywords: Sequence[str] | None = None,
) -> list[dict[str, Any]]:
    """Extract one record per element matching ``container_selector``.

    Args:
        page: Rendered page to extract from.
        container_selector: CSS selector for each listing card.
        field_selectors: Mapping of field name -> selectors relative to the card.
        source: Site name stamped on every record.
        base_url: Used to absolutize relative links and image sources.
        distress_keywords: Keywords searched for in the description.

    Returns:
        Records that have at least one extracted field.
    """
    try:
        cards = await page.query_selector_all(container_selector)
    except Exception as exc:
        emit_structured_error(
            logger,
            code=ErrorCode.CARD_FIELD_EXTRACTION_FAILED,
            message=str(exc),
            suppressed=True,
            site=source,
            details={"selector": container_selector},
        )
        return []

    scraped_at = datetime.now(timezone.utc).isoformat()
    records: list[dict[str, Any]] = []

    for card in cards:
        values: dict[str, Any] = {}
        for field, selectors in field_selectors.items():
            try:
                value = await _read_field(card, field, selectors)
            except Exception as exc:
                logger.debug(
                    "Card field read failed",
                    extra={
                        "error_code": ErrorCode.CARD_FIELD_EXTRACTION_FAILED,
                        "field": field,
                        "error_message": str(exc),
                    },
                )
                value = None
            if value is not None and field in URL_FIELDS:
                value = absolutize(value, base_url)
            values[field] = value

        # Only include cards that have at least one extracted field
        if not any(v is not None for v in values.values()):
            continue

        matched, distress_score = detect_distress(values.get("description"), distress_keywords)
        records.append(
            project_record(
                {
                    **values,
                    "source": source,
                    "distress_keywords_matched": matched,
                    "distress_score": distress_score,
                    "scraped_at": scraped_at,
                }
            )
        )

    return records
