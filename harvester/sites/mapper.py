"""Raw listing mapping: turns a site's embedded listing objects into schema records."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Sequence
from urllib.parse import urljoin

from harvester.records.schema import LISTING_SCHEMA, extract_postcode, normalize_price, project_record
from harvester.sites.distress import detect_distress
from harvester.sites.profiles import SiteProfile
from harvester.telemetry.errors import ErrorCode, emit_structured_error

logger = logging.getLogger(__name__)

_IMAGE_URL_KEYS = ("url", "srcUrl", "imageUrl", "src")
_NUMERIC_PSEUDO_FIELDS = {"latitude": "number", "longitude": "number"}


def read_path(node: Any, path: str) -> Any:
    """Follow a dotted path through dicts and (numeric segments) lists."""
    current = node
    for segment in path.split("."):
        if isinstance(current, dict):
            current = current.get(segment)
        elif isinstance(current, list) and segment.isdigit():
            index = int(segment)
            current = current[index] if index < len(current) else None
        else:
            return None
        if current is None:
            return None
    return current


def _coerce(value: Any, kind: str) -> Any:
    if kind == "string":
        if isinstance(value, str):
            return value.strip() or None
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return None
    if kind == "number":
        if isinstance(value, bool):
            return None
        if isinstance(value, (int, float)):
            return value
        if isinstance(value, str) and value.strip().isdigit():
            return int(value.strip())
        return None
    if kind == "array":
        return value if isinstance(value, list) and value else None
    if kind == "object":
        return value if isinstance(value, dict) and value else None
    if kind == "boolean":
        return value if isinstance(value, bool) else None
    return None


def _first(raw: dict[str, Any], paths: Sequence[str], kind: str) -> Any:
    for path in paths:
        value = _coerce(read_path(raw, path), kind)
        if value is not None:
            return value
    return None


def _image_url(item: Any) -> str | None:
    if isinstance(item, str):
        return item or None
    if isinstance(item, dict):
        for key in _IMAGE_URL_KEYS:
            value = item.get(key)
            if isinstance(value, str) and value:
                return value
    return None


def _images(raw: dict[str, Any], profile: SiteProfile) -> list[str]:
    for path in profile.image_list_paths:
        value = read_path(raw, path)
        if isinstance(value, list):
            urls = [url for url in (_image_url(item) for item in value) if url]
            if urls:
                return urls
    for path in profile.main_image_paths:
        url = _image_url(read_path(raw, path))
        if url:
            return [url]
    return []


def map_raw_listing(
    raw: Any,
    profile: SiteProfile,
    distress_keywords: Sequence[str] | None = None,
    scraped_at: str | None = None,
) -> dict[str, Any] | None:
    """Map one raw listing object onto the listing schema.

    Returns ``None`` when ``raw`` is not an object or cannot be read.
    """
    if not isinstance(raw, dict):
        return None
    try:
        return _map(raw, profile, distress_keywords, scraped_at)
    except (TypeError, ValueError, AttributeError) as exc:
        emit_structured_error(
            logger,
            code=ErrorCode.RECORD_MAPPING_FAILED,
            message=str(exc),
            suppressed=True,
            site=profile.name,
        )
        return None


def _map(
    raw: dict[str, Any],
    profile: SiteProfile,
    distress_keywords: Sequence[str] | None,
    scraped_at: str | None,
) -> dict[str, Any]:
    kinds = {**LISTING_SCHEMA, **_NUMERIC_PSEUDO_FIELDS}
    values = {
        field: _first(raw, paths, kinds.get(field, "string"))
        for field, paths in profile.field_paths.items()
    }

    listing_id = values.get("id")
    url = values.get("url")
    url = urljoin(profile.base_url, url) if url else profile.listing_url(listing_id)

    price = values.get("price")
    if profile.format_price and price is not None:
        price = normalize_price(price)

    outcode, incode = values.get("outcode"), values.get("incode")
    if not outcode or not incode:
        postcode = extract_postcode(values.get("address"))
        if postcode:
            outcode, incode = postcode.outcode, postcode.incode

    latitude, longitude = values.get("latitude"), values.get("longitude")
    coordinates = (
        {"latitude": latitude, "longitude": longitude}
        if latitude is not None and longitude is not None
        else None
    )

    description = values.get("description")
    matched, distress_score = detect_distress(description, distress_keywords)

    record: dict[str, Any] = {
        **{k: v for k, v in values.items() if k not in _NUMERIC_PSEUDO_FIELDS},
        "id": listing_id,
        "url": url,
        "source": profile.name,
        "source_url": url,
        "price": price,
        "images": _images(raw, profile),
        "outcode": outcode,
        "incode": incode,
        "coordinates": coordinates,
        "distress_keywords_matched": matched,
        "distress_score": distress_score,
        "scraped_at": scraped_at or datetime.now(timezone.utc).isoformat(),
    }
    return project_record(record)


def map_raw_listings(
    raws: Sequence[Any],
    profile: SiteProfile,
    distress_keywords: Sequence[str] | None = None,
) -> list[dict[str, Any]]:
    scraped_at = datetime.now(timezone.utc).isoformat()
    records = (map_raw_listing(raw, profile, distress_keywords, scraped_at) for raw in raws)
    return [record for record in records if record is not None]
