"""Structured error telemetry helpers."""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Canonical error codes for operational telemetry."""

    LOCATOR_PROBE_FAILED = "LOCATOR_PROBE_FAILED"
    SCRIPT_PAYLOAD_MALFORMED = "SCRIPT_PAYLOAD_MALFORMED"
    DOM_SNAPSHOT_FAILED = "DOM_SNAPSHOT_FAILED"
    CARD_FIELD_EXTRACTION_FAILED = "CARD_FIELD_EXTRACTION_FAILED"
    RECORD_MAPPING_FAILED = "RECORD_MAPPING_FAILED"
    PAGE_NAVIGATION_FAILED = "PAGE_NAVIGATION_FAILED"
    BROWSER_CLEANUP_FAILED = "BROWSER_CLEANUP_FAILED"


def emit_structured_error(
    logger: logging.Logger,
    *,
    code: ErrorCode,
    message: str,
    suppressed: bool,
    site: str | None = None,
    url: str | None = None,
    details: dict[str, Any] | None = None,
) -> None:
    """Emit a structured telemetry event via logging."""
    logger.error(
        "harvester_error",
        extra={
            "error_code": code,
            "error_message": message,
            "suppressed": suppressed,
            "site": site,
            "url": url,
            "details": details or {},
        },
    )
