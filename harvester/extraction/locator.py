"""Structured-data locator: finds the data object a page embeds for its own rendering.

Probes are tried in caller-supplied priority order. A probe that throws, reads
nothing, or yields something that is not an object is simply a failed probe;
absence of embedded data is an expected outcome and never raises.
"""

from __future__ import annotations

import json
import logging
from typing import Any, NamedTuple, Sequence

from playwright.async_api import Page

from harvester.config.settings import DEFAULT_LOCATIONS, CandidateLocation
from harvester.telemetry.errors import ErrorCode, emit_structured_error

logger = logging.getLogger(__name__)

# Walks a dotted path from ``window``; undefined links read as null.
READ_BINDING_JS = """(path) => {
    let value = window;
    for (const key of path.split('.')) {
        if (value === null || value === undefined) return null;
        value = value[key];
    }
    return value === undefined ? null : value;
}"""

READ_SCRIPT_PAYLOADS_JS = """(selector) => Array.from(
    document.querySelectorAll(selector),
    (el) => el.textContent || ''
)"""


class LocateResult(NamedTuple):
    """The accepted data object and the label of the probe that produced it."""

    blob: Any
    label: str | None


NOT_FOUND = LocateResult(None, None)


def is_data_object(value: Any) -> bool:
    """Accept non-null objects and arrays, the shapes a page model can take."""
    return isinstance(value, (dict, list))


async def locate(
    page: Page,
    locations: Sequence[CandidateLocation] | None = None,
) -> LocateResult:
    """Return the first embedded data object found, or ``(None, None)``.

    Args:
        page: Rendered page exposing script evaluation.
        locations: Probe order; defaults to the common page-model bindings
            followed by JSON script tags.
    """
    for location in locations if locations is not None else DEFAULT_LOCATIONS:
        if location.kind == "binding":
            blob = await _probe_binding(page, location)
        else:
            blob = await _probe_scripts(page, location)
        if blob is not None:
            logger.info("Found structured data", extra={"source_label": location.label})
            return LocateResult(blob, location.label)

    logger.info("No structured data found in any location")
    return NOT_FOUND


async def _probe_binding(page: Page, location: CandidateLocation) -> Any:
    try:
        value = await page.evaluate(READ_BINDING_JS, location.query)
    except Exception as exc:
        emit_structured_error(
            logger,
            code=ErrorCode.LOCATOR_PROBE_FAILED,
            message=str(exc),
            suppressed=True,
            details={"probe": location.label},
        )
        return None
    return value if is_data_object(value) else None


async def _probe_scripts(page: Page, location: CandidateLocation) -> Any:
    try:
        payloads = await page.evaluate(READ_SCRIPT_PAYLOADS_JS, location.query)
    except Exception as exc:
        emit_structured_error(
            logger,
            code=ErrorCode.LOCATOR_PROBE_FAILED,
            message=str(exc),
            suppressed=True,
            details={"probe": location.label},
        )
        return None

    if not isinstance(payloads, list):
        return None

    for index, payload in enumerate(payloads):
        if not isinstance(payload, str) or not payload.strip():
            continue
        try:
            data = json.loads(payload)
        except json.JSONDecodeError as exc:
            logger.debug(
                "Skipping malformed script payload",
                extra={
                    "error_code": ErrorCode.SCRIPT_PAYLOAD_MALFORMED,
                    "probe": location.label,
                    "script_index": index,
                    "error_message": str(exc),
                },
            )
            continue
        if is_data_object(data):
            return data
    return None
