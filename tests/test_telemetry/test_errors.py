"""Tests for structured error telemetry."""

import logging

from harvester.telemetry.errors import ErrorCode, emit_structured_error


def test_emits_single_structured_event(caplog):
    logger = logging.getLogger("harvester.test")
    with caplog.at_level(logging.ERROR, logger="harvester.test"):
        emit_structured_error(
            logger,
            code=ErrorCode.PAGE_NAVIGATION_FAILED,
            message="timeout",
            suppressed=True,
            site="rightmove",
            url="https://www.rightmove.co.uk/property-for-sale/find.html",
        )

    assert len(caplog.records) == 1
    record = caplog.records[0]
    assert record.getMessage() == "harvester_error"
    assert record.error_code == ErrorCode.PAGE_NAVIGATION_FAILED
    assert record.error_message == "timeout"
    assert record.suppressed is True
    assert record.site == "rightmove"
    assert record.details == {}


def test_error_codes_are_strings():
    assert ErrorCode.LOCATOR_PROBE_FAILED == "LOCATOR_PROBE_FAILED"
