"""Extraction confidence scoring: expected-field coverage of a record batch."""

from __future__ import annotations

import math
from typing import Any, Sequence

from harvester.config.settings import ConfidenceConfig
from harvester.records.schema import is_filled

_DEFAULT_CONFIG = ConfidenceConfig()


def record_score(record: dict[str, Any], config: ConfidenceConfig = _DEFAULT_CONFIG) -> int:
    """Sum the weights of the expected fields ``record`` fills (0..100)."""
    total = 0
    for weighted in config.fields:
        names = (weighted.name, *weighted.aliases)
        if any(is_filled(record.get(name)) for name in names):
            total += weighted.weight
    return total


def score(
    records: Sequence[dict[str, Any]] | None,
    config: ConfidenceConfig | None = None,
) -> int:
    """Percent of the batch's maximum possible score that was earned.

    Pure: the scorer never rejects data. An empty batch scores 0.
    """
    if not records:
        return 0
    config = config or _DEFAULT_CONFIG
    earned = sum(record_score(record, config) for record in records)
    maximum = len(records) * 100
    # Half-up, not banker's rounding.
    return int(math.floor(earned / maximum * 100 + 0.5))


def is_low_confidence(percent: int, config: ConfidenceConfig | None = None) -> bool:
    config = config or _DEFAULT_CONFIG
    return percent < config.low_confidence_threshold
