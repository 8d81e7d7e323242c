"""Cross-source reconciliation: one output record per identity key.

Callers collect every record from every source first and reconcile once;
grouping assumes a single consistent snapshot of the input.
"""

from __future__ import annotations

import logging
from typing import Any, Sequence

from pydantic import BaseModel

from harvester.config.settings import ReconcileConfig
from harvester.reconcile.identity import identity_key
from harvester.reconcile.merge import merge_group

logger = logging.getLogger(__name__)


class ReconcileStatistics(BaseModel):
    """Before/after counts for a reconciliation pass."""

    original_count: int
    reconciled_count: int
    duplicates_removed: int
    duplicate_groups: int
    deduplication_rate: float


def group_records(
    records: Sequence[dict[str, Any]],
    config: ReconcileConfig | None = None,
) -> list[list[dict[str, Any]]]:
    """Bucket records by identity key, buckets and members in encounter order.

    Records without a key each get a bucket of their own.
    """
    config = config or ReconcileConfig()
    buckets: dict[Any, list[dict[str, Any]]] = {}
    for index, record in enumerate(records):
        key = identity_key(record, config.derive_postcode_from_address)
        buckets.setdefault(key if key is not None else ("unkeyed", index), []).append(record)
    return list(buckets.values())


def reconcile(
    records: Sequence[dict[str, Any]] | None,
    config: ReconcileConfig | None = None,
) -> list[dict[str, Any]]:
    """Merge records that describe the same entity.

    Singleton buckets pass through unchanged (no merge metadata is added);
    larger buckets become one merged record each.
    """
    if not records:
        return []

    groups = group_records(records, config)
    reconciled: list[dict[str, Any]] = []
    for group in groups:
        reconciled.append(group[0] if len(group) == 1 else merge_group(group))

    stats = reconcile_statistics(records, reconciled)
    logger.info(
        "Reconciliation complete",
        extra={
            "original_count": stats.original_count,
            "reconciled_count": stats.reconciled_count,
            "duplicates_removed": stats.duplicates_removed,
            "duplicate_groups": stats.duplicate_groups,
        },
    )
    return reconciled


def reconcile_statistics(
    original: Sequence[dict[str, Any]],
    reconciled: Sequence[dict[str, Any]],
) -> ReconcileStatistics:
    removed = len(original) - len(reconciled)
    return ReconcileStatistics(
        original_count=len(original),
        reconciled_count=len(reconciled),
        duplicates_removed=removed,
        duplicate_groups=sum(1 for record in reconciled if record.get("is_duplicate") is True),
        deduplication_rate=round(removed / len(original) * 100, 2) if original else 0.0,
    )
