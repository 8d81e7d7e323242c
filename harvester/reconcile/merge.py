"""Field-level merge rules for records that share an identity key.

Merge dispatches on a small closed set of value kinds, one rule per kind:

- absent (``None`` or ``""``): never overwrites; is always filled by the incoming value
- string: the longer string wins, ties keep the accumulator
- array: union in first-seen order, deduplicated by equality
- object: shallow merge, incoming keys win
- anything else, or mismatched kinds: the accumulator is kept
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Sequence

from harvester.records.schema import count_filled_fields, is_filled


class ValueKind(str, Enum):
    ABSENT = "absent"
    STRING = "string"
    ARRAY = "array"
    OBJECT = "object"
    OTHER = "other"


def kind_of(value: Any) -> ValueKind:
    if not is_filled(value):
        return ValueKind.ABSENT
    if isinstance(value, str):
        return ValueKind.STRING
    if isinstance(value, list):
        return ValueKind.ARRAY
    if isinstance(value, dict):
        return ValueKind.OBJECT
    return ValueKind.OTHER


def union(current: list[Any], incoming: list[Any]) -> list[Any]:
    merged: list[Any] = []
    for item in (*current, *incoming):
        if item not in merged:
            merged.append(item)
    return merged


def merge_field(current: Any, incoming: Any) -> Any:
    """Return the value the accumulator holds after folding in ``incoming``."""
    incoming_kind = kind_of(incoming)
    if incoming_kind is ValueKind.ABSENT:
        return current

    current_kind = kind_of(current)
    if current_kind is ValueKind.ABSENT:
        return incoming
    if current_kind is not incoming_kind:
        return current

    if incoming_kind is ValueKind.STRING:
        return incoming if len(incoming) > len(current) else current
    if incoming_kind is ValueKind.ARRAY:
        return union(current, incoming)
    if incoming_kind is ValueKind.OBJECT:
        return {**current, **incoming}
    return current


def rank_by_completeness(records: Sequence[dict[str, Any]]) -> list[dict[str, Any]]:
    """Most filled fields first; stable, so ties keep input order."""
    return sorted(records, key=count_filled_fields, reverse=True)


def _source_tag(record: dict[str, Any]) -> Any:
    return record.get("source") or record.get("site")


def merge_group(records: Sequence[dict[str, Any]]) -> dict[str, Any]:
    """Merge two or more records into one, recording provenance.

    Inputs are left untouched; the result is a new mapping.
    """
    if not records:
        raise ValueError("merge_group requires at least one record")

    ranked = rank_by_completeness(records)
    merged = dict(ranked[0])
    for record in ranked[1:]:
        for key, value in record.items():
            if kind_of(value) is ValueKind.ABSENT:
                continue
            merged[key] = merge_field(merged.get(key), value)

    sources: list[Any] = []
    for record in records:
        tag = _source_tag(record)
        if tag and tag not in sources:
            sources.append(tag)

    merged["sources"] = sources
    merged["duplicate_of"] = [r.get("id") for r in records if r.get("id") is not None]
    merged["is_duplicate"] = True
    return merged
