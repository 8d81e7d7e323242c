"""Identity keys: the heuristic that decides which records describe one entity.

Key = normalized address + ``|`` + postcode fragment, lowercased. Distinct
entities sharing a formatted address will collide and materially different
spellings of one address will not; both are accepted data-quality risks.
"""

from __future__ import annotations

from typing import Any

from harvester.records.schema import extract_postcode, normalize_address


def postcode_fragment(record: dict[str, Any], derive_from_address: bool = True) -> str:
    """``"outcode incode"`` from the record's fields, else from its address."""
    outcode = record.get("outcode") or ""
    incode = record.get("incode") or ""
    fragment = f"{outcode} {incode}".strip()
    if fragment or not derive_from_address:
        return fragment
    postcode = extract_postcode(record.get("address"))
    return postcode.full if postcode else ""


def identity_key(record: dict[str, Any], derive_postcode: bool = True) -> str | None:
    """Bucket key for ``record``; ``None`` when it has no address to match on.

    Records without any postcode are keyed by address alone, so they only ever
    match other postcode-less records with the same address.
    """
    address = normalize_address(record.get("address"))
    if not address:
        return None
    fragment = postcode_fragment(record, derive_postcode)
    return f"{address}|{fragment}".lower()
