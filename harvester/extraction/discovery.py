"""Recursive record-array discovery over untyped page data.

Finds the listing array inside an arbitrary nested object by its shape rather
than its key path, so a site can move its listings around without breaking
extraction. The tree comes from an untrusted page: every call carries an
explicit depth counter and stops past ``max_depth``.
"""

from __future__ import annotations

import logging
from typing import Any, Iterator

from harvester.config.settings import RecordArrayConfig

logger = logging.getLogger(__name__)

_DEFAULT_CONFIG = RecordArrayConfig()


def _is_container(node: Any) -> bool:
    return isinstance(node, (dict, list))


def _has_any(item: dict[str, Any], keys: list[str]) -> bool:
    return any(item.get(key) for key in keys)


def looks_like_record_array(node: Any, config: RecordArrayConfig = _DEFAULT_CONFIG) -> bool:
    """Non-empty list whose first element has an id AND a price or address."""
    if not isinstance(node, list) or not node:
        return False
    first = node[0]
    if not isinstance(first, dict):
        return False
    has_identifier = _has_any(first, config.identifier_keys) or _has_any(
        first, config.id_like_keys
    )
    has_payload = _has_any(first, config.price_keys) or _has_any(first, config.address_keys)
    return has_identifier and has_payload


def _children(node: Any, skip: set[str]) -> Iterator[tuple[str, Any]]:
    if isinstance(node, dict):
        for key, value in node.items():
            if key not in skip and value and _is_container(value):
                yield str(key), value
    elif isinstance(node, list):
        for index, value in enumerate(node):
            if value and _is_container(value):
                yield str(index), value


def find_record_array(
    node: Any,
    max_depth: int | None = None,
    config: RecordArrayConfig | None = None,
) -> list[Any] | None:
    """Return the first listing-like array inside ``node``, or ``None``.

    Search order: the node itself, then the configured container keys in
    priority order, then every remaining child. First match wins.
    """
    config = config or _DEFAULT_CONFIG
    limit = config.max_depth if max_depth is None else max_depth
    return _search(node, limit, 0, "root", config)


def _search(
    node: Any,
    max_depth: int,
    depth: int,
    path: str,
    config: RecordArrayConfig,
) -> list[Any] | None:
    if not node or depth > max_depth:
        return None

    if looks_like_record_array(node, config):
        logger.info(
            "Found record array",
            extra={"path": path, "record_count": len(node)},
        )
        return node

    if not _is_container(node):
        return None

    priority: set[str] = set()
    if isinstance(node, dict):
        priority = set(config.container_keys)
        for key in config.container_keys:
            child = node.get(key)
            if child:
                found = _search(child, max_depth, depth + 1, f"{path}.{key}", config)
                if found is not None:
                    return found

    for key, child in _children(node, priority):
        found = _search(child, max_depth, depth + 1, f"{path}.{key}", config)
        if found is not None:
            return found

    return None
