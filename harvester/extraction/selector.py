"""Adaptive selector discovery: finds the repeating listing-card selector on a page.

Used when a page embeds no structured data. Every element is scored against
additive listing-card heuristics, survivors are grouped by the selector that
would select them, and the best frequent-enough group wins.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Iterable

from playwright.async_api import Page
from pydantic import BaseModel

from harvester.config.settings import SelectorHeuristics
from harvester.telemetry.errors import ErrorCode, emit_structured_error

logger = logging.getLogger(__name__)

# One round trip: the whole DOM as plain data. SVG elements expose a
# non-string className and are treated as classless.
SNAPSHOT_ELEMENTS_JS = """(textLimit) => Array.from(document.querySelectorAll('*'), (el) => ({
    tag: el.tagName.toLowerCase(),
    className: typeof el.className === 'string' ? el.className : '',
    id: el.id || '',
    attributes: el.getAttributeNames(),
    text: (el.textContent || '').slice(0, textLimit),
}))"""

_TRAILING_NUMBER_RE = re.compile(r"\d+$")


@dataclass(frozen=True)
class ElementSnapshot:
    """The parts of a DOM element the card heuristics look at."""

    tag: str
    class_name: str = ""
    element_id: str = ""
    attributes: frozenset[str] = field(default_factory=frozenset)
    text: str = ""

    @classmethod
    def from_raw(cls, raw: dict[str, Any]) -> ElementSnapshot:
        class_name = raw.get("className") or ""
        return cls(
            tag=str(raw["tag"]).lower(),
            class_name=class_name if isinstance(class_name, str) else "",
            element_id=str(raw.get("id") or ""),
            attributes=frozenset(str(name).lower() for name in raw.get("attributes") or ()),
            text=str(raw.get("text") or ""),
        )


class SelectorCandidate(BaseModel):
    """A group of elements that one selector would select."""

    selector: str
    element_count: int = 0
    total_score: int = 0

    @property
    def mean_score(self) -> float:
        return self.total_score / self.element_count if self.element_count else 0.0

    @property
    def metric(self) -> float:
        """Element count weighted by mean per-element score."""
        return self.element_count * self.mean_score


class _CompiledHeuristics:
    def __init__(self, heuristics: SelectorHeuristics) -> None:
        self.class_patterns = [(p.compile(), p.weight) for p in heuristics.class_patterns]
        self.id_patterns = [(p.compile(), p.weight) for p in heuristics.id_patterns]
        self.content_patterns = [(p.compile(), p.weight) for p in heuristics.content_patterns]
        self.attribute_rules = [
            (frozenset(name.lower() for name in rule.names), rule.weight)
            for rule in heuristics.attribute_rules
        ]


def score_element(element: ElementSnapshot, heuristics: SelectorHeuristics) -> int:
    """Sum every heuristic that matches ``element``."""
    return _score(element, _CompiledHeuristics(heuristics))


def _score(element: ElementSnapshot, compiled: _CompiledHeuristics) -> int:
    score = 0
    if element.class_name:
        score += sum(w for p, w in compiled.class_patterns if p.search(element.class_name))
    if element.element_id:
        score += sum(w for p, w in compiled.id_patterns if p.search(element.element_id))
    score += sum(w for names, w in compiled.attribute_rules if names & element.attributes)
    if element.text:
        score += sum(w for p, w in compiled.content_patterns if p.search(element.text))
    return score


def selector_for(element: ElementSnapshot) -> str:
    """First class, else id (prefix form for numbered ids), else tag name."""
    classes = element.class_name.split()
    if classes:
        return f".{classes[0]}"
    if element.element_id:
        prefix = _TRAILING_NUMBER_RE.sub("", element.element_id)
        if prefix != element.element_id:
            if prefix:
                return f'[id^="{prefix}"]'
            return f'[id="{element.element_id}"]'
        return f"#{element.element_id}"
    return element.tag


def rank_selector_candidates(
    elements: Iterable[ElementSnapshot],
    heuristics: SelectorHeuristics | None = None,
) -> list[SelectorCandidate]:
    """Group elements that clear the score threshold, in first-encountered order."""
    heuristics = heuristics or SelectorHeuristics()
    compiled = _CompiledHeuristics(heuristics)
    groups: dict[str, SelectorCandidate] = {}

    for element in elements:
        score = _score(element, compiled)
        if score < heuristics.min_element_score:
            continue
        selector = selector_for(element)
        group = groups.setdefault(selector, SelectorCandidate(selector=selector))
        group.element_count += 1
        group.total_score += score

    return list(groups.values())


def choose_selector(
    candidates: Iterable[SelectorCandidate],
    min_group_size: int = 3,
) -> SelectorCandidate | None:
    """Best metric among groups of at least ``min_group_size``; ties keep the first."""
    best: SelectorCandidate | None = None
    for candidate in candidates:
        if candidate.element_count < min_group_size:
            continue
        if best is None or candidate.metric > best.metric:
            best = candidate
    return best


async def snapshot_elements(page: Page, text_limit: int = 4000) -> list[ElementSnapshot]:
    """Read every element on the page; malformed entries are skipped."""
    raw_elements = await page.evaluate(SNAPSHOT_ELEMENTS_JS, text_limit)
    if not isinstance(raw_elements, list):
        return []

    elements: list[ElementSnapshot] = []
    skipped = 0
    for raw in raw_elements:
        try:
            elements.append(ElementSnapshot.from_raw(raw))
        except (KeyError, TypeError, AttributeError):
            skipped += 1
    if skipped:
        logger.debug("Skipped malformed element snapshots", extra={"skipped": skipped})
    return elements


async def discover_selector(
    page: Page,
    heuristics: SelectorHeuristics | None = None,
) -> str | None:
    """Return the CSS selector of the page's repeating listing cards, or ``None``."""
    heuristics = heuristics or SelectorHeuristics()
    try:
        elements = await snapshot_elements(page, heuristics.text_limit)
    except Exception as exc:
        emit_structured_error(
            logger,
            code=ErrorCode.DOM_SNAPSHOT_FAILED,
            message=str(exc),
            suppressed=True,
        )
        return None

    candidates = rank_selector_candidates(elements, heuristics)
    best = choose_selector(candidates, heuristics.min_group_size)
    if best is None:
        logger.info(
            "Could not discover a listing card selector",
            extra={"candidate_groups": len(candidates), "elements": len(elements)},
        )
        return None

    logger.info(
        "Discovered listing card selector",
        extra={
            "selector": best.selector,
            "element_count": best.element_count,
            "mean_score": round(best.mean_score),
        },
    )
    return best.selector
