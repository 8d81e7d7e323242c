"""Harvest runner: drives extraction across sites, pages and sources.

The runner owns the run lifecycle only. It does not interpret pages (that is
the extraction engine's job) and it does not merge records itself; every
record collected from every site is handed to ``reconcile`` exactly once,
after the last page has been read.

MUST NOT:
- Retry a page without a ceiling
- Abort the whole run because one site or page failed
- Reconcile partial snapshots
"""

from __future__ import annotations

import asyncio
import logging
import random
from datetime import datetime, timezone
from typing import Any, Protocol

from pydantic import BaseModel, Field

from harvester.browser.layer import ActionResult, ActionStatus
from harvester.config.settings import HarvestConfig
from harvester.extraction.adaptive import extract_listings
from harvester.reconcile.reconciler import ReconcileStatistics, reconcile, reconcile_statistics
from harvester.sites.profiles import SiteProfile
from harvester.sites.registry import get_profile
from harvester.telemetry.errors import ErrorCode, emit_structured_error

logger = logging.getLogger(__name__)


class Browser(Protocol):
    """What the runner needs from a browser; ``BrowserLayer`` satisfies it."""

    @property
    def page(self) -> Any: ...

    async def start(self) -> None: ...

    async def stop(self) -> None: ...

    async def navigate(
        self, url: str, timeout_ms: int = 30000, settle_ms: int = 0
    ) -> ActionResult: ...


class SiteStatistics(BaseModel):
    """Per-site counters for one harvest run."""

    site: str
    urls_processed: int = 0
    pages_processed: int = 0
    records_found: int = 0
    records_with_distress: int = 0
    low_confidence_pages: int = 0
    errors: list[str] = Field(default_factory=list)
    started_at: datetime | None = None
    ended_at: datetime | None = None


class HarvestResult(BaseModel):
    """Reconciled records plus the statistics that produced them."""

    records: list[dict[str, Any]] = Field(default_factory=list)
    sites: dict[str, SiteStatistics] = Field(default_factory=dict)
    skipped_urls: list[str] = Field(default_factory=list)
    reconcile: ReconcileStatistics | None = None


def group_urls_by_site(urls: list[str]) -> tuple[dict[str, tuple[SiteProfile, list[str]]], list[str]]:
    """Split ``urls`` into per-site lists; unsupported URLs come back separately."""
    grouped: dict[str, tuple[SiteProfile, list[str]]] = {}
    skipped: list[str] = []
    for url in urls:
        try:
            profile = get_profile(url)
        except ValueError as e:
            logger.warning("Skipping unsupported URL", extra={"url": url, "reason": str(e)})
            skipped.append(url)
            continue
        if not profile.is_valid_url(url):
            logger.warning("Skipping non-listing URL", extra={"url": url, "site": profile.name})
            skipped.append(url)
            continue
        grouped.setdefault(profile.name, (profile, []))[1].append(url)
    return grouped, skipped


class HarvestRunner:
    """Runs extraction over every configured URL, then reconciles once."""

    def __init__(self, config: HarvestConfig, browser: Browser) -> None:
        self._config = config
        self._browser = browser

    # --- Retry Logic ---

    async def _backoff(self, attempt: int) -> None:
        """Exponential backoff with jitter."""
        base = self._config.retry.backoff_base_ms / 1000.0
        max_delay = self._config.retry.backoff_max_ms / 1000.0
        delay = min(base * (2 ** attempt), max_delay)
        if self._config.retry.jitter:
            delay += random.uniform(0, base)
        await asyncio.sleep(delay)

    async def _navigate(self, url: str, site: str) -> ActionResult:
        """Load ``url``, retrying failed or timed-out loads up to the retry ceiling."""
        timeout_ms = self._config.timeouts.page_load_timeout_s * 1000
        settle_ms = self._config.timeouts.settle_after_load_ms
        attempts = 0
        while True:
            result = await self._browser.navigate(url, timeout_ms=timeout_ms, settle_ms=settle_ms)
            if result.status == ActionStatus.SUCCESS:
                return result
            if attempts >= self._config.retry.max_retries:
                return result
            attempts += 1
            logger.info(
                "Retrying navigation",
                extra={
                    "site": site,
                    "url": url,
                    "attempt_number": attempts,
                    "max_attempts": self._config.retry.max_retries,
                    "reason": result.detail,
                },
            )
            await self._backoff(attempts)

    # --- Site Processing ---

    async def _harvest_url(
        self, profile: SiteProfile, url: str, stats: SiteStatistics
    ) -> list[dict[str, Any]]:
        records: list[dict[str, Any]] = []
        max_items = self._config.max_items
        for page_index in range(self._config.max_pages):
            if len(records) >= max_items:
                logger.info(
                    "Reached max_items, stopping pagination",
                    extra={"site": profile.name, "url": url, "max_items": max_items},
                )
                break
            page_url = profile.build_page_url(url, page_index)
            result = await self._navigate(page_url, profile.name)
            if result.status != ActionStatus.SUCCESS:
                emit_structured_error(
                    logger,
                    code=ErrorCode.PAGE_NAVIGATION_FAILED,
                    message=f"Navigation failed: {result.detail}",
                    suppressed=True,
                    site=profile.name,
                    url=page_url,
                    details={"status": result.status.value},
                )
                stats.errors.append(f"{page_url}: {result.detail}")
                break

            outcome = await extract_listings(
                self._browser.page,
                profile,
                self._config.extraction,
                self._config.distress_keywords,
            )
            stats.pages_processed += 1
            if outcome.low_confidence:
                stats.low_confidence_pages += 1
            if not outcome.records:
                logger.info(
                    "Empty page, stopping pagination",
                    extra={"site": profile.name, "url": page_url, "page_index": page_index},
                )
                break
            records.extend(outcome.records[: max_items - len(records)])
        return records

    async def _harvest_site(self, profile: SiteProfile, urls: list[str]) -> tuple[list[dict[str, Any]], SiteStatistics]:
        stats = SiteStatistics(site=profile.name, started_at=datetime.now(timezone.utc))
        records: list[dict[str, Any]] = []
        for url in urls:
            records.extend(await self._harvest_url(profile, url, stats))
            stats.urls_processed += 1

        stats.records_found = len(records)
        stats.records_with_distress = sum(
            1 for record in records if (record.get("distress_score") or 0) > 0
        )
        stats.ended_at = datetime.now(timezone.utc)
        logger.info(
            "Site harvest complete",
            extra={
                "site": profile.name,
                "urls_processed": stats.urls_processed,
                "pages_processed": stats.pages_processed,
                "records_found": stats.records_found,
                "records_with_distress": stats.records_with_distress,
            },
        )
        return records, stats

    async def run(self) -> HarvestResult:
        """Harvest every configured URL and return the reconciled result."""
        logging.getLogger("harvester").setLevel(self._config.log_level.upper())
        grouped, skipped = group_urls_by_site(self._config.urls)
        result = HarvestResult(skipped_urls=skipped)
        if not grouped:
            logger.warning("No supported URLs to harvest", extra={"skipped": len(skipped)})
            return result

        collected: list[dict[str, Any]] = []
        await self._browser.start()
        try:
            for name, (profile, urls) in grouped.items():
                records, stats = await self._harvest_site(profile, urls)
                collected.extend(records)
                result.sites[name] = stats
        finally:
            try:
                await self._browser.stop()
            except Exception as e:
                emit_structured_error(
                    logger,
                    code=ErrorCode.BROWSER_CLEANUP_FAILED,
                    message=str(e),
                    suppressed=True,
                )

        result.records = reconcile(collected, self._config.reconcile)
        result.reconcile = reconcile_statistics(collected, result.records)
        return result
