"""Browser layer: Playwright-based headless browser that loads listing pages.

The browser layer has no extraction logic. It renders pages and hands the live
``Page`` to the extraction engine, which only evaluates read-only scripts and
runs DOM queries against it.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from playwright.async_api import Browser, BrowserContext, Page, async_playwright

from harvester.config.settings import BrowserConfig


class ActionStatus(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"
    TIMEOUT = "timeout"


@dataclass
class ActionResult:
    """Result of a browser action."""

    status: ActionStatus
    detail: str = ""


class BrowserLayer:
    """Playwright browser layer.

    Contract:
    - Owns one isolated context and page per harvest run
    - Returns typed results instead of raising on navigation failure
    - Never interacts with a page beyond loading it
    """

    def __init__(self, config: BrowserConfig | None = None) -> None:
        self._config = config or BrowserConfig()
        self._playwright: Any = None
        self._browser: Browser | None = None
        self._context: BrowserContext | None = None
        self._page: Page | None = None

    @property
    def page(self) -> Page | None:
        return self._page

    async def start(self) -> None:
        """Launch browser and create an isolated context."""
        self._playwright = await async_playwright().start()
        self._browser = await self._playwright.chromium.launch(
            headless=self._config.headless,
        )
        self._context = await self._browser.new_context(
            viewport={
                "width": self._config.viewport_width,
                "height": self._config.viewport_height,
            },
            user_agent=self._config.user_agent,
            locale=self._config.locale,
        )
        self._page = await self._context.new_page()

    async def stop(self) -> None:
        """Clean up browser resources."""
        if self._context:
            await self._context.close()
            self._context = None
        if self._browser:
            await self._browser.close()
            self._browser = None
        if self._playwright:
            await self._playwright.stop()
            self._playwright = None
        self._page = None

    async def navigate(
        self, url: str, timeout_ms: int = 30000, settle_ms: int = 0
    ) -> ActionResult:
        """Navigate to a URL, wait for DOM content, then let scripts hydrate."""
        if not self._page:
            return ActionResult(status=ActionStatus.FAILURE, detail="Browser not started")
        try:
            await self._page.goto(url, wait_until="domcontentloaded", timeout=timeout_ms)
            if settle_ms > 0:
                await self._page.wait_for_timeout(settle_ms)
            return ActionResult(status=ActionStatus.SUCCESS, detail=f"Navigated to {url}")
        except Exception as e:
            if type(e).__name__ == "TimeoutError":
                return ActionResult(status=ActionStatus.TIMEOUT, detail=str(e))
            return ActionResult(status=ActionStatus.FAILURE, detail=str(e))
