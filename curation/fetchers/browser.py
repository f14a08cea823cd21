"""
Browser automation capability.

The PageFetcher depends only on the narrow BrowserSession interface below
(navigate, find_and_click, send_cancel_input, plus reading back the settled
page). PlaywrightBrowser is the production implementation; tests drive the
fetcher with stub sessions.

Usage:
    browser = PlaywrightBrowser()
    async with browser.session() as session:
        nav = await session.navigate(url, timeout=30)
        ...
    await browser.close()
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, Optional, Protocol, Tuple

from django.conf import settings

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = "Mozilla/5.0 (compatible; CurationPipeline/1.0)"


@dataclass(frozen=True)
class ClickMatcher:
    """
    Describes which control to click.

    texts: visible text phrases, any of which may match
    within_dialog: match any button inside an element with dialog semantics
    """

    texts: Tuple[str, ...] = ()
    within_dialog: bool = False


@dataclass
class NavigationResult:
    """Outcome of a single navigation."""

    success: bool
    status_code: Optional[int] = None
    error: Optional[str] = None
    timed_out: bool = False


class BrowserSession(Protocol):
    """One isolated page in a browser."""

    async def navigate(self, url: str, timeout: float) -> NavigationResult: ...

    async def find_and_click(self, matcher: ClickMatcher) -> bool: ...

    async def send_cancel_input(self) -> bool: ...

    async def settle(self, timeout: float) -> None: ...

    async def content(self) -> str: ...

    async def current_url(self) -> str: ...

    async def title(self) -> str: ...


class Browser(Protocol):
    """Hands out isolated sessions."""

    def session(self): ...


class PlaywrightSession:
    """BrowserSession backed by a Playwright page."""

    def __init__(self, page):
        self.page = page

    async def navigate(self, url: str, timeout: float) -> NavigationResult:
        from playwright.async_api import TimeoutError as PlaywrightTimeoutError

        try:
            response = await self.page.goto(
                url,
                wait_until="domcontentloaded",
                timeout=timeout * 1000,
            )
        except PlaywrightTimeoutError as e:
            return NavigationResult(success=False, error=str(e), timed_out=True)
        except Exception as e:
            return NavigationResult(success=False, error=str(e))

        status_code = response.status if response else None
        return NavigationResult(success=True, status_code=status_code)

    async def find_and_click(self, matcher: ClickMatcher) -> bool:
        selectors = [f'button:has-text("{text}")' for text in matcher.texts]
        selectors += [f'a[role="button"]:has-text("{text}")' for text in matcher.texts]
        if matcher.within_dialog:
            selectors.append('[role="dialog"] button, [role="alertdialog"] button')

        for selector in selectors:
            try:
                element = self.page.locator(selector).first
                if await element.count() > 0 and await element.is_visible():
                    logger.debug(f"Clicking interstitial control: {selector}")
                    await element.click(timeout=3000)
                    return True
            except Exception as e:
                logger.debug(f"Selector {selector} not clickable: {e}")
                continue

        return False

    async def send_cancel_input(self) -> bool:
        try:
            await self.page.keyboard.press("Escape")
            return True
        except Exception as e:
            logger.debug(f"Escape key press failed: {e}")
            return False

    async def settle(self, timeout: float) -> None:
        try:
            await self.page.wait_for_load_state("networkidle", timeout=timeout * 1000)
        except Exception:
            # Pages with long-polling never go idle; their content is still usable
            logger.debug("Page did not reach network idle before settle timeout")

    async def content(self) -> str:
        return await self.page.content()

    async def current_url(self) -> str:
        return self.page.url

    async def title(self) -> str:
        return await self.page.title()


class PlaywrightBrowser:
    """
    Browser capability backed by headless Chromium.

    Each instance launches and owns its own browser on first use, so
    concurrent batches never share or close each other's browser. Every
    session gets its own context so cookies never leak between URLs.
    """

    def __init__(self, user_agent: Optional[str] = None):
        self.user_agent = user_agent or getattr(
            settings, "CURATION_USER_AGENT", DEFAULT_USER_AGENT
        )
        self._playwright = None
        self._browser = None
        self._lock: Optional[asyncio.Lock] = None

    async def _get_browser(self):
        # Created on first use so the lock binds to the loop running the batch
        if self._lock is None:
            self._lock = asyncio.Lock()

        async with self._lock:
            if self._browser is not None:
                return self._browser

            from playwright.async_api import async_playwright

            self._playwright = await async_playwright().start()
            self._browser = await self._playwright.chromium.launch(
                headless=True,
                args=["--no-sandbox", "--disable-dev-shm-usage"],
            )
            logger.info("Playwright browser initialized")
            return self._browser

    @asynccontextmanager
    async def session(self) -> AsyncIterator[PlaywrightSession]:
        browser = await self._get_browser()
        context = await browser.new_context(
            user_agent=self.user_agent,
            viewport={"width": 1920, "height": 1080},
        )
        try:
            page = await context.new_page()
            yield PlaywrightSession(page)
        finally:
            await context.close()

    async def close(self):
        """Close this instance's browser and Playwright driver."""
        if self._browser:
            await self._browser.close()
            self._browser = None

        if self._playwright:
            await self._playwright.stop()
            self._playwright = None
