"""
Tests for the Playwright browser capability.

async_playwright is patched; no Chromium is launched.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest


def _mock_playwright():
    """Return (async_playwright factory, list of launched browser mocks)."""
    launched = []

    async def launch(**kwargs):
        browser = MagicMock()
        browser.launch_kwargs = kwargs
        context = MagicMock()
        context.new_page = AsyncMock(return_value=MagicMock())
        context.close = AsyncMock()
        browser.new_context = AsyncMock(return_value=context)
        browser.close = AsyncMock()
        launched.append(browser)
        return browser

    def factory():
        driver = MagicMock()
        driver.chromium.launch = AsyncMock(side_effect=launch)
        driver.stop = AsyncMock()
        manager = MagicMock()
        manager.start = AsyncMock(return_value=driver)
        return manager

    return factory, launched


class TestBrowserOwnership:
    """Each PlaywrightBrowser owns its own Chromium instance."""

    @pytest.mark.asyncio
    async def test_closing_one_browser_leaves_another_usable(self):
        from curation.fetchers.browser import PlaywrightBrowser

        factory, launched = _mock_playwright()
        with patch("playwright.async_api.async_playwright", side_effect=factory):
            first = PlaywrightBrowser()
            second = PlaywrightBrowser()

            async with first.session():
                pass
            async with second.session():
                pass

            await first.close()

            async with second.session():
                pass

        assert len(launched) == 2
        launched[0].close.assert_awaited_once()
        launched[1].close.assert_not_awaited()
        assert launched[1].new_context.await_count == 2

    @pytest.mark.asyncio
    async def test_sessions_reuse_the_instance_browser(self):
        from curation.fetchers.browser import PlaywrightBrowser

        factory, launched = _mock_playwright()
        with patch("playwright.async_api.async_playwright", side_effect=factory):
            browser = PlaywrightBrowser()
            async with browser.session():
                pass
            async with browser.session():
                pass
            await browser.close()

        assert len(launched) == 1
        launched[0].close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_launch_does_not_mask_automation(self):
        from curation.fetchers.browser import PlaywrightBrowser

        factory, launched = _mock_playwright()
        with patch("playwright.async_api.async_playwright", side_effect=factory):
            browser = PlaywrightBrowser()
            async with browser.session():
                pass
            await browser.close()

        args = launched[0].launch_kwargs["args"]
        assert not any("AutomationControlled" in arg for arg in args)
        user_agent = launched[0].new_context.call_args.kwargs["user_agent"]
        assert "CurationPipeline" in user_agent
