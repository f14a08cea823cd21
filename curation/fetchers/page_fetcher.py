"""
Page fetcher: loads one URL in a browser session and yields raw content.

State machine per URL:

    NAVIGATE -> DETECT_INTERSTITIAL -> DISMISS (if any) -> SETTLE
             -> CHECK_ACCESS -> EXTRACT_RAW

Dismissal tries a fixed, ordered list of strategies and stops at the first
one that succeeds:
1. Click a control whose visible text is a known continuation phrase
2. Click any control inside an element with dialog semantics
3. Send a cancel (Escape) input

If none succeed the fetcher proceeds anyway; the page may never have had an
interstitial. The fetcher never interprets content itself.

Failure classification:
- Navigation timeout, 5xx -> TIMEOUT
- 401/403/429, bot challenge, access wall still up -> BLOCKING
- Non-http(s) or private URL -> INVALID_URL
- Anything else -> PARSE_ERROR
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from django.conf import settings

from curation.monitoring import add_scrape_breadcrumb
from curation.types import FailureReason
from curation.utils.normalization import validate_url

from .browser import Browser, BrowserSession, ClickMatcher
from .interstitial import (
    CONTINUE_PHRASES,
    classify_error_message,
    classify_http_status,
    detect_access_wall,
    detect_interstitial,
)

logger = logging.getLogger(__name__)


class FetchState(str, Enum):
    NAVIGATE = "navigate"
    DETECT_INTERSTITIAL = "detect_interstitial"
    DISMISS = "dismiss"
    SETTLE = "settle"
    CHECK_ACCESS = "check_access"
    EXTRACT_RAW = "extract_raw"


class DismissalStrategy(str, Enum):
    CONTINUE_TEXT = "continue_text"
    DIALOG_CONTROL = "dialog_control"
    CANCEL_INPUT = "cancel_input"


@dataclass
class PageFetchResult:
    """Raw page content, or a typed failure."""

    url: str
    success: bool
    content: str = ""
    final_url: Optional[str] = None
    status_code: Optional[int] = None
    failure_reason: Optional[FailureReason] = None
    error: Optional[str] = None
    dismissal_strategy: Optional[DismissalStrategy] = None
    states: List[FetchState] = field(default_factory=list)


class PageFetcher:
    """
    Drives a browser session through the fetch state machine for one URL.

    Stateless between URLs; one instance can be shared by every worker of
    a batch.
    """

    def __init__(
        self,
        browser: Browser,
        timeout: Optional[float] = None,
        settle_timeout: float = 5.0,
    ):
        """
        Initialize page fetcher.

        Args:
            browser: Browser capability handing out sessions
            timeout: Navigation timeout in seconds
            settle_timeout: Max seconds to wait for the page to settle
        """
        self.browser = browser
        self.timeout = timeout or getattr(settings, "CURATION_REQUEST_TIMEOUT", 30)
        self.settle_timeout = settle_timeout

    async def fetch(self, url: str) -> PageFetchResult:
        """
        Fetch a URL and return its raw content.

        Args:
            url: Page URL

        Returns:
            PageFetchResult with content on success, failure_reason otherwise
        """
        is_valid, error = validate_url(url)
        if not is_valid:
            return PageFetchResult(
                url=url,
                success=False,
                failure_reason=FailureReason.INVALID_URL,
                error=error,
            )

        try:
            async with self.browser.session() as session:
                return await self._run(session, url)
        except Exception as e:
            logger.exception(f"Unexpected error fetching {url}")
            reason = classify_error_message(str(e))
            return PageFetchResult(
                url=url,
                success=False,
                failure_reason=reason,
                error=f"{type(e).__name__}: {e}",
            )

    async def _run(self, session: BrowserSession, url: str) -> PageFetchResult:
        result = PageFetchResult(url=url, success=False)

        # NAVIGATE
        self._enter(result, FetchState.NAVIGATE)
        nav = await session.navigate(url, timeout=self.timeout)
        result.status_code = nav.status_code

        if nav.timed_out:
            logger.warning(f"Navigation timeout after {self.timeout}s: {url}")
            return self._fail(result, FailureReason.TIMEOUT, nav.error or "Navigation timed out")

        if not nav.success:
            reason = classify_error_message(nav.error or "")
            logger.warning(f"Navigation failed for {url}: {nav.error}")
            return self._fail(result, reason, nav.error or "Navigation failed")

        status_reason = classify_http_status(nav.status_code)
        if status_reason is not None:
            logger.warning(f"HTTP {nav.status_code} for {url}")
            return self._fail(result, status_reason, f"HTTP {nav.status_code}")

        # DETECT_INTERSTITIAL
        self._enter(result, FetchState.DETECT_INTERSTITIAL)
        if detect_interstitial(await session.content()):
            # DISMISS
            self._enter(result, FetchState.DISMISS)
            result.dismissal_strategy = await self._dismiss(session)
            if result.dismissal_strategy is None:
                logger.info(f"No dismissal strategy succeeded for {url}, proceeding")

        # SETTLE
        self._enter(result, FetchState.SETTLE)
        await session.settle(self.settle_timeout)

        content = await session.content()
        final_url = await session.current_url()
        result.final_url = final_url

        # CHECK_ACCESS
        self._enter(result, FetchState.CHECK_ACCESS)
        wall = detect_access_wall(final_url, content, await session.title())
        if wall.is_blocked:
            logger.warning(f"Access wall for {url}: {wall.reason}")
            return self._fail(result, FailureReason.BLOCKING, wall.reason)

        # EXTRACT_RAW
        self._enter(result, FetchState.EXTRACT_RAW)
        if not content or not content.strip():
            return self._fail(result, FailureReason.PARSE_ERROR, "Empty page content")

        result.success = True
        result.content = content
        logger.info(f"Fetched {url} ({len(content)} chars)")
        return result

    async def _dismiss(self, session: BrowserSession) -> Optional[DismissalStrategy]:
        """Try dismissal strategies in order, returning the first that worked."""
        if await session.find_and_click(ClickMatcher(texts=CONTINUE_PHRASES)):
            return DismissalStrategy.CONTINUE_TEXT

        if await session.find_and_click(ClickMatcher(within_dialog=True)):
            return DismissalStrategy.DIALOG_CONTROL

        if await session.send_cancel_input():
            return DismissalStrategy.CANCEL_INPUT

        return None

    @staticmethod
    def _enter(result: PageFetchResult, state: FetchState) -> None:
        result.states.append(state)
        add_scrape_breadcrumb(result.url, state.value, message=f"Fetch state {state.value}")

    @staticmethod
    def _fail(
        result: PageFetchResult,
        reason: FailureReason,
        error: str,
    ) -> PageFetchResult:
        result.success = False
        result.failure_reason = reason
        result.error = error
        return result
