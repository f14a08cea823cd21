"""
Lightweight HTTP page fetcher.

Used where a browser is unnecessary: size-chart and size-guide pages, which
are almost always server-rendered. Returns page text (one logical line per
row/paragraph) ready for line scanning, or a typed failure.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

import httpx
import trafilatura
from bs4 import BeautifulSoup
from django.conf import settings

from curation.types import FailureReason
from curation.utils.normalization import validate_url

from .browser import DEFAULT_USER_AGENT
from .interstitial import classify_http_status, detect_access_wall

logger = logging.getLogger(__name__)


@dataclass
class HttpFetchResult:
    """Response from an HTTP page fetch."""

    url: str
    success: bool
    html: str = ""
    text: str = ""
    status_code: int = 0
    failure_reason: Optional[FailureReason] = None
    error: Optional[str] = None


def html_to_text(html: str) -> str:
    """
    Convert HTML to newline-separated text.

    trafilatura (with tables kept) is tried first; when it yields little,
    a BeautifulSoup text dump is used so table-only pages still produce rows.
    """
    if not html:
        return ""

    text = None
    try:
        text = trafilatura.extract(
            html,
            include_comments=False,
            include_tables=True,
            no_fallback=False,
            favor_precision=False,
            include_formatting=False,
        )
    except Exception as e:
        logger.warning(f"Trafilatura extraction failed: {e}")

    if text and len(text) > 200:
        return text

    soup = BeautifulSoup(html, "html.parser")
    for tag in soup(["script", "style", "noscript", "svg"]):
        tag.decompose()

    lines = []
    for row in soup.get_text("\n").splitlines():
        row = " ".join(row.split())
        if row:
            lines.append(row)
    return "\n".join(lines)


class HttpPageFetcher:
    """
    Async httpx fetcher with retry on timeouts and 5xx responses.

    Features:
    - Browser User-Agent and headers
    - Exponential backoff between retries
    - Status and content classification into FailureReason
    """

    DEFAULT_HEADERS = {
        "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
        "Accept-Language": "en-US,en;q=0.9",
        "Accept-Encoding": "gzip, deflate",
        "Connection": "keep-alive",
    }

    def __init__(
        self,
        timeout: Optional[float] = None,
        max_retries: Optional[int] = None,
        backoff_base: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Initialize HTTP fetcher.

        Args:
            timeout: Request timeout in seconds (default from settings)
            max_retries: Retries after the first attempt (default from settings)
            backoff_base: Backoff base in seconds (default from settings)
            client: Pre-built httpx client (mainly for tests)
        """
        self.timeout = timeout or getattr(settings, "CURATION_REQUEST_TIMEOUT", 30)
        self.max_retries = (
            max_retries if max_retries is not None
            else getattr(settings, "CURATION_MAX_RETRIES", 2)
        )
        self.backoff_base = (
            backoff_base if backoff_base is not None
            else getattr(settings, "CURATION_RETRY_BACKOFF_BASE", 2.0)
        )
        self._client = client

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout),
                headers={**self.DEFAULT_HEADERS, "User-Agent": DEFAULT_USER_AGENT},
                follow_redirects=True,
            )
        return self._client

    async def close(self):
        if self._client:
            await self._client.aclose()
            self._client = None

    async def fetch(self, url: str) -> HttpFetchResult:
        """
        Fetch a page and return its text.

        Args:
            url: Page URL

        Returns:
            HttpFetchResult with html/text on success
        """
        is_valid, error = validate_url(url)
        if not is_valid:
            return HttpFetchResult(
                url=url,
                success=False,
                failure_reason=FailureReason.INVALID_URL,
                error=error,
            )

        client = self._get_client()
        last_error = "No attempts made"
        last_status = 0

        for attempt in range(self.max_retries + 1):
            if attempt > 0:
                await asyncio.sleep(self.backoff_base ** attempt)

            try:
                response = await client.get(url)
            except httpx.TimeoutException as e:
                last_error = f"Timeout: {e}"
                logger.warning(
                    f"Timeout fetching {url} (attempt {attempt + 1}/{self.max_retries + 1})"
                )
                continue
            except httpx.HTTPError as e:
                logger.warning(f"HTTP error fetching {url}: {e}")
                return HttpFetchResult(
                    url=url,
                    success=False,
                    failure_reason=FailureReason.PARSE_ERROR,
                    error=str(e),
                )

            last_status = response.status_code
            reason = classify_http_status(response.status_code)
            if reason == FailureReason.TIMEOUT:
                last_error = f"HTTP {response.status_code}"
                logger.warning(
                    f"HTTP {response.status_code} for {url} "
                    f"(attempt {attempt + 1}/{self.max_retries + 1})"
                )
                continue
            if reason is not None:
                return HttpFetchResult(
                    url=url,
                    success=False,
                    status_code=response.status_code,
                    failure_reason=reason,
                    error=f"HTTP {response.status_code}",
                )

            html = response.text
            wall = detect_access_wall(str(response.url), html)
            if wall.is_blocked:
                return HttpFetchResult(
                    url=url,
                    success=False,
                    status_code=response.status_code,
                    failure_reason=FailureReason.BLOCKING,
                    error=wall.reason,
                )

            return HttpFetchResult(
                url=url,
                success=True,
                html=html,
                text=html_to_text(html),
                status_code=response.status_code,
            )

        return HttpFetchResult(
            url=url,
            success=False,
            status_code=last_status,
            failure_reason=FailureReason.TIMEOUT,
            error=last_error,
        )
