"""
Page fetching for the curation pipeline.

- protection: known anti-automation posture per domain
- browser: browser automation capability (Playwright implementation)
- interstitial: dialog, access-wall and failure classification
- page_fetcher: per-URL fetch state machine over a browser session
- http_fetcher: plain HTTP fetch for server-rendered pages
"""

from .browser import ClickMatcher, NavigationResult, PlaywrightBrowser
from .http_fetcher import HttpFetchResult, HttpPageFetcher
from .page_fetcher import PageFetcher, PageFetchResult
from .protection import classify_domain, requires_confirmation

__all__ = [
    "ClickMatcher",
    "NavigationResult",
    "PlaywrightBrowser",
    "HttpFetchResult",
    "HttpPageFetcher",
    "PageFetcher",
    "PageFetchResult",
    "classify_domain",
    "requires_confirmation",
]
