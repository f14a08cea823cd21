"""
Interstitial and access-wall detection utilities.

Interstitials are dialogs that sit between navigation and the real page:
cookie/consent banners, region pickers, newsletter popups, "continue"
prompts. Access walls are interstitials that were never cleared: login
redirects, consent walls, bot challenges. Content reaching the extractor
from behind an access wall is unusable, so it is classified BLOCKING.

Detection is keyword based:
1. Dialog markup (role="dialog" / role="alertdialog" / aria-modal)
2. Known interstitial phrases in the page text
"""

import logging
import re
from dataclasses import dataclass
from typing import Optional, Tuple

from curation.types import FailureReason

logger = logging.getLogger(__name__)


# Visible text of controls that dismiss an interstitial and continue to the page
CONTINUE_PHRASES: Tuple[str, ...] = (
    "Continue",
    "Continue shopping",
    "Accept",
    "Accept all",
    "Accept cookies",
    "I agree",
    "Agree",
    "Got it",
    "OK",
    "Stay on this site",
    "No thanks",
    "Close",
)

INTERSTITIAL_MARKERS = [
    'role="dialog"',
    "role='dialog'",
    'role="alertdialog"',
    "role='alertdialog'",
    'aria-modal="true"',
    "onetrust-banner",
    "cookie-consent",
    "cookie consent",
    "we use cookies",
    "choose your country",
    "select your region",
    "ship to",
    "sign up for our newsletter",
]

# URL fragments that mean the browser ended up on a login/consent page
ACCESS_WALL_URL_PATTERNS = [
    r"emaillogin",
    r"/login\b",
    r"/signin\b",
    r"/sign-in\b",
    r"/account/login",
    r"/auth/",
    r"consent\.",
    r"/consent\b",
]

ACCESS_WALL_TITLE_PATTERNS = [
    r"\blog\s*in\b",
    r"\bsign\s*in\b",
    r"access\s*denied",
    r"just a moment",
    r"attention required",
]

BOT_CHALLENGE_MARKERS = [
    "checking your browser",
    "cf-browser-verification",
    "cf_chl_opt",
    "challenge-platform",
    "__cf_chl_tk",
    "g-recaptcha",
    "h-captcha",
    "px-captcha",
    "pardon our interruption",
    "access to this page has been denied",
    "you have been blocked",
]

# HTTP codes that mean the site refused the automated client
BLOCKING_STATUS_CODES = {401, 403, 429}

BLOCKING_ERROR_KEYWORDS = [
    "cloudflare",
    "access denied",
    "forbidden",
    "rate limit",
    "captcha",
    "blocked",
]

TIMEOUT_ERROR_KEYWORDS = [
    "timeout",
    "timed out",
]


@dataclass
class AccessWallResult:
    """Result of the post-settle reachability check."""

    is_blocked: bool
    reason: str


def detect_interstitial(content: str) -> bool:
    """
    Return True if the page looks like it has an interstitial dialog open.

    Args:
        content: Raw HTML of the page

    Returns:
        True if any interstitial marker is present
    """
    if not content:
        return False

    content_lower = content.lower()
    for marker in INTERSTITIAL_MARKERS:
        if marker in content_lower:
            logger.debug(f"Interstitial marker found: '{marker}'")
            return True
    return False


def _extract_title(content: str) -> str:
    match = re.search(r"<title[^>]*>(.*?)</title>", content or "", re.IGNORECASE | re.DOTALL)
    return match.group(1).strip() if match else ""


def detect_access_wall(
    final_url: str,
    content: str,
    title: Optional[str] = None,
) -> AccessWallResult:
    """
    Check whether an authentication/consent wall or bot challenge is still up.

    Args:
        final_url: URL the browser ended on after settling
        content: Raw HTML of the settled page
        title: Page title if already known (extracted from content otherwise)

    Returns:
        AccessWallResult, is_blocked=True when the wall was never cleared
    """
    url_lower = (final_url or "").lower()
    for pattern in ACCESS_WALL_URL_PATTERNS:
        if re.search(pattern, url_lower):
            return AccessWallResult(
                is_blocked=True,
                reason=f"Redirected to access wall: {final_url}",
            )

    page_title = title if title is not None else _extract_title(content)
    for pattern in ACCESS_WALL_TITLE_PATTERNS:
        if re.search(pattern, page_title, re.IGNORECASE):
            return AccessWallResult(
                is_blocked=True,
                reason=f"Access wall title: '{page_title}'",
            )

    # Challenge pages are small; large product pages may mention the
    # vendor in a footer without being challenges.
    if content and len(content) < 50000:
        content_lower = content.lower()
        for marker in BOT_CHALLENGE_MARKERS:
            if marker in content_lower:
                return AccessWallResult(
                    is_blocked=True,
                    reason=f"Bot challenge detected: '{marker}'",
                )

    return AccessWallResult(is_blocked=False, reason="Page reachable")


def classify_http_status(status_code: Optional[int]) -> Optional[FailureReason]:
    """
    Map an HTTP status code to a failure reason.

    401/403/429 -> BLOCKING, 5xx -> TIMEOUT (retryable), other 4xx -> PARSE_ERROR.
    Success and redirect codes return None.
    """
    if status_code is None or status_code < 400:
        return None
    if status_code in BLOCKING_STATUS_CODES:
        return FailureReason.BLOCKING
    if status_code >= 500:
        return FailureReason.TIMEOUT
    return FailureReason.PARSE_ERROR


def classify_error_message(message: str) -> FailureReason:
    """Map a free-text error to a failure reason, PARSE_ERROR if unrecognised."""
    message_lower = (message or "").lower()
    if any(keyword in message_lower for keyword in BLOCKING_ERROR_KEYWORDS):
        return FailureReason.BLOCKING
    if any(keyword in message_lower for keyword in TIMEOUT_ERROR_KEYWORDS):
        return FailureReason.TIMEOUT
    return FailureReason.PARSE_ERROR
