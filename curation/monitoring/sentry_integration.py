"""
Sentry error tracking for scrape batches and brand research.

Sentry itself is initialised in config/settings/base.py when SENTRY_DSN is
set. Without a DSN the SDK calls below are no-ops, so callers never need to
check whether reporting is enabled.

Usage:
    from curation.monitoring import capture_scrape_error, add_scrape_breadcrumb

    try:
        result = await self._process(url)
    except Exception as e:
        capture_scrape_error(error=e, url=url, stage="extract")
"""

import logging
from typing import Any, Dict, Optional

import sentry_sdk

logger = logging.getLogger(__name__)

# Keys whose values never leave the process
SENSITIVE_FIELDS = {
    "cookies",
    "cookie",
    "api_key",
    "apikey",
    "api-key",
    "authorization",
    "auth",
    "password",
    "secret",
    "token",
    "x-api-key",
}


def _filter_sensitive_data(data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Replace values of sensitive keys with a placeholder, recursing into dicts.

    Args:
        data: Dictionary potentially containing sensitive data

    Returns:
        Copy of the dictionary with sensitive values replaced
    """
    if not isinstance(data, dict):
        return data

    filtered = {}
    for key, value in data.items():
        key_lower = str(key).lower()

        if any(sensitive in key_lower for sensitive in SENSITIVE_FIELDS):
            filtered[key] = "[Filtered]"
        elif isinstance(value, dict):
            filtered[key] = _filter_sensitive_data(value)
        else:
            filtered[key] = value

    return filtered


def add_scrape_breadcrumb(
    url: str,
    stage: str,
    message: str = "Scrape operation",
    level: str = "info",
    extra_data: Optional[Dict[str, Any]] = None,
) -> None:
    """
    Add a breadcrumb describing one step of a URL's fetch/extract sequence.

    Args:
        url: URL being processed
        stage: Pipeline stage (navigate, dismiss, extract, research, ...)
        message: Description of the operation
        level: Log level (info, warning, error)
        extra_data: Additional context, filtered for sensitive keys
    """
    breadcrumb_data = {
        "url": url,
        "stage": stage,
    }
    if extra_data:
        breadcrumb_data.update(_filter_sensitive_data(extra_data))

    try:
        sentry_sdk.add_breadcrumb(
            category="scrape",
            message=message,
            level=level,
            data=breadcrumb_data,
        )
    except Exception as e:
        logger.warning(f"Failed to add Sentry breadcrumb: {e}")


def capture_scrape_error(
    error: Exception,
    url: Optional[str] = None,
    stage: Optional[str] = None,
    domain: Optional[str] = None,
    extra_context: Optional[Dict[str, Any]] = None,
) -> None:
    """
    Capture an unexpected error that was recovered into a typed result.

    Args:
        error: The exception that occurred
        url: URL where the error occurred
        stage: Pipeline stage at the time of the error
        domain: Target domain, used as a tag for grouping
        extra_context: Additional context (filtered for sensitive data)
    """
    add_scrape_breadcrumb(
        url=url or "Unknown",
        stage=stage or "unknown",
        message=f"Error: {type(error).__name__}",
        level="error",
        extra_data=extra_context,
    )

    try:
        with sentry_sdk.new_scope() as scope:
            scope.set_tag("curation.stage", stage or "unknown")
            if domain:
                scope.set_tag("curation.domain", domain)
            if url:
                scope.set_extra("scrape_url", url)
            if extra_context:
                scope.set_extra("scrape_context", _filter_sensitive_data(extra_context))

            sentry_sdk.capture_exception(error)

    except Exception as e:
        logger.warning(f"Failed to capture exception to Sentry: {e}")
