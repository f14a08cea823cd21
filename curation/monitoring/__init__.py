"""
Monitoring for the curation pipeline.

Sentry error capture with scrape context; breadcrumbs record the per-URL
state transitions leading up to an error.
"""

from .sentry_integration import capture_scrape_error, add_scrape_breadcrumb

__all__ = [
    "capture_scrape_error",
    "add_scrape_breadcrumb",
]
