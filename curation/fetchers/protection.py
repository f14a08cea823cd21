"""
Domain protection classification.

Looks up a target domain against a table of known anti-automation defenses
and their observed automated success rates. Classification never blocks
scraping by itself: the batch orchestrator asks for operator confirmation
only when a domain is ultra-high protection AND its observed success rate
is below CURATION_LOW_SUCCESS_THRESHOLD.

Extra rows (or overrides) come from settings:

    CURATION_DOMAIN_PROTECTION = {
        "example-store.com": ("high", 0.4, "Use snippets instead"),
    }

Usage:
    from curation.fetchers.protection import classify_domain

    profile = classify_domain("saksfifthavenue.com")
    if requires_confirmation(profile):
        ...
"""

import logging
from typing import Dict, Optional, Tuple

from django.conf import settings

from curation.types import DomainProtectionProfile, ProtectionLevel
from curation.utils.normalization import extract_domain

logger = logging.getLogger(__name__)


# domain -> (protection level, observed success rate, operator recommendation)
KNOWN_PROTECTION: Dict[str, Tuple[str, float, str]] = {
    "saksfifthavenue.com": (
        "ultra-high", 0.05,
        "Akamai bot manager; enter products manually",
    ),
    "neimanmarcus.com": (
        "ultra-high", 0.05,
        "Akamai bot manager; enter products manually",
    ),
    "bergdorfgoodman.com": (
        "ultra-high", 0.08,
        "Shares Neiman Marcus defenses; enter products manually",
    ),
    "nordstrom.com": (
        "high", 0.35,
        "Client-side rendered; expect partial results",
    ),
    "bloomingdales.com": (
        "high", 0.30,
        "Frequent access-denied pages; retry later or enter manually",
    ),
    "net-a-porter.com": (
        "high", 0.40,
        "Consent and region walls; expect partial results",
    ),
    "mrporter.com": (
        "high", 0.40,
        "Consent and region walls; expect partial results",
    ),
    "farfetch.com": (
        "high", 0.45,
        "Cloudflare challenge on some regions",
    ),
    "ssense.com": (
        "high", 0.30,
        "Cloudflare challenge; expect blocking",
    ),
    "mytheresa.com": (
        "low", 0.75,
        "Usually scrapes cleanly",
    ),
    "shopbop.com": (
        "low", 0.80,
        "Usually scrapes cleanly",
    ),
    "revolve.com": (
        "low", 0.85,
        "Usually scrapes cleanly",
    ),
    "fwrd.com": (
        "low", 0.80,
        "Usually scrapes cleanly",
    ),
}


def _protection_table() -> Dict[str, Tuple[str, float, str]]:
    table = dict(KNOWN_PROTECTION)
    table.update(getattr(settings, "CURATION_DOMAIN_PROTECTION", {}) or {})
    return table


def _lookup(domain: str) -> Optional[Tuple[str, Tuple[str, float, str]]]:
    """Find the table row for domain or its closest registered parent."""
    table = _protection_table()
    parts = domain.split(".")
    for i in range(len(parts) - 1):
        candidate = ".".join(parts[i:])
        if candidate in table:
            return candidate, table[candidate]
    return None


def classify_domain(domain: str) -> DomainProtectionProfile:
    """
    Classify a domain (or URL) against the protection table.

    Unknown domains get protection level "none" and an unknown
    (None) success rate.

    Args:
        domain: Bare domain or full URL

    Returns:
        DomainProtectionProfile for the domain
    """
    host = extract_domain(domain)
    match = _lookup(host) if host else None

    if match is None:
        return DomainProtectionProfile(domain=host)

    _, (level, success_rate, recommendation) = match
    profile = DomainProtectionProfile(
        domain=host,
        protection_level=ProtectionLevel(level),
        observed_success_rate=success_rate,
        recommendation=recommendation,
    )
    logger.debug(
        f"Protection for {host}: {profile.protection_level.value} "
        f"(success rate {success_rate:.0%})"
    )
    return profile


def requires_confirmation(
    profile: DomainProtectionProfile,
    threshold: Optional[float] = None,
) -> bool:
    """
    True only for ultra-high protection with a success rate below threshold.
    """
    if threshold is None:
        threshold = getattr(settings, "CURATION_LOW_SUCCESS_THRESHOLD", 0.10)

    if profile.protection_level != ProtectionLevel.ULTRA_HIGH:
        return False
    if profile.observed_success_rate is None:
        return False
    return profile.observed_success_rate < threshold
