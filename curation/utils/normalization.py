"""
Name and URL normalization utility functions.

Provides the normalization used for product de-duplication, company name
matching and domain bookkeeping.

Normalization Rules (product names):
- Lowercase transformation
- Remove trademark symbols (R), (TM)
- Remove quotes and apostrophes
- Drop colour/size suffixes after " - " or " | "
- Collapse whitespace

Normalization Rules (company names):
- Case-fold
- "&" -> "and"
- Remove punctuation
- Strip trailing legal-entity suffixes (Inc, LLC, Ltd, GmbH, ...)
"""

import ipaddress
import re
from typing import Optional, Tuple
from urllib.parse import parse_qs, urlencode, urlparse, urlunparse


# Trailing legal-entity designators removed from company names
LEGAL_SUFFIXES = {
    "inc",
    "incorporated",
    "llc",
    "llp",
    "ltd",
    "limited",
    "co",
    "company",
    "corp",
    "corporation",
    "gmbh",
    "ag",
    "sa",
    "srl",
    "spa",
    "bv",
    "nv",
    "plc",
    "pty",
    "pte",
    "oy",
    "ab",
    "as",
}

# Query parameters that never change which product a URL points to
TRACKING_PARAMS = {
    "utm_source",
    "utm_medium",
    "utm_campaign",
    "utm_term",
    "utm_content",
    "fbclid",
    "gclid",
    "msclkid",
    "ref",
    "mc_cid",
    "mc_eid",
}

BLOCKED_HOSTNAMES = {"localhost", "metadata.google.internal"}


def normalize_product_name(name: str) -> str:
    """
    Normalize a product name for de-duplication.

    Example:
        >>> normalize_product_name("The Vera Dress™ - Black")
        'the vera dress'
    """
    if not name:
        return ""

    result = name.strip().lower()
    if not result:
        return ""

    result = re.sub(r"\(r\)|\(tm\)|®|™", "", result)
    result = re.sub(r"['‘’\"“”`]", "", result)

    # "Vera Dress - Black" / "Vera Dress | Brand" -> "vera dress"
    result = re.split(r"\s+[-|–]\s+", result)[0]

    result = re.sub(r"\s+", " ", result)
    return result.strip()


def normalize_company_name(name: str) -> str:
    """
    Normalize a company name for duplicate detection.

    Example:
        >>> normalize_company_name("Acme & Sons, Inc.")
        'acme and sons'
    """
    if not name:
        return ""

    result = name.casefold().strip()
    result = result.replace("&", " and ")
    result = re.sub(r"[^\w\s]", " ", result)
    result = result.replace("_", " ")

    words = result.split()
    while len(words) > 1 and words[-1] in LEGAL_SUFFIXES:
        words.pop()

    return " ".join(words)


def extract_domain(url: str) -> str:
    """
    Return the lowercase host of url without a leading "www.".

    A bare host ("brand-a.com") is accepted as well as a full URL.
    """
    if not url:
        return ""

    candidate = url.strip()
    if "://" not in candidate:
        candidate = f"https://{candidate}"

    host = (urlparse(candidate).hostname or "").lower()
    if host.startswith("www."):
        host = host[4:]
    return host


def is_same_or_subdomain(host: str, domain: str) -> bool:
    """True if host equals domain or is one of its subdomains."""
    host = extract_domain(host)
    domain = extract_domain(domain)
    if not host or not domain:
        return False
    return host == domain or host.endswith(f".{domain}")


def canonicalize_url(url: str) -> str:
    """
    Canonicalize a URL for de-duplication.

    Lowercases scheme and host, drops "www.", fragments, tracking parameters
    and trailing slashes, and sorts the remaining query parameters.
    """
    if not url:
        return ""

    parsed = urlparse(url.strip())
    netloc = parsed.netloc.lower()
    if netloc.startswith("www."):
        netloc = netloc[4:]

    path = parsed.path.rstrip("/")

    query = ""
    if parsed.query:
        params = parse_qs(parsed.query, keep_blank_values=True)
        kept = {
            key: value for key, value in params.items()
            if key.lower() not in TRACKING_PARAMS
        }
        query = urlencode(sorted(kept.items()), doseq=True)

    return urlunparse((parsed.scheme.lower(), netloc, path, "", query, ""))


def validate_url(url: str) -> Tuple[bool, Optional[str]]:
    """
    Check that url is safe to fetch.

    Only http(s) URLs with a public host are accepted; loopback, private,
    link-local and reserved addresses are refused.

    Returns:
        (is_valid, error_message)
    """
    if not url or not isinstance(url, str):
        return False, "URL is required"

    parsed = urlparse(url.strip())
    if parsed.scheme not in ("http", "https"):
        return False, f"Unsupported URL scheme: {parsed.scheme or 'none'}"

    host = (parsed.hostname or "").lower()
    if not host:
        return False, "URL has no host"

    if host in BLOCKED_HOSTNAMES or host.endswith(".local") or host.endswith(".internal"):
        return False, f"Refusing to fetch internal host: {host}"

    try:
        address = ipaddress.ip_address(host)
    except ValueError:
        return True, None

    if (
        address.is_private
        or address.is_loopback
        or address.is_link_local
        or address.is_reserved
        or address.is_multicast
        or address.is_unspecified
    ):
        return False, f"Refusing to fetch private address: {host}"

    return True, None
