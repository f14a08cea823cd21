"""
Utility functions for the curation pipeline.
"""

from .normalization import (
    canonicalize_url,
    extract_domain,
    normalize_company_name,
    normalize_product_name,
    validate_url,
)

__all__ = [
    "canonicalize_url",
    "extract_domain",
    "normalize_company_name",
    "normalize_product_name",
    "validate_url",
]
