"""
Curation services.

- product_extractor: products from pages and search snippets
- price_range / size_range / category: per-field resolvers over Evidence
- quality_scorer: provenance-weighted quality score
- brand_research: brand name -> BrandProfile
- batch_scraper: bounded-concurrency product URL batches
- dedup: duplicate brand/sale detection
"""

from .batch_scraper import BatchScraper, CancellationToken, ConfirmationRequiredError
from .brand_research import BrandResearcher
from .dedup import find_duplicates
from .product_extractor import ProductExtractor
from .quality_scorer import calculate_quality_score, determine_tier

__all__ = [
    "BatchScraper",
    "BrandResearcher",
    "CancellationToken",
    "ConfirmationRequiredError",
    "ProductExtractor",
    "calculate_quality_score",
    "determine_tier",
    "find_duplicates",
]
