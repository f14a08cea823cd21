"""
Price range resolution (three-tier policy).

    Tier A  >= 3 priced products  median -> bucket, provenance "products"
    Tier B  1-2 priced products   median -> bucket, provenance "limited-products"
    Tier C  0 priced products     AI estimate -> bucket, provenance "estimated"

The tier is chosen solely by how many priced products the extractor already
produced; the resolver never retries or searches on its own. When Tier C
fails the bucket stays empty and the provenance is "none".

Each product contributes its reference price (original price when it is on
sale) so discounted items do not drag the brand down a bucket.
"""

import logging
from dataclasses import dataclass
from statistics import median
from typing import Iterable, Optional, Sequence

from django.conf import settings

from curation.types import FailureReason, PriceProvenance, Product

from .evidence import Evidence
from .price_parsing import parse_price_value, within_band

logger = logging.getLogger(__name__)

BUCKETS = ("$", "$$", "$$$", "$$$$")


@dataclass(frozen=True)
class PriceRangeResolution:
    bucket: Optional[str]
    provenance: PriceProvenance
    median_price: Optional[float] = None
    product_count: int = 0
    failure_reason: Optional[FailureReason] = None
    error: Optional[str] = None


def bucket_for_price(price: float, breakpoints: Optional[Sequence[float]] = None) -> str:
    """
    Map a price to a bucket.

    With the default breakpoints (100, 300, 800):
    < 100 "$", < 300 "$$", < 800 "$$$", otherwise "$$$$".
    """
    if breakpoints is None:
        breakpoints = getattr(settings, "CURATION_PRICE_BREAKPOINTS", (100, 300, 800))

    for bucket, limit in zip(BUCKETS, breakpoints):
        if price < limit:
            return bucket
    return BUCKETS[-1]


def select_tier(product_count: int) -> PriceProvenance:
    """Provenance tag implied by the number of priced products."""
    if product_count >= 3:
        return PriceProvenance.PRODUCTS
    if product_count >= 1:
        return PriceProvenance.LIMITED_PRODUCTS
    return PriceProvenance.ESTIMATED


def resolve_from_products(products: Iterable[Product]) -> Optional[PriceRangeResolution]:
    """
    Tiers A and B. Returns None when there are no priced products (Tier C).
    """
    prices = [p.reference_price for p in products if p.reference_price]
    if not prices:
        return None

    median_price = median(prices)
    provenance = select_tier(len(prices))
    bucket = bucket_for_price(median_price)

    logger.info(
        f"Price range {bucket} from median ${median_price:.0f} "
        f"({len(prices)} products, {provenance.value})"
    )
    return PriceRangeResolution(
        bucket=bucket,
        provenance=provenance,
        median_price=median_price,
        product_count=len(prices),
    )


async def estimate_price_range(
    evidence: Evidence,
    ai_client,
    categories: Sequence[str] = (),
) -> PriceRangeResolution:
    """
    Tier C: ask the AI completion capability for a typical full price.
    """
    if ai_client is None:
        return PriceRangeResolution(
            bucket=None,
            provenance=PriceProvenance.NONE,
            failure_reason=FailureReason.ESTIMATION_FAILURE,
            error="No AI completion capability configured",
        )

    result = await ai_client.extract_or_estimate({
        "task": "estimate_price",
        "brand": evidence.brand_name,
        "domain": evidence.official_domain,
        "categories": list(categories),
        "search_titles": [s.title for s in evidence.snippets[:5]],
    })

    if not result.success:
        logger.warning(f"Price estimation failed for {evidence.brand_name}: {result.error}")
        return PriceRangeResolution(
            bucket=None,
            provenance=PriceProvenance.NONE,
            failure_reason=FailureReason.ESTIMATION_FAILURE,
            error=result.error,
        )

    estimate = parse_price_value(result.data.get("price"))
    if not within_band(estimate, 3):
        logger.warning(
            f"Unusable price estimate for {evidence.brand_name}: {result.data.get('price')!r}"
        )
        return PriceRangeResolution(
            bucket=None,
            provenance=PriceProvenance.NONE,
            failure_reason=FailureReason.ESTIMATION_FAILURE,
            error="Estimate missing or outside accepted band",
        )

    bucket = bucket_for_price(estimate)
    logger.info(f"Estimated price for {evidence.brand_name}: ${estimate:.0f} -> {bucket}")
    return PriceRangeResolution(
        bucket=bucket,
        provenance=PriceProvenance.ESTIMATED,
        median_price=estimate,
    )


async def resolve_price_range(
    evidence: Evidence,
    ai_client=None,
    categories: Sequence[str] = (),
) -> PriceRangeResolution:
    """
    Resolve the price bucket for a brand.

    Args:
        evidence: Evidence pool for the brand
        ai_client: AI completion capability, used only for Tier C
        categories: Resolved categories, passed as context to Tier C

    Returns:
        PriceRangeResolution; never raises for missing evidence
    """
    resolution = resolve_from_products(evidence.products)
    if resolution is not None:
        return resolution

    logger.info(f"No priced products for {evidence.brand_name}, estimating")
    return await estimate_price_range(evidence, ai_client, categories)
