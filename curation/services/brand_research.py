"""
Brand research service.

Resolves a brand name into a BrandProfile:

1. Find the brand's official domain from search results
2. Extract products for that domain (snippet tiers, then AI)
3. Resolve categories, price range and size range from the shared evidence
4. Score the result from its per-field provenance

Missing evidence never raises: each field degrades to its own fallback tier
and the quality score reflects how much real evidence backed the profile.
"""

import logging
import re
from dataclasses import replace
from typing import List, Optional

from curation.fetchers.http_fetcher import HttpPageFetcher
from curation.types import BrandProfile, SearchSnippet
from curation.utils.normalization import extract_domain, normalize_company_name

from .category import resolve_categories
from .evidence import Evidence
from .price_range import resolve_price_range
from .product_extractor import ProductExtractor
from .quality_scorer import calculate_quality_score, determine_tier
from .size_range import resolve_sizes, should_attempt_sizes

logger = logging.getLogger(__name__)


OFFICIAL_SITE_QUERY = "{brand} official website fashion brand"
SIZE_CHART_QUERY = 'site:{domain} "size chart" OR "size guide" women'

# Marketplaces, department stores and aggregators that list many brands
RESALE_DOMAINS = {
    "therealreal.com",
    "vestiairecollective.com",
    "poshmark.com",
    "ebay.com",
    "tradesy.com",
    "etsy.com",
    "depop.com",
    "grailed.com",
    "mercari.com",
    "vinted.com",
    "thredup.com",
    "rebag.com",
    "fashionphile.com",
    "yoox.com",
    "farfetch.com",
    "ssense.com",
    "net-a-porter.com",
    "mrporter.com",
    "nordstrom.com",
    "saksfifthavenue.com",
    "bergdorfgoodman.com",
    "neimanmarcus.com",
    "bloomingdales.com",
    "shopbop.com",
    "revolve.com",
    "fwrd.com",
    "matchesfashion.com",
    "mytheresa.com",
    "selfridges.com",
    "harrods.com",
    "davidjones.com",
    "lyst.com",
    "lovethesales.com",
    "shopstyle.com",
    "modesens.com",
    "intermixonline.com",
    "amazon.com",
    "walmart.com",
    "target.com",
    "shopual.com",
}


def _is_resale(host: str) -> bool:
    return any(host == d or host.endswith("." + d) for d in RESALE_DOMAINS)


def _brand_key(name: str) -> str:
    return re.sub(r"[^a-z0-9]", "", normalize_company_name(name))


def match_official_domain(brand_name: str, snippets: List[SearchSnippet]) -> Optional[str]:
    """
    Pick the first non-resale result whose hostname carries the brand name.

    A hostname label matches when, with punctuation removed, it contains the
    brand key or is contained in it (labels shorter than three characters
    never match). The domain is returned from the matching label onward, so
    "shop.tove-studio.com" yields "tove-studio.com".
    """
    key = _brand_key(brand_name)
    if not key:
        return None

    for snippet in snippets[:10]:
        host = extract_domain(snippet.url)
        if not host or _is_resale(host):
            continue

        labels = host.split(".")
        for position, label in enumerate(labels[:-1]):
            flat = re.sub(r"[^a-z0-9]", "", label)
            if len(flat) < 3:
                continue
            if key in flat or flat in key:
                return ".".join(labels[position:])
    return None


class BrandResearcher:
    """
    Orchestrates brand resolution over the search, AI and fetch capabilities.

    Usage:
        researcher = BrandResearcher(search_client=search, ai_client=ai)
        profile = await researcher.research("Tove")
    """

    def __init__(
        self,
        search_client=None,
        ai_client=None,
        http_fetcher: Optional[HttpPageFetcher] = None,
        extractor: Optional[ProductExtractor] = None,
    ):
        self.search_client = search_client
        self.ai_client = ai_client
        self.http_fetcher = http_fetcher
        self.extractor = extractor or ProductExtractor(
            search_client=search_client,
            ai_client=ai_client,
        )

    async def find_official_domain(self, brand_name: str) -> Optional[str]:
        if self.search_client is None:
            return None
        snippets = await self.search_client.search(
            OFFICIAL_SITE_QUERY.format(brand=brand_name),
            num_results=10,
        )
        domain = match_official_domain(brand_name, snippets)
        if domain:
            logger.info(f"Official domain for {brand_name}: {domain}")
        else:
            logger.info(f"No official domain found for {brand_name}")
        return domain

    async def _gather_size_evidence(self, domain: str):
        """Return (size page text, size snippets) for a domain."""
        if self.search_client is None:
            return None, ()

        snippets = await self.search_client.search(
            SIZE_CHART_QUERY.format(domain=domain),
            num_results=5,
        )
        snippets = tuple(snippets[:3])
        if not snippets:
            return None, ()

        fetcher = self.http_fetcher or HttpPageFetcher()
        try:
            page = await fetcher.fetch(snippets[0].url)
        finally:
            if self.http_fetcher is None:
                await fetcher.close()

        if not page.success:
            logger.info(f"Size chart fetch failed for {snippets[0].url}: {page.error}")
            return None, snippets
        return page.text or None, snippets

    async def research(self, brand_name: str) -> BrandProfile:
        """
        Resolve a brand into a scored BrandProfile.

        Args:
            brand_name: Brand as entered by the operator

        Returns:
            BrandProfile; fields without evidence carry their fallback
            provenance instead of raising

        Raises:
            ValueError: If brand_name is blank
        """
        brand_name = (brand_name or "").strip()
        if not brand_name:
            raise ValueError("Brand name is required")

        domain = await self.find_official_domain(brand_name)

        products, snippets = [], []
        if domain:
            extraction = await self.extractor.extract_for_brand(brand_name, domain)
            products, snippets = extraction.products, extraction.snippets

        category_resolution = resolve_categories(products, snippets)
        categories = category_resolution.categories

        evidence = Evidence(
            brand_name=brand_name,
            official_domain=domain,
            products=tuple(products),
            snippets=tuple(snippets),
        )
        price = await resolve_price_range(evidence, self.ai_client, categories)

        size_page_text, size_snippets = None, ()
        if domain and should_attempt_sizes(categories, category_resolution.provenance):
            size_page_text, size_snippets = await self._gather_size_evidence(domain)

        evidence = replace(
            evidence,
            size_page_text=size_page_text,
            size_snippets=tuple(size_snippets),
        )
        sizes = resolve_sizes(evidence, categories, category_resolution.provenance)

        completeness = {
            "priceRange": price.provenance.value,
            "categories": category_resolution.provenance.value,
            "sizes": sizes.provenance.value,
            "products": len(products),
        }
        score = calculate_quality_score(completeness)
        logger.info(
            f"Resolved {brand_name}: price={price.bucket}, sizes={sizes.label}, "
            f"categories={list(categories)}, score={score} ({determine_tier(score)})"
        )

        return BrandProfile(
            name=brand_name,
            price_range_bucket=price.bucket,
            size_range_label=sizes.label,
            categories=tuple(categories),
            quality_score=score,
            data_completeness=completeness,
            official_domain=domain,
            median_price=price.median_price,
            products=tuple(products),
        )
