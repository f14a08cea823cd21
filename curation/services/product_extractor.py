"""
Product extraction from fetched pages and search snippets.

Two entry points:

Page extraction (batch URLs)
    Deterministic extractors in fixed order, first hit wins:
        JSON-LD Product          confidence 95
        Shopify data-product-json confidence 88 (prices in cents)
        microdata itemprop=price confidence 88
        og:/product: price meta  confidence 80
        DOM heuristics           confidence 70 minus deductions, rejected below 50
    When nothing is found the AI completion service is asked for a single
    product; its result is tagged ai-estimate.

Snippet extraction (brand research)
    Tier 1: price expressions in search snippets of the primary query
    Tier 2: a second, differently-worded query merged in, de-duplicated by
            normalized product name + domain
    Tier 3: AI-assisted extraction over the whole snippet pool, tagged
            ai-estimate with a priceConfidence tier
    Each tier only runs while yield is below CURATION_MIN_PRODUCTS. The
    accepted price band widens with every tier (CURATION_PRICE_BANDS).
"""

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Tuple
from urllib.parse import urljoin

from bs4 import BeautifulSoup
from django.conf import settings

from curation.fetchers.http_fetcher import html_to_text
from curation.types import (
    ExtractionMethod,
    FailureReason,
    PriceConfidence,
    Product,
    SearchSnippet,
)
from curation.utils.normalization import (
    canonicalize_url,
    extract_domain,
    is_same_or_subdomain,
    normalize_product_name,
)

from .price_parsing import find_price_expressions, parse_price_value, within_band

logger = logging.getLogger(__name__)


PRIMARY_QUERY = "site:{domain} price $ shop buy"
SECONDARY_QUERY = "site:{domain} collection shop new arrivals"

# Snippet confidence by price expression kind
SNIPPET_CONFIDENCE = {
    "literal": 80,
    "was-now": 80,
    "range": 65,
    "from": 60,
}

# Confidence for AI-extracted products that came back without a number
AI_TIER_CONFIDENCE = {
    PriceConfidence.HIGH: 70,
    PriceConfidence.MEDIUM: 55,
    PriceConfidence.LOW: 40,
}

PRICE_SELECTORS = [
    '[class*="price"][class*="sale"]',
    '[class*="sale"][class*="price"]',
    '[class*="current-price"]',
    '[class*="currentPrice"]',
    '[data-test*="price"]',
    '[data-testid*="price"]',
    ".price",
    '[itemprop="price"]',
]

ORIGINAL_PRICE_SELECTORS = [
    '[class*="price"][class*="original"]',
    '[class*="original"][class*="price"]',
    '[class*="regular-price"]',
    '[class*="regularPrice"]',
    '[class*="was-price"]',
    '[class*="compare-at-price"]',
    '[itemprop="highPrice"]',
]

PLACEHOLDER_IMAGE_MARKERS = ["example.com", "placeholder", "data:image"]

# Title suffixes like " – Tove", " | Shop Tove"
TITLE_SUFFIX = re.compile(r"\s+[|–—-]\s+[^|–—-]*$")


@dataclass
class ExtractionResult:
    """Products found for a brand plus the snippet pool they came from."""

    products: List[Product] = field(default_factory=list)
    snippets: List[SearchSnippet] = field(default_factory=list)
    tier: int = 0
    failure_reason: Optional[FailureReason] = None
    error: Optional[str] = None


@dataclass
class PageExtraction:
    """One product from one page, or a typed failure."""

    success: bool
    product: Optional[Product] = None
    source: Optional[str] = None
    failure_reason: Optional[FailureReason] = None
    error: Optional[str] = None


def percent_off(price: Optional[float], original_price: Optional[float]) -> Optional[int]:
    if not price or not original_price or original_price <= price:
        return None
    return round((original_price - price) / original_price * 100)


def _price_pair(
    current: Optional[float],
    compare: Optional[float],
) -> Tuple[Optional[float], Optional[float]]:
    """Order a (current, compare) pair into (price, original_price)."""
    if current is None:
        return compare, None
    if compare is None or compare == current:
        return current, None
    if compare > current:
        return current, compare
    logger.debug(f"Compare price {compare} below current {current}, swapping")
    return compare, current


def _resolve_image(image_url: Optional[str], page_url: str) -> Optional[str]:
    if not image_url or not isinstance(image_url, str):
        return None
    image_url = image_url.strip()
    if image_url.startswith("data:"):
        return image_url
    if image_url.startswith("//"):
        return f"https:{image_url}"
    return urljoin(page_url, image_url)


def _clean_title(title: str) -> str:
    return TITLE_SUFFIX.sub("", title or "").strip()


def dedupe_products(products: Iterable[Product]) -> List[Product]:
    """
    Drop later products whose normalized name + domain was already seen.
    """
    seen = set()
    unique = []
    for product in products:
        key = (normalize_product_name(product.name), extract_domain(product.url))
        if not key[0] or key in seen:
            continue
        seen.add(key)
        unique.append(product)
    return unique


def dedupe_snippets(snippets: Iterable[SearchSnippet]) -> List[SearchSnippet]:
    seen = set()
    unique = []
    for snippet in snippets:
        key = canonicalize_url(snippet.url)
        if key in seen:
            continue
        seen.add(key)
        unique.append(snippet)
    return unique


class PageProductParser:
    """
    Deterministic single-product extraction from page HTML.
    """

    def __init__(self, html: str, url: str):
        self.html = html or ""
        self.url = url
        self.soup = BeautifulSoup(self.html, "html.parser")

    def parse(self) -> Optional[Tuple[Product, str]]:
        for source, extractor in (
            ("json-ld", self._from_json_ld),
            ("shopify-json", self._from_shopify_json),
            ("microdata", self._from_microdata),
            ("meta", self._from_meta),
            ("dom", self._from_dom),
        ):
            try:
                product = extractor()
            except (ValueError, TypeError, KeyError, AttributeError) as e:
                logger.debug(f"{source} extraction failed for {self.url}: {e}")
                continue
            if product is not None:
                return product, source
        return None

    def meta(self, *names: str) -> Optional[str]:
        for name in names:
            tag = self.soup.find("meta", attrs={"property": name}) or self.soup.find(
                "meta", attrs={"name": name}
            )
            if tag and tag.get("content"):
                return tag["content"].strip()
        return None

    def _heading(self) -> Optional[str]:
        h1 = self.soup.find("h1")
        if h1:
            text = h1.get_text(" ", strip=True)
            if text:
                return text
        og_title = self.meta("og:title")
        return _clean_title(og_title) if og_title else None

    def _build(
        self,
        name: Optional[str],
        current: Optional[float],
        compare: Optional[float],
        image_url: Optional[str],
        confidence: int,
    ) -> Optional[Product]:
        price, original_price = _price_pair(current, compare)
        if not name or not within_band(price, 1):
            return None
        return Product(
            name=name.strip(),
            url=self.url,
            price=price,
            original_price=original_price,
            percent_off=percent_off(price, original_price),
            image_url=_resolve_image(image_url, self.url),
            confidence=confidence,
            extraction_method=ExtractionMethod.DIRECT,
        )

    def _json_ld_items(self) -> List[Dict[str, Any]]:
        items = []
        for script in self.soup.find_all("script", attrs={"type": "application/ld+json"}):
            try:
                data = json.loads(script.string or script.get_text() or "")
            except ValueError:
                continue

            if isinstance(data, dict) and "@graph" in data:
                data = data["@graph"]
            for item in data if isinstance(data, list) else [data]:
                if isinstance(item, dict):
                    items.append(item)
        return items

    def _from_json_ld(self) -> Optional[Product]:
        for item in self._json_ld_items():
            item_type = item.get("@type")
            types = item_type if isinstance(item_type, list) else [item_type]
            if "Product" not in types:
                continue

            image = item.get("image")
            if isinstance(image, list):
                image = image[0] if image else None
            if isinstance(image, dict):
                image = image.get("url")

            offers = item.get("offers")
            if isinstance(offers, list):
                offers = offers[0] if offers else None
            if not isinstance(offers, dict):
                continue

            current = parse_price_value(offers.get("price") or offers.get("lowPrice"))
            compare = parse_price_value(offers.get("highPrice"))
            spec = offers.get("priceSpecification")
            if compare is None and isinstance(spec, dict):
                compare = parse_price_value(spec.get("price"))

            product = self._build(item.get("name"), current, compare, image, 95)
            if product is not None:
                return product
        return None

    def _from_shopify_json(self) -> Optional[Product]:
        script = self.soup.find(
            "script",
            attrs={"type": "application/json", "data-product-json": True},
        )
        if script is None:
            return None

        data = json.loads(script.string or script.get_text() or "")
        current = data.get("price")
        compare = data.get("compare_at_price")
        if current is None and data.get("variants"):
            variant = data["variants"][0]
            current = variant.get("price")
            compare = variant.get("compare_at_price")

        current = parse_price_value(current)
        compare = parse_price_value(compare)
        current = current / 100 if current else None
        compare = compare / 100 if compare else None

        image = data.get("featured_image")
        if not image and data.get("images"):
            image = data["images"][0]

        return self._build(data.get("title") or self._heading(), current, compare, image, 88)

    def _from_microdata(self) -> Optional[Product]:
        price_tag = self.soup.find(attrs={"itemprop": "price", "content": True})
        if price_tag is None:
            return None

        compare_tag = self.soup.find(
            attrs={"itemprop": re.compile(r"^(highPrice|listPrice)$"), "content": True}
        )
        name_tag = self.soup.find(attrs={"itemprop": "name"})
        name = None
        if name_tag is not None:
            name = name_tag.get("content") or name_tag.get_text(" ", strip=True)

        image_tag = self.soup.find(attrs={"itemprop": "image"})
        image = None
        if image_tag is not None:
            image = image_tag.get("content") or image_tag.get("src") or image_tag.get("href")

        return self._build(
            name or self._heading(),
            parse_price_value(price_tag["content"]),
            parse_price_value(compare_tag["content"]) if compare_tag else None,
            image or self.meta("og:image"),
            88,
        )

    def _from_meta(self) -> Optional[Product]:
        current = parse_price_value(
            self.meta("product:price:amount", "og:price:amount")
        )
        if current is None:
            return None
        compare = parse_price_value(
            self.meta("product:original_price:amount", "og:original_price:amount")
        )
        return self._build(self._heading(), current, compare, self.meta("og:image"), 80)

    def _select_price(self, selectors: List[str]) -> Optional[float]:
        for selector in selectors:
            element = self.soup.select_one(selector)
            if element is None:
                continue
            text = element.get("content") or element.get_text(" ", strip=True)
            match = re.search(r"\d[\d,]*\.?\d*", text or "")
            if match:
                return parse_price_value(match.group(0))
        return None

    def _from_dom(self) -> Optional[Product]:
        name = self._heading()
        image = self.meta("og:image")
        if not image:
            for selector in ('img[class*="product"]', 'img[class*="main"]'):
                element = self.soup.select_one(selector)
                if element is not None and element.get("src"):
                    image = element["src"]
                    break
        image = _resolve_image(image, self.url)

        current = self._select_price(PRICE_SELECTORS)
        compare = self._select_price(ORIGINAL_PRICE_SELECTORS)

        confidence = 70
        if not name:
            confidence -= 30
        if not image:
            confidence -= 20
        if not current:
            confidence -= 20
        if image and any(marker in image for marker in PLACEHOLDER_IMAGE_MARKERS):
            confidence -= 20

        if confidence < 50:
            logger.debug(f"DOM extraction confidence too low ({confidence}) for {self.url}")
            return None

        return self._build(name, current, compare, image, confidence)


def extract_from_page(html: str, url: str) -> Optional[Product]:
    """Deterministic page extraction; None when no product was found."""
    parsed = PageProductParser(html, url).parse()
    return parsed[0] if parsed else None


def extract_from_snippets(
    snippets: Iterable[SearchSnippet],
    domain: str,
    tier: int = 1,
) -> List[Product]:
    """
    Pattern extraction over search snippets restricted to domain.

    Each snippet contributes at most one product: the first accepted price
    expression whose price falls in the tier's band.
    """
    products = []
    for snippet in snippets:
        if not is_same_or_subdomain(snippet.url, domain):
            continue

        name = _clean_title(snippet.title)
        if not name:
            continue

        for parsed in find_price_expressions(snippet.text):
            if not within_band(parsed.reference_price, tier):
                continue
            products.append(
                Product(
                    name=name,
                    url=snippet.url,
                    price=parsed.price,
                    original_price=parsed.original_price,
                    percent_off=percent_off(parsed.price, parsed.original_price),
                    confidence=SNIPPET_CONFIDENCE.get(parsed.kind, 60),
                    extraction_method=ExtractionMethod.SNIPPET,
                )
            )
            break

    return dedupe_products(products)


def _price_confidence(value) -> PriceConfidence:
    try:
        return PriceConfidence(str(value).lower())
    except ValueError:
        return PriceConfidence.LOW


def products_from_ai(
    items: Any,
    domain: Optional[str],
    tier: int = 3,
) -> List[Product]:
    """
    Normalize AI product output into ai-estimate Products.

    Items must carry a name, a URL on domain (when a domain is given) and a
    price within the tier's band; anything else is dropped.
    """
    if not isinstance(items, list):
        return []

    products = []
    for item in items:
        if not isinstance(item, dict):
            continue

        name = str(item.get("name") or "").strip()
        url = str(item.get("url") or "").strip()
        price = parse_price_value(item.get("price"))
        original_price = parse_price_value(item.get("originalPrice"))

        if not name or not url:
            continue
        if domain and not is_same_or_subdomain(url, domain):
            logger.debug(f"Dropping AI product on foreign domain: {url}")
            continue
        price, original_price = _price_pair(price, original_price)
        if not within_band(original_price or price, tier):
            logger.debug(f"Dropping AI product with suspicious price: {name} ${price}")
            continue

        price_confidence = _price_confidence(item.get("priceConfidence"))
        confidence = item.get("confidence")
        if not isinstance(confidence, int) or not 0 <= confidence <= 100:
            confidence = AI_TIER_CONFIDENCE[price_confidence]

        products.append(
            Product(
                name=name,
                url=url,
                price=price,
                original_price=original_price,
                percent_off=percent_off(price, original_price),
                image_url=item.get("imageUrl") or None,
                confidence=confidence,
                extraction_method=ExtractionMethod.AI_ESTIMATE,
                price_confidence=price_confidence,
            )
        )
    return products


class ProductExtractor:
    """
    Turns page content or search snippets into Product candidates.

    Usage:
        extractor = ProductExtractor(search_client=search, ai_client=ai)
        result = await extractor.extract_for_brand("Tove", "tove-studio.com")
        page = await extractor.extract_page(html, url)
    """

    def __init__(
        self,
        search_client=None,
        ai_client=None,
        min_products: Optional[int] = None,
    ):
        """
        Initialize the extractor.

        Args:
            search_client: Search snippet provider (required for brand extraction)
            ai_client: AI completion capability; AI tiers are skipped without one
            min_products: Yield threshold that triggers fallback tiers
        """
        self.search_client = search_client
        self.ai_client = ai_client
        self.min_products = min_products or getattr(settings, "CURATION_MIN_PRODUCTS", 3)

    async def extract_page(self, html: str, url: str) -> PageExtraction:
        """
        Extract the product on a fetched page.

        Returns:
            PageExtraction; PARSE_ERROR when neither the deterministic
            extractors nor the AI fallback produced a product
        """
        parser = PageProductParser(html, url)
        parsed = parser.parse()
        if parsed is not None:
            product, source = parsed
            logger.info(
                f"Extracted '{product.name}' from {url} via {source} "
                f"(confidence: {product.confidence})"
            )
            return PageExtraction(success=True, product=product, source=source)

        if self.ai_client is None:
            return PageExtraction(
                success=False,
                failure_reason=FailureReason.PARSE_ERROR,
                error="No product data found on page",
            )

        text = html_to_text(html)[:8000]
        if not text:
            return PageExtraction(
                success=False,
                failure_reason=FailureReason.PARSE_ERROR,
                error="Page has no readable content",
            )

        result = await self.ai_client.extract_or_estimate({
            "task": "extract_page",
            "url": url,
            "text": text,
            "image_hint": parser.meta("og:image"),
        })
        if not result.success:
            return PageExtraction(
                success=False,
                failure_reason=FailureReason.PARSE_ERROR,
                error=f"AI page extraction failed: {result.error}",
            )

        item = dict(result.data)
        item.setdefault("url", url)
        if result.confidence and "confidence" not in item:
            item["confidence"] = result.confidence
        products = products_from_ai([item], extract_domain(url), tier=3)
        if not products:
            return PageExtraction(
                success=False,
                failure_reason=FailureReason.PARSE_ERROR,
                error="AI page extraction returned no usable product",
            )

        logger.info(f"AI-extracted '{products[0].name}' from {url}")
        return PageExtraction(success=True, product=products[0], source="ai")

    async def extract_for_brand(self, brand_name: str, domain: str) -> ExtractionResult:
        """
        Run the snippet extraction tiers for a brand's official domain.

        Args:
            brand_name: Brand being researched
            domain: Official domain; products on other domains are dropped

        Returns:
            ExtractionResult with products, the snippet pool, and the
            highest tier that ran. failure_reason is NO_EVIDENCE when every
            tier came back empty.
        """
        result = ExtractionResult()
        if self.search_client is None:
            result.failure_reason = FailureReason.NO_EVIDENCE
            result.error = "No search provider configured"
            return result

        # Tier 1
        result.tier = 1
        primary = await self.search_client.search(PRIMARY_QUERY.format(domain=domain))
        result.snippets = dedupe_snippets(primary)
        result.products = extract_from_snippets(result.snippets, domain, tier=1)
        logger.info(f"Tier 1 for {brand_name}: {len(result.products)} products")

        # Tier 2
        if len(result.products) < self.min_products:
            result.tier = 2
            secondary = await self.search_client.search(SECONDARY_QUERY.format(domain=domain))
            result.snippets = dedupe_snippets(result.snippets + list(secondary))
            result.products = dedupe_products(
                result.products + extract_from_snippets(result.snippets, domain, tier=2)
            )
            logger.info(f"Tier 2 for {brand_name}: {len(result.products)} products")

        # Tier 3
        if len(result.products) < self.min_products and self.ai_client is not None and result.snippets:
            result.tier = 3
            ai_result = await self.ai_client.extract_or_estimate({
                "task": "extract_products",
                "brand": brand_name,
                "domain": domain,
                "snippets": [
                    {"title": s.title, "snippet": s.snippet, "url": s.url}
                    for s in result.snippets[:15]
                ],
            })
            if ai_result.success:
                ai_products = products_from_ai(ai_result.data.get("products"), domain, tier=3)
                result.products = dedupe_products(result.products + ai_products)
            else:
                logger.warning(f"AI product extraction failed for {brand_name}: {ai_result.error}")
            logger.info(f"Tier 3 for {brand_name}: {len(result.products)} products")

        if not result.products:
            result.failure_reason = FailureReason.NO_EVIDENCE
        return result
