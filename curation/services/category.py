"""
Category resolution.

Category tags are built from product names AND search result
titles/snippets. Matching is liberal: one keyword hit anywhere in the pool
is enough to include a category. When nothing matches, the fixed default
category is applied and tagged "default" so a reviewer can tell it apart
from a derived value.
"""

import logging
import re
from dataclasses import dataclass
from typing import Dict, Iterable, List, Tuple

from curation.types import CategoryProvenance, Product, SearchSnippet

logger = logging.getLogger(__name__)


DEFAULT_CATEGORY = "Clothing"

# Output order follows this table
CATEGORY_KEYWORDS: Dict[str, List[str]] = {
    "Clothing": [
        "clothing", "apparel", "ready-to-wear", "dress", "dresses", "top", "tops",
        "shirt", "shirts", "t-shirt", "tee", "blouse", "skirt", "skirts",
        "pants", "trousers", "jeans", "denim", "shorts", "jacket", "jackets",
        "coat", "coats", "blazer", "suit", "sweater", "sweaters", "knit",
        "knitwear", "cardigan", "jumpsuit", "outerwear", "loungewear",
        "lingerie", "hoodie", "sweatshirt",
    ],
    "Shoes": [
        "shoes", "shoe", "footwear", "boots", "boot", "sneakers", "sandals",
        "heels", "loafers", "mules", "flats", "pumps", "slides", "espadrilles",
    ],
    "Bags": [
        "bag", "bags", "handbag", "handbags", "tote", "clutch", "backpack",
        "crossbody", "purse", "shoulder bag",
    ],
    "Accessories": [
        "accessories", "belt", "belts", "scarf", "scarves", "hat", "hats",
        "sunglasses", "gloves", "wallet", "socks", "headband",
    ],
    "Jewelry": [
        "jewelry", "jewellery", "necklace", "necklaces", "earrings", "ring",
        "rings", "bracelet", "bracelets", "pendant",
    ],
    "Swimwear": [
        "swimwear", "swim", "swimsuit", "swimsuits", "bikini", "one-piece",
        "beachwear",
    ],
    "Homewares": [
        "homewares", "homeware", "home decor", "home goods", "candle",
        "candles", "bedding", "towels", "ceramics", "vase", "cushion",
        "throw pillow",
    ],
}

_PATTERNS = {
    category: re.compile(
        r"\b(" + "|".join(re.escape(k) for k in keywords) + r")\b",
        re.IGNORECASE,
    )
    for category, keywords in CATEGORY_KEYWORDS.items()
}


@dataclass(frozen=True)
class CategoryResolution:
    categories: Tuple[str, ...]
    provenance: CategoryProvenance


def category_context(
    products: Iterable[Product],
    snippets: Iterable[SearchSnippet],
) -> str:
    """Text pool the categories are matched against."""
    parts = [p.name for p in products]
    parts.extend(s.text for s in snippets)
    return "\n".join(parts)


def match_categories(text: str) -> List[str]:
    return [
        category for category, pattern in _PATTERNS.items()
        if pattern.search(text or "")
    ]


def resolve_categories(
    products: Iterable[Product],
    snippets: Iterable[SearchSnippet],
) -> CategoryResolution:
    """
    Resolve category tags from product names and search snippets.

    Returns:
        CategoryResolution, never with an empty category tuple
    """
    categories = match_categories(category_context(products, snippets))
    if not categories:
        logger.info(f"No categories detected, defaulting to {DEFAULT_CATEGORY}")
        return CategoryResolution(
            categories=(DEFAULT_CATEGORY,),
            provenance=CategoryProvenance.DEFAULT,
        )

    logger.info(f"Categories: {', '.join(categories)}")
    return CategoryResolution(
        categories=tuple(categories),
        provenance=CategoryProvenance.DERIVED,
    )
