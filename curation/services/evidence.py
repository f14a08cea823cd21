"""
Evidence pool shared by the brand-level resolvers.

Price, size and category resolution each read the same Evidence value and
apply their own tiering policy to it; none of them mutates it.
"""

from dataclasses import dataclass
from typing import Optional, Tuple

from curation.types import Product, SearchSnippet


@dataclass(frozen=True)
class Evidence:
    """
    Everything gathered for one brand before resolution.

    Attributes:
        brand_name: Brand as entered by the operator
        official_domain: Brand's own domain, None when it could not be found
        products: Products produced by the extractor (any method)
        snippets: Search snippets from the product queries
        size_page_text: Text of a fetched size-chart page, if one was fetched
        size_snippets: Search snippets from the size-chart query
    """

    brand_name: str
    official_domain: Optional[str] = None
    products: Tuple[Product, ...] = ()
    snippets: Tuple[SearchSnippet, ...] = ()
    size_page_text: Optional[str] = None
    size_snippets: Tuple[SearchSnippet, ...] = ()

    @property
    def priced_products(self) -> Tuple[Product, ...]:
        return tuple(p for p in self.products if p.reference_price)
