"""
Entry points used by the surrounding curation service and the management
commands.

    profile = await resolve_brand("Tove")
    async for result in scrape_batch(urls, cancellation=token):
        ...
    profile = check_protection("https://www.saksfifthavenue.com/product/...")
    candidates = find_duplicates(new_sale, existing_sales)

Each call builds its own clients from Django settings; nothing is shared
between calls.
"""

import logging
from typing import AsyncIterator, Iterable, List, Optional, Sequence

from asgiref.sync import async_to_sync

from curation.fetchers.browser import PlaywrightBrowser
from curation.fetchers.page_fetcher import PageFetcher
from curation.fetchers.protection import classify_domain
from curation.services.ai_client import get_ai_client
from curation.services.batch_scraper import BatchScraper, CancellationToken
from curation.services.brand_research import BrandResearcher
from curation.services.dedup import find_duplicates as _find_duplicates
from curation.services.product_extractor import ProductExtractor
from curation.services.search_client import get_search_client
from curation.types import (
    BrandProfile,
    CurationRecord,
    DomainProtectionProfile,
    DuplicateCandidate,
    ScrapeResult,
)

logger = logging.getLogger(__name__)


def _search_client_or_none():
    try:
        return get_search_client()
    except ValueError as e:
        logger.warning(f"Search provider unavailable: {e}")
        return None


async def resolve_brand(brand_name: str) -> BrandProfile:
    """Resolve a brand name into a scored BrandProfile."""
    researcher = BrandResearcher(
        search_client=_search_client_or_none(),
        ai_client=get_ai_client(),
    )
    return await researcher.research(brand_name)


resolve_brand_sync = async_to_sync(resolve_brand)


async def scrape_batch(
    urls: Sequence[str],
    cancellation: Optional[CancellationToken] = None,
    confirmed: bool = False,
    browser=None,
) -> AsyncIterator[ScrapeResult]:
    """
    Scrape product URLs, yielding a ScrapeResult per URL as it completes.

    A Playwright browser is started for the batch unless one is passed in,
    and closed when the batch ends.

    Raises:
        ValueError: If urls is empty
        ConfirmationRequiredError: If a domain needs operator confirmation
    """
    own_browser = browser is None
    browser = browser or PlaywrightBrowser()
    scraper = BatchScraper(
        page_fetcher=PageFetcher(browser),
        extractor=ProductExtractor(ai_client=get_ai_client()),
    )
    try:
        async for result in scraper.scrape_batch(
            urls, cancellation=cancellation, confirmed=confirmed
        ):
            yield result
    finally:
        if own_browser:
            await browser.close()


def check_protection(url: str) -> DomainProtectionProfile:
    """Known protection profile for the domain of a URL."""
    return classify_domain(url)


def find_duplicates(
    candidate: CurationRecord,
    existing: Iterable[CurationRecord],
    threshold: Optional[float] = None,
) -> List[DuplicateCandidate]:
    """Existing records that may duplicate candidate, best match first."""
    return _find_duplicates(candidate, existing, threshold=threshold)
