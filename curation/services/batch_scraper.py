"""
Batch scraping orchestrator.

Runs fetch + extract for every URL of a batch on a fixed-size worker pool
and yields one ScrapeResult per URL as soon as it completes.

Circuit breaker:
    Each batch owns one DomainCircuitBreaker (carried by its ScrapeJob and
    passed explicitly to every worker). When a URL is classified BLOCKING
    its domain is tripped; every later URL on that domain resolves as
    "skipped" without a fetch. URLs on the same domain are processed one at
    a time, in batch order, so a trip is always visible to the next URL.
    A single-domain batch therefore gains nothing from a larger worker pool.

Retries:
    TIMEOUT failures (navigation timeouts, 5xx) are retried up to
    CURATION_MAX_RETRIES times with backoff base ** (attempt + 1) seconds.
    BLOCKING is never retried.

Cancellation:
    Workers stop taking new URLs once the CancellationToken is set.
    In-flight URLs finish and are still yielded; URLs never started produce
    no result.

Preconditions (raised, fatal to the batch):
    - ValueError for an empty URL list
    - ConfirmationRequiredError when a domain is ultra-high protection with
      a low success rate and the caller did not pass confirmed=True

Usage:
    scraper = BatchScraper(page_fetcher, extractor)
    token = CancellationToken()
    async for result in scraper.scrape_batch(urls, cancellation=token):
        ...
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import AsyncIterator, Dict, List, Optional, Sequence

from django.conf import settings

from curation.fetchers.protection import classify_domain, requires_confirmation
from curation.monitoring import add_scrape_breadcrumb, capture_scrape_error
from curation.types import (
    DomainProtectionProfile,
    FailureReason,
    ScrapeJob,
    ScrapeResult,
    UrlStatus,
)
from curation.utils.normalization import extract_domain

logger = logging.getLogger(__name__)

# Sentinel a worker puts on the result queue when it exits
_WORKER_DONE = object()


class ConfirmationRequiredError(Exception):
    """Raised when a batch touches domains that need operator confirmation."""

    def __init__(self, profiles: List[DomainProtectionProfile]):
        self.profiles = profiles
        domains = ", ".join(p.domain for p in profiles)
        super().__init__(f"Operator confirmation required for: {domains}")


class CancellationToken:
    """Signal shared between the caller and the workers of one batch."""

    def __init__(self):
        self._event = asyncio.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


@dataclass
class PreflightReport:
    """Protection profile for each distinct domain of a batch."""

    profiles: Dict[str, DomainProtectionProfile] = field(default_factory=dict)

    @property
    def needs_confirmation(self) -> List[DomainProtectionProfile]:
        return [p for p in self.profiles.values() if requires_confirmation(p)]


class BatchScraper:
    """
    Bounded-concurrency fetch/extract over a batch of product URLs.

    Stateless between batches: everything shared by the workers of a batch
    lives on that batch's ScrapeJob.

    Concurrency is across domains only. URLs on one domain run one at a
    time, so a batch on a single domain is sequential whatever pool_size is.
    """

    def __init__(
        self,
        page_fetcher,
        extractor,
        pool_size: Optional[int] = None,
        max_retries: Optional[int] = None,
        backoff_base: Optional[float] = None,
    ):
        """
        Initialize the orchestrator.

        Args:
            page_fetcher: Object with async fetch(url) -> PageFetchResult
            extractor: Object with async extract_page(html, url) -> PageExtraction
            pool_size: Number of workers (default CURATION_WORKER_POOL_SIZE)
            max_retries: Retries for TIMEOUT (default CURATION_MAX_RETRIES)
            backoff_base: Backoff base in seconds (default CURATION_RETRY_BACKOFF_BASE)
        """
        self.page_fetcher = page_fetcher
        self.extractor = extractor
        self.pool_size = pool_size or getattr(settings, "CURATION_WORKER_POOL_SIZE", 4)
        self.max_retries = (
            max_retries if max_retries is not None
            else getattr(settings, "CURATION_MAX_RETRIES", 2)
        )
        self.backoff_base = (
            backoff_base if backoff_base is not None
            else getattr(settings, "CURATION_RETRY_BACKOFF_BASE", 2.0)
        )

    def preflight(self, urls: Sequence[str]) -> PreflightReport:
        """Classify every distinct domain of a batch."""
        report = PreflightReport()
        for url in urls:
            domain = extract_domain(url)
            if domain and domain not in report.profiles:
                report.profiles[domain] = classify_domain(domain)
        return report

    async def scrape_batch(
        self,
        urls: Sequence[str],
        cancellation: Optional[CancellationToken] = None,
        confirmed: bool = False,
    ) -> AsyncIterator[ScrapeResult]:
        """
        Scrape a batch of URLs, yielding results as they complete.

        Args:
            urls: Product URLs, in operator order
            cancellation: Token that stops new fetches when cancelled
            confirmed: Operator confirmed domains that require confirmation

        Yields:
            ScrapeResult per completed URL, in completion order

        Raises:
            ValueError: If no URLs were provided
            ConfirmationRequiredError: If confirmation is needed but not given
        """
        if not urls:
            raise ValueError("No URLs provided")

        report = self.preflight(urls)
        pending_confirmation = report.needs_confirmation
        if pending_confirmation and not confirmed:
            raise ConfirmationRequiredError(pending_confirmation)

        job = ScrapeJob(urls=list(urls))
        work: asyncio.Queue = asyncio.Queue()
        for index, url in enumerate(job.urls):
            work.put_nowait((index, url))

        results: asyncio.Queue = asyncio.Queue()
        worker_count = min(self.pool_size, len(job.urls))
        logger.info(f"Starting batch of {len(job.urls)} URLs with {worker_count} workers")

        workers = [
            asyncio.create_task(self._worker(job, work, results, cancellation))
            for _ in range(worker_count)
        ]

        remaining = worker_count
        try:
            while remaining:
                item = await results.get()
                if item is _WORKER_DONE:
                    remaining -= 1
                    continue
                job.record(item)
                yield item
        finally:
            for worker in workers:
                if not worker.done():
                    worker.cancel()
            await asyncio.gather(*workers, return_exceptions=True)

        succeeded = sum(1 for s in job.statuses.values() if s == UrlStatus.SUCCESS)
        logger.info(
            f"Batch finished: {succeeded}/{len(job.urls)} succeeded, "
            f"{len(job.pending_urls)} not started, "
            f"failures: {job.failure_counts() or 'none'}, "
            f"blocked domains: {job.circuit_breaker.blocked_domains or 'none'}"
        )

    async def _worker(
        self,
        job: ScrapeJob,
        work: asyncio.Queue,
        results: asyncio.Queue,
        cancellation: Optional[CancellationToken],
    ) -> None:
        try:
            while True:
                if cancellation is not None and cancellation.cancelled:
                    break
                try:
                    index, url = work.get_nowait()
                except asyncio.QueueEmpty:
                    break
                result = await self._process(job, index, url, cancellation)
                if result is not None:
                    results.put_nowait(result)
        finally:
            results.put_nowait(_WORKER_DONE)

    async def _process(
        self,
        job: ScrapeJob,
        index: int,
        url: str,
        cancellation: Optional[CancellationToken] = None,
    ) -> Optional[ScrapeResult]:
        """Run one URL under its domain lock; None if cancelled before it started."""
        domain = extract_domain(url)
        breaker = job.circuit_breaker

        lock = await breaker.domain_lock(domain)
        async with lock:
            if cancellation is not None and cancellation.cancelled:
                logger.info(f"Cancelled before start: {url}")
                return None

            if await breaker.is_open(domain):
                logger.info(f"Skipped {url}: domain {domain} is blocked")
                return ScrapeResult(
                    url=url,
                    index=index,
                    status=UrlStatus.SKIPPED,
                    domain=domain,
                    failure_reason=FailureReason.BLOCKING,
                    error=f"Skipped: domain {domain} is blocked",
                )

            try:
                return await self._fetch_and_extract(job, index, url, domain)
            except Exception as e:
                logger.exception(f"Unexpected error processing {url}")
                capture_scrape_error(error=e, url=url, stage="process", domain=domain)
                return ScrapeResult(
                    url=url,
                    index=index,
                    status=UrlStatus.FAILED,
                    domain=domain,
                    failure_reason=FailureReason.PARSE_ERROR,
                    error=f"{type(e).__name__}: {e}",
                )

    async def _fetch_and_extract(
        self,
        job: ScrapeJob,
        index: int,
        url: str,
        domain: str,
    ) -> ScrapeResult:
        attempts = 0
        fetch = None

        for attempt in range(self.max_retries + 1):
            attempts += 1
            add_scrape_breadcrumb(url, "fetch", message=f"Fetch attempt {attempts}")
            fetch = await self.page_fetcher.fetch(url)

            if fetch.success or fetch.failure_reason != FailureReason.TIMEOUT:
                break
            if attempt < self.max_retries:
                delay = self.backoff_base ** (attempt + 1)
                logger.info(f"Retrying {url} in {delay:.0f}s after timeout")
                await asyncio.sleep(delay)

        if not fetch.success:
            if fetch.failure_reason == FailureReason.BLOCKING:
                await job.circuit_breaker.trip(domain, url)
                logger.warning(f"Domain {domain} blocked at {url}; skipping its remaining URLs")

            return ScrapeResult(
                url=url,
                index=index,
                status=UrlStatus.FAILED,
                domain=domain,
                failure_reason=fetch.failure_reason,
                error=fetch.error,
                attempts=attempts,
            )

        add_scrape_breadcrumb(url, "extract", message="Extracting product")
        extraction = await self.extractor.extract_page(fetch.content, url)
        if not extraction.success:
            return ScrapeResult(
                url=url,
                index=index,
                status=UrlStatus.FAILED,
                domain=domain,
                failure_reason=extraction.failure_reason or FailureReason.PARSE_ERROR,
                error=extraction.error,
                attempts=attempts,
            )

        logger.info(f"Scraped {url}: '{extraction.product.name}'")
        return ScrapeResult(
            url=url,
            index=index,
            status=UrlStatus.SUCCESS,
            domain=domain,
            product=extraction.product,
            attempts=attempts,
        )
