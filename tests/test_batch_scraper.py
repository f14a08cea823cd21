"""
Tests for the batch scraping orchestrator.

Page fetching and extraction are scripted per URL so the circuit breaker,
retry and cancellation behaviour can be checked without a browser.
"""

import asyncio
from unittest.mock import patch

import pytest


class ScriptedFetcher:
    """Returns scripted PageFetchResults per URL, in call order."""

    def __init__(self, script=None):
        self.script = {url: list(outcomes) for url, outcomes in (script or {}).items()}
        self.calls = []

    async def fetch(self, url):
        from curation.fetchers.page_fetcher import PageFetchResult

        self.calls.append(url)
        await asyncio.sleep(0)
        outcomes = self.script.get(url)
        if outcomes:
            return outcomes.pop(0) if len(outcomes) > 1 else outcomes[0]
        return PageFetchResult(url=url, success=True, content=f"<html>{url}</html>")


class GatedFetcher(ScriptedFetcher):
    """Holds every fetch until the gate opens; started is set on the first call."""

    def __init__(self, gate):
        super().__init__()
        self.gate = gate
        self.started = asyncio.Event()

    async def fetch(self, url):
        self.calls.append(url)
        self.started.set()
        await self.gate.wait()
        from curation.fetchers.page_fetcher import PageFetchResult

        return PageFetchResult(url=url, success=True, content=f"<html>{url}</html>")


class NamingExtractor:
    """Extracts one product per page, named after the URL's last segment."""

    def __init__(self, fail_urls=(), raise_urls=()):
        self.fail_urls = set(fail_urls)
        self.raise_urls = set(raise_urls)

    async def extract_page(self, html, url):
        from curation.services.product_extractor import PageExtraction
        from curation.types import ExtractionMethod, FailureReason, Product

        if url in self.raise_urls:
            raise KeyError("price")
        if url in self.fail_urls:
            return PageExtraction(
                success=False,
                failure_reason=FailureReason.PARSE_ERROR,
                error="No product data found on page",
            )
        return PageExtraction(
            success=True,
            source="json-ld",
            product=Product(
                name=url.rsplit("/", 1)[-1],
                url=url,
                price=250.0,
                confidence=95,
                extraction_method=ExtractionMethod.DIRECT,
            ),
        )


def _failure(url, reason, error="failed"):
    from curation.fetchers.page_fetcher import PageFetchResult

    return PageFetchResult(url=url, success=False, failure_reason=reason, error=error)


async def _collect(scraper, urls, **kwargs):
    return [result async for result in scraper.scrape_batch(urls, **kwargs)]


STORE = "https://www.example-store.com/p"


class TestCircuitBreaker:
    """A BLOCKING failure stops further fetches on that domain."""

    @pytest.mark.asyncio
    async def test_blocked_domain_skips_remaining_urls(self):
        """URL #2 of five same-domain URLs blocks; #3-5 are skipped unfetched."""
        from curation.services.batch_scraper import BatchScraper
        from curation.types import FailureReason, UrlStatus

        urls = [f"{STORE}/{i}" for i in range(1, 6)]
        fetcher = ScriptedFetcher({urls[1]: [_failure(urls[1], FailureReason.BLOCKING, "HTTP 403")]})
        scraper = BatchScraper(fetcher, NamingExtractor(), pool_size=2, max_retries=1, backoff_base=0)

        results = await _collect(scraper, urls)
        by_url = {r.url: r for r in results}

        assert len(results) == 5
        assert by_url[urls[0]].status == UrlStatus.SUCCESS
        assert by_url[urls[1]].status == UrlStatus.FAILED
        assert by_url[urls[1]].failure_reason == FailureReason.BLOCKING
        for url in urls[2:]:
            assert by_url[url].status == UrlStatus.SKIPPED
            assert "example-store.com is blocked" in by_url[url].error
        assert fetcher.calls == urls[:2]

    @pytest.mark.asyncio
    async def test_other_domains_keep_going(self):
        from curation.services.batch_scraper import BatchScraper
        from curation.types import FailureReason, UrlStatus

        blocked = "https://blocked-store.com/p"
        open_ = "https://open-store.com/p"
        urls = [f"{blocked}/1", f"{open_}/1", f"{blocked}/2", f"{open_}/2"]
        fetcher = ScriptedFetcher({urls[0]: [_failure(urls[0], FailureReason.BLOCKING)]})
        scraper = BatchScraper(fetcher, NamingExtractor(), pool_size=2, max_retries=0, backoff_base=0)

        results = {r.url: r for r in await _collect(scraper, urls)}

        assert results[urls[1]].status == UrlStatus.SUCCESS
        assert results[urls[3]].status == UrlStatus.SUCCESS
        assert results[urls[2]].status == UrlStatus.SKIPPED
        assert urls[2] not in fetcher.calls

    @pytest.mark.asyncio
    async def test_breakers_are_per_batch(self):
        """A domain blocked in one batch is fetched again in the next."""
        from curation.services.batch_scraper import BatchScraper
        from curation.types import FailureReason, UrlStatus

        first = f"{STORE}/1"
        second = f"{STORE}/2"
        fetcher = ScriptedFetcher({first: [_failure(first, FailureReason.BLOCKING)]})
        scraper = BatchScraper(fetcher, NamingExtractor(), pool_size=1, max_retries=0, backoff_base=0)

        await _collect(scraper, [first])
        results = await _collect(scraper, [second])

        assert results[0].status == UrlStatus.SUCCESS


class TestRetries:

    @pytest.mark.asyncio
    async def test_timeout_is_retried(self):
        from curation.services.batch_scraper import BatchScraper
        from curation.fetchers.page_fetcher import PageFetchResult
        from curation.types import FailureReason, UrlStatus

        url = f"{STORE}/1"
        fetcher = ScriptedFetcher({url: [
            _failure(url, FailureReason.TIMEOUT, "Navigation timed out"),
            PageFetchResult(url=url, success=True, content="<html>ok</html>"),
        ]})
        scraper = BatchScraper(fetcher, NamingExtractor(), pool_size=1, max_retries=2, backoff_base=0)

        results = await _collect(scraper, [url])

        assert results[0].status == UrlStatus.SUCCESS
        assert results[0].attempts == 2

    @pytest.mark.asyncio
    async def test_retries_exhausted(self):
        from curation.services.batch_scraper import BatchScraper
        from curation.types import FailureReason, UrlStatus

        urls = [f"{STORE}/1", f"{STORE}/2"]
        fetcher = ScriptedFetcher({urls[0]: [_failure(urls[0], FailureReason.TIMEOUT)]})
        scraper = BatchScraper(fetcher, NamingExtractor(), pool_size=1, max_retries=1, backoff_base=0)

        results = {r.url: r for r in await _collect(scraper, urls)}

        assert results[urls[0]].status == UrlStatus.FAILED
        assert results[urls[0]].failure_reason == FailureReason.TIMEOUT
        assert results[urls[0]].attempts == 2
        # Timeouts never trip the breaker
        assert results[urls[1]].status == UrlStatus.SUCCESS

    @pytest.mark.asyncio
    async def test_blocking_is_not_retried(self):
        from curation.services.batch_scraper import BatchScraper
        from curation.types import FailureReason

        url = f"{STORE}/1"
        fetcher = ScriptedFetcher({url: [_failure(url, FailureReason.BLOCKING)]})
        scraper = BatchScraper(fetcher, NamingExtractor(), pool_size=1, max_retries=3, backoff_base=0)

        results = await _collect(scraper, [url])

        assert results[0].attempts == 1
        assert fetcher.calls == [url]


class TestExtractionFailures:

    @pytest.mark.asyncio
    async def test_extraction_failure_is_parse_error(self):
        from curation.services.batch_scraper import BatchScraper
        from curation.types import FailureReason, UrlStatus

        url = f"{STORE}/1"
        scraper = BatchScraper(ScriptedFetcher(), NamingExtractor(fail_urls=[url]), pool_size=1)

        results = await _collect(scraper, [url])

        assert results[0].status == UrlStatus.FAILED
        assert results[0].failure_reason == FailureReason.PARSE_ERROR

    @pytest.mark.asyncio
    async def test_unexpected_error_is_reported_and_contained(self):
        from curation.services.batch_scraper import BatchScraper
        from curation.types import FailureReason, UrlStatus

        urls = [f"{STORE}/1", f"{STORE}/2"]
        scraper = BatchScraper(ScriptedFetcher(), NamingExtractor(raise_urls=[urls[0]]), pool_size=1)

        with patch("curation.services.batch_scraper.capture_scrape_error") as mock_capture:
            results = {r.url: r for r in await _collect(scraper, urls)}

        assert results[urls[0]].status == UrlStatus.FAILED
        assert results[urls[0]].failure_reason == FailureReason.PARSE_ERROR
        assert "KeyError" in results[urls[0]].error
        assert results[urls[1]].status == UrlStatus.SUCCESS
        mock_capture.assert_called_once()


class TestBatchContract:

    @pytest.mark.asyncio
    async def test_empty_batch_is_rejected(self):
        from curation.services.batch_scraper import BatchScraper

        scraper = BatchScraper(ScriptedFetcher(), NamingExtractor())

        with pytest.raises(ValueError):
            await _collect(scraper, [])

    @pytest.mark.asyncio
    async def test_every_url_gets_exactly_one_result(self):
        from curation.services.batch_scraper import BatchScraper
        from curation.types import UrlStatus

        urls = [f"https://store-{i % 3}.com/p/{i}" for i in range(9)]
        scraper = BatchScraper(ScriptedFetcher(), NamingExtractor(), pool_size=4)

        results = await _collect(scraper, urls)

        assert sorted(r.url for r in results) == sorted(urls)
        assert sorted(r.index for r in results) == list(range(9))
        assert all(r.status == UrlStatus.SUCCESS for r in results)

    @pytest.mark.asyncio
    async def test_single_domain_batch_runs_in_order(self):
        """A larger pool does not parallelise URLs on one domain."""
        from curation.services.batch_scraper import BatchScraper

        urls = [f"https://brand-a.com/p/{i}" for i in range(5)]
        fetcher = ScriptedFetcher()
        scraper = BatchScraper(fetcher, NamingExtractor(), pool_size=4)

        results = await _collect(scraper, urls)

        assert fetcher.calls == urls
        assert [r.url for r in results] == urls

    def test_pool_size_defaults_from_settings(self):
        from curation.services.batch_scraper import BatchScraper

        scraper = BatchScraper(ScriptedFetcher(), NamingExtractor())

        assert scraper.pool_size == 2
        assert scraper.max_retries == 1

    @pytest.mark.asyncio
    async def test_cancellation_stops_new_fetches(self):
        """In-flight URLs finish; URLs never started produce no result."""
        from curation.services.batch_scraper import BatchScraper, CancellationToken

        urls = [f"{STORE}/{i}" for i in range(1, 6)]
        fetcher = ScriptedFetcher()
        scraper = BatchScraper(fetcher, NamingExtractor(), pool_size=1)
        token = CancellationToken()

        results = []
        async for result in scraper.scrape_batch(urls, cancellation=token):
            results.append(result)
            token.cancel()

        assert 1 <= len(results) < len(urls)
        assert [r.url for r in results] == fetcher.calls
        assert urls[-1] not in fetcher.calls

    @pytest.mark.asyncio
    async def test_cancel_while_waiting_on_domain_lock(self):
        """A URL queued behind its domain lock is not fetched once the batch is cancelled."""
        from curation.services.batch_scraper import BatchScraper, CancellationToken

        gate = asyncio.Event()
        fetcher = GatedFetcher(gate)
        scraper = BatchScraper(fetcher, NamingExtractor(), pool_size=2)
        token = CancellationToken()
        urls = ["https://brand-a.com/p/1", "https://brand-a.com/p/2"]

        async def cancel_when_first_fetch_starts():
            await fetcher.started.wait()
            token.cancel()
            gate.set()

        canceller = asyncio.create_task(cancel_when_first_fetch_starts())
        results = await _collect(scraper, urls, cancellation=token)
        await canceller

        assert fetcher.calls == [urls[0]]
        assert [r.url for r in results] == [urls[0]]


class TestConfirmationGate:

    @pytest.mark.asyncio
    async def test_ultra_high_domain_requires_confirmation(self):
        from curation.services.batch_scraper import BatchScraper, ConfirmationRequiredError

        fetcher = ScriptedFetcher()
        scraper = BatchScraper(fetcher, NamingExtractor())

        with pytest.raises(ConfirmationRequiredError) as exc_info:
            await _collect(scraper, ["https://www.saksfifthavenue.com/product/123"])

        assert [p.domain for p in exc_info.value.profiles] == ["saksfifthavenue.com"]
        assert fetcher.calls == []

    @pytest.mark.asyncio
    async def test_confirmed_batch_proceeds(self):
        from curation.services.batch_scraper import BatchScraper

        fetcher = ScriptedFetcher()
        scraper = BatchScraper(fetcher, NamingExtractor())

        results = await _collect(
            scraper, ["https://www.saksfifthavenue.com/product/123"], confirmed=True
        )

        assert len(results) == 1
        assert fetcher.calls == ["https://www.saksfifthavenue.com/product/123"]

    def test_preflight_lists_each_domain_once(self):
        from curation.services.batch_scraper import BatchScraper
        from curation.types import ProtectionLevel

        scraper = BatchScraper(ScriptedFetcher(), NamingExtractor())

        report = scraper.preflight([
            "https://www.nordstrom.com/s/1",
            "https://www.nordstrom.com/s/2",
            "https://tove-studio.com/p/1",
        ])

        assert set(report.profiles) == {"nordstrom.com", "tove-studio.com"}
        assert report.profiles["nordstrom.com"].protection_level == ProtectionLevel.HIGH
        assert report.needs_confirmation == []


class TestScrapeJob:
    """Per-URL status is tracked by position in the batch."""

    def test_repeated_url_keeps_a_status_per_occurrence(self):
        from curation.types import FailureReason, ScrapeJob, ScrapeResult, UrlStatus

        url = f"{STORE}/1"
        job = ScrapeJob(urls=[url, url, f"{STORE}/2"])

        job.record(ScrapeResult(url=url, index=0, status=UrlStatus.SUCCESS))
        job.record(ScrapeResult(
            url=url, index=1, status=UrlStatus.FAILED,
            failure_reason=FailureReason.TIMEOUT,
        ))

        assert job.statuses == {
            0: UrlStatus.SUCCESS,
            1: UrlStatus.FAILED,
            2: UrlStatus.PENDING,
        }
        assert job.failure_reasons == {1: FailureReason.TIMEOUT}
        assert job.pending_urls == [f"{STORE}/2"]
        assert job.failure_counts() == {"TIMEOUT": 1}

    @pytest.mark.asyncio
    async def test_repeated_url_in_batch_yields_each_result(self):
        from curation.services.batch_scraper import BatchScraper

        url = f"{STORE}/1"
        fetcher = ScriptedFetcher()
        scraper = BatchScraper(fetcher, NamingExtractor(), pool_size=2)

        results = await _collect(scraper, [url, url])

        assert sorted(r.index for r in results) == [0, 1]
        assert fetcher.calls == [url, url]
