"""
Core data model for the curation pipeline.

Records are built fresh per resolution call and are not mutated once
returned; the calling service layer owns storage. Loosely-typed data from
search snippets or the AI service is normalized into these shapes at the
boundary where it enters the pipeline.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple


class ExtractionMethod(str, Enum):
    """How a Product record was obtained."""

    DIRECT = "direct"
    SNIPPET = "snippet"
    AI_ESTIMATE = "ai-estimate"
    MANUAL = "manual"


class PriceConfidence(str, Enum):
    """Price certainty tier carried by AI-estimated products."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class ProtectionLevel(str, Enum):
    """How aggressively a domain resists automated access."""

    NONE = "none"
    LOW = "low"
    HIGH = "high"
    ULTRA_HIGH = "ultra-high"


class UrlStatus(str, Enum):
    """Per-URL status inside a scrape job."""

    PENDING = "pending"
    SUCCESS = "success"
    FAILED = "failed"
    SKIPPED = "skipped"


class FailureReason(str, Enum):
    """Failure taxonomy shared by fetchers, extractors and resolvers."""

    BLOCKING = "BLOCKING"
    TIMEOUT = "TIMEOUT"
    PARSE_ERROR = "PARSE_ERROR"
    NO_EVIDENCE = "NO_EVIDENCE"
    ESTIMATION_FAILURE = "ESTIMATION_FAILURE"
    INVALID_URL = "INVALID_URL"


class PriceProvenance(str, Enum):
    PRODUCTS = "products"
    LIMITED_PRODUCTS = "limited-products"
    ESTIMATED = "estimated"
    NONE = "none"


class SizeProvenance(str, Enum):
    FULL_PAGE = "full-page"
    SNIPPETS = "snippets"
    NONE = "none"
    SKIPPED = "skipped"


class CategoryProvenance(str, Enum):
    DERIVED = "derived"
    DEFAULT = "default"


@dataclass(frozen=True)
class SearchSnippet:
    """One search result as returned by the snippet provider."""

    title: str
    snippet: str
    url: str

    @property
    def text(self) -> str:
        return f"{self.title} {self.snippet}".strip()


@dataclass(frozen=True)
class Product:
    """
    A single extracted product.

    Invariants:
    - confidence (0-100) is always set for direct and snippet products
    - ai-estimate products always carry a price_confidence tier
    """

    name: str
    url: str
    price: Optional[float]
    extraction_method: ExtractionMethod
    confidence: Optional[int] = None
    image_url: Optional[str] = None
    original_price: Optional[float] = None
    percent_off: Optional[int] = None
    price_confidence: Optional[PriceConfidence] = None

    def __post_init__(self):
        if self.confidence is not None and not 0 <= self.confidence <= 100:
            raise ValueError(f"confidence out of range: {self.confidence}")

        if self.extraction_method in (ExtractionMethod.DIRECT, ExtractionMethod.SNIPPET):
            if self.confidence is None:
                raise ValueError(
                    f"{self.extraction_method.value} products require a confidence"
                )

        if self.extraction_method == ExtractionMethod.AI_ESTIMATE:
            if self.price_confidence is None:
                raise ValueError("ai-estimate products require a price_confidence tier")

    @property
    def reference_price(self) -> Optional[float]:
        """Full (pre-discount) price used for brand positioning."""
        return self.original_price or self.price

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "url": self.url,
            "imageUrl": self.image_url,
            "price": self.price,
            "originalPrice": self.original_price,
            "percentOff": self.percent_off,
            "confidence": self.confidence,
            "extractionMethod": self.extraction_method.value,
            "priceConfidence": (
                self.price_confidence.value if self.price_confidence else None
            ),
        }


@dataclass(frozen=True)
class BrandProfile:
    """Resolved brand record with per-field provenance and a quality score."""

    name: str
    price_range_bucket: Optional[str]
    size_range_label: Optional[str]
    categories: Tuple[str, ...]
    quality_score: int
    data_completeness: Mapping[str, Any]
    official_domain: Optional[str] = None
    median_price: Optional[float] = None
    products: Tuple[Product, ...] = ()

    def __post_init__(self):
        if not self.categories:
            raise ValueError("BrandProfile.categories must not be empty")
        if not 0 <= self.quality_score <= 100:
            raise ValueError(f"quality_score out of range: {self.quality_score}")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "priceRange": self.price_range_bucket,
            "sizeRange": self.size_range_label,
            "categories": list(self.categories),
            "qualityScore": self.quality_score,
            "dataCompleteness": dict(self.data_completeness),
            "evidence": {
                "officialDomain": self.official_domain,
                "medianPrice": (
                    round(self.median_price) if self.median_price is not None else None
                ),
                "productsFound": len(self.products),
                "products": [p.to_dict() for p in self.products[:5]],
            },
        }


@dataclass(frozen=True)
class DomainProtectionProfile:
    """
    Known anti-automation posture of a domain.

    recommendation is operator-facing text only and never drives control flow.
    """

    domain: str
    protection_level: ProtectionLevel = ProtectionLevel.NONE
    observed_success_rate: Optional[float] = None
    recommendation: str = ""

    @property
    def is_known(self) -> bool:
        return self.observed_success_rate is not None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "domain": self.domain,
            "protectionLevel": self.protection_level.value,
            "observedSuccessRate": self.observed_success_rate,
            "recommendation": self.recommendation,
        }


@dataclass
class ScrapeResult:
    """Outcome for one URL of a batch, delivered as soon as it completes."""

    url: str
    index: int
    status: UrlStatus
    domain: str = ""
    product: Optional[Product] = None
    failure_reason: Optional[FailureReason] = None
    error: Optional[str] = None
    attempts: int = 0

    @property
    def success(self) -> bool:
        return self.status == UrlStatus.SUCCESS

    def to_dict(self) -> Dict[str, Any]:
        return {
            "url": self.url,
            "status": self.status.value,
            "domain": self.domain,
            "product": self.product.to_dict() if self.product else None,
            "failureReason": self.failure_reason.value if self.failure_reason else None,
            "error": self.error,
        }


class DomainCircuitBreaker:
    """
    Per-batch set of domains classified BLOCKING.

    The only state shared between workers of a batch. One instance is
    created per ScrapeJob and passed explicitly into each worker. It also
    hands out one lock per domain so that URLs on the same domain are
    fetched one at a time, in the order workers reach them.
    """

    def __init__(self):
        self._lock = asyncio.Lock()
        self._blocked: Dict[str, str] = {}
        self._domain_locks: Dict[str, asyncio.Lock] = {}

    async def trip(self, domain: str, url: str) -> None:
        """Record domain as blocking; first tripping URL is kept."""
        async with self._lock:
            self._blocked.setdefault(domain, url)

    async def is_open(self, domain: str) -> bool:
        """True if the domain has been classified BLOCKING in this batch."""
        async with self._lock:
            return domain in self._blocked

    async def domain_lock(self, domain: str) -> asyncio.Lock:
        async with self._lock:
            lock = self._domain_locks.get(domain)
            if lock is None:
                lock = asyncio.Lock()
                self._domain_locks[domain] = lock
            return lock

    @property
    def blocked_domains(self) -> List[str]:
        return sorted(self._blocked)


@dataclass
class ScrapeJob:
    """Ordered URLs of one batch request and their per-URL status."""

    urls: List[str]
    circuit_breaker: DomainCircuitBreaker = field(default_factory=DomainCircuitBreaker)
    # Keyed by position in urls, so a repeated URL keeps one entry per occurrence
    statuses: Dict[int, UrlStatus] = field(default_factory=dict)
    failure_reasons: Dict[int, FailureReason] = field(default_factory=dict)

    def __post_init__(self):
        for index in range(len(self.urls)):
            self.statuses.setdefault(index, UrlStatus.PENDING)

    def record(self, result: ScrapeResult) -> None:
        self.statuses[result.index] = result.status
        if result.failure_reason is not None:
            self.failure_reasons[result.index] = result.failure_reason

    @property
    def pending_urls(self) -> List[str]:
        return [
            url for index, url in enumerate(self.urls)
            if self.statuses[index] == UrlStatus.PENDING
        ]

    def failure_counts(self) -> Dict[str, int]:
        counts: Dict[str, int] = {}
        for reason in self.failure_reasons.values():
            counts[reason.value] = counts.get(reason.value, 0) + 1
        return counts


@dataclass(frozen=True)
class CurationRecord:
    """
    A brand or sale record as seen by duplicate detection.

    Sale records carry a date range; brand records do not. end_date=None on
    a sale means the sale is open-ended.
    """

    record_id: str
    company: str
    kind: str = "sale"
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    percent_off: Optional[int] = None

    @property
    def is_sale(self) -> bool:
        return self.kind == "sale"


@dataclass(frozen=True)
class DuplicateCandidate:
    """An existing record that may duplicate the record being added."""

    record: CurationRecord
    similarity_score: float
    dates_overlap: bool
