"""
Size range resolution.

Finds the largest women's size a brand offers and reports it as a US label
("Up to 18"). Sizes are attempted whenever categories include a
clothing-like tag or are empty/default/ambiguous; only a brand whose every
category is a known non-clothing tag is skipped.

Evidence preference:
1. Text of a fetched size-chart page          -> provenance "full-page"
2. Titles/snippets of size-chart search hits  -> provenance "snippets"
3. Nothing usable                             -> provenance "none"

Only the first CURATION_SIZE_LINE_BUDGET relevant lines are scanned.

Recognised notations:
- US numeric ranges and prefixed sizes ("Sizes 0-16", "US 12")
- Letter sizes with extended variants (XS..XXXL, 2XL..6XL)
- Plus sizes (0X..6X, 14W..32W)
- Regional systems (EU/FR, IT, UK), converted to US
"""

import logging
import re
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence

from django.conf import settings

from curation.types import CategoryProvenance, SizeProvenance

from .evidence import Evidence

logger = logging.getLogger(__name__)


CLOTHING_LIKE_CATEGORIES = {"Clothing", "Swimwear"}
NON_CLOTHING_CATEGORIES = {"Shoes", "Bags", "Accessories", "Jewelry", "Homewares"}

SIZE_KEYWORDS = ["size chart", "size guide", "sizing", "measurements", "fit guide"]

# Letter and plus sizes mapped to US numeric
LETTER_TO_US = {
    "XXXS": 0,
    "XXS": 0,
    "XS": 4,
    "S": 6,
    "M": 8,
    "L": 10,
    "XL": 14,
    "XXL": 18,
    "2XL": 18,
    "XXXL": 22,
    "3XL": 22,
    "4XL": 26,
    "5XL": 30,
    "6XL": 34,
    "0X": 12,
    "1X": 14,
    "2X": 18,
    "3X": 22,
    "4X": 26,
    "5X": 30,
    "6X": 34,
}

# European (FR/DE) women's sizes to US
EU_TO_US = {
    32: 0, 34: 0, 36: 2, 38: 4, 40: 6,
    42: 8, 44: 10, 46: 12, 48: 14, 50: 16,
    52: 18, 54: 20,
}

# Italian women's sizes to US
IT_TO_US = {
    36: 0, 38: 2, 40: 4, 42: 6, 44: 8,
    46: 10, 48: 12, 50: 14, 52: 16, 54: 18,
    56: 20,
}

MAX_US_SIZE = 40

RELEVANT_LINE = re.compile(r"\b(XXS|XS|S|M|L|XL|XXL|XXXL|[0-6]X|\d{1,2})\b")

US_RANGE = re.compile(
    r"\bsizes?\s*(?:range)?\s*:?\s*(?:US\s*)?(\d{1,2})\s*(?:-|–|to|through)\s*(\d{1,2})W?\b",
    re.IGNORECASE,
)
# Region prefixes are matched uppercase only: "us" and "de" are ordinary words
US_PREFIXED = re.compile(r"\bUS\s*(?:[Ss]ize\s*)?(\d{1,2})\b")
US_ROW = re.compile(r"^\s*(?:US|US size|size)s?\s*[:|]?\s*((?:\d{1,2}\s*[,/|]?\s*){2,})$", re.IGNORECASE)
EU_SIZE = re.compile(r"\b(?:EU|EUR|FR|DE)\s*(\d{2})\b")
IT_SIZE = re.compile(r"\bIT\s*(\d{2})\b")
UK_SIZE = re.compile(r"\bUK\s*(\d{1,2})\b")
PLUS_W = re.compile(r"\b(\d{2})W\b")
LETTER_SIZE = re.compile(r"(?<![\w'’])(XXXS|XXS|XS|XXXL|XXL|XL|[2-6]XL|[0-6]X|S|M|L)(?![\w'’])")


@dataclass(frozen=True)
class SizeFinding:
    """Largest size observed, as US numeric plus the notation it came from."""

    us_size: int
    raw: str


@dataclass(frozen=True)
class SizeResolution:
    label: Optional[str]
    provenance: SizeProvenance
    raw_max: Optional[str] = None


def should_attempt_sizes(
    categories: Sequence[str],
    provenance: Optional[CategoryProvenance] = None,
) -> bool:
    """
    False only when every category is a known non-clothing tag.
    """
    if not categories or provenance == CategoryProvenance.DEFAULT:
        return True
    tags = set(categories)
    if tags & CLOTHING_LIKE_CATEGORIES:
        return True
    return not tags <= NON_CLOTHING_CATEGORIES


def scan_size_lines(text: str, budget: Optional[int] = None) -> List[str]:
    """
    Return up to budget lines of text that look size related.

    Text is split on newlines and sentence ends; a line is relevant when it
    mentions a size keyword or contains a size-looking token.
    """
    if budget is None:
        budget = getattr(settings, "CURATION_SIZE_LINE_BUDGET", 150)
    if not text:
        return []

    relevant = []
    for line in re.split(r"\n|(?<=\.)\s+", text):
        line = line.strip()
        if not line:
            continue
        lower = line.lower()
        if any(keyword in lower for keyword in SIZE_KEYWORDS) or RELEVANT_LINE.search(line):
            relevant.append(line)
            if len(relevant) >= budget:
                break
    return relevant


def _findings_in_line(line: str) -> Iterable[SizeFinding]:
    for match in US_RANGE.finditer(line):
        high = int(match.group(2))
        yield SizeFinding(high, match.group(0))

    for match in US_PREFIXED.finditer(line):
        yield SizeFinding(int(match.group(1)), match.group(0))

    row = US_ROW.match(line)
    if row:
        numbers = [int(n) for n in re.findall(r"\d{1,2}", row.group(1))]
        if numbers:
            yield SizeFinding(max(numbers), line)

    for match in EU_SIZE.finditer(line):
        size = int(match.group(1))
        if size in EU_TO_US:
            yield SizeFinding(EU_TO_US[size], match.group(0))

    for match in IT_SIZE.finditer(line):
        size = int(match.group(1))
        if size in IT_TO_US:
            yield SizeFinding(IT_TO_US[size], match.group(0))

    for match in UK_SIZE.finditer(line):
        size = int(match.group(1))
        if 4 <= size <= 32:
            yield SizeFinding(max(0, size - 4), match.group(0))

    for match in PLUS_W.finditer(line):
        yield SizeFinding(int(match.group(1)), match.group(0))

    for match in LETTER_SIZE.finditer(line):
        yield SizeFinding(LETTER_TO_US[match.group(1)], match.group(1))


def find_max_size(lines: Iterable[str]) -> Optional[SizeFinding]:
    """Largest plausible US size across all lines, or None."""
    best = None
    for line in lines:
        for finding in _findings_in_line(line):
            if not 0 <= finding.us_size <= MAX_US_SIZE:
                continue
            if best is None or finding.us_size > best.us_size:
                best = finding
    return best


def size_label(finding: SizeFinding) -> str:
    return f"Up to {finding.us_size}"


def resolve_sizes(
    evidence: Evidence,
    categories: Sequence[str],
    category_provenance: Optional[CategoryProvenance] = None,
) -> SizeResolution:
    """
    Resolve the size range label for a brand.

    Args:
        evidence: Evidence pool (size page text and size snippets are used)
        categories: Resolved category tags
        category_provenance: Whether categories were derived or defaulted

    Returns:
        SizeResolution with label and provenance
    """
    if not should_attempt_sizes(categories, category_provenance):
        logger.info(f"Skipping sizes for {evidence.brand_name}: non-clothing categories")
        return SizeResolution(label=None, provenance=SizeProvenance.SKIPPED)

    if evidence.size_page_text:
        finding = find_max_size(scan_size_lines(evidence.size_page_text))
        if finding is not None:
            logger.info(f"Max size for {evidence.brand_name}: {finding.raw} (full-page)")
            return SizeResolution(
                label=size_label(finding),
                provenance=SizeProvenance.FULL_PAGE,
                raw_max=finding.raw,
            )

    if evidence.size_snippets:
        text = "\n".join(s.text for s in evidence.size_snippets)
        finding = find_max_size(scan_size_lines(text))
        if finding is not None:
            logger.info(f"Max size for {evidence.brand_name}: {finding.raw} (snippets)")
            return SizeResolution(
                label=size_label(finding),
                provenance=SizeProvenance.SNIPPETS,
                raw_max=finding.raw,
            )

    logger.info(f"No size information for {evidence.brand_name}")
    return SizeResolution(label=None, provenance=SizeProvenance.NONE)
