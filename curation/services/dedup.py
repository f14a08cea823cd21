"""
Duplicate detection for brand and sale records.

A record is a duplicate candidate of another record of the same kind when
their normalized company names are similar enough:

    similarity = max(ratio, token_sort_ratio) / 100  over normalized names
    similarity >= CURATION_DEDUP_SIMILARITY_THRESHOLD (default 0.85)

Sale records additionally need overlapping date ranges. An open end date
means the sale is still running. A sale with no start date cannot be ruled
out, so it is returned with dates_overlap=False for a human to judge.

Candidates are ranked by date overlap, then similarity, then an identical
percentOff. Nothing is ever merged; replacing or adding anyway is the
caller's decision.
"""

import logging
from datetime import date
from typing import Iterable, List, Optional

from django.conf import settings
from rapidfuzz import fuzz

from curation.types import CurationRecord, DuplicateCandidate
from curation.utils.normalization import normalize_company_name

logger = logging.getLogger(__name__)


def name_similarity(a: str, b: str) -> float:
    """Similarity (0-1) of two company names after normalization."""
    left = normalize_company_name(a)
    right = normalize_company_name(b)
    if not left or not right:
        return 0.0
    if left == right:
        return 1.0
    return max(fuzz.ratio(left, right), fuzz.token_sort_ratio(left, right)) / 100.0


def dates_overlap(a: CurationRecord, b: CurationRecord) -> Optional[bool]:
    """
    True/False for two dated sales, None when either has no start date.
    """
    if a.start_date is None or b.start_date is None:
        return None

    a_end = a.end_date or date.max
    b_end = b.end_date or date.max
    return a.start_date <= b_end and b.start_date <= a_end


def find_duplicates(
    candidate: CurationRecord,
    existing: Iterable[CurationRecord],
    threshold: Optional[float] = None,
) -> List[DuplicateCandidate]:
    """
    Rank existing records that may duplicate candidate.

    Args:
        candidate: Record about to be added
        existing: Records already stored
        threshold: Minimum name similarity (default from settings)

    Returns:
        DuplicateCandidate list, best match first
    """
    if threshold is None:
        threshold = getattr(settings, "CURATION_DEDUP_SIMILARITY_THRESHOLD", 0.85)

    matches = []
    for record in existing:
        if record.record_id == candidate.record_id or record.kind != candidate.kind:
            continue

        similarity = name_similarity(candidate.company, record.company)
        if similarity < threshold:
            continue

        overlap = False
        if candidate.is_sale:
            result = dates_overlap(candidate, record)
            if result is False:
                continue
            overlap = bool(result)

        matches.append(
            DuplicateCandidate(
                record=record,
                similarity_score=round(similarity, 4),
                dates_overlap=overlap,
            )
        )

    def rank(match: DuplicateCandidate):
        same_percent = (
            candidate.percent_off is not None
            and match.record.percent_off == candidate.percent_off
        )
        return (match.dates_overlap, match.similarity_score, same_percent)

    matches.sort(key=rank, reverse=True)

    if matches:
        logger.info(
            f"{len(matches)} duplicate candidate(s) for '{candidate.company}' "
            f"(best: '{matches[0].record.company}', {matches[0].similarity_score:.2f})"
        )
    return matches
