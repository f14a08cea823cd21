"""
Quality scoring service.

Computes a 0-100 quality score for a BrandProfile from its dataCompleteness
map, determines its completeness tier, and lists fields that need review.

The score is a pure function of the completeness map and the configuration
tables below; identical inputs always give identical scores. Fields tagged
"skipped" (or absent from the map) are not applicable and are left out of
the weighted average.

Configuration (Django settings, defaults below):
    CURATION_QUALITY_FIELD_WEIGHTS
    CURATION_QUALITY_PROVENANCE_SCORES
"""

from typing import Any, Dict, List, Mapping, Optional

from django.conf import settings

# Field weights define how much each field contributes to the score.
FIELD_WEIGHTS = {
    "priceRange": 30,
    "categories": 20,
    "sizes": 20,
    "products": 30,
}

# Score (0-100) for each provenance tag of each field.
# Real product evidence > snippet-only evidence > estimate > nothing.
PROVENANCE_SCORES = {
    "priceRange": {
        "products": 100,
        "limited-products": 70,
        "estimated": 50,
        "none": 0,
    },
    "categories": {
        "derived": 90,
        "default": 50,
    },
    "sizes": {
        "full-page": 90,
        "snippets": 70,
        "none": 0,
    },
}

NOT_APPLICABLE = "skipped"


def _field_weights() -> Dict[str, int]:
    return getattr(settings, "CURATION_QUALITY_FIELD_WEIGHTS", FIELD_WEIGHTS)


def _provenance_scores() -> Dict[str, Dict[str, int]]:
    return getattr(settings, "CURATION_QUALITY_PROVENANCE_SCORES", PROVENANCE_SCORES)


def products_score(count: int, min_products: Optional[int] = None) -> int:
    """
    Score for the number of products found.

    >= min_products: 100, 1 or more: 60, none: 0
    """
    if min_products is None:
        min_products = getattr(settings, "CURATION_MIN_PRODUCTS", 3)
    if count >= min_products:
        return 100
    if count > 0:
        return 60
    return 0


def field_score(field_name: str, value: Any) -> Optional[int]:
    """
    Score a single completeness entry; None when the field is not applicable.
    """
    if value is None or value == NOT_APPLICABLE:
        return None

    if field_name == "products":
        return products_score(int(value))

    tag = getattr(value, "value", value)
    return _provenance_scores().get(field_name, {}).get(tag, 0)


def calculate_quality_score(completeness: Mapping[str, Any]) -> int:
    """
    Weighted average of field scores over applicable fields.

    Args:
        completeness: dataCompleteness map, field name -> provenance tag
            (or product count for "products")

    Returns:
        int: Quality score between 0 and 100
    """
    total_weight = 0
    weighted = 0

    for field_name, weight in _field_weights().items():
        score = field_score(field_name, completeness.get(field_name))
        if score is None:
            continue
        total_weight += weight
        weighted += weight * score

    if total_weight == 0:
        return 0

    return min(100, max(0, round(weighted / total_weight)))


def determine_tier(score: int) -> str:
    """
    Determine the completeness tier based on the score.

    Tiers:
    - complete: 90-100
    - good: 70-89
    - partial: 40-69
    - skeleton: 0-39
    """
    if score >= 90:
        return "complete"
    elif score >= 70:
        return "good"
    elif score >= 40:
        return "partial"
    else:
        return "skeleton"


def get_missing_fields(completeness: Mapping[str, Any]) -> List[str]:
    """
    Fields that scored zero and need manual attention, in weight order.
    """
    weights = _field_weights()
    missing = [
        name for name in weights
        if field_score(name, completeness.get(name)) == 0
    ]
    return sorted(missing, key=lambda name: weights[name], reverse=True)
