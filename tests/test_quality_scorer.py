"""
Tests for the provenance-weighted quality score.
"""

import pytest


FULL = {
    "priceRange": "products",
    "categories": "derived",
    "sizes": "full-page",
    "products": 5,
}


class TestCalculateQualityScore:

    def test_full_evidence(self):
        """30*100 + 20*90 + 20*90 + 30*100 over 100 -> 96."""
        from curation.services.quality_scorer import calculate_quality_score

        assert calculate_quality_score(FULL) == 96

    def test_estimated_scores_lower_than_products(self):
        from curation.services.quality_scorer import calculate_quality_score

        estimated = dict(FULL, priceRange="estimated", products=0)

        assert calculate_quality_score(estimated) < calculate_quality_score(FULL)

    def test_default_categories_score_lower_than_derived(self):
        from curation.services.quality_scorer import calculate_quality_score

        defaulted = dict(FULL, categories="default")

        assert calculate_quality_score(defaulted) < calculate_quality_score(FULL)

    def test_skipped_sizes_are_not_applicable(self):
        """A non-clothing brand is not penalised for having no sizes."""
        from curation.services.quality_scorer import calculate_quality_score

        skipped = dict(FULL, sizes="skipped")
        missing = dict(FULL, sizes="none")

        # (30*100 + 20*90 + 30*100) / 80
        assert calculate_quality_score(skipped) == 98
        assert calculate_quality_score(missing) > 0
        assert calculate_quality_score(skipped) > calculate_quality_score(missing)

    def test_nothing_found(self):
        """Scenario with no evidence still scores the default category."""
        from curation.services.quality_scorer import calculate_quality_score

        completeness = {
            "priceRange": "none",
            "categories": "default",
            "sizes": "none",
            "products": 0,
        }

        assert calculate_quality_score(completeness) == 10

    def test_empty_map(self):
        from curation.services.quality_scorer import calculate_quality_score

        assert calculate_quality_score({}) == 0

    def test_accepts_enum_tags(self):
        from curation.services.quality_scorer import calculate_quality_score
        from curation.types import CategoryProvenance, PriceProvenance, SizeProvenance

        completeness = {
            "priceRange": PriceProvenance.PRODUCTS,
            "categories": CategoryProvenance.DERIVED,
            "sizes": SizeProvenance.FULL_PAGE,
            "products": 5,
        }

        assert calculate_quality_score(completeness) == calculate_quality_score(FULL)

    def test_pure_function(self):
        """Same input, same score, input untouched."""
        from curation.services.quality_scorer import calculate_quality_score

        completeness = dict(FULL)
        first = calculate_quality_score(completeness)

        assert calculate_quality_score(completeness) == first
        assert completeness == FULL

    def test_weights_from_settings(self, settings):
        from curation.services.quality_scorer import calculate_quality_score

        settings.CURATION_QUALITY_FIELD_WEIGHTS = {"priceRange": 1}

        assert calculate_quality_score(dict(FULL, priceRange="estimated")) == 50


class TestProductsScore:

    @pytest.mark.parametrize("count,score", [(0, 0), (1, 60), (2, 60), (3, 100), (10, 100)])
    def test_products_score(self, count, score):
        from curation.services.quality_scorer import products_score

        assert products_score(count) == score


class TestTiersAndMissing:

    @pytest.mark.parametrize("score,tier", [
        (100, "complete"),
        (90, "complete"),
        (89, "good"),
        (70, "good"),
        (69, "partial"),
        (40, "partial"),
        (39, "skeleton"),
        (0, "skeleton"),
    ])
    def test_determine_tier(self, score, tier):
        from curation.services.quality_scorer import determine_tier

        assert determine_tier(score) == tier

    def test_missing_fields_in_weight_order(self):
        from curation.services.quality_scorer import get_missing_fields

        completeness = {
            "priceRange": "none",
            "categories": "derived",
            "sizes": "none",
            "products": 0,
        }

        assert get_missing_fields(completeness) == ["priceRange", "products", "sizes"]

    def test_skipped_is_not_missing(self):
        from curation.services.quality_scorer import get_missing_fields

        assert get_missing_fields(dict(FULL, sizes="skipped")) == []
