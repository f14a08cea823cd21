"""
Tests for category resolution.
"""

from tests.stubs import snippet


def _product(name):
    from curation.types import ExtractionMethod, Product

    return Product(
        name=name,
        url="https://tove-studio.com/p/1",
        price=300.0,
        confidence=80,
        extraction_method=ExtractionMethod.SNIPPET,
    )


class TestResolveCategories:

    def test_derived_from_product_names(self):
        from curation.services.category import resolve_categories
        from curation.types import CategoryProvenance

        result = resolve_categories(
            [_product("Vera Silk Dress"), _product("Leather Tote Bag")],
            [],
        )

        assert result.categories == ("Clothing", "Bags")
        assert result.provenance == CategoryProvenance.DERIVED

    def test_snippets_contribute(self):
        """Search titles and snippets count even without products."""
        from curation.services.category import resolve_categories

        result = resolve_categories(
            [],
            [snippet("Tove | Official Site", "Shop swimwear and sandals", "https://tove-studio.com")],
        )

        assert result.categories == ("Shoes", "Swimwear")

    def test_word_boundaries(self):
        """'Stop' does not match 'top' and 'bring' does not match 'ring'."""
        from curation.services.category import match_categories

        assert match_categories("Stop bringing everything") == []

    def test_default_when_nothing_matches(self):
        from curation.services.category import DEFAULT_CATEGORY, resolve_categories
        from curation.types import CategoryProvenance

        result = resolve_categories([], [snippet("Tove", "A London label", "https://tove-studio.com")])

        assert result.categories == (DEFAULT_CATEGORY,)
        assert result.provenance == CategoryProvenance.DEFAULT

    def test_never_empty(self):
        from curation.services.category import resolve_categories

        assert resolve_categories([], []).categories
