"""
Tests for price expression parsing.
"""

import pytest


class TestAcceptedExpressions:
    """Explicit price expressions that must be read."""

    @pytest.mark.parametrize("text,price,kind", [
        ("Vera Dress $450", 450.0, "literal"),
        ("Price: $89.99 - free returns", 89.99, "literal"),
        ("Wool Coat $1,295", 1295.0, "literal"),
        ("Silk shirts $450-650", 650.0, "range"),
        ("Knitwear $200 - $400", 400.0, "range"),
        ("Denim $200 to $400", 400.0, "range"),
        ("Dresses from $120", 120.0, "from"),
        ("Swim starting at $95", 95.0, "from"),
        ("Dress US$310", 310.0, "literal"),
    ])
    def test_parses(self, text, price, kind):
        from curation.services.price_parsing import find_price_expressions

        parsed = find_price_expressions(text)[0]

        assert parsed.price == price
        assert parsed.kind == kind

    def test_was_now_keeps_original(self):
        """Was/now reads the sale price and keeps the full price as original."""
        from curation.services.price_parsing import find_price_expressions

        parsed = find_price_expressions("Linen Blazer. Was $400 Now $200")[0]

        assert parsed.price == 200.0
        assert parsed.original_price == 400.0
        assert parsed.kind == "was-now"
        assert parsed.reference_price == 400.0

    def test_finds_every_expression_in_order(self):
        from curation.services.price_parsing import find_price_expressions

        prices = find_price_expressions("Tops $95. Skirts $180. Coats $650.")

        assert [p.price for p in prices] == [95.0, 180.0, 650.0]


class TestRejectedExpressions:
    """Discount and threshold phrasing that is not a product price."""

    @pytest.mark.parametrize("text", [
        "Shop dresses under $100",
        "Save $50 on your first order",
        "Take $20 off sitewide",
        "Free shipping on orders over $150",
        "Extra $10-20% off sale styles",
        "Gift card $100",
        "No prices here",
        "",
    ])
    def test_rejects(self, text):
        from curation.services.price_parsing import find_price_expressions

        assert find_price_expressions(text) == []

    def test_rejection_does_not_hide_later_price(self):
        from curation.services.price_parsing import find_price_expressions

        prices = find_price_expressions("Free shipping over $150. Vera Dress $695")

        assert [p.price for p in prices] == [695.0]


class TestParsePriceValue:

    @pytest.mark.parametrize("value,expected", [
        (450, 450.0),
        (89.5, 89.5),
        ("695.00", 695.0),
        ("$1,295.00", 1295.0),
        ("1.295,00", 1295.0),
        ("450,00", 450.0),
        ("USD 320", 320.0),
    ])
    def test_reads_structured_values(self, value, expected):
        from curation.services.price_parsing import parse_price_value

        assert parse_price_value(value) == expected

    @pytest.mark.parametrize("value", [None, True, 0, -5, "", "free", "N/A"])
    def test_rejects_unusable_values(self, value):
        from curation.services.price_parsing import parse_price_value

        assert parse_price_value(value) is None


class TestPriceBands:

    def test_bands_widen_with_tier(self):
        from curation.services.price_parsing import within_band

        assert within_band(7.0, 1) is False
        assert within_band(7.0, 2) is True
        assert within_band(14000.0, 2) is False
        assert within_band(14000.0, 3) is True

    def test_missing_price_is_outside_band(self):
        from curation.services.price_parsing import within_band

        assert within_band(None, 3) is False

    def test_bands_from_settings(self, settings):
        from curation.services.price_parsing import within_band

        settings.CURATION_PRICE_BANDS = {1: (50.0, 500.0)}

        assert within_band(40.0, 1) is False
        assert within_band(400.0, 3) is True
