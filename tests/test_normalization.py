"""
Tests for name, domain and URL normalization utilities.
"""

import pytest


class TestNormalizeProductName:

    def test_strips_variant_suffix_and_marks(self):
        from curation.utils.normalization import normalize_product_name

        assert normalize_product_name("The Vera Dress™ - Black") == "the vera dress"

    def test_strips_brand_after_pipe(self):
        from curation.utils.normalization import normalize_product_name

        assert normalize_product_name("Silk Shirt | Tove") == "silk shirt"

    def test_empty(self):
        from curation.utils.normalization import normalize_product_name

        assert normalize_product_name("") == ""
        assert normalize_product_name("   ") == ""


class TestNormalizeCompanyName:

    @pytest.mark.parametrize("raw,expected", [
        ("Acme & Sons, Inc.", "acme and sons"),
        ("ACME and Sons LLC", "acme and sons"),
        ("Tove Studio Ltd", "tove studio"),
        ("Co", "co"),
    ])
    def test_normalizes(self, raw, expected):
        from curation.utils.normalization import normalize_company_name

        assert normalize_company_name(raw) == expected


class TestDomains:

    def test_extract_domain_strips_www(self):
        from curation.utils.normalization import extract_domain

        assert extract_domain("https://www.Tove-Studio.com/shop?x=1") == "tove-studio.com"

    def test_extract_domain_accepts_bare_host(self):
        from curation.utils.normalization import extract_domain

        assert extract_domain("shop.tove-studio.com") == "shop.tove-studio.com"

    def test_is_same_or_subdomain(self):
        from curation.utils.normalization import is_same_or_subdomain

        assert is_same_or_subdomain("https://shop.tove-studio.com/p/1", "tove-studio.com")
        assert is_same_or_subdomain("tove-studio.com", "www.tove-studio.com")
        assert not is_same_or_subdomain("https://nottove-studio.com/p/1", "tove-studio.com")

    def test_canonicalize_url_drops_tracking(self):
        from curation.utils.normalization import canonicalize_url

        url = "https://WWW.Example.com/p/1/?utm_source=x&size=8&color=red#top"

        assert canonicalize_url(url) == "https://example.com/p/1?color=red&size=8"


class TestValidateUrl:

    @pytest.mark.parametrize("url", [
        "https://tove-studio.com/products/vera",
        "http://shop.example.com/p/1",
    ])
    def test_accepts_public_urls(self, url):
        from curation.utils.normalization import validate_url

        assert validate_url(url) == (True, None)

    @pytest.mark.parametrize("url", [
        "",
        "ftp://example.com/file",
        "https://localhost/admin",
        "http://127.0.0.1:8000/",
        "http://10.0.0.5/",
        "http://169.254.169.254/latest/meta-data",
        "https://printer.local/",
        "javascript:alert(1)",
    ])
    def test_refuses_unsafe_urls(self, url):
        from curation.utils.normalization import validate_url

        is_valid, error = validate_url(url)

        assert is_valid is False
        assert error
