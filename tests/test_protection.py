"""
Tests for domain protection classification.
"""

import pytest


class TestClassifyDomain:
    """Tests for classify_domain lookups."""

    def test_known_ultra_high_domain(self):
        """Saks is classified ultra-high with its observed success rate."""
        from curation.fetchers.protection import classify_domain
        from curation.types import ProtectionLevel

        profile = classify_domain("saksfifthavenue.com")

        assert profile.protection_level == ProtectionLevel.ULTRA_HIGH
        assert profile.observed_success_rate == 0.05
        assert profile.recommendation
        assert profile.is_known is True

    def test_full_url_with_www_is_accepted(self):
        """A product URL resolves to its bare domain."""
        from curation.fetchers.protection import classify_domain
        from curation.types import ProtectionLevel

        profile = classify_domain("https://www.nordstrom.com/s/wrap-dress/123?color=black")

        assert profile.domain == "nordstrom.com"
        assert profile.protection_level == ProtectionLevel.HIGH

    def test_subdomain_falls_back_to_parent(self):
        """Subdomains inherit the parent domain's row."""
        from curation.fetchers.protection import classify_domain
        from curation.types import ProtectionLevel

        profile = classify_domain("shop.revolve.com")

        assert profile.domain == "shop.revolve.com"
        assert profile.protection_level == ProtectionLevel.LOW

    def test_unknown_domain_has_no_rate(self):
        """Unknown domains are 'none' with an unknown success rate."""
        from curation.fetchers.protection import classify_domain
        from curation.types import ProtectionLevel

        profile = classify_domain("tove-studio.com")

        assert profile.protection_level == ProtectionLevel.NONE
        assert profile.observed_success_rate is None
        assert profile.is_known is False

    def test_settings_rows_extend_table(self, settings):
        """CURATION_DOMAIN_PROTECTION adds rows to the built-in table."""
        from curation.fetchers.protection import classify_domain
        from curation.types import ProtectionLevel

        settings.CURATION_DOMAIN_PROTECTION = {
            "hermes.com": ("ultra-high", 0.02, "Enter manually"),
        }

        profile = classify_domain("hermes.com")

        assert profile.protection_level == ProtectionLevel.ULTRA_HIGH
        assert profile.observed_success_rate == 0.02

    def test_to_dict_uses_wire_names(self):
        from curation.fetchers.protection import classify_domain

        data = classify_domain("fwrd.com").to_dict()

        assert data["protectionLevel"] == "low"
        assert data["observedSuccessRate"] == 0.80


class TestRequiresConfirmation:
    """Tests for the operator confirmation gate."""

    def test_ultra_high_low_rate_requires_confirmation(self):
        from curation.fetchers.protection import classify_domain, requires_confirmation

        assert requires_confirmation(classify_domain("neimanmarcus.com")) is True

    def test_high_protection_does_not_require_confirmation(self):
        from curation.fetchers.protection import classify_domain, requires_confirmation

        assert requires_confirmation(classify_domain("ssense.com")) is False

    def test_unknown_domain_does_not_require_confirmation(self):
        from curation.fetchers.protection import classify_domain, requires_confirmation

        assert requires_confirmation(classify_domain("example-brand.com")) is False

    def test_threshold_is_configurable(self):
        """Bergdorf (8%) only needs confirmation when the threshold is above 8%."""
        from curation.fetchers.protection import classify_domain, requires_confirmation

        profile = classify_domain("bergdorfgoodman.com")

        assert requires_confirmation(profile, threshold=0.10) is True
        assert requires_confirmation(profile, threshold=0.05) is False

    def test_ultra_high_without_rate_does_not_require_confirmation(self):
        from curation.fetchers.protection import requires_confirmation
        from curation.types import DomainProtectionProfile, ProtectionLevel

        profile = DomainProtectionProfile(
            domain="example.com",
            protection_level=ProtectionLevel.ULTRA_HIGH,
        )

        assert requires_confirmation(profile) is False
