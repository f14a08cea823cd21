"""
Pytest configuration and fixtures for the Curation Pipeline test suite.

Search, AI and browser capabilities are replaced by the in-memory stubs in
tests/stubs.py; no test touches the network.
"""

import pytest

from tests.stubs import StubAIClient, StubSearchClient


@pytest.fixture
def stub_search():
    return StubSearchClient()


@pytest.fixture
def stub_ai():
    return StubAIClient()


@pytest.fixture
def product_page_html():
    """Product page with a JSON-LD Product block."""
    return """
    <html>
    <head>
        <title>Vera Dress | Tove</title>
        <meta property="og:image" content="https://cdn.tove-studio.com/vera.jpg">
        <script type="application/ld+json">
        {
            "@context": "https://schema.org",
            "@type": "Product",
            "name": "Vera Dress",
            "image": ["https://cdn.tove-studio.com/vera.jpg"],
            "offers": {
                "@type": "Offer",
                "price": "695.00",
                "priceCurrency": "USD"
            }
        }
        </script>
    </head>
    <body><h1>Vera Dress</h1></body>
    </html>
    """
