"""
Search snippet provider client.

Async httpx wrapper around a Serper-compatible Google search endpoint:

    POST {CURATION_SEARCH_API_URL}  {"q": query, "num": n}
    X-API-KEY: {CURATION_SEARCH_API_KEY}

Organic results are normalized into SearchSnippet(title, snippet, url).

Usage:
    client = SearchClient()
    snippets = await client.search("site:tove-studio.com price $ shop buy")
"""

import logging
from typing import List, Optional

import httpx
from django.conf import settings

from curation.types import SearchSnippet

logger = logging.getLogger(__name__)


class SearchClient:
    """
    Search provider returning organic result snippets.

    Network and API failures are logged and produce an empty result list:
    an empty search is a normal outcome that pushes the pipeline to its
    next fallback tier.
    """

    DEFAULT_URL = "https://google.serper.dev/search"

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
    ):
        """
        Initialize search client.

        Args:
            api_key: Provider API key. If not provided, uses settings.CURATION_SEARCH_API_KEY
            base_url: Endpoint URL (defaults to settings.CURATION_SEARCH_API_URL)
            timeout: Request timeout in seconds

        Raises:
            ValueError: If no API key is configured
        """
        self.api_key = api_key or getattr(settings, "CURATION_SEARCH_API_KEY", None)

        if not self.api_key:
            raise ValueError("CURATION_SEARCH_API_KEY not configured")

        self.base_url = base_url or getattr(
            settings, "CURATION_SEARCH_API_URL", self.DEFAULT_URL
        )
        self.timeout = timeout or getattr(settings, "CURATION_REQUEST_TIMEOUT", 30)

    async def search(self, query: str, num_results: int = 10) -> List[SearchSnippet]:
        """
        Run a web search.

        Args:
            query: Search query string
            num_results: Number of results requested

        Returns:
            List of SearchSnippet, empty on any failure
        """
        headers = {
            "X-API-KEY": self.api_key,
            "Content-Type": "application/json",
        }
        payload = {"q": query, "num": num_results}

        logger.debug(f"Search: {query}")

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(self.base_url, json=payload, headers=headers)
                response.raise_for_status()
                data = response.json()

        except httpx.TimeoutException as e:
            logger.warning(f"Search timeout for '{query}': {e}")
            return []

        except httpx.HTTPStatusError as e:
            logger.warning(f"Search HTTP {e.response.status_code} for '{query}'")
            return []

        except httpx.HTTPError as e:
            logger.warning(f"Search request failed for '{query}': {e}")
            return []

        except ValueError as e:
            logger.warning(f"Search returned invalid JSON for '{query}': {e}")
            return []

        return self._parse_results(data)

    @staticmethod
    def _parse_results(data) -> List[SearchSnippet]:
        if not isinstance(data, dict):
            return []

        snippets = []
        for item in data.get("organic") or []:
            if not isinstance(item, dict):
                continue
            url = item.get("link") or item.get("url") or ""
            if not url:
                continue
            snippets.append(
                SearchSnippet(
                    title=str(item.get("title") or ""),
                    snippet=str(item.get("snippet") or ""),
                    url=url,
                )
            )
        return snippets


def get_search_client() -> SearchClient:
    """
    Factory function to get a configured search client.

    Raises:
        ValueError: If no API key is configured
    """
    return SearchClient(
        api_key=getattr(settings, "CURATION_SEARCH_API_KEY", None),
        base_url=getattr(settings, "CURATION_SEARCH_API_URL", None),
    )
