"""
AI completion service API client.

Implements the extract-or-estimate capability over the service's
/api/v1/extract-or-estimate/ endpoint.

Request:
    {"task": "...", "context": {...}}

Tasks used by the pipeline:
- extract_products: product candidates from search snippets
- extract_page: a single product from page text
- estimate_price: typical full price for a brand with no product evidence

Response:
    {"data": {...}, "confidence": 0-100}

The service is a black box: failures and unusable output are normal
outcomes reported through AICompletionResult, never raised.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import httpx
from django.conf import settings

logger = logging.getLogger(__name__)


@dataclass
class AICompletionResult:
    """Result of an extract-or-estimate call."""

    success: bool
    data: Dict[str, Any] = field(default_factory=dict)
    confidence: int = 0
    error: Optional[str] = None


class AICompletionClient:
    """
    Async HTTP client for the AI completion service.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: float = 60.0,
    ):
        """
        Initialize the AI completion client.

        Args:
            base_url: Service URL (defaults to settings.CURATION_AI_SERVICE_URL)
            api_key: Bearer token (defaults to settings.CURATION_AI_SERVICE_TOKEN)
            timeout: Request timeout in seconds (default 60s)
        """
        self.base_url = base_url or getattr(
            settings, "CURATION_AI_SERVICE_URL", "http://localhost:8000"
        )
        self.api_key = api_key or getattr(settings, "CURATION_AI_SERVICE_TOKEN", "")
        self.timeout = timeout

        self.base_url = self.base_url.rstrip("/")
        self.endpoint = f"{self.base_url}/api/v1/extract-or-estimate/"

    def _get_headers(self) -> Dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    async def extract_or_estimate(self, context: Dict[str, Any]) -> AICompletionResult:
        """
        Ask the service to extract or estimate structured data.

        Args:
            context: Must contain "task"; remaining keys are task input

        Returns:
            AICompletionResult with data and a 0-100 confidence
        """
        task = context.get("task", "unknown")
        payload = {
            "task": task,
            "context": {k: v for k, v in context.items() if k != "task"},
        }

        logger.debug(f"Calling AI service for task '{task}'")

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    self.endpoint,
                    json=payload,
                    headers=self._get_headers(),
                )
                return self._parse_response(task, response)

        except httpx.TimeoutException as e:
            logger.error(f"AI service timeout: {e}")
            return AICompletionResult(
                success=False,
                error=f"Request timeout after {self.timeout}s",
            )

        except httpx.ConnectError as e:
            logger.error(f"AI service connection error: {e}")
            return AICompletionResult(
                success=False,
                error=f"Connection error: {str(e)}",
            )

        except httpx.HTTPError as e:
            logger.error(f"AI service HTTP error: {e}")
            return AICompletionResult(
                success=False,
                error=f"HTTP error: {str(e)}",
            )

    def _parse_response(self, task: str, response: httpx.Response) -> AICompletionResult:
        if response.status_code != 200:
            error_msg = f"API returned status {response.status_code}"
            try:
                error_data = response.json()
                if isinstance(error_data, dict) and "error" in error_data:
                    error_msg = f"{error_msg}: {error_data['error']}"
            except ValueError:
                error_msg = f"{error_msg}: {response.text[:200]}"

            logger.warning(error_msg)
            return AICompletionResult(success=False, error=error_msg)

        try:
            data = response.json()
        except ValueError as e:
            logger.error(f"Failed to parse AI service response: {e}")
            return AICompletionResult(
                success=False,
                error=f"Invalid JSON response: {str(e)}",
            )

        if not isinstance(data, dict):
            return AICompletionResult(success=False, error="Response is not an object")

        if data.get("error"):
            return AICompletionResult(success=False, error=str(data["error"]))

        payload = data.get("data")
        if not isinstance(payload, dict):
            return AICompletionResult(success=False, error="Response has no data object")

        confidence = _coerce_confidence(data.get("confidence"))

        logger.info(f"AI task '{task}' succeeded (confidence: {confidence})")
        return AICompletionResult(success=True, data=payload, confidence=confidence)


def _coerce_confidence(value) -> int:
    """Clamp a 0-1 or 0-100 confidence into an integer 0-100."""
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0
    if 0 < number <= 1:
        number *= 100
    return int(max(0, min(100, round(number))))


def get_ai_client() -> AICompletionClient:
    """
    Factory function to get a configured AI completion client.

    Returns:
        AICompletionClient configured from Django settings
    """
    return AICompletionClient(
        base_url=getattr(settings, "CURATION_AI_SERVICE_URL", None),
        api_key=getattr(settings, "CURATION_AI_SERVICE_TOKEN", None),
        timeout=60.0,
    )
