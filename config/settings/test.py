"""
Test settings for the Curation Pipeline.

No external services: search, AI and browser capabilities are stubbed in tests.
"""

from .base import *

# Test mode
DEBUG = False

ALLOWED_HOSTS = ["localhost", "127.0.0.1", "testserver"]

# Test logging - minimal output
LOGGING["loggers"]["django"]["level"] = "WARNING"
LOGGING["loggers"]["curation"]["level"] = "WARNING"

# Disable Sentry in tests
SENTRY_DSN = ""

# Test pipeline settings - fail fast, no backoff sleeps
CURATION_REQUEST_TIMEOUT = 5
CURATION_MAX_RETRIES = 1
CURATION_RETRY_BACKOFF_BASE = 0
CURATION_WORKER_POOL_SIZE = 2
CURATION_SEARCH_API_KEY = "test-search-key"
CURATION_AI_SERVICE_URL = "http://ai.test"
