"""
Django base settings for the Curation Pipeline.

This module contains settings common to all environments.
For more information on this file, see
https://docs.djangoproject.com/en/4.2/topics/settings/
"""

import os
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

# Build paths inside the project like this: BASE_DIR / 'subdir'.
BASE_DIR = Path(__file__).resolve().parent.parent.parent


# SECURITY WARNING: keep the secret key used in production secret!
SECRET_KEY = os.getenv(
    "SECRET_KEY",
    "django-insecure-curation-dev-key-change-in-production"
)

# SECURITY WARNING: don't run with debug turned on in production!
DEBUG = os.getenv("DEBUG", "True") == "True"

ALLOWED_HOSTS = os.getenv("ALLOWED_HOSTS", "localhost,127.0.0.1").split(",")


# Application definition
# The pipeline is invoked in-process by the admin service layer, so only
# the local app is installed.

INSTALLED_APPS = [
    "django.contrib.contenttypes",
    # Local apps
    "curation",
]


# Database
# Persistence is owned by the calling service layer; the pipeline itself
# never touches the database.

DATABASES = {}


# Internationalization
# https://docs.djangoproject.com/en/4.2/topics/i18n/

LANGUAGE_CODE = "en-us"

TIME_ZONE = "UTC"

USE_I18N = True

USE_TZ = True

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"


# Logging Configuration
# https://docs.djangoproject.com/en/4.2/topics/logging/

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "verbose": {
            "format": "{levelname} {asctime} {module} {message}",
            "style": "{",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "verbose",
        },
    },
    "loggers": {
        "django": {
            "handlers": ["console"],
            "level": os.getenv("LOG_LEVEL", "INFO"),
        },
        "curation": {
            "handlers": ["console"],
            "level": os.getenv("LOG_LEVEL", "INFO"),
        },
    },
}


# External API Configuration

# AI completion service (extract-or-estimate)
CURATION_AI_SERVICE_URL = os.getenv(
    "CURATION_AI_SERVICE_URL",
    "http://localhost:8000"
)
CURATION_AI_SERVICE_TOKEN = os.getenv("CURATION_AI_SERVICE_TOKEN", "")

# Search snippet provider (Serper-compatible endpoint)
CURATION_SEARCH_API_URL = os.getenv(
    "CURATION_SEARCH_API_URL",
    "https://google.serper.dev/search"
)
CURATION_SEARCH_API_KEY = os.getenv("CURATION_SEARCH_API_KEY", "")


# Sentry Configuration
# https://docs.sentry.io/platforms/python/guides/django/

SENTRY_DSN = os.getenv("SENTRY_DSN", "")
SENTRY_ENVIRONMENT = os.getenv("SENTRY_ENVIRONMENT", "development")
SENTRY_TRACES_SAMPLE_RATE = float(os.getenv("SENTRY_TRACES_SAMPLE_RATE", "0.2"))

# Initialize Sentry
import sentry_sdk

if SENTRY_DSN:
    sentry_sdk.init(
        dsn=SENTRY_DSN,
        traces_sample_rate=SENTRY_TRACES_SAMPLE_RATE,
        environment=SENTRY_ENVIRONMENT,
    )


# Pipeline Configuration

# Navigation / HTTP timeout (seconds)
CURATION_REQUEST_TIMEOUT = int(os.getenv("CURATION_REQUEST_TIMEOUT", "30"))

# Retries for retryable (timeout / 5xx) failures; blocking is never retried
CURATION_MAX_RETRIES = int(os.getenv("CURATION_MAX_RETRIES", "2"))

# Exponential backoff base in seconds: delay = base ** (attempt + 1)
CURATION_RETRY_BACKOFF_BASE = float(os.getenv("CURATION_RETRY_BACKOFF_BASE", "2.0"))

# Number of parallel workers per scrape batch
CURATION_WORKER_POOL_SIZE = int(os.getenv("CURATION_WORKER_POOL_SIZE", "4"))

# ultra-high protection below this success rate requires operator confirmation
CURATION_LOW_SUCCESS_THRESHOLD = float(
    os.getenv("CURATION_LOW_SUCCESS_THRESHOLD", "0.10")
)

# Extra rows for the domain protection table:
# {"domain": ("level", success_rate, "recommendation")}
CURATION_DOMAIN_PROTECTION = {}

# Product extraction
CURATION_MIN_PRODUCTS = 3
CURATION_PRICE_BANDS = {
    1: (10.0, 10000.0),
    2: (5.0, 12000.0),
    3: (5.0, 15000.0),
}

# Median price breakpoints for $, $$, $$$ (anything above is $$$$)
CURATION_PRICE_BREAKPOINTS = (100, 300, 800)

# Size chart scanning
CURATION_SIZE_LINE_BUDGET = 150

# Duplicate detection
CURATION_DEDUP_SIMILARITY_THRESHOLD = float(
    os.getenv("CURATION_DEDUP_SIMILARITY_THRESHOLD", "0.85")
)

# Quality scoring: field weights and per-provenance scores (0-100).
# Fields tagged "skipped" are left out of the weighted average.
CURATION_QUALITY_FIELD_WEIGHTS = {
    "priceRange": 30,
    "categories": 20,
    "sizes": 20,
    "products": 30,
}
CURATION_QUALITY_PROVENANCE_SCORES = {
    "priceRange": {"products": 100, "limited-products": 70, "estimated": 50, "none": 0},
    "categories": {"derived": 90, "default": 50},
    "sizes": {"full-page": 90, "snippets": 70, "none": 0},
}
