"""
Development settings for the Curation Pipeline.

Verbose logging and relaxed fetch settings for local runs.
"""

from .base import *

DEBUG = True

ALLOWED_HOSTS = ["localhost", "127.0.0.1"]

# Development logging - verbose output
LOGGING["loggers"]["django"]["level"] = "DEBUG"
LOGGING["loggers"]["curation"]["level"] = "DEBUG"

# Relaxed pipeline settings for development
CURATION_REQUEST_TIMEOUT = 60  # More time for debugging
CURATION_MAX_RETRIES = 1  # Fail fast in development
CURATION_WORKER_POOL_SIZE = 2
