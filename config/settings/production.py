"""
Production settings for the Curation Pipeline.
"""

import os
from .base import *

# SECURITY WARNING: don't run with debug turned on in production!
DEBUG = False

ALLOWED_HOSTS = os.getenv("ALLOWED_HOSTS", "").split(",")

# Production logging
LOGGING["loggers"]["django"]["level"] = "WARNING"
LOGGING["loggers"]["curation"]["level"] = "INFO"

CURATION_REQUEST_TIMEOUT = 30
CURATION_MAX_RETRIES = 2
CURATION_WORKER_POOL_SIZE = int(os.getenv("CURATION_WORKER_POOL_SIZE", "6"))
