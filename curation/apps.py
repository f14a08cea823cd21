"""
Curation application configuration.
"""

from django.apps import AppConfig


class CurationConfig(AppConfig):
    """Configuration for the curation Django application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "curation"
    verbose_name = "Commerce Curation Pipeline"
