"""
Django project configuration for the Curation Pipeline.
"""
