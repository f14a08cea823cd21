"""
Curation Django application.

This app turns brand names and product URLs into best-effort structured
commerce records (price ranges, size ranges, categories, products), each
field tagged with how it was obtained and scored for overall quality.
"""
