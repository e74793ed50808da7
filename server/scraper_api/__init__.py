"""Shujia scraper API - cached, rate-limited access to manga catalogs."""

__version__ = "1.0.0"
