"""Caching and outbound HTTP services for the scraper API."""

from .cache import ExpiringCache
from .coalescing import RequestCoalescer
from .http import PoliteFetcher, RateGate, RetryPolicy

__all__ = ["ExpiringCache", "RequestCoalescer", "PoliteFetcher", "RateGate", "RetryPolicy"]
