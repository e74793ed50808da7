"""Upstream manga catalog integrations."""

from .base import MangaProvider, ProviderConfig, ProviderId, Timeframe
from .registry import ProviderRegistry, configs_from_settings

__all__ = [
    "MangaProvider",
    "ProviderConfig",
    "ProviderId",
    "Timeframe",
    "ProviderRegistry",
    "configs_from_settings",
]
