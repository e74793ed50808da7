"""Process-wide service context built once at start-up."""

import logging
from dataclasses import dataclass
from typing import Optional

import httpx

from .config import Settings
from .providers import ProviderRegistry, configs_from_settings
from .services.aggregator import ProviderAggregator
from .services.cache import ExpiringCache
from .services.http import PoliteFetcher
from .services.resolver import TitleResolver

logger = logging.getLogger(__name__)


@dataclass
class ScraperContext:
    """Owns the caches, the fetcher and everything composed from them."""
    settings: Settings
    fetcher: PoliteFetcher
    manga_cache: ExpiringCache
    search_cache: ExpiringCache
    title_cache: ExpiringCache
    aggregator: ProviderAggregator
    resolver: TitleResolver

    @property
    def caches(self) -> tuple[ExpiringCache, ...]:
        return (self.manga_cache, self.search_cache, self.title_cache)

    @classmethod
    def build(cls, settings: Settings, client: Optional[httpx.AsyncClient] = None) -> "ScraperContext":
        fetcher = PoliteFetcher.from_settings(settings, client=client)

        def cache(name: str, ttl: float) -> ExpiringCache:
            return ExpiringCache(ttl, name=name, sweep_interval=settings.cache_sweep_interval)

        manga_cache = cache("manga", settings.manga_cache_ttl)
        search_cache = cache("search", settings.search_cache_ttl)
        title_cache = cache("titles", settings.title_cache_ttl)

        registry = ProviderRegistry.from_configs(configs_from_settings(settings), fetcher)
        aggregator = ProviderAggregator(registry, manga_cache=manga_cache, search_cache=search_cache)
        resolver = TitleResolver(
            aggregator,
            cache=title_cache,
            provider=settings.resolver_provider,
            workers=settings.resolve_workers,
        )
        return cls(
            settings=settings,
            fetcher=fetcher,
            manga_cache=manga_cache,
            search_cache=search_cache,
            title_cache=title_cache,
            aggregator=aggregator,
            resolver=resolver,
        )

    def clear_caches(self) -> None:
        self.aggregator.clear_caches()
        self.title_cache.clear()
        logger.info("Cleared title resolution cache")

    def start(self) -> None:
        """Start background sweeps; call from inside the event loop."""
        for c in self.caches:
            c.start()
        logger.info("Cache sweeps started (every %ss)", self.settings.cache_sweep_interval)

    async def close(self) -> None:
        for c in self.caches:
            await c.stop()
        await self.fetcher.aclose()
        logger.info("Scraper context closed")
