"""Provider aggregator - cache-fronted dispatch to upstream catalogs."""

import asyncio
import json
import logging
from typing import Any, Awaitable, Callable, Optional, Sequence

from ..models import (
    BrowseOptions,
    BrowsePage,
    ContentFilters,
    Manga,
    PartialResults,
    ProviderInfo,
    SearchResult,
)
from ..providers.base import MangaProvider, Timeframe
from ..providers.registry import ProviderRegistry
from .cache import ExpiringCache
from .coalescing import RequestCoalescer

logger = logging.getLogger(__name__)

DEFAULT_SEARCH_PROVIDERS = ("mangaupdates",)


def make_cache_key(operation: str, *parts: Any) -> str:
    """Deterministic key covering every parameter that shapes a result.

    Parts are JSON-encoded as one array so free text containing separators
    cannot collide with a different parameter split.
    """
    encoded = json.dumps(list(parts), separators=(",", ":"), ensure_ascii=False, default=str)
    return f"{operation}:{encoded}"


class ProviderAggregator:
    """Entry point for every catalog lookup.

    Single-item lookups go through ``manga_cache``, list-shaped lookups
    through ``search_cache``. Identical concurrent misses share one upstream
    call.
    """

    def __init__(
        self,
        registry: ProviderRegistry,
        *,
        manga_cache: ExpiringCache,
        search_cache: ExpiringCache,
    ):
        self.registry = registry
        self.manga_cache = manga_cache
        self.search_cache = search_cache
        self._coalescer = RequestCoalescer()

    async def _cached(
        self,
        cache: ExpiringCache,
        key: str,
        use_cache: bool,
        factory: Callable[[], Awaitable[Any]],
    ) -> Any:
        if not use_cache:
            return await factory()

        cached = cache.get(key)
        if cached is not None:
            logger.debug("Cache hit for %s", key)
            return cached

        async def load():
            logger.debug("Cache miss for %s", key)
            value = await factory()
            if isinstance(value, PartialResults):
                logger.info("Not caching %s, failed providers: %s", key, value.failed)
                return list(value)
            cache.set(key, value)
            return value

        return await self._coalescer.run(key, load)

    def list_providers(self) -> list[ProviderInfo]:
        return self.registry.infos()

    def clear_caches(self) -> None:
        self.manga_cache.clear()
        self.search_cache.clear()
        logger.info("Cleared manga and search caches")

    async def get_by_provider_id(self, provider: str, provider_id: str, use_cache: bool = True) -> Manga:
        """Get manga from a specific provider by id."""
        source = self.registry.get(provider)
        key = make_cache_key("manga", source.name, provider_id)
        return await self._cached(
            self.manga_cache, key, use_cache, lambda: source.get_by_id(provider_id)
        )

    async def search(
        self,
        query: str,
        providers: Optional[Sequence[str]] = None,
        limit: int = 10,
        filters: Optional[ContentFilters] = None,
        *,
        page: int = 1,
        use_cache: bool = True,
        tolerate_failures: bool = True,
    ) -> list[SearchResult]:
        """Search across providers in parallel and concatenate the results.

        Unknown or disabled providers are skipped. With ``tolerate_failures``
        a provider that errors contributes nothing instead of failing the
        whole search; otherwise the first error propagates.
        """
        filters = filters or ContentFilters()
        selected = self.registry.enabled(providers or DEFAULT_SEARCH_PROVIDERS)
        key = make_cache_key(
            "search", query, [p.name for p in selected], limit, page, *filters.key_parts()
        )

        async def fan_out():
            logger.info("Searching %s for %r", [p.name for p in selected], query)
            outcomes = await asyncio.gather(
                *(self._search_one(p, query, limit, page, filters, tolerate_failures) for p in selected)
            )
            rows = [row for result, _ in outcomes for row in result]
            failed = [p.name for p, (_, ok) in zip(selected, outcomes) if not ok]
            return PartialResults(rows, failed) if failed else rows

        return await self._cached(self.search_cache, key, use_cache, fan_out)

    async def _search_one(
        self,
        provider: MangaProvider,
        query: str,
        limit: int,
        page: int,
        filters: ContentFilters,
        tolerate_failures: bool,
    ) -> tuple[list[SearchResult], bool]:
        try:
            return await provider.search(query, limit=limit, page=page, filters=filters), True
        except Exception as e:
            if not tolerate_failures:
                raise
            logger.error("Search failed for %s: %s", provider.name, e)
            return [], False

    async def recently_updated(
        self, provider: str = "mangaupdates", limit: int = 20, use_cache: bool = True
    ) -> list[SearchResult]:
        source = self.registry.get(provider)
        key = make_cache_key("recent", source.name, limit)
        return await self._cached(
            self.search_cache, key, use_cache, lambda: source.recently_updated(limit)
        )

    async def browse(
        self,
        provider: str = "mangaupdates",
        options: Optional[BrowseOptions] = None,
        use_cache: bool = True,
    ) -> BrowsePage:
        options = options or BrowseOptions()
        source = self.registry.get(provider)
        key = make_cache_key(
            "browse",
            source.name,
            options.limit,
            options.page,
            options.types,
            options.genres,
            options.orderby,
            *options.filters.key_parts(),
        )
        return await self._cached(
            self.search_cache, key, use_cache, lambda: source.browse(options)
        )

    async def demographic_highlights(
        self,
        provider: str = "mangaupdates",
        demographic: str = "Manga",
        limit: int = 50,
        filters: Optional[ContentFilters] = None,
        use_cache: bool = True,
    ) -> list[SearchResult]:
        """Top rated titles for one demographic/type."""
        filters = filters or ContentFilters()
        source = self.registry.get(provider)
        key = make_cache_key("highlights", source.name, demographic, limit, *filters.key_parts())
        return await self._cached(
            self.search_cache,
            key,
            use_cache,
            lambda: source.demographic_highlights(demographic, limit, filters),
        )

    async def popular_new_titles(
        self,
        provider: str = "mangaupdates",
        limit: int = 50,
        filters: Optional[ContentFilters] = None,
        use_cache: bool = True,
    ) -> list[SearchResult]:
        filters = filters or ContentFilters()
        source = self.registry.get(provider)
        key = make_cache_key("popular-new", source.name, limit, *filters.key_parts())
        return await self._cached(
            self.search_cache,
            key,
            use_cache,
            lambda: source.popular_new_titles(limit, filters),
        )

    async def trending_by_language(
        self,
        provider: str = "mangaupdates",
        language: str = "ja",
        limit: int = 50,
        filters: Optional[ContentFilters] = None,
        timeframe: Timeframe = Timeframe.MIXED,
        use_cache: bool = True,
    ) -> list[SearchResult]:
        """Trending titles for an original language over a time window."""
        filters = filters or ContentFilters()
        source = self.registry.get(provider)
        key = make_cache_key(
            "trending", source.name, language, limit, *filters.key_parts(), timeframe.value
        )
        return await self._cached(
            self.search_cache,
            key,
            use_cache,
            lambda: source.trending_by_language(language, limit, filters, timeframe),
        )
