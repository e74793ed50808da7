"""Bulk title resolver - map free-text titles to provider ids.

Used when importing reading lists from other sites. Resolution is best
effort: an item that cannot be matched resolves to ``None`` and the batch
carries on.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Callable, Iterable, Optional

from ..errors import HttpError
from ..models import ContentFilters, ResolvedTitle, ResolveItem
from .aggregator import ProviderAggregator
from .cache import ExpiringCache
from .coalescing import RequestCoalescer

logger = logging.getLogger(__name__)

MIN_TITLE_LENGTH = 2
MAX_ALT_TITLES = 5
DEFAULT_WORKERS = 4


@dataclass(frozen=True)
class TitleResolution:
    """Cached outcome of one title lookup; ``resolved_id=None`` means no match."""
    resolved_id: Optional[str]
    resolved_at: float


def normalize_title(value: str) -> str:
    return value.strip().lower()


def candidate_titles(item: ResolveItem) -> list[str]:
    """Primary title then up to five usable alternates, trimmed and deduplicated."""
    candidates: list[str] = []
    seen: set[str] = set()
    alternates = 0
    for position, raw in enumerate([item.title or "", *item.alt_titles]):
        title = raw.strip()
        key = title.lower()
        if len(title) < MIN_TITLE_LENGTH or key in seen:
            continue
        if position > 0:
            if alternates >= MAX_ALT_TITLES:
                break
            alternates += 1
        seen.add(key)
        candidates.append(title)
    return candidates


class TitleResolver:
    """Resolve batches of titles through a dedicated long-lived cache."""

    def __init__(
        self,
        aggregator: ProviderAggregator,
        *,
        cache: ExpiringCache,
        provider: str = "mangadex",
        workers: int = DEFAULT_WORKERS,
        clock: Callable[[], float] = time.time,
    ):
        self.aggregator = aggregator
        self.cache = cache
        self.provider = provider
        self.workers = max(1, workers)
        self._clock = clock
        self._coalescer = RequestCoalescer()

    async def resolve_bulk(self, items: Iterable[ResolveItem]) -> list[ResolvedTitle]:
        """Resolve every item; output order matches input order."""
        items = list(items)
        # Fail fast on a misconfigured target rather than caching misses
        self.aggregator.registry.get(self.provider)
        semaphore = asyncio.Semaphore(self.workers)

        async def worker(index: int, item: ResolveItem) -> ResolvedTitle:
            async with semaphore:
                resolved_id = await self.resolve(item)
            return ResolvedTitle(index=index, title=item.title, resolved_id=resolved_id)

        results = await asyncio.gather(*(worker(i, item) for i, item in enumerate(items)))
        resolved = sum(1 for r in results if r.resolved_id)
        logger.info("Resolved %d/%d titles via %s", resolved, len(results), self.provider)
        return list(results)

    async def resolve(self, item: ResolveItem) -> Optional[str]:
        source = self.aggregator.registry.get(self.provider)
        from_url = source.config.extract_id(item.url)
        if from_url:
            return from_url

        if not item.title or len(item.title.strip()) < MIN_TITLE_LENGTH:
            return None

        for title in candidate_titles(item):
            resolved_id = await self.resolve_title(title)
            if resolved_id:
                return resolved_id
        return None

    async def resolve_title(self, title: str) -> Optional[str]:
        """Resolve one candidate, serving positive and negative hits from cache."""
        key = normalize_title(title)
        cached = self.cache.get(key)
        if cached is not None:
            logger.debug("Title cache hit for %r -> %s", key, cached.resolved_id)
            return cached.resolved_id

        return await self._coalescer.run(key, lambda: self._lookup(title, key))

    async def _lookup(self, title: str, key: str) -> Optional[str]:
        try:
            results = await self.aggregator.search(
                title,
                [self.provider],
                limit=1,
                filters=ContentFilters.allow_all(),
                use_cache=False,
                tolerate_failures=False,
            )
        except HttpError as e:
            if not e.is_not_found:
                logger.warning("Title lookup for %r failed: %s", title, e)
                return None
            results = []
        except Exception as e:
            logger.warning("Title lookup for %r failed: %s", title, e)
            return None

        resolved_id = results[0].provider_id if results else None
        self.cache.set(key, TitleResolution(resolved_id=resolved_id, resolved_at=self._clock()))
        return resolved_id
