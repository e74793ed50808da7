"""TTL-based caching service."""

import asyncio
import logging
import time
from typing import Any, Callable, Optional
from dataclasses import dataclass

logger = logging.getLogger(__name__)

DEFAULT_SWEEP_INTERVAL = 300.0  # 5 minutes


@dataclass
class CacheEntry:
    """A single cache entry with an absolute expiry."""
    value: Any
    expires_at: float

    def expired(self, now: float) -> bool:
        return now >= self.expires_at


class ExpiringCache:
    """In-memory cache with per-entry TTL and a background sweep.

    Misses and expired entries both read as ``None``. Expired entries are
    dropped lazily on ``get`` and eagerly by ``sweep``, which runs every
    ``sweep_interval`` seconds once ``start`` has been called.
    """

    def __init__(
        self,
        ttl: float,
        *,
        name: str = "cache",
        sweep_interval: float = DEFAULT_SWEEP_INTERVAL,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.name = name
        self.ttl = ttl
        self.sweep_interval = sweep_interval
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._sweeper: Optional[asyncio.Task] = None

    def get(self, key: str) -> Optional[Any]:
        """Get cached value if not expired."""
        entry = self._entries.get(key)
        if entry is None:
            return None

        if entry.expired(self._clock()):
            # Expired
            del self._entries[key]
            return None

        return entry.value

    def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        """Store a value; ``ttl`` overrides the cache default (seconds)."""
        effective_ttl = self.ttl if ttl is None else ttl
        self._entries[key] = CacheEntry(
            value=value,
            expires_at=self._clock() + effective_ttl,
        )

    def delete(self, key: str) -> None:
        """Remove a cache entry."""
        self._entries.pop(key, None)

    def clear(self) -> None:
        """Clear all cache entries."""
        self._entries.clear()

    def size(self) -> int:
        """Entry count, including expired entries not yet swept."""
        return len(self._entries)

    def __len__(self) -> int:
        return self.size()

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None

    def sweep(self) -> int:
        """Drop every expired entry and return how many were removed."""
        now = self._clock()
        expired = [key for key, entry in self._entries.items() if entry.expired(now)]
        for key in expired:
            del self._entries[key]

        if expired:
            logger.info("[%s] Cleaned up %d expired entries", self.name, len(expired))
        return len(expired)

    @property
    def running(self) -> bool:
        return self._sweeper is not None and not self._sweeper.done()

    def start(self) -> None:
        """Start the periodic sweep on the running event loop."""
        if self.running:
            return
        self._sweeper = asyncio.get_running_loop().create_task(
            self._sweep_forever(), name=f"{self.name}-sweep"
        )

    async def stop(self) -> None:
        """Cancel the periodic sweep and wait for it to finish."""
        sweeper, self._sweeper = self._sweeper, None
        if sweeper is None:
            return
        sweeper.cancel()
        try:
            await sweeper
        except asyncio.CancelledError:
            pass

    async def _sweep_forever(self) -> None:
        while True:
            await asyncio.sleep(self.sweep_interval)
            try:
                self.sweep()
            except Exception:
                logger.exception("[%s] Sweep failed", self.name)
