"""Deduplicate identical in-flight requests."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any


class RequestCoalescer:
    """Share one running coroutine between callers that ask for the same key.

    The first caller for a key (the leader) starts the work; anyone arriving
    while it is still running awaits the same task. If the leader is
    cancelled the work is cancelled with it, and waiting followers start
    over instead of inheriting the cancellation.
    """

    def __init__(self) -> None:
        self._tasks: dict[str, asyncio.Task] = {}

    def in_flight(self, key: str) -> bool:
        return key in self._tasks

    async def run(self, key: str, factory: Callable[[], Awaitable[Any]]) -> Any:
        while True:
            existing = self._tasks.get(key)
            if existing is None:
                break
            try:
                return await asyncio.shield(existing)
            except asyncio.CancelledError:
                current = asyncio.current_task()
                if existing.cancelled() and not (current and current.cancelling()):
                    if self._tasks.get(key) is existing:
                        del self._tasks[key]
                    continue
                raise

        task = asyncio.ensure_future(factory())
        self._tasks[key] = task
        try:
            return await task
        finally:
            if self._tasks.get(key) is task:
                del self._tasks[key]
