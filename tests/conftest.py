from __future__ import annotations

import asyncio

import pytest

from scraper_api.config import Settings


def run_async(coro):
    return asyncio.run(coro)


class FakeClock:
    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeSleep:
    """Records requested delays; optionally moves a FakeClock forward."""

    def __init__(self, clock: FakeClock | None = None) -> None:
        self.calls: list[float] = []
        self.clock = clock

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)
        if self.clock is not None:
            self.clock.advance(seconds)
        await asyncio.sleep(0)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fake_sleep() -> FakeSleep:
    return FakeSleep()


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        polite_delay=0,
        mangaupdates_polite_delay=0,
        mangadex_polite_delay=0,
        retry_max_attempts=2,
        retry_base_delay=0,
        retry_max_delay=0,
        cache_sweep_interval=60,
        log_level="DEBUG",
    )
