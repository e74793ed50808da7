from __future__ import annotations

import asyncio

from scraper_api.services.cache import ExpiringCache

from conftest import FakeClock, run_async


def test_get_after_set_hits_until_expiry(clock):
    cache = ExpiringCache(10, clock=clock)
    cache.set("manga:1", {"title": "Berserk"})

    assert cache.get("manga:1") == {"title": "Berserk"}
    clock.advance(9)
    assert cache.get("manga:1") == {"title": "Berserk"}
    clock.advance(1)
    assert cache.get("manga:1") is None


def test_expired_read_deletes_entry(clock):
    cache = ExpiringCache(5, clock=clock)
    cache.set("a", 1)
    clock.advance(6)

    assert cache.size() == 1
    assert cache.get("a") is None
    assert cache.size() == 0


def test_ttl_override_and_overwrite(clock):
    cache = ExpiringCache(100, clock=clock)
    cache.set("short", "x", ttl=1)
    cache.set("long", "y")
    cache.set("long", "z")

    clock.advance(2)
    assert cache.get("short") is None
    assert cache.get("long") == "z"


def test_falsy_values_are_hits(clock):
    cache = ExpiringCache(10, clock=clock)
    cache.set("empty", [])

    assert cache.get("empty") == []
    assert "empty" in cache


def test_delete_and_clear_tolerate_missing_keys(clock):
    cache = ExpiringCache(10, clock=clock)
    cache.delete("missing")
    cache.set("a", 1)
    cache.set("b", 2)
    cache.delete("a")

    assert cache.get("a") is None
    assert len(cache) == 1
    cache.clear()
    cache.clear()
    assert cache.size() == 0


def test_sweep_removes_only_expired_entries(clock):
    cache = ExpiringCache(10, clock=clock)
    cache.set("old", 1, ttl=1)
    cache.set("older", 2, ttl=2)
    cache.set("fresh", 3)
    clock.advance(5)

    assert cache.size() == 3
    assert cache.sweep() == 2
    assert cache.size() == 1
    assert cache.get("fresh") == 3
    assert cache.sweep() == 0


def test_background_sweep_runs_on_interval():
    clock = FakeClock()
    cache = ExpiringCache(1, sweep_interval=0.01, clock=clock)

    async def scenario():
        cache.set("write-once", "never read")
        cache.set("kept", "value", ttl=100)
        clock.advance(2)
        cache.start()
        assert cache.running
        await asyncio.sleep(0.05)
        size = cache.size()
        await cache.stop()
        return size

    assert run_async(scenario()) == 1
    assert not cache.running


def test_stop_without_start_is_noop():
    cache = ExpiringCache(1)
    run_async(cache.stop())
    assert not cache.running


def test_start_twice_keeps_one_sweeper():
    cache = ExpiringCache(1, sweep_interval=10)

    async def scenario():
        cache.start()
        first = cache._sweeper
        cache.start()
        same = cache._sweeper is first
        await cache.stop()
        return same

    assert run_async(scenario())
