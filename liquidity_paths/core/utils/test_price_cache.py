from __future__ import annotations

import pytest

from liquidity_paths.core.utils.price_cache import PriceCache

TOKEN = "0x833589fCD6eDb6E08f4c7C32D4f71b54bdA02913"
OTHER = "0x4200000000000000000000000000000000000006"


class _Clock:
    def __init__(self, now: float = 1_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock() -> _Clock:
    return _Clock()


@pytest.fixture
def cache(clock: _Clock) -> PriceCache:
    return PriceCache(30, clock=clock)


def test_set_and_get_is_case_insensitive(cache: PriceCache):
    cache.set(TOKEN, 1.0)
    assert cache.get(TOKEN.lower()) == 1.0
    assert TOKEN.upper().replace("0X", "0x") in cache
    entry = cache.get_entry(TOKEN)
    assert entry is not None
    assert entry.source == "gecko"
    assert entry.fetched_at == 1_000.0


def test_entries_expire(cache: PriceCache, clock: _Clock):
    cache.set(TOKEN, 1.0)
    clock.now += 30
    assert cache.get(TOKEN) == 1.0
    clock.now += 0.5
    assert cache.get(TOKEN) is None
    assert len(cache) == 0


def test_writes_replace_whole_record(cache: PriceCache, clock: _Clock):
    cache.set(TOKEN, 1.0, "gecko")
    clock.now += 10
    cache.set(TOKEN, 1.01, "manual")
    entry = cache.get_entry(TOKEN)
    assert entry.price == 1.01
    assert entry.source == "manual"
    assert entry.fetched_at == 1_010.0


def test_get_many_splits_hits_and_misses(cache: PriceCache):
    cache.set(TOKEN, 1.0)
    hits, misses = cache.get_many([TOKEN, OTHER, OTHER.lower(), TOKEN.lower()])
    assert hits == {TOKEN.lower(): 1.0}
    assert misses == [OTHER.lower()]


def test_clear(cache: PriceCache):
    cache.set(TOKEN, 1.0)
    cache.set(OTHER, 3000.0)
    assert len(cache) == 2
    cache.clear()
    assert len(cache) == 0
    assert 123 not in cache


def test_ttl_defaults_to_config(restore_global_config):
    restore_global_config.set_config({"pricing": {"cache_ttl_seconds": 7}})
    assert PriceCache().ttl_seconds == 7.0
