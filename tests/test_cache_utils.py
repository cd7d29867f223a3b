from datetime import datetime, timezone

from firstgoal.utils.cache_utils import ResourceCache, cached_query

from conftest import FakeClock


def test_hit_returns_identical_object():
    clock = FakeClock()
    cache = ResourceCache(clock=clock, default_ttl=300)
    value = ("a", "b")
    cache.set("players", value)

    clock.advance(seconds=299)
    assert cache.get("players") is value


def test_entry_expires_after_ttl():
    clock = FakeClock()
    cache = ResourceCache(clock=clock, default_ttl=300)
    cache.set("players", ["x"])

    clock.advance(seconds=301)
    assert cache.get("players") is None
    assert cache.get_stats()["entries"] == 0


def test_per_entry_ttl_overrides_default():
    clock = FakeClock()
    cache = ResourceCache(clock=clock, default_ttl=300)
    cache.set("leaderboard:10", [1], ttl=30)
    cache.set("games", [2])

    clock.advance(seconds=31)
    assert cache.get("leaderboard:10") is None
    assert cache.get("games") == [2]


def test_invalidate_prefix_drops_every_limit():
    cache = ResourceCache(clock=FakeClock())
    cache.set("leaderboard:10", [1])
    cache.set("leaderboard:50", [2])
    cache.set("games", [3])

    cache.invalidate_prefix("leaderboard")

    assert "leaderboard:10" not in cache
    assert "leaderboard:50" not in cache
    assert "games" in cache


def test_invalidate_single_key_and_all():
    cache = ResourceCache(clock=FakeClock())
    cache.set("games", [1])
    cache.set("players", [2])

    cache.invalidate("games")
    assert cache.get("games") is None
    assert cache.get("players") == [2]

    cache.invalidate()
    assert cache.get("players") is None


def test_stats_count_hits_and_misses():
    cache = ResourceCache(clock=FakeClock())
    cache.get("games")
    cache.set("games", [1])
    cache.get("games")

    stats = cache.get_stats()
    assert stats["hits"] == 1
    assert stats["misses"] == 1


class CountingReader:
    def __init__(self, cache):
        self.cache = cache
        self.ttl = 60
        self.calls = 0

    @cached_query("games", "ttl")
    def load(self):
        self.calls += 1
        return [self.calls]

    @cached_query("leaderboard", "ttl")
    def top(self, limit):
        self.calls += 1
        return list(range(limit))


def test_cached_query_reuses_result_until_refresh():
    clock = FakeClock(datetime(2025, 1, 1, tzinfo=timezone.utc))
    reader = CountingReader(ResourceCache(clock=clock))

    first = reader.load()
    assert reader.load() is first
    assert reader.calls == 1

    refreshed = reader.load(force_refresh=True)
    assert refreshed == [2]
    assert reader.load() is refreshed

    clock.advance(seconds=61)
    assert reader.load() == [3]


def test_cached_query_keys_include_arguments():
    cache = ResourceCache(clock=FakeClock())
    reader = CountingReader(cache)

    reader.top(3)
    reader.top(5)
    reader.top(3)

    assert reader.calls == 2
    assert "leaderboard:3" in cache
    assert "leaderboard:5" in cache


def test_membership_check_leaves_counters_alone():
    clock = FakeClock()
    cache = ResourceCache(clock=clock, default_ttl=60)
    cache.set("games", [1])

    assert "games" in cache
    assert "players" not in cache
    clock.advance(seconds=61)
    assert "games" not in cache

    stats = cache.get_stats()
    assert (stats["hits"], stats["misses"]) == (0, 0)
    assert stats["entries"] == 0


def test_expiry_ignores_wall_clock():
    clock = FakeClock(datetime(2020, 1, 1, tzinfo=timezone.utc))
    cache = ResourceCache(clock=clock, default_ttl=60)
    value = {"rows": []}
    cache.set("leaderboard:10", value)

    assert cache.get("leaderboard:10") is value


def test_oldest_entry_evicted_when_full():
    cache = ResourceCache(clock=FakeClock(), maxsize=2)
    cache.set("games", [1])
    cache.set("players", [2])
    cache.set("leaderboard:10", [3])

    assert cache.get_stats()["entries"] == 2
    assert cache.get("leaderboard:10") == [3]
