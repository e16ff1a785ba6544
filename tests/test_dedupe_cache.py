"""Tests for DedupeCache (window, per-target isolation, eviction, concurrency)."""

from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor

import pytest
from cachetools import TTLCache
from trackbot.dedupe import DedupeCache, DedupeEntry, ExpiryPolicy, IssueFingerprint

K = IssueFingerprint("https://bugzilla.redhat.com", "1234")
K2 = IssueFingerprint("https://bugzilla.redhat.com", "5678")


class FakeClock:
    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


# ---------------------------------------------------------------------------
# Window semantics
# ---------------------------------------------------------------------------


class TestWindow:
    def test_first_check_passes(self):
        cache = DedupeCache(10.0)
        assert cache.check_apply("#test", K, 0.0) is True

    def test_repeat_inside_window_suppressed(self):
        cache = DedupeCache(10.0)
        cache.check_apply("#test", K, 0.0)
        assert cache.check_apply("#test", K, 9.999) is False

    def test_repeat_at_window_passes(self):
        cache = DedupeCache(10.0)
        cache.check_apply("#test", K, 0.0)
        assert cache.check_apply("#test", K, 10.0) is True

    def test_suppressed_check_does_not_refresh(self):
        cache = DedupeCache(10.0)
        cache.check_apply("#test", K, 0.0)
        assert cache.check_apply("#test", K, 5.0) is False
        # Window still counts from t=0, not t=5
        assert cache.check_apply("#test", K, 10.0) is True

    def test_passing_check_refreshes(self):
        cache = DedupeCache(10.0)
        cache.check_apply("#test", K, 0.0)
        cache.check_apply("#test", K, 10.0)
        assert cache.check_apply("#test", K, 15.0) is False

    def test_per_call_window(self):
        cache = DedupeCache(10.0)
        cache.check_apply("#test", K, 0.0)
        assert cache.check_apply("#test", K, 12.0, window=15.0) is False
        assert cache.check_apply("#test", K, 3.0, window=2.0) is True

    def test_longer_window_widens_eviction_horizon(self):
        cache = DedupeCache(10.0)
        cache.check_apply("#test", K, 0.0, window=30.0)
        # A later access at t=20 must not evict the entry the 30s window needs
        cache.check_apply("#test", K2, 20.0)
        assert cache.check_apply("#test", K, 25.0, window=30.0) is False

    def test_clock_read_when_now_omitted(self):
        clock = FakeClock()
        cache = DedupeCache(10.0, clock=clock)
        assert cache.check_apply("#test", K) is True
        clock.advance(5)
        assert cache.check_apply("#test", K) is False
        clock.advance(5)
        assert cache.check_apply("#test", K) is True

    def test_negative_window_rejected(self):
        with pytest.raises(ValueError):
            DedupeCache(-1.0)


# ---------------------------------------------------------------------------
# Targets
# ---------------------------------------------------------------------------


class TestTargets:
    def test_targets_are_independent(self):
        cache = DedupeCache(10.0)
        assert cache.check_apply("#a", K, 0.0) is True
        assert cache.check_apply("#b", K, 1.0) is True
        assert cache.check_apply("#a", K, 2.0) is False
        assert cache.check_apply("#b", K, 2.0) is False

    def test_keys_are_independent(self):
        cache = DedupeCache(10.0)
        cache.check_apply("#a", K, 0.0)
        assert cache.check_apply("#a", K2, 0.0) is True

    def test_target_names_case_insensitive(self):
        cache = DedupeCache(10.0)
        assert cache.check_apply("#WildFly", K, 0.0) is True
        assert cache.check_apply("#wildfly", K, 1.0) is False
        assert cache.is_fresh("#WILDFLY", K, 2.0) is True
        assert cache.targets() == ["#wildfly"]

    def test_release_case_insensitive(self):
        cache = DedupeCache(10.0)
        entry = cache.claim("#WildFly", K, 0.0)
        assert cache.release("#wildfly", entry) is True

    def test_targets_listed(self):
        cache = DedupeCache(10.0)
        cache.check_apply("#a", K, 0.0)
        cache.check_apply("nick", K, 0.0)
        assert sorted(cache.targets()) == ["#a", "nick"]


# ---------------------------------------------------------------------------
# Clock anomalies
# ---------------------------------------------------------------------------


class TestNegativeAge:
    def test_entry_from_the_future_is_stale(self):
        cache = DedupeCache(10.0)
        cache.check_apply("#test", K, 100.0)
        assert cache.check_apply("#test", K, 50.0) is True

    def test_policy_negative_age(self):
        policy = ExpiryPolicy(window=10.0, expire_after=10.0)
        entry = DedupeEntry(K, 100.0)
        assert policy.is_fresh(entry, 99.0) is False
        assert policy.is_expired(entry, 99.0) is True

    def test_future_entry_evicted_on_access(self):
        cache = DedupeCache(10.0)
        cache.check_apply("#test", K, 100.0)
        cache.check_apply("#test", K2, 50.0)
        assert cache.is_fresh("#test", K, 50.0) is False
        assert len(cache) == 1


# ---------------------------------------------------------------------------
# Eviction and bounds
# ---------------------------------------------------------------------------


class TestEviction:
    def test_stale_entries_do_not_count(self):
        cache = DedupeCache(10.0)
        cache.check_apply("#test", K, 0.0)
        cache.check_apply("#test", K2, 5.0)
        assert cache.fresh_count("#test", 9.0) == 2
        assert cache.fresh_count("#test", 12.0) == 1
        assert cache.fresh_count("#test", 20.0) == 0

    def test_lazy_eviction_drops_eldest(self):
        cache = DedupeCache(10.0)
        cache.check_apply("#test", K, 0.0)
        cache.check_apply("#test", K2, 11.0)
        assert len(cache) == 1

    def test_max_entries_bound(self):
        cache = DedupeCache(100.0, max_entries=3)
        for i in range(5):
            cache.check_apply("#test", IssueFingerprint("s", str(i)), float(i))
        assert len(cache) == 3
        # The two eldest were dropped and pass again
        assert cache.check_apply("#test", IssueFingerprint("s", "0"), 6.0) is True

    def test_purge_sweeps_all_targets(self):
        cache = DedupeCache(10.0)
        cache.check_apply("#a", K, 0.0)
        cache.check_apply("#b", K, 0.0)
        cache.check_apply("#b", K2, 8.0)
        assert cache.purge(12.0) == 2
        assert len(cache) == 1

    def test_expire_after_keeps_entries_longer(self):
        cache = DedupeCache(10.0, expire_after=45.0)
        cache.check_apply("#test", K, 0.0)
        cache.purge(20.0)
        assert len(cache) == 1
        assert cache.is_fresh("#test", K, 20.0) is False

    def test_target_maps_are_ttl_caches(self):
        cache = DedupeCache(10.0, expire_after=45.0, max_entries=7)
        cache.check_apply("#test", K, 0.0)

        entries = cache._targets["#test"].entries

        assert isinstance(entries, TTLCache)
        assert entries.ttl == 45.0
        assert entries.maxsize == 7

    def test_longer_window_rebuilds_ttl(self):
        cache = DedupeCache(10.0)
        cache.check_apply("#test", K, 0.0)
        assert cache.check_apply("#test", K2, 5.0, window=30.0) is True

        assert cache._targets["#test"].entries.ttl == 30.0
        # K keeps its own timestamp after the rebuild
        assert cache.is_fresh("#test", K, 25.0, window=30.0) is True
        assert cache.purge(30.0) == 1
        assert cache.is_fresh("#test", K2, 30.0, window=30.0) is True


# ---------------------------------------------------------------------------
# claim / release / record
# ---------------------------------------------------------------------------


class TestClaimRelease:
    def test_release_removes_claim(self):
        cache = DedupeCache(10.0)
        entry = cache.claim("#test", K, 0.0)
        assert entry is not None
        assert cache.release("#test", entry) is True
        assert cache.check_apply("#test", K, 1.0) is True

    def test_release_keeps_newer_entry(self):
        cache = DedupeCache(10.0)
        old = cache.claim("#test", K, 0.0)
        assert old is not None
        cache.check_apply("#test", K, 20.0)
        assert cache.release("#test", old) is False
        assert cache.is_fresh("#test", K, 21.0) is True

    def test_release_unknown_target(self):
        cache = DedupeCache(10.0)
        assert cache.release("#nowhere", DedupeEntry(K, 0.0)) is False

    def test_claim_returns_none_when_fresh(self):
        cache = DedupeCache(10.0)
        cache.claim("#test", K, 0.0)
        assert cache.claim("#test", K, 1.0) is None

    def test_record_is_unconditional(self):
        cache = DedupeCache(10.0)
        cache.check_apply("#test", K, 0.0)
        cache.record("#test", K, 5.0)
        assert cache.check_apply("#test", K, 12.0) is False
        assert cache.check_apply("#test", K, 15.0) is True


# ---------------------------------------------------------------------------
# Concurrency
# ---------------------------------------------------------------------------


class TestConcurrency:
    def test_exactly_one_winner_per_key(self):
        cache = DedupeCache(10.0)
        n = 16
        barrier = threading.Barrier(n)

        def attempt(_: int) -> bool:
            barrier.wait()
            return cache.check_apply("#test", K, 0.0)

        with ThreadPoolExecutor(max_workers=n) as pool:
            results = list(pool.map(attempt, range(n)))
        assert results.count(True) == 1

    def test_one_winner_per_target(self):
        cache = DedupeCache(10.0)
        targets = ["#a", "#b", "#c", "#d"]
        n = 32
        barrier = threading.Barrier(n)

        def attempt(i: int) -> tuple[str, bool]:
            target = targets[i % len(targets)]
            barrier.wait()
            return target, cache.check_apply(target, K)

        with ThreadPoolExecutor(max_workers=n) as pool:
            results = list(pool.map(attempt, range(n)))
        for target in targets:
            assert [ok for t, ok in results if t == target].count(True) == 1
