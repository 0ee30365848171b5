"""
Unit tests for the calculation cache.

Tests cover:
- Memoization within the TTL
- Expiry with an injected clock
- Invalidation, sweeping and size bounds
- Single-flight computation under concurrency
- Key locks outliving invalidation, sweeps and eviction while callers wait
- Content-derived keys
"""
import itertools
import threading
import time
from concurrent.futures import ThreadPoolExecutor

import pytest

from estimator.domain.models import TreeMeasurement
from estimator.services.domain import calculation_cache
from estimator.services.domain.calculation_cache import CalculationCache, content_key


def counter():
    """Non-deterministic compute function: each call returns a new value."""
    values = itertools.count()
    return lambda: next(values)


class PausingLock:
    """Lock that parks the first caller to enter any key before it acquires."""

    def __init__(self, gate):
        self._lock = threading.Lock()
        self._gate = gate

    def __enter__(self):
        if self._gate["armed"]:
            self._gate["armed"] = False
            self._gate["parked"].set()
            self._gate["resume"].wait(timeout=5)
        self._lock.acquire()
        return self

    def __exit__(self, *exc):
        self._lock.release()


@pytest.fixture
def gate(monkeypatch):
    """Replace the cache's key locks with pausing ones, disarmed until a race starts."""
    state = {"armed": False, "parked": threading.Event(), "resume": threading.Event()}

    class PausingKeyLock:
        def __init__(self):
            self.lock = PausingLock(state)
            self.waiters = 0

    monkeypatch.setattr(calculation_cache, "_KeyLock", PausingKeyLock)
    return state


def race_behind_parked_caller(cache, gate, disturb):
    """
    Park a caller on key "k" after it joined the key, run disturb, then
    start a second caller and let the first resume while the second is
    still computing.

    Returns:
        Both results and the number of compute calls
    """
    calls = []
    computing = threading.Event()
    finish = threading.Event()

    def compute():
        calls.append(1)
        computing.set()
        finish.wait(timeout=5)
        return "score"

    gate["armed"] = True
    with ThreadPoolExecutor(max_workers=2) as pool:
        first = pool.submit(cache.get, "k", compute)
        assert gate["parked"].wait(timeout=5)
        disturb()
        second = pool.submit(cache.get, "k", compute)
        assert computing.wait(timeout=5)
        gate["resume"].set()
        time.sleep(0.05)
        finish.set()
        results = [first.result(timeout=5), second.result(timeout=5)]

    return results, len(calls)


# ============================================================
# TTL Tests
# ============================================================

class TestCacheTTL:
    """Tests for time-bounded memoization."""

    def test_memoized_within_ttl(self, clock):
        """Repeated gets inside the TTL return the first computed value."""
        cache = CalculationCache(ttl_seconds=60, clock=clock)
        compute = counter()

        first = cache.get("tree-score:t1", compute)
        clock.advance(59.9)
        second = cache.get("tree-score:t1", compute)

        assert first == second == 0
        assert cache.stats.hits == 1
        assert cache.stats.misses == 1

    def test_recomputed_after_ttl(self, clock):
        cache = CalculationCache(ttl_seconds=60, clock=clock)
        compute = counter()

        cache.get("k", compute)
        clock.advance(60)

        assert cache.get("k", compute) == 1
        assert cache.stats.misses == 2

    def test_keys_are_independent(self, clock):
        cache = CalculationCache(clock=clock)
        compute = counter()

        assert cache.get("a", compute) == 0
        assert cache.get("b", compute) == 1
        assert cache.get("a", compute) == 0

    def test_contains_and_peek_respect_ttl(self, clock):
        cache = CalculationCache(ttl_seconds=10, clock=clock)
        cache.get("k", lambda: "value")

        assert "k" in cache
        assert cache.peek("k").value == "value"

        clock.advance(10)
        assert "k" not in cache
        assert cache.peek("k") is None

    def test_exception_is_not_cached(self, clock):
        """A failing computation propagates and leaves no entry behind."""
        cache = CalculationCache(clock=clock)

        def boom():
            raise RuntimeError("measurement service down")

        with pytest.raises(RuntimeError):
            cache.get("k", boom)
        assert cache.get("k", lambda: 42) == 42

    def test_failed_computation_releases_key_lock(self, clock):
        """No per-key lock outlives a failing computation."""
        cache = CalculationCache(clock=clock)

        def boom():
            raise RuntimeError("bad input")

        for key in ("a", "b", "c"):
            with pytest.raises(RuntimeError):
                cache.get(key, boom)

        assert cache.in_flight == 0
        assert len(cache) == 0


# ============================================================
# Invalidation & Bounds Tests
# ============================================================

class TestCacheMaintenance:
    """Tests for invalidation, sweeping and eviction."""

    def test_invalidate(self, clock):
        cache = CalculationCache(clock=clock)
        compute = counter()
        cache.get("k", compute)

        assert cache.invalidate("k") is True
        assert cache.invalidate("k") is False
        assert cache.get("k", compute) == 1

    def test_clear(self, clock):
        cache = CalculationCache(clock=clock)
        cache.get("a", lambda: 1)
        cache.get("b", lambda: 2)
        cache.clear()

        assert len(cache) == 0

    def test_sweep_drops_expired_only(self, clock):
        cache = CalculationCache(ttl_seconds=60, clock=clock)
        cache.get("old", lambda: 1)
        clock.advance(30)
        cache.get("new", lambda: 2)
        clock.advance(40)

        assert cache.sweep() == 1
        assert "new" in cache
        assert len(cache) == 1

    def test_max_entries_evicts_oldest(self, clock):
        cache = CalculationCache(max_entries=2, clock=clock)
        cache.get("a", lambda: 1)
        cache.get("b", lambda: 2)
        cache.get("c", lambda: 3)

        assert len(cache) == 2
        assert "a" not in cache
        assert cache.stats.evictions == 1

    def test_eviction_prefers_expired_entries(self, clock):
        cache = CalculationCache(ttl_seconds=60, max_entries=2, clock=clock)
        cache.get("a", lambda: 1)
        clock.advance(61)
        cache.get("b", lambda: 2)
        cache.get("c", lambda: 3)

        assert "b" in cache
        assert "c" in cache


# ============================================================
# Concurrency Tests
# ============================================================

class TestCacheConcurrency:
    """Tests for single-flight computation."""

    def test_concurrent_gets_compute_once(self):
        """Callers racing on one key share a single computation."""
        cache = CalculationCache(ttl_seconds=60)
        calls = []
        start = threading.Barrier(8)

        def slow_compute():
            calls.append(1)
            time.sleep(0.05)
            return "score"

        def worker(_):
            start.wait()
            return cache.get("tree-score:t1", slow_compute)

        with ThreadPoolExecutor(max_workers=8) as pool:
            results = list(pool.map(worker, range(8)))

        assert results == ["score"] * 8
        assert len(calls) == 1

    def test_different_keys_compute_in_parallel(self):
        """A slow key does not block an unrelated one."""
        cache = CalculationCache(ttl_seconds=60)
        release = threading.Event()

        def blocked():
            release.wait(timeout=5)
            return "slow"

        with ThreadPoolExecutor(max_workers=2) as pool:
            slow = pool.submit(cache.get, "slow", blocked)
            fast = pool.submit(cache.get, "fast", lambda: "fast")
            assert fast.result(timeout=5) == "fast"
            release.set()
            assert slow.result(timeout=5) == "slow"

    def test_key_locks_released_after_use(self):
        cache = CalculationCache(ttl_seconds=60)
        with ThreadPoolExecutor(max_workers=4) as pool:
            list(pool.map(lambda i: cache.get(f"k{i % 3}", lambda: i), range(12)))

        assert cache.in_flight == 0

    def test_waiter_survives_invalidate(self, clock, gate):
        """Invalidating a key does not split callers that already joined it."""
        cache = CalculationCache(ttl_seconds=60, clock=clock)

        results, calls = race_behind_parked_caller(cache, gate, lambda: cache.invalidate("k"))

        assert results == ["score", "score"]
        assert calls == 1
        assert cache.in_flight == 0

    def test_waiter_survives_sweep(self, clock, gate):
        """Sweeping the stale entry a caller is refreshing keeps one computation."""
        cache = CalculationCache(ttl_seconds=60, clock=clock)
        cache.get("k", lambda: "stale")
        clock.advance(61)

        results, calls = race_behind_parked_caller(cache, gate, cache.sweep)

        assert results == ["score", "score"]
        assert calls == 1

    def test_waiter_survives_eviction(self, clock, gate):
        """Evicting the stale entry to make room keeps one computation."""
        cache = CalculationCache(ttl_seconds=60, max_entries=1, clock=clock)
        cache.get("k", lambda: "stale")
        clock.advance(61)

        results, calls = race_behind_parked_caller(
            cache, gate, lambda: cache.get("other", lambda: "x")
        )

        assert results == ["score", "score"]
        assert calls == 1
        assert cache.stats.evictions >= 1

    def test_waiter_survives_clear(self, clock, gate):
        cache = CalculationCache(ttl_seconds=60, clock=clock)

        results, calls = race_behind_parked_caller(cache, gate, cache.clear)

        assert results == ["score", "score"]
        assert calls == 1


# ============================================================
# Content Key Tests
# ============================================================

class TestContentKey:
    """Tests for content-derived cache keys."""

    def test_same_input_same_key(self, oak):
        copy = TreeMeasurement(**oak.model_dump())
        assert content_key("tree-score", "t1", oak) == content_key("tree-score", "t1", copy)

    def test_changed_measurement_changes_key(self, oak):
        taller = oak.model_copy(update={"height": 41})
        assert content_key("tree-score", "t1", oak) != content_key("tree-score", "t1", taller)

    def test_entity_and_namespace_are_part_of_key(self, oak):
        key = content_key("tree-score", "t1", oak)

        assert key.startswith("tree-score:t1:")
        assert key != content_key("tree-score", "t2", oak)
        assert key != content_key("price", "t1", oak)

    def test_missing_entity_id(self):
        assert content_key("price", None, [1, 2]).startswith("price:-:")

    def test_dict_order_does_not_matter(self):
        assert content_key("x", None, {"a": 1, "b": 2}) == content_key("x", None, {"b": 2, "a": 1})


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
