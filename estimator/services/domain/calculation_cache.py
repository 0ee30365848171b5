"""
Time-bounded memoization for score and pricing results.

Entries expire after a fixed TTL and are only recomputed when requested
again. Keys should be derived from the content of the inputs (see
content_key) so that a changed measurement is a cache miss instead of a
stale hit.
"""
import hashlib
import json
import logging
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable, Dict, Generic, Optional, TypeVar

from pydantic import BaseModel

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_TTL_SECONDS = 60.0
DEFAULT_MAX_ENTRIES = 2048


@dataclass(frozen=True)
class CachedValue(Generic[T]):
    """A computed value and the clock reading when it was computed."""
    value: T
    computed_at: float


@dataclass
class CacheStats:
    hits: int = 0
    misses: int = 0
    evictions: int = 0
    size: int = 0


def _canonical(payload: Any) -> Any:
    if isinstance(payload, BaseModel):
        return payload.model_dump(mode="json")
    if isinstance(payload, (list, tuple)):
        return [_canonical(item) for item in payload]
    if isinstance(payload, dict):
        return {str(k): _canonical(v) for k, v in payload.items()}
    return payload


def content_key(namespace: str, entity_id: Optional[str], payload: Any) -> str:
    """
    Build a cache key from an entity id and a hash of its inputs.

    Args:
        namespace: Kind of result (e.g. "tree-score")
        entity_id: Caller's identifier for the asset, if any
        payload: Inputs of the computation (pydantic models, lists, dicts)

    Returns:
        Key of the form "namespace:entity_id:sha256"
    """
    encoded = json.dumps(_canonical(payload), sort_keys=True, default=str)
    digest = hashlib.sha256(encoded.encode("utf-8")).hexdigest()
    return f"{namespace}:{entity_id or '-'}:{digest}"


class _KeyLock:
    """Per-key lock plus the number of callers holding or waiting on it."""
    __slots__ = ("lock", "waiters")

    def __init__(self):
        self.lock = threading.Lock()
        self.waiters = 0


class CalculationCache(Generic[T]):
    """
    Thread-safe TTL cache with single-flight computation per key.

    A map lock guards the entries; a per-key lock makes concurrent callers
    of the same key wait for one computation instead of running their own.
    Callers of different keys compute in parallel.

    A key lock lives exactly as long as some caller holds or waits on it.
    Invalidation, sweeps and eviction only drop entries, never key locks,
    so a caller that already joined a key still shares its computation.
    """

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._clock = clock
        self._entries: "OrderedDict[str, CachedValue[T]]" = OrderedDict()
        self._key_locks: Dict[str, _KeyLock] = {}
        self._lock = threading.Lock()
        self._stats = CacheStats()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: str) -> bool:
        with self._lock:
            entry = self._entries.get(key)
            return entry is not None and self._is_fresh(entry)

    @property
    def stats(self) -> CacheStats:
        with self._lock:
            return CacheStats(
                hits=self._stats.hits,
                misses=self._stats.misses,
                evictions=self._stats.evictions,
                size=len(self._entries),
            )

    @property
    def in_flight(self) -> int:
        """Number of keys with a caller computing or waiting."""
        with self._lock:
            return len(self._key_locks)

    def _is_fresh(self, entry: CachedValue[T]) -> bool:
        return self._clock() - entry.computed_at < self.ttl_seconds

    def _lookup(self, key: str) -> Optional[CachedValue[T]]:
        entry = self._entries.get(key)
        if entry is not None and self._is_fresh(entry):
            return entry
        return None

    def _join(self, key: str) -> _KeyLock:
        # Caller must hold self._lock
        key_lock = self._key_locks.get(key)
        if key_lock is None:
            key_lock = self._key_locks[key] = _KeyLock()
        key_lock.waiters += 1
        return key_lock

    def _leave(self, key: str, key_lock: _KeyLock) -> None:
        with self._lock:
            key_lock.waiters -= 1
            if key_lock.waiters == 0 and self._key_locks.get(key) is key_lock:
                del self._key_locks[key]

    def get(self, key: str, compute_fn: Callable[[], T]) -> T:
        """
        Return the cached value for key, computing it when missing or stale.

        If compute_fn raises, nothing is stored and the exception
        propagates; the next waiting caller computes in turn.

        Args:
            key: Cache key
            compute_fn: Zero-argument function producing the value

        Returns:
            Cached or freshly computed value
        """
        with self._lock:
            entry = self._lookup(key)
            if entry is not None:
                self._stats.hits += 1
                logger.debug(f"Cache hit for {key}")
                return entry.value
            key_lock = self._join(key)

        try:
            with key_lock.lock:
                # Another caller may have finished while we waited
                with self._lock:
                    entry = self._lookup(key)
                    if entry is not None:
                        self._stats.hits += 1
                        return entry.value
                    self._stats.misses += 1

                logger.debug(f"Cache miss for {key}, computing")
                value = compute_fn()

                with self._lock:
                    self._entries[key] = CachedValue(value=value, computed_at=self._clock())
                    self._entries.move_to_end(key)
                    self._enforce_limit()
        finally:
            self._leave(key, key_lock)

        return value

    def peek(self, key: str) -> Optional[CachedValue[T]]:
        """Fresh entry for key without computing, or None."""
        with self._lock:
            return self._lookup(key)

    def invalidate(self, key: str) -> bool:
        """
        Remove one entry.

        Returns:
            True if an entry was removed
        """
        with self._lock:
            removed = self._entries.pop(key, None) is not None
        if removed:
            logger.debug(f"Invalidated {key}")
        return removed

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
        logger.info("Calculation cache cleared")

    def sweep(self) -> int:
        """
        Drop expired entries.

        Returns:
            Number of entries removed
        """
        with self._lock:
            return self._sweep_expired()

    def _sweep_expired(self) -> int:
        expired = [k for k, e in self._entries.items() if not self._is_fresh(e)]
        for key in expired:
            del self._entries[key]
        if expired:
            logger.debug(f"Swept {len(expired)} expired cache entries")
        return len(expired)

    def _enforce_limit(self) -> None:
        if len(self._entries) <= self.max_entries:
            return
        self._stats.evictions += self._sweep_expired()
        while len(self._entries) > self.max_entries:
            self._entries.popitem(last=False)
            self._stats.evictions += 1
