"""In-Memory Cache Store: process-local TTL cache driven by CacheDecisions.

Invariants:
    - should_cache=False decisions always run the thunk and store nothing
    - Expired entries are never returned; they are dropped on access
    - At most max_entries live entries; the least recently used entry is evicted first
    - Entries and stats are only touched under the lock
    - Errors raised by the thunk propagate unchanged and nothing is stored

Design Decisions:
    - The lock guards the dict only, never an await: two concurrent misses on one
      key may both compute, which is cheaper than serializing every caller
    - Injected clock (time.monotonic by default): expiry is testable without sleeping
"""

import logging
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, TypeVar

from scopekit.core.cache_advisor import CacheDecision

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class CacheStats:
    hits: int = 0
    misses: int = 0
    bypasses: int = 0
    evictions: int = 0


class InMemoryCacheStore:
    """CacheStore implementation backed by an OrderedDict."""

    def __init__(
        self, max_entries: int = 1024, clock: Callable[[], float] = time.monotonic,
    ):
        if max_entries <= 0:
            raise ValueError("max_entries must be positive")
        self.max_entries = max_entries
        self._clock = clock
        self._entries: OrderedDict[str, tuple[float, Any]] = OrderedDict()
        self._lock = threading.Lock()
        self.stats = CacheStats()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def _lookup(self, key: str) -> tuple[bool, Any]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None and self._clock() >= entry[0]:
                del self._entries[key]
                entry = None
            if entry is None:
                self.stats.misses += 1
                return False, None
            self._entries.move_to_end(key)
            self.stats.hits += 1
            return True, entry[1]

    def _store(self, key: str, value: Any, ttl_seconds: int) -> None:
        with self._lock:
            self._entries.pop(key, None)
            self._entries[key] = (self._clock() + ttl_seconds, value)
            while len(self._entries) > self.max_entries:
                self._entries.popitem(last=False)
                self.stats.evictions += 1

    async def get_or_compute(
        self, decision: CacheDecision, thunk: Callable[[], Awaitable[T]],
    ) -> T:
        if not decision.should_cache:
            with self._lock:
                self.stats.bypasses += 1
            logger.debug(
                "Cache bypassed",
                extra={"cache_key": decision.key, "cache_reason": decision.reason.value},
            )
            return await thunk()

        hit, value = self._lookup(decision.key)
        if hit:
            logger.debug("Cache hit", extra={"cache_key": decision.key})
            return value

        value = await thunk()
        self._store(decision.key, value, decision.ttl_seconds)
        logger.debug("Cache miss stored", extra={"cache_key": decision.key})
        return value

    def invalidate(self, key: str) -> bool:
        with self._lock:
            return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
