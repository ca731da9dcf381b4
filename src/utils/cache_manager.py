"""
Cache Manager - short-lived memoization of market data fetches

One instance is shared by every gatekeeper worker during a scan so that the
same bars, quotes and option chains are fetched once per ticker. Entries live
for a short TTL; when the TTL sweep alone cannot bring the cache under its
size limit, the oldest entries are evicted first.
"""

import logging
import threading
import time
from dataclasses import dataclass
from datetime import date
from typing import Any, Callable, Dict, Optional, Tuple

STOCK = 'stock'
OPTION = 'option'
HISTORICAL = 'historical'
EARNINGS = 'earnings'

NAMESPACES = (STOCK, OPTION, HISTORICAL, EARNINGS)


@dataclass
class CachedEntry:
    value: Any
    timestamp: float

    def is_expired(self, now: float, ttl_seconds: float) -> bool:
        return now - self.timestamp > ttl_seconds


class _KeyLock:
    """Per-key fetch lock; users counts callers holding or waiting on it"""

    def __init__(self):
        self.lock = threading.Lock()
        self.users = 0


class CacheManager:
    """Thread-safe TTL + size-bounded cache with single-flight loading"""

    def __init__(self, ttl_seconds: float = 300, max_size: int = 200,
                 clock: Callable[[], float] = time.time):
        self.ttl_seconds = ttl_seconds
        self.max_size = max_size
        self.clock = clock
        self._entries: Dict[Tuple[str, str], CachedEntry] = {}
        self._lock = threading.RLock()
        self._key_locks: Dict[Tuple[str, str], _KeyLock] = {}
        self.hits = 0
        self.misses = 0
        self.evictions = 0

    def get(self, namespace: str, key: str) -> Optional[Any]:
        """Return a live cached value or None"""
        with self._lock:
            entry = self._entries.get((namespace, key))
            if entry is None:
                self.misses += 1
                return None
            if entry.is_expired(self.clock(), self.ttl_seconds):
                del self._entries[(namespace, key)]
                self.misses += 1
                return None
            self.hits += 1
            return entry.value

    def put(self, namespace: str, key: str, value: Any):
        """Store a value; None is never cached"""
        if value is None:
            return
        with self._lock:
            self._entries[(namespace, key)] = CachedEntry(value=value, timestamp=self.clock())
            if len(self._entries) > self.max_size:
                self._evict()

    def get_or_fetch(self, namespace: str, key: str, fetcher: Callable[[], Any]) -> Any:
        """
        Return the cached value, or call fetcher once and cache its result.

        Concurrent callers for the same key wait for the first fetch instead of
        issuing their own. Exceptions from fetcher propagate and nothing is cached.
        """
        value = self.get(namespace, key)
        if value is not None:
            return value

        cache_key = (namespace, key)
        with self._lock:
            key_lock = self._key_locks.setdefault(cache_key, _KeyLock())
            key_lock.users += 1

        try:
            with key_lock.lock:
                # Another worker may have loaded it while we waited
                with self._lock:
                    entry = self._entries.get(cache_key)
                    if entry is not None and not entry.is_expired(self.clock(), self.ttl_seconds):
                        self.hits += 1
                        return entry.value

                value = fetcher()
                self.put(namespace, key, value)
                return value
        finally:
            with self._lock:
                key_lock.users -= 1
                if key_lock.users == 0:
                    del self._key_locks[cache_key]

    def _evict(self):
        """TTL sweep first, then drop oldest entries down to two thirds of max_size"""
        now = self.clock()
        expired = [k for k, entry in self._entries.items() if entry.is_expired(now, self.ttl_seconds)]
        for k in expired:
            del self._entries[k]
        self.evictions += len(expired)

        if len(self._entries) > self.max_size:
            target = self.max_size * 2 // 3
            oldest_first = sorted(self._entries.items(), key=lambda item: item[1].timestamp)
            to_remove = len(self._entries) - target
            for k, _ in oldest_first[:to_remove]:
                del self._entries[k]
            self.evictions += to_remove
            logging.debug(f"[CACHE] Evicted {to_remove} oldest entries (size now {len(self._entries)})")

    def clear(self):
        with self._lock:
            self._entries.clear()

    def size(self) -> int:
        with self._lock:
            return len(self._entries)

    def stats(self) -> Dict:
        with self._lock:
            per_namespace = {ns: 0 for ns in NAMESPACES}
            for (namespace, _), _entry in self._entries.items():
                per_namespace[namespace] = per_namespace.get(namespace, 0) + 1
            total = self.hits + self.misses
            return {
                'size': len(self._entries),
                'hits': self.hits,
                'misses': self.misses,
                'evictions': self.evictions,
                'hit_rate': (self.hits / total) if total else 0.0,
                'per_namespace': per_namespace,
            }

    def log_statistics(self):
        stats = self.stats()
        logging.info(f"[CACHE] size={stats['size']} hits={stats['hits']} misses={stats['misses']} "
                     f"hit_rate={stats['hit_rate']:.1%} evictions={stats['evictions']}")

    @staticmethod
    def option_key(ticker: str, base_date: date, min_days: int, max_days: int, option_type: str) -> str:
        """Key for an option chain window: ticker_baseDate_minDays_maxDays_type"""
        return f"{ticker}_{base_date.isoformat()}_{min_days}_{max_days}_{option_type}"
