"""
Resolver Cache - memoized taxonomy matches keyed by (language, raw label)

Cache Strategy:
1. Only successful matches are stored. A miss is never cached: another
   language table, a bridge path or a data refresh may supply it later.
2. Entries for a key are deterministic, so concurrent writers racing on the
   same key are harmless (last write wins).
3. Bounded: once max_entries is reached the oldest entry is evicted.

The cache is an explicit object passed to the resolver; tests create their
own instance or call clear().
"""
import threading
from collections import OrderedDict
from typing import Any, Dict, Hashable, Optional, Tuple

import structlog

from packages.common.language import Language
from packages.domain.recommendation.schemas import RecoveryMatch

logger = structlog.get_logger()

CacheKey = Tuple[str, Hashable]


class ResolverCache:
    """Thread-safe, success-only, bounded map of resolver results"""

    def __init__(self, max_entries: int = 5000, namespace: str = "label"):
        if max_entries < 1:
            raise ValueError(f"max_entries must be >= 1, got {max_entries}")
        self.max_entries = max_entries
        self.namespace = namespace
        self._entries: "OrderedDict[CacheKey, Any]" = OrderedDict()
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0

    @staticmethod
    def make_key(language: Language, label: Hashable) -> CacheKey:
        return (language.value, label)

    def get(self, language: Language, label: Hashable) -> Optional[Any]:
        """Return the cached value or None"""
        key = self.make_key(language, label)
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._misses += 1
                return None
            self._hits += 1
            return entry

    def put(self, language: Language, label: Hashable, value: Any) -> bool:
        """
        Store a successful match (a found RecoveryMatch or a non-None value).

        Returns:
            True if stored, False for a miss (never cached)
        """
        if value is None or (isinstance(value, RecoveryMatch) and not value.found):
            return False

        key = self.make_key(language, label)
        with self._lock:
            self._entries[key] = value
            self._entries.move_to_end(key)
            while len(self._entries) > self.max_entries:
                evicted, _ = self._entries.popitem(last=False)
                logger.debug("resolver_cache_evicted", namespace=self.namespace, key=str(evicted))
        return True

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: CacheKey) -> bool:
        with self._lock:
            return key in self._entries

    def stats(self) -> Dict[str, float]:
        """Hit/miss counters for observability"""
        with self._lock:
            total = self._hits + self._misses
            return {
                "size": len(self._entries),
                "hits": self._hits,
                "misses": self._misses,
                "hit_rate": round(self._hits / total * 100, 1) if total > 0 else 0.0,
            }

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._hits = 0
            self._misses = 0
