from __future__ import annotations

"""
Bounded TTL + LRU result cache.

Entries expire after ``ttl_seconds`` and the map never holds more than
``max_entries``; inserting beyond that evicts the least recently used
entry.  The lock only covers lookup, insert and eviction.  Computation
runs outside it, so two threads missing on the same key may both compute
and the last insert wins.

Keys are built by the engine from the catalog kind, the snapshot
generation, the operation and the query, so entries computed against an
older catalog are never served after a reload.
"""

import json
import threading
from collections import OrderedDict
from time import monotonic
from typing import Any, Callable, Dict, Hashable, Optional, Tuple

from loguru import logger

from .config import RESULT_CACHE_MAX_ENTRIES, RESULT_CACHE_TTL_SECONDS

_MISSING = object()


def make_key(*parts: Any) -> str:
    """Deterministic key from JSON-friendly parts."""
    return json.dumps(parts, sort_keys=True, ensure_ascii=False, default=str)


class ResultCache:
    def __init__(
        self,
        max_entries: int = RESULT_CACHE_MAX_ENTRIES,
        ttl_seconds: float = RESULT_CACHE_TTL_SECONDS,
        clock: Callable[[], float] = monotonic,
    ) -> None:
        self.max_entries = max(0, int(max_entries))
        self.ttl_seconds = float(ttl_seconds)
        self._clock = clock
        self._entries: "OrderedDict[Hashable, Tuple[float, Any]]" = OrderedDict()
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    @property
    def enabled(self) -> bool:
        return self.max_entries > 0 and self.ttl_seconds > 0

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def get(self, key: Hashable, default: Any = None) -> Any:
        value = self._lookup(key)
        return default if value is _MISSING else value

    def put(self, key: Hashable, value: Any) -> None:
        if not self.enabled:
            return
        with self._lock:
            self._entries[key] = (self._clock(), value)
            self._entries.move_to_end(key)
            while len(self._entries) > self.max_entries:
                evicted, _ = self._entries.popitem(last=False)
                logger.debug("Result cache evicted {}", evicted)

    def get_or_compute(self, key: Hashable, compute: Callable[[], Any]) -> Any:
        value = self._lookup(key)
        if value is not _MISSING:
            return value
        value = compute()
        self.put(key, value)
        return value

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def stats(self) -> Dict[str, int]:
        with self._lock:
            return {"entries": len(self._entries), "hits": self.hits, "misses": self.misses}

    def _lookup(self, key: Hashable) -> Any:
        if not self.enabled:
            return _MISSING
        with self._lock:
            cached: Optional[Tuple[float, Any]] = self._entries.get(key)
            if cached is None:
                self.misses += 1
                return _MISSING
            stored_at, value = cached
            if (self._clock() - stored_at) > self.ttl_seconds:
                self._entries.pop(key, None)
                self.misses += 1
                return _MISSING
            # LRU touch
            self._entries.move_to_end(key)
            self.hits += 1
            return value
