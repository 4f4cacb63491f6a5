"""In-memory TTL cache with glob invalidation for remote reads."""

from __future__ import annotations

import re
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable

from communitree.config import CacheConfig
from communitree.logs import LogCategory, log_event
from communitree.utils import json_dumps


@dataclass
class CacheEntry:
    data: Any
    expires_at: float


def glob_to_regex(pattern: str) -> re.Pattern[str]:
    """Compile a glob matched against whole keys; only ``*`` is special."""
    parts = (re.escape(p) for p in pattern.split("*"))
    return re.compile(".*".join(parts), re.DOTALL)


class ExpiringCache:
    """Key -> value store with per-entry TTL.

    Expiry is lazy: an expired entry is only dropped when it is read, swept
    with :meth:`sweep`, or removed by an invalidation. A cache that is written
    but never re-read grows without bound unless ``max_entries`` is set, in
    which case the least recently used entry is evicted on overflow.
    """

    def __init__(
        self,
        config: CacheConfig | None = None,
        clock: Callable[[], float] | None = None,
    ) -> None:
        self.config = config or CacheConfig()
        self._clock = clock or time.monotonic
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()
        self._lock = threading.RLock()

    @property
    def default_ttl(self) -> float:
        return self.config.default_ttl

    def get(self, key: str) -> Any | None:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if self._clock() > entry.expires_at:
                del self._entries[key]
                return None
            self._entries.move_to_end(key)
            return entry.data

    def set(self, key: str, value: Any, ttl: float | None = None) -> None:
        """Store ``value`` for ``ttl`` seconds (not milliseconds); ``None`` uses the default."""
        ttl = self.default_ttl if ttl is None else ttl
        with self._lock:
            self._entries[key] = CacheEntry(data=value, expires_at=self._clock() + ttl)
            self._entries.move_to_end(key)
            self._enforce_bound()

    def invalidate(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def invalidate_pattern(self, pattern: str) -> int:
        regex = glob_to_regex(pattern)
        with self._lock:
            doomed = [k for k in self._entries if regex.fullmatch(k)]
            for k in doomed:
                del self._entries[k]
        if doomed:
            log_event("debug", LogCategory.CACHE, "Invalidated cache keys",
                      {"pattern": pattern, "count": len(doomed)})
        return len(doomed)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def sweep(self) -> int:
        """Drop every expired entry now. Returns the number removed."""
        with self._lock:
            now = self._clock()
            expired = [k for k, e in self._entries.items() if now > e.expires_at]
            for k in expired:
                del self._entries[k]
        return len(expired)

    def stats(self) -> dict[str, Any]:
        with self._lock:
            return {"size": len(self._entries), "keys": list(self._entries)}

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self.get(key) is not None

    def _enforce_bound(self) -> None:
        limit = self.config.max_entries
        if limit <= 0:
            return
        while len(self._entries) > limit:
            self._entries.popitem(last=False)


class CacheTTL:
    """TTL tiers resolved from a :class:`CacheConfig`."""

    def __init__(self, config: CacheConfig | None = None) -> None:
        config = config or CacheConfig()
        self.short = config.short_ttl
        self.medium = config.medium_ttl
        self.long = config.long_ttl
        self.very_long = config.very_long_ttl


class CacheKeys:
    """Key scheme shared by every cache writer: ``<kind>:...``.

    Keeping the kind as the first segment lets ``<kind>:*`` invalidate an
    entity together with every list page of that kind.
    """

    @staticmethod
    def entity(kind: str, entity_id: str) -> str:
        return f"{kind}:{entity_id}"

    @staticmethod
    def listing(kind: str, filter: dict[str, Any] | None = None, page: int = 1) -> str:
        if not filter:
            return f"{kind}:all:page:{page}"
        if set(filter) == {"search"}:
            return f"{kind}:search:{filter['search']}:page:{page}"
        canonical = json_dumps({k: filter[k] for k in sorted(filter)})
        return f"{kind}:list:{canonical}:page:{page}"

    @staticmethod
    def kind_pattern(kind: str) -> str:
        return f"{kind}:*"

    @staticmethod
    def user_by_id(user_id: str) -> str:
        return CacheKeys.entity("users", user_id)
