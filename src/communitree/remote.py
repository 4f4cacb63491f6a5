"""Cache-consulting wrapper around the remote data access functions."""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from communitree.cache.expiring import CacheKeys, CacheTTL, ExpiringCache
from communitree.logs import LogCategory, log_event

# Kinds whose data changes often enough that only the short tier is used.
VOLATILE_KINDS = frozenset({"events", "rsvps"})
# Reference data that rarely changes.
STATIC_KINDS = frozenset({"venues"})


@runtime_checkable
class RemoteSource(Protocol):
    """Backend collaborator. Transport is not this package's concern."""

    async def fetch_entity(self, kind: str, entity_id: str) -> Any | None: ...

    async def fetch_list(
        self,
        kind: str,
        filter: dict[str, Any] | None = None,
        page: int = 1,
    ) -> list[Any]: ...

    async def mutate_entity(self, kind: str, entity_id: str, patch: dict[str, Any]) -> Any: ...


class CachedRemote:
    """Read-through cache in front of a :class:`RemoteSource`.

    Failures from the remote propagate unchanged and nothing is cached for
    them; a ``None`` entity (not found) is not cached either.
    """

    def __init__(self, remote: RemoteSource, cache: ExpiringCache,
                 ttl: CacheTTL | None = None) -> None:
        self.remote = remote
        self.cache = cache
        self.ttl = ttl or CacheTTL(cache.config)
        self.hits = 0
        self.misses = 0

    def _entity_ttl(self, kind: str) -> float:
        if kind in VOLATILE_KINDS:
            return self.ttl.short
        return self.ttl.very_long if kind in STATIC_KINDS else self.ttl.long

    def _list_ttl(self, kind: str, filter: dict[str, Any] | None) -> float:
        if kind in VOLATILE_KINDS:
            return self.ttl.short
        return self.ttl.long if not filter else self.ttl.medium

    async def fetch_entity(self, kind: str, entity_id: str) -> Any | None:
        key = CacheKeys.entity(kind, entity_id)
        cached = self.cache.get(key)
        if cached is not None:
            self.hits += 1
            return cached
        self.misses += 1
        entity = await self.remote.fetch_entity(kind, entity_id)
        if entity is not None:
            self.cache.set(key, entity, self._entity_ttl(kind))
        return entity

    async def fetch_list(self, kind: str, filter: dict[str, Any] | None = None,
                         page: int = 1) -> list[Any]:
        key = CacheKeys.listing(kind, filter, page)
        cached = self.cache.get(key)
        if cached is not None:
            self.hits += 1
            return cached
        self.misses += 1
        items = await self.remote.fetch_list(kind, filter, page)
        self.cache.set(key, items, self._list_ttl(kind, filter))
        return items

    async def mutate_entity(self, kind: str, entity_id: str, patch: dict[str, Any]) -> Any:
        result = await self.remote.mutate_entity(kind, entity_id, patch)
        removed = self.cache.invalidate_pattern(CacheKeys.kind_pattern(kind))
        log_event("debug", LogCategory.CACHE, "Invalidated after mutation",
                  {"kind": kind, "id": entity_id, "removed": removed})
        return result
