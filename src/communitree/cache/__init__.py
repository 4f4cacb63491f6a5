"""Expiring cache for remote reads."""

from communitree.cache.expiring import CacheEntry, CacheKeys, CacheTTL, ExpiringCache, glob_to_regex

__all__ = ["CacheEntry", "CacheKeys", "CacheTTL", "ExpiringCache", "glob_to_regex"]
