"""Durable storage: key-value media, the aggregate store and typed repositories."""

from communitree.storage.aggregates import AggregateRepository, most_recent_threads
from communitree.storage.durable import ABSENT, Absent, DurableStore, Failed, LoadResult, Ok
from communitree.storage.media import (
    KeyValueMedium,
    MemoryMedium,
    SQLiteMedium,
    UnavailableMedium,
    probe_medium,
)

__all__ = [
    "ABSENT",
    "Absent",
    "AggregateRepository",
    "DurableStore",
    "Failed",
    "KeyValueMedium",
    "LoadResult",
    "MemoryMedium",
    "Ok",
    "SQLiteMedium",
    "UnavailableMedium",
    "most_recent_threads",
    "probe_medium",
]
