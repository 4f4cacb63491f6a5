"""Synchronous string-only key-value media backing the durable store."""

from __future__ import annotations

import sqlite3
import threading
from pathlib import Path
from typing import Protocol, runtime_checkable

from communitree.exceptions import StorageError

PROBE_KEY = "__communitree_storage_probe__"

_SCHEMA = """
CREATE TABLE IF NOT EXISTS kv (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL
);
"""


@runtime_checkable
class KeyValueMedium(Protocol):
    """``getItem/setItem/removeItem``-shaped persistent medium."""

    def get_item(self, key: str) -> str | None: ...

    def set_item(self, key: str, value: str) -> None: ...

    def remove_item(self, key: str) -> None: ...

    def keys(self) -> list[str]: ...


def probe_medium(medium: KeyValueMedium) -> bool:
    """Write, read back and delete a sentinel key."""
    try:
        medium.set_item(PROBE_KEY, PROBE_KEY)
        ok = medium.get_item(PROBE_KEY) == PROBE_KEY
        medium.remove_item(PROBE_KEY)
        return ok
    except Exception:  # noqa: BLE001
        return False


class MemoryMedium:
    """Dict-backed medium; optionally bounded to emulate a storage quota."""

    def __init__(self, quota_bytes: int = 0) -> None:
        self._data: dict[str, str] = {}
        self.quota_bytes = quota_bytes

    def get_item(self, key: str) -> str | None:
        return self._data.get(key)

    def set_item(self, key: str, value: str) -> None:
        if not isinstance(value, str):
            raise StorageError(f"Medium only stores strings, got {type(value).__name__}")
        if self.quota_bytes > 0:
            used = sum(len(k) + len(v) for k, v in self._data.items() if k != key)
            if used + len(key) + len(value) > self.quota_bytes:
                raise StorageError("Quota exceeded")
        self._data[key] = value

    def remove_item(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._data)


class UnavailableMedium:
    """Medium that is present but refuses every operation."""

    def get_item(self, key: str) -> str | None:
        raise StorageError("Storage medium is unavailable")

    def set_item(self, key: str, value: str) -> None:
        raise StorageError("Storage medium is unavailable")

    def remove_item(self, key: str) -> None:
        raise StorageError("Storage medium is unavailable")

    def keys(self) -> list[str]:
        raise StorageError("Storage medium is unavailable")


class SQLiteMedium:
    """Key-value medium stored in a single SQLite table."""

    def __init__(self, db_path: Path | str) -> None:
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()
        self._conn = sqlite3.connect(str(self.db_path), check_same_thread=False,
                                     timeout=30.0)
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.execute("PRAGMA busy_timeout=30000")
        self._conn.executescript(_SCHEMA)
        self._conn.commit()

    def get_item(self, key: str) -> str | None:
        with self._lock:
            row = self._conn.execute("SELECT value FROM kv WHERE key=?", (key,)).fetchone()
        return row[0] if row else None

    def set_item(self, key: str, value: str) -> None:
        if not isinstance(value, str):
            raise StorageError(f"Medium only stores strings, got {type(value).__name__}")
        with self._lock:
            self._conn.execute(
                "INSERT INTO kv(key, value) VALUES (?, ?) "
                "ON CONFLICT(key) DO UPDATE SET value=excluded.value",
                (key, value),
            )
            self._conn.commit()

    def remove_item(self, key: str) -> None:
        with self._lock:
            self._conn.execute("DELETE FROM kv WHERE key=?", (key,))
            self._conn.commit()

    def keys(self) -> list[str]:
        with self._lock:
            rows = self._conn.execute("SELECT key FROM kv ORDER BY key").fetchall()
        return [r[0] for r in rows]

    def close(self) -> None:
        self._conn.close()
