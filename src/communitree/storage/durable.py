"""Durable Store Adapter — versioned, namespaced aggregate persistence."""

from __future__ import annotations

import functools
import threading
from dataclasses import dataclass
from typing import Any, Generic, TypeVar, Union

from pydantic import TypeAdapter, ValidationError
from pydantic_core import to_jsonable_python

from communitree.logs import LogCategory, log_event
from communitree.storage.media import KeyValueMedium, probe_medium
from communitree.utils import iso_str, json_dumps, json_loads, utcnow

ENVELOPE_VERSION = 1

T = TypeVar("T")


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T


@dataclass(frozen=True)
class Absent:
    pass


@dataclass(frozen=True)
class Failed:
    # unavailable | malformed | invalid_shape | owner_mismatch | unsupported_version
    kind: str
    detail: str = ""


LoadResult = Union[Ok[T], Absent, Failed]

ABSENT = Absent()


@functools.lru_cache(maxsize=64)
def _adapter(model: Any) -> TypeAdapter:
    return TypeAdapter(model)


class DurableStore:
    """Aggregates <-> strings in a key-value medium.

    Every record is an envelope ``{"version", "owner", "saved_at", "data"}``
    stored under ``<prefix><aggregate_key>[:<owner>]``. Nothing in here raises
    on medium or data errors: writes degrade to a logged no-op and reads to
    ``None``.
    """

    def __init__(self, medium: KeyValueMedium, prefix: str = "communitree_") -> None:
        self.medium = medium
        self.prefix = prefix
        self._available: bool | None = None
        self._lock = threading.RLock()

    # --- Keys ---

    def key_for(self, aggregate_key: str, owner: str | None = None) -> str:
        key = f"{self.prefix}{aggregate_key}"
        return f"{key}:{owner}" if owner else key

    @property
    def available(self) -> bool:
        with self._lock:
            if self._available is None:
                self._available = probe_medium(self.medium)
                if not self._available:
                    log_event("warning", LogCategory.STORAGE,
                              "Persistent storage unavailable; running in-memory only")
            return self._available

    # --- Write ---

    def save(self, aggregate_key: str, value: Any, owner: str | None = None,
             record_owner: str | None = None) -> bool:
        """Persist ``value``. Returns False (and logs) instead of raising.

        ``owner`` scopes the key; ``record_owner`` only tags the envelope,
        for aggregates kept under a single key whatever the active user.
        """
        key = self.key_for(aggregate_key, owner)
        with self._lock:
            if not self.available:
                log_event("warning", LogCategory.STORAGE, "Skipped save, storage unavailable",
                          {"key": key})
                return False
            try:
                envelope = {
                    "version": ENVELOPE_VERSION,
                    "owner": owner or record_owner,
                    "saved_at": iso_str(utcnow()),
                    "data": to_jsonable_python(value),
                }
                payload = json_dumps(envelope)
            except (TypeError, ValueError) as e:
                log_event("warning", LogCategory.STORAGE, "Failed to serialize aggregate",
                          {"key": key, "error": str(e)})
                return False
            try:
                self.medium.set_item(key, payload)
            except Exception as e:  # noqa: BLE001
                # quota exceeded or the medium went away; re-probe next time
                self._available = None
                log_event("warning", LogCategory.STORAGE, "Failed to save aggregate",
                          {"key": key, "error": str(e)})
                return False
        return True

    # --- Read ---

    def load_result(self, aggregate_key: str, model: Any, owner: str | None = None,
                    expected_owner: str | None = None) -> LoadResult:
        """Load with the failure reason preserved.

        ``owner`` selects the namespaced key; ``expected_owner`` is checked
        against the owner recorded in the envelope (defaults to ``owner``).
        """
        key = self.key_for(aggregate_key, owner)
        expected_owner = owner if expected_owner is None else expected_owner
        with self._lock:
            if not self.available:
                return Failed("unavailable")
            try:
                raw = self.medium.get_item(key)
            except Exception as e:  # noqa: BLE001
                return Failed("unavailable", str(e))
        if raw is None:
            return ABSENT
        try:
            envelope = json_loads(raw)
        except ValueError as e:
            return Failed("malformed", str(e))
        if not isinstance(envelope, dict) or "data" not in envelope:
            return Failed("malformed", "missing envelope")
        if envelope.get("version") != ENVELOPE_VERSION:
            return Failed("unsupported_version", str(envelope.get("version")))
        if expected_owner is not None and envelope.get("owner") != expected_owner:
            return Failed("owner_mismatch", f"stored for {envelope.get('owner')!r}")
        try:
            value = _adapter(model).validate_python(envelope["data"])
        except ValidationError as e:
            return Failed("invalid_shape", f"{e.error_count()} validation errors")
        return Ok(value)

    def load(self, aggregate_key: str, model: Any, owner: str | None = None,
             expected_owner: str | None = None) -> Any | None:
        result = self.load_result(aggregate_key, model, owner=owner,
                                  expected_owner=expected_owner)
        if isinstance(result, Ok):
            return result.value
        if isinstance(result, Failed) and result.kind not in ("unavailable", "owner_mismatch"):
            log_event("warning", LogCategory.STORAGE, "Discarded persisted aggregate",
                      {"key": self.key_for(aggregate_key, owner), "reason": result.kind,
                       "detail": result.detail})
        return None

    # --- Delete ---

    def clear(self, aggregate_key: str, owner: str | None = None) -> None:
        key = self.key_for(aggregate_key, owner)
        with self._lock:
            if not self.available:
                return
            try:
                self.medium.remove_item(key)
            except Exception as e:  # noqa: BLE001
                log_event("warning", LogCategory.STORAGE, "Failed to clear aggregate",
                          {"key": key, "error": str(e)})

    def clear_all(self, namespace_prefix: str = "") -> int:
        """Remove every key under ``<prefix><namespace_prefix>``."""
        full = f"{self.prefix}{namespace_prefix}"
        removed = 0
        with self._lock:
            if not self.available:
                return 0
            try:
                for key in self.medium.keys():
                    if key.startswith(full):
                        self.medium.remove_item(key)
                        removed += 1
            except Exception as e:  # noqa: BLE001
                log_event("warning", LogCategory.STORAGE, "Failed to clear namespace",
                          {"prefix": full, "error": str(e)})
        return removed

    # --- Raw access (export/import, stats) ---

    def raw_items(self) -> dict[str, str]:
        out: dict[str, str] = {}
        with self._lock:
            if not self.available:
                return out
            try:
                for key in self.medium.keys():
                    if key.startswith(self.prefix):
                        value = self.medium.get_item(key)
                        if value is not None:
                            out[key] = value
            except Exception as e:  # noqa: BLE001
                log_event("warning", LogCategory.STORAGE, "Failed to read storage",
                          {"error": str(e)})
        return out

    def write_raw(self, key: str, value: str) -> bool:
        if not key.startswith(self.prefix) or not isinstance(value, str):
            return False
        with self._lock:
            if not self.available:
                return False
            try:
                self.medium.set_item(key, value)
            except Exception as e:  # noqa: BLE001
                log_event("warning", LogCategory.STORAGE, "Failed to write raw key",
                          {"key": key, "error": str(e)})
                return False
        return True

    def keys(self) -> list[str]:
        return sorted(self.raw_items())

    def size_bytes(self) -> int:
        return sum(len(v) for v in self.raw_items().values())
