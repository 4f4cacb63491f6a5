"""Typed persistence for each CommuniTree aggregate."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

from communitree.config import StorageConfig
from communitree.logs import LogCategory, log_event
from communitree.storage.durable import DurableStore
from communitree.types import (
    AppState,
    ChatThread,
    Message,
    NGOVerification,
    RsvpRecord,
    Track,
    TrustPointsHistoryEntry,
    User,
    UserPreferences,
)
from communitree.utils import iso_str, json_dumps_pretty, json_loads, utcnow

EXPORT_VERSION = "1.0.0"

USER_DATA = "user_data"
LAST_TRACK = "last_track"
TRUST_POINTS = "trust_points"
CHAT_HISTORY = "chat_history"
USER_PREFERENCES = "user_preferences"
NGO_VERIFICATIONS = "ngo_verifications"
EVENT_RSVPS = "event_rsvps"
TRUST_HISTORY = "trust_history"

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def _aware(ts: datetime | None) -> datetime:
    if ts is None:
        return _EPOCH
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts


def most_recent_threads(threads: list[ChatThread], limit: int) -> list[ChatThread]:
    """Keep the ``limit`` most recently active threads, newest first."""
    ordered = sorted(threads, key=lambda t: _aware(t.last_activity), reverse=True)
    if limit > 0:
        ordered = ordered[:limit]
    return ordered


class AggregateRepository:
    """Save/load of user-scoped and global aggregates through a DurableStore."""

    def __init__(self, store: DurableStore, config: StorageConfig | None = None) -> None:
        self.store = store
        self.config = config or StorageConfig()

    # --- User profile ---

    def save_user(self, user: User) -> bool:
        # One profile slot per profile directory; the envelope records whose it is.
        return self.store.save(USER_DATA, user, record_owner=user.id)

    def load_user(self, user_id: str | None = None) -> User | None:
        user = self.store.load(USER_DATA, User, expected_owner=user_id)
        if user is None or (user_id is not None and user.id != user_id):
            return None
        return user

    def clear_user_data(self) -> None:
        """Logout: drop the profile and the active user's scoped aggregates."""
        user = self.store.load(USER_DATA, User)
        self.store.clear(USER_DATA)
        if user is not None:
            self.store.clear(TRUST_POINTS, owner=user.id)
            self.store.clear(USER_PREFERENCES, owner=user.id)

    # --- Track ---

    def save_last_track(self, track: Track) -> bool:
        return self.store.save(LAST_TRACK, track)

    def load_last_track(self) -> Track:
        track = self.store.load(LAST_TRACK, Track)
        return track or "impact"

    # --- Trust points ---

    def save_trust_points(self, user_id: str, trust_points: int) -> bool:
        return self.store.save(TRUST_POINTS, trust_points, owner=user_id)

    def load_trust_points(self, user_id: str) -> int | None:
        return self.store.load(TRUST_POINTS, int, owner=user_id)

    def append_trust_history(self, entry: TrustPointsHistoryEntry) -> bool:
        history = self.load_trust_history(entry.user_id)
        history.append(entry)
        return self.store.save(TRUST_HISTORY, history, owner=entry.user_id)

    def load_trust_history(self, user_id: str) -> list[TrustPointsHistoryEntry]:
        return self.store.load(TRUST_HISTORY, list[TrustPointsHistoryEntry], owner=user_id) or []

    # --- Chat history ---

    def save_chat_history(self, user_id: str, threads: list[ChatThread]) -> bool:
        kept = most_recent_threads(threads, self.config.max_stored_threads)
        if len(kept) < len(threads):
            log_event("info", LogCategory.STORAGE, "Truncated chat history before save",
                      {"user_id": user_id, "kept": len(kept), "dropped": len(threads) - len(kept)})
        return self.store.save(CHAT_HISTORY, kept, owner=user_id)

    def load_chat_history(self, user_id: str) -> list[ChatThread]:
        return self.store.load(CHAT_HISTORY, list[ChatThread], owner=user_id) or []

    def add_message_to_thread(self, user_id: str, thread_id: str,
                              message: Message) -> list[ChatThread]:
        """Append ``message`` to a persisted thread and bump its activity."""
        threads = self.load_chat_history(user_id)
        now = utcnow()
        for thread in threads:
            if thread.id == thread_id:
                thread.messages = [*thread.messages, message]
                thread.last_activity = now
                thread.updated_at = now
        self.save_chat_history(user_id, threads)
        return threads

    def mark_messages_as_read(self, user_id: str, thread_id: str,
                              message_ids: list[str]) -> list[ChatThread]:
        threads = self.load_chat_history(user_id)
        wanted = set(message_ids)
        for thread in threads:
            if thread.id != thread_id:
                continue
            for message in thread.messages:
                if message.id in wanted:
                    message.is_read = True
            thread.updated_at = utcnow()
        self.save_chat_history(user_id, threads)
        return threads

    def unread_message_count(self, user_id: str, thread_id: str | None = None) -> int:
        """Unread messages not sent by ``user_id``, in one thread or all of them."""
        threads = self.load_chat_history(user_id)
        if thread_id is not None:
            threads = [t for t in threads if t.id == thread_id]
        return sum(
            1 for t in threads for m in t.messages
            if not m.is_read and m.sender_id != user_id
        )

    def cleanup_old_messages(self, user_id: str, max_age_days: int | None = None,
                             now: datetime | None = None) -> list[ChatThread]:
        """Drop messages older than ``max_age_days``.

        A thread survives if it still has messages or was active after the
        cutoff. Undated messages count as old.
        """
        if max_age_days is None:
            max_age_days = self.config.chat_retention_days
        cutoff = (now or utcnow()) - timedelta(days=max_age_days)
        kept = []
        for thread in self.load_chat_history(user_id):
            thread.messages = [
                m for m in thread.messages if _aware(m.timestamp) > cutoff
            ]
            if thread.messages or _aware(thread.last_activity) > cutoff:
                kept.append(thread)
        self.save_chat_history(user_id, kept)
        return kept

    # --- Preferences ---

    def save_preferences(self, user_id: str, preferences: UserPreferences) -> bool:
        return self.store.save(USER_PREFERENCES, preferences, owner=user_id)

    def load_preferences(self, user_id: str) -> UserPreferences | None:
        return self.store.load(USER_PREFERENCES, UserPreferences, owner=user_id)

    # --- NGO verifications (global) ---

    def save_ngo_verification(self, ngo_id: str, is_verified: bool,
                              darpan_id: str | None = None) -> bool:
        verifications = self.load_ngo_verifications()
        verifications[ngo_id] = NGOVerification(is_verified=is_verified, darpan_id=darpan_id)
        return self.store.save(NGO_VERIFICATIONS, verifications)

    def load_ngo_verifications(self) -> dict[str, NGOVerification]:
        return self.store.load(NGO_VERIFICATIONS, dict[str, NGOVerification]) or {}

    # --- RSVPs ---

    def save_event_rsvp(self, user_id: str, event_id: str, is_rsvp: bool) -> bool:
        rsvps = self.load_event_rsvps(user_id)
        if is_rsvp:
            rsvps[event_id] = RsvpRecord()
        else:
            rsvps.pop(event_id, None)
        return self.store.save(EVENT_RSVPS, rsvps, owner=user_id)

    def load_event_rsvps(self, user_id: str) -> dict[str, RsvpRecord]:
        return self.store.load(EVENT_RSVPS, dict[str, RsvpRecord], owner=user_id) or {}

    # --- Whole state ---

    def persist_app_state(self, state: AppState) -> bool:
        if state.user is None:
            return False
        user = state.user
        results = [
            self.save_user(user),
            self.save_last_track(state.current_track),
            self.save_trust_points(user.id, user.trust_points),
            self.save_chat_history(user.id, state.chat_threads),
            self.save_preferences(user.id, state.preferences),
        ]
        return all(results)

    def clear_all(self) -> int:
        removed = self.store.clear_all()
        log_event("info", LogCategory.STORAGE, "Cleared all app data", {"removed": removed})
        return removed

    def storage_stats(self) -> dict[str, int]:
        items = self.store.raw_items()
        return {"keys": len(items), "bytes": sum(len(v) for v in items.values())}

    # --- Backup ---

    def export_data(self) -> str:
        return json_dumps_pretty({
            "version": EXPORT_VERSION,
            "exported_at": iso_str(utcnow()),
            "data": self.store.raw_items(),
        })

    def import_data(self, backup: str) -> bool:
        try:
            parsed: Any = json_loads(backup)
        except ValueError as e:
            log_event("error", LogCategory.STORAGE, "Failed to import app data",
                      {"error": str(e)})
            return False
        data = parsed.get("data") if isinstance(parsed, dict) else None
        if not isinstance(data, dict):
            log_event("error", LogCategory.STORAGE, "Invalid backup data format")
            return False
        written = 0
        for key, value in data.items():
            if self.store.write_raw(key, value):
                written += 1
        log_event("info", LogCategory.STORAGE, "Imported app data", {"keys": written})
        return True
