"""Startup Reconciler — persisted state + fresh reference data -> live state."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TypeVar

from pydantic import BaseModel

from communitree.consistency.validator import ConsistencyValidator, RepairSummary
from communitree.logs import LogCategory, log_event
from communitree.seed import FreshDataSource, SeedData
from communitree.storage.aggregates import AggregateRepository
from communitree.types import AppState, ChatThread, Track, User, UserPreferences

M = TypeVar("M", bound=BaseModel)


@dataclass
class InitResult:
    state: AppState
    has_persisted_data: bool
    storage_stats: dict[str, int] = field(default_factory=dict)
    repairs: RepairSummary = field(default_factory=RepairSummary)


def _copies(models: list[M]) -> list[M]:
    return [m.model_copy(deep=True) for m in models]


def default_preferences(track: Track = "impact") -> UserPreferences:
    return UserPreferences(
        last_selected_track=track,
        notifications_enabled=True,
        preferred_categories=["Poetry", "Art", "Environment"],
        location_permission=False,
    )


class StartupReconciler:
    """Builds the initial AppState. Never raises out of :meth:`initialize`."""

    def __init__(
        self,
        repository: AggregateRepository,
        fresh_source: FreshDataSource,
        validator: ConsistencyValidator | None = None,
        until_stable: bool = False,
    ) -> None:
        self.repository = repository
        self.fresh_source = fresh_source
        self.validator = validator or ConsistencyValidator()
        self.until_stable = until_stable

    def initialize(self) -> InitResult:
        fresh = self._fresh()
        try:
            stats = self.repository.storage_stats()
            track = self.repository.load_last_track()
            user = self.repository.load_user()
        except Exception as e:  # noqa: BLE001
            log_event("warning", LogCategory.STARTUP, "Failed to load persisted user",
                      {"error": str(e)})
            stats, track, user = {}, "impact", None

        if user is None:
            return InitResult(state=self.baseline(fresh, track), has_persisted_data=False,
                              storage_stats=stats)

        try:
            state = self.merge(fresh, user, track)
        except Exception as e:  # noqa: BLE001
            log_event("warning", LogCategory.STARTUP,
                      "Failed to merge persisted data; starting fresh", {"error": str(e)})
            return InitResult(state=self.baseline(self._fresh(), "impact"),
                              has_persisted_data=False, storage_stats=stats)

        repairs = self.validator.repair(state, until_stable=self.until_stable)
        log_event("info", LogCategory.STARTUP, "Restored persisted session", {
            "user_id": user.id, "repairs": len(repairs.applied),
        })
        return InitResult(state=state, has_persisted_data=True, storage_stats=stats,
                          repairs=repairs)

    def baseline(self, fresh: SeedData, track: Track = "impact") -> AppState:
        """Fresh reference data as a state with no active user.

        Entities are copied: the source may hand out cached objects that
        other sessions still hold.
        """
        return AppState(
            user=None,
            current_track=track,
            ngos=_copies(fresh.ngos),
            events=_copies(fresh.events),
            chat_threads=_copies(fresh.chat_threads),
            venues=_copies(fresh.venues),
            available_users=_copies(fresh.users),
            preferences=default_preferences(track),
        )

    def merge(self, fresh: SeedData, user: User, track: Track) -> AppState:
        """Project the user's persisted aggregates onto fresh reference data.

        The merge is join-like: persisted flags only annotate entities whose
        id is present in the fresh set; nothing is removed here.
        """
        state = self.baseline(fresh, track)
        state.user = user
        self._apply_persisted(state, self.repository.load_chat_history(user.id))
        return state

    def sync(self, state: AppState) -> AppState:
        """Re-apply persisted aggregates onto a live state.

        Returns a new state: trust points come from storage when present and
        ``user.chat_history`` is rebuilt from the persisted threads. On any
        failure the input state is returned unchanged.
        """
        if state.user is None:
            return state
        try:
            synced = state.model_copy(deep=True)
            user = synced.user
            points = self.repository.load_trust_points(user.id)
            if points is not None:
                user.trust_points = points
            chat_history = self.repository.load_chat_history(user.id)
            user.chat_history = [t.id for t in chat_history]
            self._apply_persisted(synced, chat_history)
        except Exception as e:  # noqa: BLE001
            log_event("warning", LogCategory.STARTUP, "Failed to sync state with storage",
                      {"error": str(e)})
            return state
        return synced

    def _apply_persisted(self, state: AppState, chat_history: list[ChatThread]) -> None:
        user_id = state.user.id
        persisted_prefs = self.repository.load_preferences(user_id)
        rsvps = self.repository.load_event_rsvps(user_id)
        verifications = self.repository.load_ngo_verifications()

        if chat_history:
            state.chat_threads = chat_history
        if persisted_prefs is not None:
            state.preferences = state.preferences.model_copy(
                update=persisted_prefs.model_dump(exclude_unset=True)
            )

        for ngo in state.ngos:
            verification = verifications.get(ngo.id)
            if verification is None:
                continue
            ngo.is_verified = verification.is_verified
            ngo.darpan_id = verification.darpan_id or ngo.darpan_id

        for event in state.events:
            if event.id in rsvps and user_id not in event.rsvp_list:
                event.rsvp_list = [*event.rsvp_list, user_id]

    def _fresh(self) -> SeedData:
        try:
            return self.fresh_source()
        except Exception as e:  # noqa: BLE001
            log_event("error", LogCategory.STARTUP, "Fresh data source failed",
                      {"error": str(e)})
            return SeedData()
