"""Trust service — applies ledger actions to the live user and persists them."""

from __future__ import annotations

from dataclasses import dataclass

from communitree.cache.expiring import CacheKeys, ExpiringCache
from communitree.exceptions import NoActiveUserError
from communitree.logs import LogCategory, log_event
from communitree.storage.aggregates import AggregateRepository
from communitree.trust.ledger import TrustAction, TrustLedger, resolve_action
from communitree.types import AppState, TrustPointsHistoryEntry
from communitree.utils import utcnow


@dataclass
class AwardResult:
    previous: int
    current: int
    entry: TrustPointsHistoryEntry

    @property
    def delta(self) -> int:
        return self.current - self.previous


class TrustService:
    def __init__(self, ledger: TrustLedger, repository: AggregateRepository,
                 cache: ExpiringCache | None = None) -> None:
        self.ledger = ledger
        self.repository = repository
        self.cache = cache

    def award(self, state: AppState, action: TrustAction | str,
              related_entity_id: str | None = None) -> AwardResult:
        """Apply ``action`` to the active user, then record and persist it.

        The recorded delta is the effective change after clamping, so the
        history always sums to the stored score movement.
        """
        resolved = resolve_action(action)
        user = state.user
        if user is None:
            raise NoActiveUserError(f"Cannot apply {resolved.value} without an active user")

        previous = user.trust_points
        current = self.ledger.apply_action(previous, resolved)
        user.trust_points = current
        user.updated_at = utcnow()
        entry = self.ledger.record_history(
            user.id, current - previous, resolved.value, related_entity_id,
        )

        self.repository.save_user(user)
        self.repository.save_trust_points(user.id, current)
        self.repository.append_trust_history(entry)
        if self.cache is not None:
            self.cache.invalidate(CacheKeys.user_by_id(user.id))

        log_event("info", LogCategory.TRUST, "Trust points updated", {
            "user_id": user.id, "action": resolved.value,
            "previous": previous, "current": current,
        })
        return AwardResult(previous=previous, current=current, entry=entry)

    def history(self, user_id: str) -> list[TrustPointsHistoryEntry]:
        """Persisted history for ``user_id``, oldest first."""
        return self.repository.load_trust_history(user_id)
