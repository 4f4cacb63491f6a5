"""Trust points: action table, bounded arithmetic and the audit trail."""

from __future__ import annotations

import enum

from communitree.config import TrustConfig
from communitree.exceptions import UnknownTrustActionError
from communitree.types import TrustPointsHistoryEntry
from communitree.utils import clamp


class TrustAction(str, enum.Enum):
    ORGANIZE_EVENT = "ORGANIZE_EVENT"
    ATTEND_EVENT = "ATTEND_EVENT"
    NO_SHOW = "NO_SHOW"
    VERIFY_IDENTITY = "VERIFY_IDENTITY"
    REPORT_VIOLATION = "REPORT_VIOLATION"
    VOLUNTEER_ACTIVITY = "VOLUNTEER_ACTIVITY"
    COMMUNITY_CONTRIBUTION = "COMMUNITY_CONTRIBUTION"


TRUST_POINT_VALUES: dict[TrustAction, int] = {
    TrustAction.ORGANIZE_EVENT: 20,
    TrustAction.ATTEND_EVENT: 5,
    TrustAction.NO_SHOW: -10,
    TrustAction.VERIFY_IDENTITY: 10,
    TrustAction.REPORT_VIOLATION: -5,
    TrustAction.VOLUNTEER_ACTIVITY: 15,
    TrustAction.COMMUNITY_CONTRIBUTION: 10,
}

_DEFAULT_LIMITS = TrustConfig()


def resolve_action(action: TrustAction | str) -> TrustAction:
    if isinstance(action, TrustAction):
        return action
    try:
        return TrustAction(str(action).upper())
    except ValueError:
        raise UnknownTrustActionError(action) from None


def delta(action: TrustAction | str) -> int:
    return TRUST_POINT_VALUES[resolve_action(action)]


def _require_int(score: object) -> int:
    if isinstance(score, bool) or not isinstance(score, int):
        raise TypeError(f"Trust points must be an integer, got {score!r}")
    return score


def clamp_score(score: int, limits: TrustConfig = _DEFAULT_LIMITS) -> int:
    return clamp(_require_int(score), limits.min_points, limits.max_points)


def apply_action(current_score: int, action: TrustAction | str,
                 limits: TrustConfig = _DEFAULT_LIMITS) -> int:
    """New score after ``action``, clamped to the limits. Pure."""
    return clamp_score(_require_int(current_score) + delta(action), limits)


def meets_threshold(score: int, minimum: int = _DEFAULT_LIMITS.rsvp_threshold) -> bool:
    return score >= minimum


def should_warn(score: int, limits: TrustConfig = _DEFAULT_LIMITS) -> bool:
    """True when the score is low enough to warn before a risky action (RSVP)."""
    return score < limits.warning_threshold


def trust_level(score: int) -> str:
    if score >= 90:
        return "Elite"
    if score >= 70:
        return "High"
    if score >= 50:
        return "Silver"
    if score >= 20:
        return "Bronze"
    return "New"


class TrustLedger:
    """Append-only trust history plus the configured arithmetic."""

    def __init__(self, config: TrustConfig | None = None,
                 history: list[TrustPointsHistoryEntry] | None = None) -> None:
        self.config = config or TrustConfig()
        self._history: list[TrustPointsHistoryEntry] = list(history or [])

    def delta(self, action: TrustAction | str) -> int:
        return delta(action)

    def apply_action(self, current_score: int, action: TrustAction | str) -> int:
        return apply_action(current_score, action, self.config)

    def meets_threshold(self, score: int, minimum: int | None = None) -> bool:
        return meets_threshold(score, self.config.rsvp_threshold if minimum is None else minimum)

    def should_warn(self, score: int) -> bool:
        return should_warn(score, self.config)

    def record_history(self, user_id: str, delta: int, reason: str,
                       related_entity_id: str | None = None) -> TrustPointsHistoryEntry:
        entry = TrustPointsHistoryEntry(
            user_id=user_id,
            delta=_require_int(delta),
            reason=reason,
            related_entity_id=related_entity_id,
        )
        self._history.append(entry)
        return entry

    def history(self, user_id: str | None = None) -> tuple[TrustPointsHistoryEntry, ...]:
        if user_id is None:
            return tuple(self._history)
        return tuple(e for e in self._history if e.user_id == user_id)

    def __len__(self) -> int:
        return len(self._history)
