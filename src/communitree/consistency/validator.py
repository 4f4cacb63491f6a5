"""Consistency checks over a live AppState, with in-place repairs."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Union

from communitree.config import TrustConfig
from communitree.exceptions import RepairError
from communitree.logs import LogCategory, log_event
from communitree.types import AppState
from communitree.utils import clamp


@dataclass(frozen=True)
class ScoreOutOfBounds:
    user_id: str
    current: int
    clamped_value: int

    @property
    def description(self) -> str:
        return f"Invalid trust points for user {self.user_id}: {self.current}"


@dataclass(frozen=True)
class DanglingThreadReference:
    user_id: str
    thread_ids: tuple[str, ...]

    @property
    def description(self) -> str:
        return f"Invalid chat thread references: {', '.join(self.thread_ids)}"


@dataclass(frozen=True)
class UnknownRsvpUsers:
    event_id: str
    user_ids: tuple[str, ...]

    @property
    def description(self) -> str:
        return f"Event {self.event_id} has invalid RSVP references: {', '.join(self.user_ids)}"


@dataclass(frozen=True)
class UnknownParticipants:
    thread_id: str
    user_ids: tuple[str, ...]

    @property
    def description(self) -> str:
        return f"Chat thread {self.thread_id} has invalid participants: {', '.join(self.user_ids)}"


ConsistencyIssue = Union[ScoreOutOfBounds, DanglingThreadReference, UnknownRsvpUsers, UnknownParticipants]


@dataclass
class ValidationReport:
    is_valid: bool
    issues: list[ConsistencyIssue] = field(default_factory=list)

    @property
    def descriptions(self) -> list[str]:
        return [i.description for i in self.issues]


@dataclass
class RepairSummary:
    passes: int = 0
    applied: list[ConsistencyIssue] = field(default_factory=list)
    failed: list[ConsistencyIssue] = field(default_factory=list)
    is_valid: bool = True


def apply_repair(issue: ConsistencyIssue, state: AppState) -> None:
    """Fix one issue in place. Repairs only touch the ids named by the issue."""
    if isinstance(issue, ScoreOutOfBounds):
        if state.user is not None and state.user.id == issue.user_id:
            state.user.trust_points = issue.clamped_value
    elif isinstance(issue, DanglingThreadReference):
        if state.user is not None and state.user.id == issue.user_id:
            dangling = set(issue.thread_ids)
            state.user.chat_history = [t for t in state.user.chat_history if t not in dangling]
    elif isinstance(issue, UnknownRsvpUsers):
        unknown = set(issue.user_ids)
        for event in state.events:
            if event.id == issue.event_id:
                event.rsvp_list = [u for u in event.rsvp_list if u not in unknown]
    elif isinstance(issue, UnknownParticipants):
        unknown = set(issue.user_ids)
        for thread in state.chat_threads:
            if thread.id == issue.thread_id:
                thread.participants = [p for p in thread.participants if p.id not in unknown]
    else:
        raise TypeError(f"Unsupported consistency issue: {type(issue).__name__}")


class ConsistencyValidator:
    """Detects invariant violations; repairs are applied by the caller."""

    def __init__(self, config: TrustConfig | None = None) -> None:
        self.config = config or TrustConfig()

    def validate(self, state: AppState) -> ValidationReport:
        issues: list[ConsistencyIssue] = []
        issues.extend(self._check_score_bounds(state))
        issues.extend(self._check_thread_references(state))
        issues.extend(self._check_rsvp_membership(state))
        issues.extend(self._check_participants(state))
        return ValidationReport(is_valid=not issues, issues=issues)

    def apply_fixes(self, issues: list[ConsistencyIssue], state: AppState,
                    summary: RepairSummary | None = None) -> AppState:
        """Apply repairs in discovery order. Returns the same (mutated) state."""
        if not issues:
            return state
        log_event("warning", LogCategory.CONSISTENCY, "Data consistency issues found",
                  {"issues": [i.description for i in issues]})
        for issue in issues:
            try:
                apply_repair(issue, state)
            except Exception as e:  # noqa: BLE001
                err = RepairError(issue, e)
                log_event("error", LogCategory.CONSISTENCY, str(err))
                if summary is not None:
                    summary.failed.append(issue)
                continue
            log_event("info", LogCategory.CONSISTENCY, "Applied consistency fix",
                      {"kind": type(issue).__name__, "description": issue.description})
            if summary is not None:
                summary.applied.append(issue)
        return state

    def repair(self, state: AppState, until_stable: bool = False,
               max_passes: int = 5) -> RepairSummary:
        """Validate and fix. One pass by default; optionally loop to a fixed point."""
        summary = RepairSummary()
        limit = max(1, max_passes) if until_stable else 1
        while summary.passes < limit:
            report = self.validate(state)
            if report.is_valid:
                break
            summary.passes += 1
            self.apply_fixes(report.issues, state, summary)
        summary.is_valid = self.validate(state).is_valid
        return summary

    # --- Invariants ---

    def _check_score_bounds(self, state: AppState) -> list[ConsistencyIssue]:
        user = state.user
        if user is None:
            return []
        low, high = self.config.min_points, self.config.max_points
        if low <= user.trust_points <= high:
            return []
        return [ScoreOutOfBounds(user.id, user.trust_points, clamp(user.trust_points, low, high))]

    def _check_thread_references(self, state: AppState) -> list[ConsistencyIssue]:
        user = state.user
        if user is None:
            return []
        thread_ids = {t.id for t in state.chat_threads}
        dangling = tuple(t for t in user.chat_history if t not in thread_ids)
        if not dangling:
            return []
        return [DanglingThreadReference(user.id, dangling)]

    def _check_rsvp_membership(self, state: AppState) -> list[ConsistencyIssue]:
        known = state.known_user_ids()
        issues: list[ConsistencyIssue] = []
        for event in state.events:
            unknown = tuple(u for u in event.rsvp_list if u not in known)
            if unknown:
                issues.append(UnknownRsvpUsers(event.id, unknown))
        return issues

    def _check_participants(self, state: AppState) -> list[ConsistencyIssue]:
        known = state.known_user_ids()
        issues: list[ConsistencyIssue] = []
        for thread in state.chat_threads:
            unknown = tuple(p.id for p in thread.participants if p.id not in known)
            if unknown:
                issues.append(UnknownParticipants(thread.id, unknown))
        return issues
