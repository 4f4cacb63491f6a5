from __future__ import annotations

import pytest
from pydantic import ValidationError

from communitree.cache import ExpiringCache
from communitree.config import TrustConfig
from communitree.exceptions import NoActiveUserError, UnknownTrustActionError
from communitree.storage import AggregateRepository, DurableStore, MemoryMedium
from communitree.trust import (
    TRUST_POINT_VALUES,
    TrustAction,
    TrustLedger,
    TrustService,
    apply_action,
    clamp_score,
    delta,
    meets_threshold,
    should_warn,
    trust_level,
)
from communitree.types import AppState, User


def test_point_table():
    assert delta("ORGANIZE_EVENT") == 20
    assert delta("ATTEND_EVENT") == 5
    assert delta("NO_SHOW") == -10
    assert delta("VERIFY_IDENTITY") == 10
    assert delta("REPORT_VIOLATION") == -5
    assert delta("VOLUNTEER_ACTIVITY") == 15
    assert delta("COMMUNITY_CONTRIBUTION") == 10
    assert delta("attend_event") == 5
    assert len(TRUST_POINT_VALUES) == len(TrustAction)


def test_apply_action_stays_in_bounds_for_every_score_and_action():
    for score in range(0, 101):
        for action in TrustAction:
            result = apply_action(score, action)
            assert 0 <= result <= 100
            assert result == max(0, min(100, score + TRUST_POINT_VALUES[action]))


def test_apply_action_clamps_at_both_ends():
    assert apply_action(5, "NO_SHOW") == 0
    assert apply_action(95, "ORGANIZE_EVENT") == 100
    assert apply_action(50, "ATTEND_EVENT") == 55


def test_unknown_action_raises():
    with pytest.raises(UnknownTrustActionError) as excinfo:
        apply_action(50, "FLY_TO_MOON")
    assert excinfo.value.action == "FLY_TO_MOON"
    assert isinstance(excinfo.value, KeyError)


def test_non_integer_score_is_rejected():
    with pytest.raises(TypeError):
        apply_action(50.5, "ATTEND_EVENT")  # type: ignore[arg-type]
    with pytest.raises(TypeError):
        clamp_score(True)  # type: ignore[arg-type]


def test_thresholds_and_levels():
    assert meets_threshold(20)
    assert not meets_threshold(19)
    assert should_warn(19)
    assert not should_warn(20)
    assert [trust_level(s) for s in (95, 90, 75, 50, 20, 19, 0)] == [
        "Elite", "Elite", "High", "Silver", "Bronze", "New", "New",
    ]


def test_custom_limits():
    limits = TrustConfig(min_points=10, max_points=60)
    ledger = TrustLedger(limits)
    assert ledger.apply_action(55, "ORGANIZE_EVENT") == 60
    assert ledger.apply_action(12, "NO_SHOW") == 10


def test_history_is_append_only():
    ledger = TrustLedger()
    first = ledger.record_history("user_001", 5, "ATTEND_EVENT", "evt_001")
    ledger.record_history("user_002", -10, "NO_SHOW")
    ledger.record_history("user_001", 20, "ORGANIZE_EVENT")

    history = ledger.history("user_001")
    assert [e.delta for e in history] == [5, 20]
    assert isinstance(history, tuple)
    assert len(ledger) == 3
    with pytest.raises(ValidationError):
        first.delta = 100  # frozen entry


def _service(trust_points: int = 50):
    repo = AggregateRepository(DurableStore(MemoryMedium()))
    cache = ExpiringCache()
    service = TrustService(TrustLedger(), repo, cache)
    user = User(id="user_001", name="Alex", email="a@example.com", trust_points=trust_points)
    return service, repo, cache, AppState(user=user)


def test_award_updates_persists_and_records_effective_delta():
    service, repo, cache, state = _service(trust_points=95)
    cache.set("users:user_001", {"stale": True})

    result = service.award(state, "ORGANIZE_EVENT", "evt_001")

    assert (result.previous, result.current, result.delta) == (95, 100, 5)
    assert state.user.trust_points == 100
    assert repo.load_user().trust_points == 100
    assert repo.load_trust_points("user_001") == 100
    history = service.history("user_001")
    assert [(e.delta, e.reason, e.related_entity_id) for e in history] == [
        (5, "ORGANIZE_EVENT", "evt_001"),
    ]
    assert cache.get("users:user_001") is None


def test_award_history_sums_to_score_movement():
    service, _repo, _cache, state = _service(trust_points=8)
    for action in ("NO_SHOW", "NO_SHOW", "ATTEND_EVENT", "VOLUNTEER_ACTIVITY"):
        service.award(state, action)
    total = sum(e.delta for e in service.history("user_001"))
    assert state.user.trust_points == 8 + total == 20


def test_award_without_user_raises():
    service, _repo, _cache, _state = _service()
    with pytest.raises(NoActiveUserError):
        service.award(AppState(), "ATTEND_EVENT")


def test_award_unknown_action_leaves_score_untouched():
    service, repo, _cache, state = _service()
    with pytest.raises(UnknownTrustActionError):
        service.award(state, "BOGUS")
    assert state.user.trust_points == 50
    assert repo.load_trust_history("user_001") == []
