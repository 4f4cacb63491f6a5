from __future__ import annotations

from datetime import datetime, timedelta, timezone

from communitree.config import StorageConfig
from communitree.storage import AggregateRepository, DurableStore, MemoryMedium, most_recent_threads
from communitree.types import (
    AppState,
    ChatContext,
    ChatThread,
    Message,
    TrustPointsHistoryEntry,
    User,
    UserPreferences,
)


def _repo(max_threads: int = 50) -> AggregateRepository:
    return AggregateRepository(DurableStore(MemoryMedium()),
                               StorageConfig(max_stored_threads=max_threads))


def _thread(index: int, last_activity: datetime | None) -> ChatThread:
    return ChatThread(
        id=f"chat_{index:03d}",
        context=ChatContext(type="ngo", reference_id="ngo_001", title="Chat"),
        last_activity=last_activity,
    )


def test_chat_history_keeps_most_recent_threads():
    base = datetime(2024, 5, 1, tzinfo=timezone.utc)
    threads = [_thread(i, base + timedelta(minutes=i)) for i in range(60)]
    repo = _repo(max_threads=50)

    assert repo.save_chat_history("user_001", threads)
    loaded = repo.load_chat_history("user_001")

    assert len(loaded) == 50
    assert loaded[0].id == "chat_059"
    assert {t.id for t in loaded} == {f"chat_{i:03d}" for i in range(10, 60)}


def test_threads_without_activity_sort_last():
    base = datetime(2024, 5, 1, tzinfo=timezone.utc)
    threads = [_thread(0, None), _thread(1, base), _thread(2, base + timedelta(hours=1))]
    ordered = most_recent_threads(threads, limit=2)
    assert [t.id for t in ordered] == ["chat_002", "chat_001"]


def test_chat_history_is_scoped_per_user():
    repo = _repo()
    repo.save_chat_history("user_a", [_thread(1, None)])
    assert repo.load_chat_history("user_b") == []
    assert [t.id for t in repo.load_chat_history("user_a")] == ["chat_001"]


def test_event_rsvp_add_and_remove():
    repo = _repo()
    repo.save_event_rsvp("user_001", "evt_001", True)
    repo.save_event_rsvp("user_001", "evt_002", True)
    repo.save_event_rsvp("user_001", "evt_001", False)

    rsvps = repo.load_event_rsvps("user_001")
    assert set(rsvps) == {"evt_002"}
    assert rsvps["evt_002"].status == "confirmed"
    assert repo.load_event_rsvps("user_002") == {}


def test_ngo_verifications_are_global_and_merged():
    repo = _repo()
    repo.save_ngo_verification("ngo_001", True, "DARPAN-1")
    repo.save_ngo_verification("ngo_002", False)

    verifications = repo.load_ngo_verifications()
    assert verifications["ngo_001"].is_verified is True
    assert verifications["ngo_001"].darpan_id == "DARPAN-1"
    assert verifications["ngo_002"].is_verified is False


def test_trust_history_appends():
    repo = _repo()
    repo.append_trust_history(TrustPointsHistoryEntry(user_id="user_001", delta=5, reason="ATTEND_EVENT"))
    repo.append_trust_history(TrustPointsHistoryEntry(user_id="user_001", delta=-10, reason="NO_SHOW"))

    history = repo.load_trust_history("user_001")
    assert [e.delta for e in history] == [5, -10]
    assert repo.load_trust_history("user_002") == []


def test_persist_app_state_writes_every_user_aggregate():
    repo = _repo()
    user = User(id="user_001", name="Alex", email="a@example.com", trust_points=70)
    state = AppState(
        user=user,
        current_track="grow",
        chat_threads=[_thread(1, None)],
        preferences=UserPreferences(notifications_enabled=False),
    )

    assert repo.persist_app_state(state)
    assert repo.load_user().trust_points == 70
    assert repo.load_last_track() == "grow"
    assert repo.load_trust_points("user_001") == 70
    assert len(repo.load_chat_history("user_001")) == 1
    assert repo.load_preferences("user_001").notifications_enabled is False


def test_persist_without_user_is_a_noop():
    repo = _repo()
    assert repo.persist_app_state(AppState()) is False
    assert repo.storage_stats()["keys"] == 0


def test_clear_user_data_keeps_global_aggregates():
    repo = _repo()
    repo.save_user(User(id="user_001", name="Alex", email="a@example.com"))
    repo.save_trust_points("user_001", 55)
    repo.save_ngo_verification("ngo_001", True)

    repo.clear_user_data()

    assert repo.load_user() is None
    assert repo.load_trust_points("user_001") is None
    assert "ngo_001" in repo.load_ngo_verifications()


def test_last_track_defaults_to_impact():
    assert _repo().load_last_track() == "impact"


def _message(msg_id: str, sender_id: str, timestamp: datetime | None = None,
             is_read: bool = False) -> Message:
    return Message(id=msg_id, sender_id=sender_id, content="hi",
                   timestamp=timestamp, is_read=is_read)


def test_add_message_bumps_thread_activity():
    repo = _repo()
    old = datetime(2024, 1, 1, tzinfo=timezone.utc)
    repo.save_chat_history("user_001", [_thread(1, old), _thread(2, old)])

    threads = repo.add_message_to_thread("user_001", "chat_001", _message("m1", "user_002"))

    stored = {t.id: t for t in repo.load_chat_history("user_001")}
    assert [m.id for m in stored["chat_001"].messages] == ["m1"]
    assert stored["chat_001"].last_activity > old
    assert stored["chat_002"].messages == []
    assert [t.id for t in threads] == ["chat_001", "chat_002"]


def test_unread_count_ignores_own_and_read_messages():
    repo = _repo()
    first, second = _thread(1, None), _thread(2, None)
    first.messages = [_message("m1", "user_002"), _message("m2", "user_001"),
                      _message("m3", "user_003", is_read=True)]
    second.messages = [_message("m4", "user_002")]
    repo.save_chat_history("user_001", [first, second])

    assert repo.unread_message_count("user_001") == 2
    assert repo.unread_message_count("user_001", "chat_001") == 1
    assert repo.unread_message_count("user_001", "chat_404") == 0


def test_mark_messages_as_read_only_touches_named_thread():
    repo = _repo()
    first, second = _thread(1, None), _thread(2, None)
    first.messages = [_message("m1", "user_002"), _message("m2", "user_002")]
    second.messages = [_message("m1", "user_002")]
    repo.save_chat_history("user_001", [first, second])

    repo.mark_messages_as_read("user_001", "chat_001", ["m1"])

    assert repo.unread_message_count("user_001", "chat_001") == 1
    assert repo.unread_message_count("user_001", "chat_002") == 1


def test_cleanup_drops_old_messages_and_idle_threads():
    now = datetime(2024, 6, 1, tzinfo=timezone.utc)
    stale = now - timedelta(days=45)
    recent = now - timedelta(days=2)
    repo = _repo()
    mixed, idle, quiet = _thread(1, recent), _thread(2, stale), _thread(3, recent)
    mixed.messages = [_message("old", "user_002", stale), _message("new", "user_002", recent),
                      _message("undated", "user_002", None)]
    idle.messages = [_message("old", "user_002", stale)]

    kept = repo.cleanup_old_messages("user_001", now=now)

    assert kept == []  # nothing persisted yet
    repo.save_chat_history("user_001", [mixed, idle, quiet])
    kept = repo.cleanup_old_messages("user_001", now=now)

    assert [t.id for t in kept] == ["chat_001", "chat_003"]
    stored = {t.id: t for t in repo.load_chat_history("user_001")}
    assert [m.id for m in stored["chat_001"].messages] == ["new"]
    assert "chat_002" not in stored
    assert repo.cleanup_old_messages("user_001", max_age_days=1, now=now) == []
