from __future__ import annotations

from datetime import datetime, timezone

from communitree.storage import (
    ABSENT,
    AggregateRepository,
    DurableStore,
    Failed,
    MemoryMedium,
    Ok,
    SQLiteMedium,
    UnavailableMedium,
)
from communitree.types import User
from communitree.utils import json_dumps, json_loads


def _user(user_id: str = "user_001", name: str = "Alex Johnson", **kwargs) -> User:
    return User(id=user_id, name=name, email="alex@example.com", **kwargs)


def _envelope(data, owner=None, version=1) -> str:
    return json_dumps({"version": version, "owner": owner,
                       "saved_at": "2024-01-01T00:00:00+00:00", "data": data})


def test_save_and_load_revives_datetimes():
    store = DurableStore(MemoryMedium())
    created = datetime(2024, 3, 5, 10, 30, tzinfo=timezone.utc)
    assert store.save("user_data", _user(created_at=created), record_owner="user_001")

    loaded = store.load("user_data", User)
    assert isinstance(loaded, User)
    assert loaded.created_at == created
    assert isinstance(loaded.updated_at, datetime)


def test_records_are_enveloped_and_namespaced():
    medium = MemoryMedium()
    store = DurableStore(medium, prefix="communitree_")
    store.save("trust_points", 42, owner="user_001")

    raw = medium.get_item("communitree_trust_points:user_001")
    envelope = json_loads(raw)
    assert envelope["version"] == 1
    assert envelope["owner"] == "user_001"
    assert envelope["data"] == 42
    assert "saved_at" in envelope


def test_unavailable_medium_degrades_without_raising():
    store = DurableStore(UnavailableMedium())
    assert store.available is False
    assert store.save("user_data", _user()) is False
    assert store.load("user_data", User) is None
    assert store.load_result("user_data", User) == Failed("unavailable")
    assert store.clear_all() == 0
    assert store.keys() == []
    store.clear("user_data")


def test_quota_failure_returns_false_and_keeps_previous_value():
    medium = MemoryMedium(quota_bytes=200)
    store = DurableStore(medium)
    assert store.save("last_track", "grow")

    assert store.save("user_data", _user(name="x" * 500)) is False
    assert store.load("user_data", User) is None
    assert store.load("last_track", str) == "grow"


class _SecurityErrorMedium(MemoryMedium):
    """Passes the availability check, then raises a non-storage error."""

    def __init__(self) -> None:
        super().__init__()
        self.failing = False

    def _check(self) -> None:
        if self.failing:
            raise RuntimeError("SecurityError: storage access denied")

    def get_item(self, key):
        self._check()
        return super().get_item(key)

    def set_item(self, key, value):
        self._check()
        super().set_item(key, value)

    def remove_item(self, key):
        self._check()
        super().remove_item(key)

    def keys(self):
        self._check()
        return super().keys()


def test_any_medium_exception_is_contained():
    medium = _SecurityErrorMedium()
    store = DurableStore(medium)
    assert store.save("last_track", "grow")
    medium.failing = True

    assert store.load_result("last_track", str).kind == "unavailable"
    assert store.load("last_track", str) is None
    assert store.keys() == []
    assert store.clear_all() == 0
    store.clear("last_track")
    assert store.write_raw("communitree_x", "1") is False
    assert store.save("last_track", "grow") is False
    # the failed write forces a re-probe, which now fails too
    assert store.available is False


def test_missing_key_is_absent_not_failed():
    store = DurableStore(MemoryMedium())
    assert store.load_result("user_data", User) is ABSENT
    assert store.load("user_data", User) is None


def test_malformed_record_is_discarded():
    medium = MemoryMedium()
    medium.set_item("communitree_user_data", "{not json")
    store = DurableStore(medium)

    result = store.load_result("user_data", User)
    assert isinstance(result, Failed)
    assert result.kind == "malformed"
    assert store.load("user_data", User) is None


def test_unsupported_version_is_discarded():
    medium = MemoryMedium()
    medium.set_item("communitree_last_track", _envelope("grow", version=99))
    store = DurableStore(medium)
    result = store.load_result("last_track", str)
    assert isinstance(result, Failed)
    assert result.kind == "unsupported_version"


def test_invalid_date_revives_to_none():
    medium = MemoryMedium()
    data = {"id": "user_001", "name": "Alex", "email": "a@example.com",
            "trust_points": 60, "created_at": "not-a-date",
            "updated_at": "2024-02-01T09:00:00Z"}
    medium.set_item("communitree_user_data", _envelope(data, owner="user_001"))
    store = DurableStore(medium)

    user = store.load("user_data", User)
    assert user is not None
    assert user.created_at is None
    assert user.updated_at == datetime(2024, 2, 1, 9, 0, tzinfo=timezone.utc)


def test_record_without_id_is_invalid_shape():
    medium = MemoryMedium()
    medium.set_item("communitree_user_data",
                    _envelope({"name": "Alex", "email": "a@example.com"}))
    store = DurableStore(medium)

    result = store.load_result("user_data", User)
    assert isinstance(result, Failed)
    assert result.kind == "invalid_shape"
    assert store.load("user_data", User) is None


def test_owner_mismatch_is_treated_as_absent():
    medium = MemoryMedium()
    store = DurableStore(medium)
    store.save("trust_points", 80, owner="user_a")
    # Copy user A's record under user B's key.
    medium.set_item("communitree_trust_points:user_b",
                    medium.get_item("communitree_trust_points:user_a"))

    assert store.load("trust_points", int, owner="user_a") == 80
    assert store.load("trust_points", int, owner="user_b") is None
    result = store.load_result("trust_points", int, owner="user_b")
    assert isinstance(result, Failed)
    assert result.kind == "owner_mismatch"


def test_load_user_checks_requested_owner():
    repo = AggregateRepository(DurableStore(MemoryMedium()))
    repo.save_user(_user("user_a"))
    assert repo.load_user().id == "user_a"
    assert repo.load_user("user_a").id == "user_a"
    assert repo.load_user("user_b") is None


def test_clear_all_only_touches_own_namespace():
    medium = MemoryMedium()
    medium.set_item("other_app_key", "keep")
    store = DurableStore(medium)
    store.save("last_track", "grow")
    store.save("trust_points", 10, owner="user_001")

    assert store.clear_all() == 2
    assert medium.keys() == ["other_app_key"]


def test_write_raw_rejects_foreign_keys_and_non_strings():
    store = DurableStore(MemoryMedium())
    assert store.write_raw("communitree_x", "v")
    assert not store.write_raw("elsewhere_x", "v")
    assert not store.write_raw("communitree_y", 5)  # type: ignore[arg-type]


def test_export_then_import_into_empty_store():
    source = AggregateRepository(DurableStore(MemoryMedium()))
    source.save_user(_user())
    source.save_last_track("grow")
    backup = source.export_data()
    assert json_loads(backup)["version"] == "1.0.0"

    target = AggregateRepository(DurableStore(MemoryMedium()))
    assert target.import_data(backup)
    assert target.load_user().id == "user_001"
    assert target.load_last_track() == "grow"


def test_import_rejects_malformed_backup():
    repo = AggregateRepository(DurableStore(MemoryMedium()))
    assert repo.import_data("{broken") is False
    assert repo.import_data(json_dumps({"version": "1.0.0"})) is False
    assert repo.storage_stats() == {"keys": 0, "bytes": 0}


def test_sqlite_medium_persists_across_reopen(tmp_path):
    db = tmp_path / "db" / "kv.db"
    medium = SQLiteMedium(db)
    try:
        store = DurableStore(medium)
        assert store.save("user_data", _user(), record_owner="user_001")
        assert isinstance(store.load_result("user_data", User), Ok)
    finally:
        medium.close()

    reopened = SQLiteMedium(db)
    try:
        user = DurableStore(reopened).load("user_data", User)
        assert user is not None
        assert user.id == "user_001"
        assert "__communitree_storage_probe__" not in reopened.keys()
    finally:
        reopened.close()
