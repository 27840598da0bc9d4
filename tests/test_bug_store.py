"""
Bug Store Tests
===============
Persistence port behaviour of the in-memory and JSON-file backends.
"""
import json
from datetime import datetime, timezone
from unittest.mock import patch

import pytest

from bugregistry.models.bug_record import BugRecord
from bugregistry.models.occurrence import Occurrence
from bugregistry.services.bug_store import (
    BugStore,
    InMemoryBugStore,
    JsonFileBugStore,
    PersistenceError,
)
from bugregistry.services.dedup_engine import DedupEngine, build_engine

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def _new(fingerprint="0badf00d"):
    return BugRecord(fingerprint=fingerprint, defect_type="duplicate_ids", first_seen_at=NOW, last_seen_at=NOW)


def test_backends_satisfy_port(tmp_path):
    assert isinstance(InMemoryBugStore(), BugStore)
    assert isinstance(JsonFileBugStore(str(tmp_path / "bugs.json")), BugStore)


def test_returned_records_are_copies(store):
    store.upsert_record("0badf00d", lambda existing: existing or _new())
    fetched = store.get_record("0badf00d")
    fetched.occurrence_count = 99
    assert store.get_record("0badf00d").occurrence_count == 1


def test_stored_record_is_detached_from_caller_objects(store):
    details = {"target": {"name": "Orca", "hp": -1}}
    record = _new()
    record.details = details
    store.upsert_record("0badf00d", lambda existing: record)

    details["target"]["hp"] = 999
    record.occurrence_count = 50

    stored = store.get_record("0badf00d")
    assert stored.details == {"target": {"name": "Orca", "hp": -1}}
    assert stored.occurrence_count == 1


def test_mutator_must_keep_key(store):
    with pytest.raises(ValueError):
        store.upsert_record("11111111", lambda existing: _new("22222222"))
    assert store.get_record("11111111") is None


def test_clear_resets_everything(store):
    store.upsert_record("0badf00d", lambda existing: _new())
    store.increment_subject_counter("orca")
    store.clear()
    assert len(store) == 0
    assert store.list_subject_counters() == {}


def test_json_store_round_trips_between_instances(tmp_path):
    path = str(tmp_path / "data" / "bugs.json")
    engine = DedupEngine(JsonFileBugStore(path))
    for _ in range(3):
        first = engine.record(Occurrence(defect_type="zombie_creature", details={"creature": "Orca"}))
    engine.mark_synced(first.fingerprint, "BUG-9")

    reopened = JsonFileBugStore(path)
    record = reopened.get_record(first.fingerprint)
    assert record.occurrence_count == 3
    assert record.synced_to == "BUG-9"
    assert record.first_seen_at.tzinfo is not None
    assert reopened.list_subject_counters() == {"orca": 3}


def test_json_store_file_layout(tmp_path):
    path = tmp_path / "bugs.json"
    store = JsonFileBugStore(str(path))
    store.upsert_record("0badf00d", lambda existing: _new())

    data = json.loads(path.read_text(encoding="utf-8"))
    assert data["records"][0]["fingerprint"] == "0badf00d"
    assert data["subject_counters"] == {}


def test_corrupt_file_raises_persistence_error(tmp_path):
    path = tmp_path / "bugs.json"
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(PersistenceError):
        JsonFileBugStore(str(path))


def test_write_failure_propagates_and_stores_nothing(tmp_path):
    store = JsonFileBugStore(str(tmp_path / "bugs.json"))
    engine = DedupEngine(store)

    with patch("bugregistry.services.bug_store.os.replace", side_effect=OSError("disk full")):
        with pytest.raises(PersistenceError):
            engine.record(Occurrence(defect_type="zombie_creature", details={"creature": "Orca"}))

    assert store.list_records() == []
    assert store.list_subject_counters() == {}
    assert list(tmp_path.glob(".bugstore-*")) == []


def test_counter_write_failure_keeps_previous_count(tmp_path):
    store = JsonFileBugStore(str(tmp_path / "bugs.json"))
    with patch("bugregistry.services.bug_store.os.replace", side_effect=OSError("disk full")):
        with pytest.raises(PersistenceError):
            store.increment_subject_counter("orca")
    assert store.list_subject_counters() == {}


def test_failed_write_never_reaches_file_or_memory(tmp_path):
    path = str(tmp_path / "bugs.json")
    store = JsonFileBugStore(path)
    store.upsert_record("aaaaaaaa", lambda existing: _new("aaaaaaaa"))

    with patch("bugregistry.services.bug_store.os.replace", side_effect=OSError("disk full")):
        with pytest.raises(PersistenceError):
            store.upsert_record("bbbbbbbb", lambda existing: _new("bbbbbbbb"))

    store.upsert_record("cccccccc", lambda existing: _new("cccccccc"))

    in_memory = {record.fingerprint for record in store.list_records()}
    on_disk = {record.fingerprint for record in JsonFileBugStore(path).list_records()}
    assert in_memory == on_disk == {"aaaaaaaa", "cccccccc"}


def test_counter_write_failure_leaves_file_unchanged(tmp_path):
    path = str(tmp_path / "bugs.json")
    store = JsonFileBugStore(path)
    store.increment_subject_counter("orca")

    with patch("bugregistry.services.bug_store.os.replace", side_effect=OSError("disk full")):
        with pytest.raises(PersistenceError):
            store.increment_subject_counter("orca")
    store.increment_subject_counter("pike")

    assert store.list_subject_counters() == {"orca": 1, "pike": 1}
    assert JsonFileBugStore(path).list_subject_counters() == {"orca": 1, "pike": 1}


def test_build_engine_picks_backend(tmp_path):
    assert isinstance(build_engine("").store, InMemoryBugStore)
    assert isinstance(build_engine(str(tmp_path / "bugs.json")).store, JsonFileBugStore)
