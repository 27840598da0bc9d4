"""
Deduplication Recorder Tests
============================
Covers:
    - Merge correctness: N occurrences of one defect → one record, count N
    - K distinct fingerprints → K records
    - First-seen fields are authoritative
    - Subject involvement counter (per occurrence, skipped for NO_CARD)
    - Concurrent callers never lose an increment
    - Record write failures propagate as PersistenceError
    - A counter failure after a committed record is logged, not raised
"""
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock, patch

import pytest

from bugregistry.models.occurrence import Context, Occurrence
from bugregistry.services.bug_store import InMemoryBugStore, PersistenceError
from bugregistry.services.recorder import DeduplicationRecorder
from bugregistry.utils.fingerprint import generate_fingerprint


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
def _occ(
    defect_type: str = "zombie_creature",
    severity: str = "high",
    message: str = "Creature with 0 HP still on field",
    details: dict = None,
) -> Occurrence:
    return Occurrence(
        defect_type=defect_type,
        severity=severity,
        message=message,
        details=details if details is not None else {"creature": "Black Swan"},
    )


class _StepClock:
    """Returns a strictly increasing timestamp per call."""

    def __init__(self):
        self.current = datetime(2026, 1, 1, tzinfo=timezone.utc)

    def __call__(self):
        self.current += timedelta(seconds=1)
        return self.current


@pytest.fixture
def clock():
    return _StepClock()


@pytest.fixture
def recorder(store, clock):
    return DeduplicationRecorder(store, sample_limit=3, clock=clock)


# ---------------------------------------------------------------------------
# Merge
# ---------------------------------------------------------------------------
def test_first_occurrence_creates_record(recorder, store):
    ctx = Context(action_type="PLAY_CARD", phase="MAIN", turn_number=3, active_subject_index=1)
    record = recorder.record(_occ(), ctx)

    assert record.occurrence_count == 1
    assert record.first_seen_at == record.last_seen_at
    assert record.defect_type == "zombie_creature"
    assert record.category == "state_corruption"
    assert record.synced_to is None
    assert record.context.action_type == "PLAY_CARD"
    assert record.context.turn == 3
    assert record.context.active_subject_index == 1
    assert "structural" in record.fingerprint_components
    assert store.get_record(record.fingerprint) == record


def test_n_occurrences_merge_into_one_record(recorder, store):
    for _ in range(7):
        record = recorder.record(_occ())
    assert record.occurrence_count == 7
    assert len(store.list_records()) == 1


def test_k_fingerprints_yield_k_records(recorder, store):
    recorder.record(_occ(details={"creature": "Orca"}))
    recorder.record(_occ(details={"creature": "Mako"}))
    recorder.record(_occ(defect_type="duplicate_ids", details={"creature": "Orca"}))
    recorder.record(_occ(details={"creature": "Orca"}))
    assert len(store.list_records()) == 3


def test_first_seen_fields_win(recorder):
    first = recorder.record(
        _occ(severity="high", message="first", details={"creature": "Orca", "hp": -1}),
        Context(action_type="PLAY_CARD", phase="MAIN"),
    )
    second = recorder.record(
        _occ(severity="low", message="second", details={"creature": "Orca", "hp": -5}),
        Context(action_type="DECLARE_ATTACK", phase="COMBAT"),
    )

    assert second.fingerprint == first.fingerprint
    assert second.occurrence_count == 2
    assert second.severity == "high"
    assert second.message == "first"
    assert second.details == {"creature": "Orca", "hp": -1}
    assert second.context.action_type == "PLAY_CARD"
    assert second.first_seen_at == first.first_seen_at
    assert second.last_seen_at > first.last_seen_at


def test_sample_reports_keep_newest_first_within_limit(recorder):
    for i in range(5):
        record = recorder.record(_occ(message=f"occurrence {i}"))
    assert [s.message for s in record.sample_reports] == ["occurrence 4", "occurrence 3", "occurrence 2"]


def test_behavioral_defect_split_by_phase(recorder, store):
    occ = _occ(defect_type="summoning_sickness", details={"attacker": "Mako"})
    recorder.record(occ, Context(action_type="DECLARE_ATTACK", phase="COMBAT"))
    recorder.record(occ, Context(action_type="DECLARE_ATTACK", phase="MAIN"))
    assert len(store.list_records()) == 2


def test_missing_defect_type_is_recorded_as_unknown(recorder):
    record = recorder.record(Occurrence(message="??"))
    assert record.defect_type == "unknown_type"
    assert record.category == "other"
    assert record.fingerprint == generate_fingerprint(Occurrence())


# ---------------------------------------------------------------------------
# Subject counter
# ---------------------------------------------------------------------------
def test_subject_counter_increments_per_occurrence(recorder, store):
    for _ in range(10):
        recorder.record(_occ(details={"creature": "Orca"}))
    recorder.record(_occ(defect_type="hp_underflow", details={"target": {"name": "Orca"}}))
    assert store.list_subject_counters() == {"orca": 11}


def test_subject_counter_skipped_for_no_card(recorder, store):
    recorder.record(_occ(details={}))
    assert store.list_subject_counters() == {}


# ---------------------------------------------------------------------------
# Concurrency
# ---------------------------------------------------------------------------
def test_concurrent_callers_do_not_lose_increments(store):
    recorder = DeduplicationRecorder(store)
    contexts = [Context(action_type=a, phase="COMBAT") for a in ("PLAY_CARD", "DECLARE_ATTACK", "END_TURN")]

    def worker(i):
        return recorder.record(_occ(), contexts[i % 3])

    with ThreadPoolExecutor(max_workers=3) as pool:
        list(pool.map(worker, range(5)))

    records = store.list_records()
    assert len(records) == 1
    assert records[0].occurrence_count == 5


def test_slow_mutators_on_same_key_are_serialized(store):
    import time
    from bugregistry.models.bug_record import BugRecord

    now = datetime(2026, 1, 1, tzinfo=timezone.utc)

    def slow_increment(existing):
        time.sleep(0.005)
        if existing is None:
            return BugRecord(fingerprint="deadbeef", defect_type="x", first_seen_at=now, last_seen_at=now)
        existing.occurrence_count += 1
        return existing

    with ThreadPoolExecutor(max_workers=8) as pool:
        list(pool.map(lambda _: store.upsert_record("deadbeef", slow_increment), range(40)))

    assert store.get_record("deadbeef").occurrence_count == 40


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------
def test_storage_failure_propagates():
    failing = MagicMock(spec=InMemoryBugStore)
    failing.upsert_record.side_effect = PersistenceError("disk gone")
    recorder = DeduplicationRecorder(failing)

    with pytest.raises(PersistenceError):
        recorder.record(_occ())
    failing.increment_subject_counter.assert_not_called()


def test_failing_mutator_leaves_no_partial_record(store):
    def boom(existing):
        raise RuntimeError("mutator failed")

    with pytest.raises(RuntimeError):
        store.upsert_record("cafebabe", boom)
    assert store.get_record("cafebabe") is None


def test_counter_failure_keeps_committed_record(store, caplog):
    recorder = DeduplicationRecorder(store)

    with patch.object(store, "increment_subject_counter", side_effect=PersistenceError("counter down")):
        first = recorder.record(_occ())
    assert first.occurrence_count == 1
    assert "subject counter" in caplog.text

    # the retry a caller would make counts as its own occurrence
    second = recorder.record(_occ())
    assert second.occurrence_count == 2
    assert store.get_record(first.fingerprint).occurrence_count == 2
    assert store.list_subject_counters() == {"black_swan": 1}
