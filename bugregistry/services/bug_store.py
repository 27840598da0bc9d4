"""
Bug Store
=========
Persistence port for bug records plus the two shipped backends.

Port contract (BugStore):
    get_record(fingerprint)               → BugRecord | None
    upsert_record(fingerprint, mutator)   → BugRecord, atomic per key
    list_records()                        → list[BugRecord]
    increment_subject_counter(subject_id) → None
    list_subject_counters()               → dict[str, int]

Atomicity:
    - upsert_record holds a lock dedicated to that fingerprint while the
      mutator runs, so concurrent occurrences of the same defect never
      lose an increment.
    - Different fingerprints use different locks and never wait on each
      other's mutators.
    - The mutator receives a private copy and the store keeps its own deep
      copy of the result; callers never share objects with stored records.
    - A record or counter becomes visible only once the backend has
      committed it. If the mutator raises or the write fails, the previous
      state is left in place.

Backends:
    InMemoryBugStore  — process-local dict, the default
    JsonFileBugStore  — same semantics; every commit writes the full store
                        to disk first (temp file + os.replace) and updates
                        memory after the write succeeds

Failures of the backend surface as PersistenceError and are never
swallowed here; retry policy belongs to the caller.
"""
import json
import logging
import os
import tempfile
import threading
from typing import Callable, Optional, Protocol, runtime_checkable

from bugregistry.models.bug_record import BugRecord

logger = logging.getLogger(__name__)

RecordMutator = Callable[[Optional[BugRecord]], BugRecord]


class PersistenceError(RuntimeError):
    """Raised when the storage backend cannot read or write bug data."""


@runtime_checkable
class BugStore(Protocol):
    def get_record(self, fingerprint: str) -> Optional[BugRecord]: ...

    def upsert_record(self, fingerprint: str, mutator: RecordMutator) -> BugRecord: ...

    def list_records(self) -> list[BugRecord]: ...

    def increment_subject_counter(self, subject_id: str) -> None: ...

    def list_subject_counters(self) -> dict[str, int]: ...


class InMemoryBugStore:
    """
    Thread-safe in-memory bug store.

    Usage:
        store = InMemoryBugStore()
        store.upsert_record("1a2b3c4d", lambda existing: ...)
        store.get_record("1a2b3c4d")
    """

    def __init__(self) -> None:
        # fingerprint → record
        self._records: dict[str, BugRecord] = {}
        # subject_id → bug involvement count
        self._subject_counts: dict[str, int] = {}
        # fingerprint → lock serializing read-modify-write on that key
        self._key_locks: dict[str, threading.Lock] = {}

        self._table_lock = threading.Lock()
        self._counter_lock = threading.Lock()

    # ------------------------------------------------------------------
    # Records
    # ------------------------------------------------------------------
    def _lock_for(self, fingerprint: str) -> threading.Lock:
        with self._table_lock:
            lock = self._key_locks.get(fingerprint)
            if lock is None:
                lock = threading.Lock()
                self._key_locks[fingerprint] = lock
            return lock

    def get_record(self, fingerprint: str) -> Optional[BugRecord]:
        with self._table_lock:
            record = self._records.get(fingerprint)
        return record.model_copy(deep=True) if record is not None else None

    def upsert_record(self, fingerprint: str, mutator: RecordMutator) -> BugRecord:
        """
        Atomically create or update the record stored under a fingerprint.

        Parameters
        ----------
        fingerprint : str
            Record key.
        mutator : callable
            Receives a copy of the existing record (or None) and returns
            the record to store.

        Returns
        -------
        BugRecord
            Copy of the stored record.
        """
        with self._lock_for(fingerprint):
            with self._table_lock:
                previous = self._records.get(fingerprint)

            updated = mutator(previous.model_copy(deep=True) if previous is not None else None)
            if updated.fingerprint != fingerprint:
                raise ValueError(
                    f"Mutator returned record {updated.fingerprint!r} for key {fingerprint!r}"
                )

            stored = updated.model_copy(deep=True)
            self._commit_record(fingerprint, stored)
            return stored.model_copy(deep=True)

    def _commit_record(self, fingerprint: str, record: BugRecord) -> None:
        with self._table_lock:
            self._records[fingerprint] = record

    def list_records(self) -> list[BugRecord]:
        with self._table_lock:
            records = list(self._records.values())
        return [record.model_copy(deep=True) for record in records]

    # ------------------------------------------------------------------
    # Subject counters
    # ------------------------------------------------------------------
    def increment_subject_counter(self, subject_id: str) -> None:
        if not subject_id:
            return
        self._commit_counter(subject_id)

    def _commit_counter(self, subject_id: str) -> None:
        with self._counter_lock:
            self._subject_counts[subject_id] = self._subject_counts.get(subject_id, 0) + 1

    def list_subject_counters(self) -> dict[str, int]:
        with self._counter_lock:
            return dict(self._subject_counts)

    # ------------------------------------------------------------------
    # Maintenance
    # ------------------------------------------------------------------
    def clear(self) -> None:
        """Drop every record and counter (operator reset)."""
        self._reset_memory()
        logger.info("Bug store cleared")

    def _reset_memory(self) -> None:
        with self._table_lock:
            self._records.clear()
            self._key_locks.clear()
        with self._counter_lock:
            self._subject_counts.clear()

    def __len__(self) -> int:
        with self._table_lock:
            return len(self._records)


class JsonFileBugStore(InMemoryBugStore):
    """
    Bug store mirrored to a JSON file.

    File layout:
        {
          "records": [<BugRecord>, ...],
          "subject_counters": {"black_swan": 3, ...}
        }

    Every commit holds the write lock while it builds the new file contents
    from committed state plus its own change, writes them, and only then
    publishes the change in memory. The file never holds a change that
    memory rolled back.
    """

    def __init__(self, path: str) -> None:
        super().__init__()
        self.path = os.path.abspath(path)
        self._write_lock = threading.Lock()
        self._load()

    def _load(self) -> None:
        if not os.path.exists(self.path):
            logger.info("No bug store at %s, starting empty", self.path)
            return

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
            records = [BugRecord.model_validate(item) for item in data.get("records", [])]
            counters = {str(k): int(v) for k, v in data.get("subject_counters", {}).items()}
        except (OSError, ValueError, AttributeError) as e:
            raise PersistenceError(f"Failed to load bug store {self.path}: {e}") from e

        self._records = {record.fingerprint: record for record in records}
        self._subject_counts = counters
        logger.info("Loaded %d bug records from %s", len(records), self.path)

    # ------------------------------------------------------------------
    # Commits (write first, publish second)
    # ------------------------------------------------------------------
    def _commit_record(self, fingerprint: str, record: BugRecord) -> None:
        with self._write_lock:
            with self._table_lock:
                records = dict(self._records)
            records[fingerprint] = record
            self._write(records, self.list_subject_counters())
            super()._commit_record(fingerprint, record)

    def _commit_counter(self, subject_id: str) -> None:
        with self._write_lock:
            counters = self.list_subject_counters()
            counters[subject_id] = counters.get(subject_id, 0) + 1
            with self._table_lock:
                records = dict(self._records)
            self._write(records, counters)
            super()._commit_counter(subject_id)

    def clear(self) -> None:
        with self._write_lock:
            self._write({}, {})
            self._reset_memory()
        logger.info("Bug store %s cleared", self.path)

    def _write(self, records: dict[str, BugRecord], counters: dict[str, int]) -> None:
        data = {
            "records": [record.model_dump(mode="json") for record in records.values()],
            "subject_counters": counters,
        }
        directory = os.path.dirname(self.path) or "."
        try:
            os.makedirs(directory, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(prefix=".bugstore-", suffix=".json", dir=directory)
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(data, f, indent=2)
                os.replace(tmp_path, self.path)
            except BaseException:
                if os.path.exists(tmp_path):
                    os.remove(tmp_path)
                raise
        except OSError as e:
            logger.error("Failed to write bug store %s: %s", self.path, e, exc_info=True)
            raise PersistenceError(f"Failed to write bug store {self.path}: {e}") from e
