"""
Dedup Engine
============
Single handle owning the bug store, the recorder and the query service.

Build one per process with build_engine() and pass it to every caller;
there is no module-level store.
"""
import logging
from typing import List, Optional

from bugregistry.core.config import BUG_STORE_PATH, DEFAULT_TOP_N, SAMPLE_REPORT_LIMIT
from bugregistry.models.bug_record import BugRecord
from bugregistry.models.bug_stats import BugStats, SubjectCount
from bugregistry.models.occurrence import Context, Occurrence
from bugregistry.services.bug_store import BugStore, InMemoryBugStore, JsonFileBugStore
from bugregistry.services.query_service import BugQueryService
from bugregistry.services.recorder import DeduplicationRecorder

logger = logging.getLogger(__name__)


class DedupEngine:

    def __init__(self, store: BugStore, sample_limit: int = SAMPLE_REPORT_LIMIT) -> None:
        self.store = store
        self.recorder = DeduplicationRecorder(store, sample_limit=sample_limit)
        self.queries = BugQueryService(store)

    # --- write side ---
    def record(self, occurrence: Occurrence, context: Optional[Context] = None) -> BugRecord:
        return self.recorder.record(occurrence, context)

    # --- read side ---
    def get_all(self) -> List[BugRecord]:
        return self.queries.get_all()

    def get_unsynced(self) -> List[BugRecord]:
        return self.queries.get_unsynced()

    def get_by_fingerprint(self, fingerprint: str) -> Optional[BugRecord]:
        return self.queries.get_by_fingerprint(fingerprint)

    def mark_synced(self, fingerprint: str, external_id: str) -> bool:
        return self.queries.mark_synced(fingerprint, external_id)

    def top_n(self, n: int = DEFAULT_TOP_N) -> List[BugRecord]:
        return self.queries.top_n(n)

    def stats(self) -> BugStats:
        return self.queries.stats()

    def top_subjects(self, limit: int = 5) -> List[SubjectCount]:
        return self.queries.top_subjects(limit)


def build_engine(store_path: str = BUG_STORE_PATH) -> DedupEngine:
    """Create the process-wide engine from configuration."""
    if store_path:
        logger.info("Using JSON bug store at %s", store_path)
        store: BugStore = JsonFileBugStore(store_path)
    else:
        logger.info("Using in-memory bug store")
        store = InMemoryBugStore()
    return DedupEngine(store)
