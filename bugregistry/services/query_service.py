"""
Query Service
=============
Read-side triage views over the bug store.

Operations:
    get_all()                 — every record, occurrence_count descending
    get_unsynced()            — records with synced_to == None
    get_by_fingerprint(fp)    — one record or None
    mark_synced(fp, ext_id)   — set synced_to; unknown fingerprint is a no-op
    top_n(n)                  — first n of get_all()
    stats()                   — counts by category and severity, top 5
    top_subjects(limit)       — cards most implicated in defects
"""
import logging
from typing import List, Optional

from bugregistry.core.config import DEFAULT_TOP_N
from bugregistry.core.constants import DEFAULT_SEVERITY, SEVERITIES
from bugregistry.models.bug_record import BugRecord
from bugregistry.models.bug_stats import BugStats, CategoryStats, SubjectCount
from bugregistry.parser.taxonomy import CATEGORY_OTHER
from bugregistry.services.bug_store import BugStore

logger = logging.getLogger(__name__)

MOST_FREQUENT_LIMIT = 5


class BugQueryService:

    def __init__(self, store: BugStore) -> None:
        self.store = store

    def get_all(self) -> List[BugRecord]:
        # sorted() is stable: ties keep store order
        return sorted(self.store.list_records(), key=lambda r: r.occurrence_count, reverse=True)

    def get_unsynced(self) -> List[BugRecord]:
        return [record for record in self.get_all() if record.synced_to is None]

    def get_by_fingerprint(self, fingerprint: str) -> Optional[BugRecord]:
        return self.store.get_record(fingerprint)

    def mark_synced(self, fingerprint: str, external_id: str) -> bool:
        """
        Attach an external tracker ID to a record.

        Returns
        -------
        bool
            True if the record existed and was updated. An unknown
            fingerprint leaves the store untouched and returns False.
        """
        if self.store.get_record(fingerprint) is None:
            logger.warning("mark_synced: no bug with fingerprint %s", fingerprint)
            return False

        def apply(existing: Optional[BugRecord]) -> BugRecord:
            if existing is None:
                raise LookupError(f"Bug {fingerprint} disappeared during mark_synced")
            existing.synced_to = external_id
            return existing

        try:
            self.store.upsert_record(fingerprint, apply)
        except LookupError:
            logger.warning("mark_synced: bug %s was removed before it could be updated", fingerprint)
            return False
        logger.info("Bug %s synced as %s", fingerprint, external_id)
        return True

    def top_n(self, n: int = DEFAULT_TOP_N) -> List[BugRecord]:
        return self.get_all()[:max(n, 0)]

    def stats(self) -> BugStats:
        """Aggregate counts over every record in a single pass."""
        records = self.get_all()

        total_occurrences = 0
        by_category: dict[str, CategoryStats] = {}
        by_severity: dict[str, int] = {severity: 0 for severity in SEVERITIES}

        for record in records:
            total_occurrences += record.occurrence_count

            category = record.category or CATEGORY_OTHER
            bucket = by_category.setdefault(category, CategoryStats())
            bucket.count += 1
            bucket.occurrences += record.occurrence_count

            severity = record.severity or DEFAULT_SEVERITY
            by_severity[severity] = by_severity.get(severity, 0) + record.occurrence_count

        return BugStats(
            unique_bugs=len(records),
            total_occurrences=total_occurrences,
            by_category=by_category,
            by_severity=by_severity,
            most_frequent=records[:MOST_FREQUENT_LIMIT],
        )

    def top_subjects(self, limit: int = MOST_FREQUENT_LIMIT) -> List[SubjectCount]:
        """Cards with the highest bug involvement, most implicated first."""
        counters = self.store.list_subject_counters()
        ranked = sorted(
            (SubjectCount(subject_id=subject, bug_involvements=count)
             for subject, count in counters.items() if count > 0),
            key=lambda s: (-s.bug_involvements, s.subject_id),
        )
        return ranked[:max(limit, 0)]
