"""
Deduplication Recorder
======================
Turns a raw occurrence into a merge-or-create write against the bug store.

Flow:
    1. Fingerprint the occurrence (pure)
    2. Build the candidate payload (category, context snapshot, decomposition)
    3. upsert_record under the fingerprint:
         - absent  → new record, occurrence_count = 1, first_seen = last_seen = now
         - present → occurrence_count + 1, last_seen = now, newest sample prepended;
                     first-seen fields are left untouched
    4. Bump the subject involvement counter once per occurrence
       (skipped for "NO_CARD")

A failed record write propagates to the caller as PersistenceError. A dropped
occurrence would corrupt triage counts. The subject counter is secondary:
once the record is committed, a counter failure is logged and the committed
record is still returned.
"""
import logging
from datetime import datetime, timezone
from typing import Callable, Optional

from bugregistry.core.config import SAMPLE_REPORT_LIMIT
from bugregistry.core.constants import NO_CARD
from bugregistry.models.bug_record import BugRecord, RecordContext, SampleReport
from bugregistry.models.occurrence import Context, Occurrence
from bugregistry.parser.subject_extractor import extract_subject_id
from bugregistry.parser.taxonomy import category_of, resolve_defect_type
from bugregistry.services.bug_store import BugStore, PersistenceError
from bugregistry.utils.fingerprint import describe_fingerprint_components, generate_fingerprint

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def snapshot_context(context: Optional[Context]) -> RecordContext:
    """Copy the diagnostic parts of a detection context onto a record."""
    if context is None:
        return RecordContext()
    return RecordContext(
        action_type=context.action_type,
        phase=context.phase,
        turn=context.turn_number,
        active_subject_index=context.active_subject_index,
    )


class DeduplicationRecorder:
    """
    Records occurrences into a bug store, one record per fingerprint.
    """

    def __init__(
        self,
        store: BugStore,
        sample_limit: int = SAMPLE_REPORT_LIMIT,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self.store = store
        self.sample_limit = max(sample_limit, 0)
        self._clock = clock

    def record(self, occurrence: Occurrence, context: Optional[Context] = None) -> BugRecord:
        """
        Record one occurrence.

        Parameters
        ----------
        occurrence : Occurrence
            The raw detection event.
        context : Context | None
            Situation the occurrence was detected in.

        Returns
        -------
        BugRecord
            The record after the merge.

        Raises
        ------
        PersistenceError
            If the store cannot persist the record.
        """
        fingerprint = generate_fingerprint(occurrence, context)
        subject_id = extract_subject_id(occurrence.details)
        now = self._clock()

        record_context = snapshot_context(context)
        sample = SampleReport(
            message=occurrence.message,
            details=occurrence.details,
            context=record_context,
            seen_at=now,
        )
        components = describe_fingerprint_components(occurrence, context)

        def merge(existing: Optional[BugRecord]) -> BugRecord:
            if existing is None:
                return BugRecord(
                    fingerprint=fingerprint,
                    defect_type=resolve_defect_type(occurrence.defect_type),
                    severity=occurrence.severity,
                    message=occurrence.message,
                    details=occurrence.details,
                    category=category_of(occurrence.defect_type),
                    occurrence_count=1,
                    first_seen_at=now,
                    last_seen_at=now,
                    context=record_context,
                    fingerprint_components=components,
                    sample_reports=[sample][:self.sample_limit],
                )

            existing.occurrence_count += 1
            existing.last_seen_at = max(existing.last_seen_at, now)
            existing.sample_reports = ([sample] + existing.sample_reports)[:self.sample_limit]
            return existing

        record = self.store.upsert_record(fingerprint, merge)

        if record.occurrence_count == 1:
            logger.info("New bug %s: %s", fingerprint, components)
        else:
            logger.debug(
                "Bug %s (%s) recorded, occurrence #%d",
                fingerprint, record.defect_type, record.occurrence_count,
            )

        if subject_id != NO_CARD:
            try:
                self.store.increment_subject_counter(subject_id)
            except PersistenceError:
                logger.error(
                    "Bug %s recorded but subject counter for %s was not updated",
                    fingerprint, subject_id, exc_info=True,
                )

        return record
