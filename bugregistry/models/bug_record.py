"""
Bug Record Model
================
Pydantic model for the persisted, deduplicated aggregate of one fingerprint.

Identity:
    fingerprint             — 8 hex chars, the sole primary key

First-seen fields (never overwritten by later occurrences):
    defect_type, severity, message, details, category, context

Counters:
    occurrence_count        — number of occurrences mapped to this fingerprint
    first_seen_at           — UTC timestamp of the first occurrence
    last_seen_at            — UTC timestamp of the latest occurrence

Diagnostics:
    fingerprint_components  — labelled decomposition, for debugging collisions
    sample_reports          — most recent occurrence snapshots, newest first

Sync:
    synced_to               — external tracker ID; None means pending sync
"""
from datetime import datetime
from typing import Any, List, Optional
from pydantic import BaseModel, Field

from .occurrence import Severity


class RecordContext(BaseModel):
    action_type: Optional[str] = None
    phase: Optional[str] = None
    turn: Optional[int] = None
    active_subject_index: Optional[int] = None


class SampleReport(BaseModel):
    """Snapshot of a single occurrence kept for operator triage."""
    message: str = ""
    details: Optional[dict[str, Any]] = None
    context: RecordContext = Field(default_factory=RecordContext)
    seen_at: datetime


class BugRecord(BaseModel):
    fingerprint: str
    defect_type: str
    severity: Severity = "medium"
    message: str = ""
    details: Optional[dict[str, Any]] = None
    category: str = "other"

    occurrence_count: int = Field(default=1, ge=1)
    first_seen_at: datetime
    last_seen_at: datetime

    context: RecordContext = Field(default_factory=RecordContext)
    fingerprint_components: str = ""
    sample_reports: List[SampleReport] = []

    synced_to: Optional[str] = None
