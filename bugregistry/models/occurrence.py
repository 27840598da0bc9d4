"""
Occurrence Model
================
Pydantic models for one raw detection event and the situation it was seen in.
This is the contract between the Detector and the deduplication engine.

Occurrence fields:
    defect_type     — taxonomy key (e.g. "duplicate_ids"); None falls back to "unknown_type"
    severity        — critical / high / medium / low
    message         — human-readable description from the detector
    details         — unstructured payload that may reference the implicated card

Context fields:
    action_type           — operation being executed when detected (e.g. "PLAY_CARD")
    phase                 — coarse lifecycle stage (e.g. "MAIN", "COMBAT")
    turn_number           — game turn, diagnostic only
    active_subject_index  — index of the active player, diagnostic only
"""
from typing import Any, Literal, Optional
from pydantic import BaseModel

Severity = Literal["critical", "high", "medium", "low"]


class Occurrence(BaseModel):
    defect_type: Optional[str] = None
    severity: Severity = "medium"
    message: str = ""
    details: Optional[dict[str, Any]] = None


class Context(BaseModel):
    action_type: Optional[str] = None
    phase: Optional[str] = None
    turn_number: Optional[int] = None
    active_subject_index: Optional[int] = None
