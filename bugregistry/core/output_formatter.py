"""
Output Formatter
================
Single source of truth for the strings pushed to the external bug tracker.

DETERMINISM CONTRACT:
  - This module NEVER reads environment variables.
  - This module NEVER touches the bug store.
  - Given the same BugRecord, it ALWAYS returns the exact same strings.

Title format (the tracker is searched for the fingerprint tag):
    [AUTO:{fingerprint}] {Readable Defect Type}

Description format: markdown summary of the record, its newest sample
report, the fingerprint decomposition and the JSON details payload.
"""
import json
from datetime import datetime
from typing import Optional

from bugregistry.core.constants import AUTO_TITLE_PREFIX
from bugregistry.models.bug_record import BugRecord


# ---------------------------------------------------------------------------
# Tracker category mapping
# ---------------------------------------------------------------------------
TRACKER_CATEGORY_MAP: dict[str, str] = {
    "state_corruption":  "game_logic",
    "rule_violation":    "game_logic",
    "combat_error":      "game_logic",
    "calculation_error": "game_logic",
    "data_integrity":    "game_logic",
    "other":             "other",
}


def map_to_tracker_category(category: str) -> str:
    """Map an internal triage category to the tracker's category."""
    return TRACKER_CATEGORY_MAP.get(category, "other")


def readable_defect_type(defect_type: str) -> str:
    """'lure_bypass_direct' → 'Lure Bypass Direct'."""
    return " ".join(word.capitalize() for word in defect_type.split("_") if word)


def _fmt_time(value: datetime) -> str:
    return value.strftime("%Y-%m-%d %H:%M:%S %Z").strip()


def _or_na(value: Optional[object]) -> str:
    return "N/A" if value is None or value == "" else str(value)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------
def format_report_title(record: BugRecord) -> str:
    return f"[{AUTO_TITLE_PREFIX}:{record.fingerprint}] {readable_defect_type(record.defect_type)}"


def format_report_description(record: BugRecord) -> str:
    """
    Build the markdown body of an automated bug report.

    The newest sample report supplies the message, context and details;
    the record's first-seen values are used when no sample was kept.
    """
    sample = record.sample_reports[0] if record.sample_reports else None
    message = sample.message if sample else record.message
    context = sample.context if sample else record.context
    details = sample.details if sample else record.details

    lines = [
        "**Automated Detection by Simulation Harness**",
        "",
        f"**Bug Type:** {record.defect_type}",
        f"**Category:** {record.category}",
        f"**Severity:** {record.severity}",
        f"**Occurrences:** {record.occurrence_count}",
        f"**First Seen:** {_fmt_time(record.first_seen_at)}",
        f"**Last Seen:** {_fmt_time(record.last_seen_at)}",
        "",
        "**Sample Message:**",
        f"> {message or 'No message available'}",
        "",
        "**Context:**",
        f"- Action: {_or_na(context.action_type)}",
        f"- Phase: {_or_na(context.phase)}",
        f"- Turn: {_or_na(context.turn)}",
        "",
        "**Fingerprint Components:**",
        record.fingerprint_components or "N/A",
    ]

    if details:
        lines += ["", "**Details:**", "```json"]
        lines.append(json.dumps(details, indent=2, sort_keys=True, default=str))
        lines.append("```")

    return "\n".join(lines)
