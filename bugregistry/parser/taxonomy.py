"""
Taxonomy
========
Static tables describing how each defect type is identified and triaged.

Equivalence Modes:
    structural  — an invalid state that exists regardless of when it was
                  observed; identity is (defect_type, subject)
    behavioral  — a rule violation tied to an operation and lifecycle stage;
                  identity is (defect_type, action_type, phase, subject)

Only structural types are enumerated. Every other defect type, including
ones the detector adds later, is behavioral.

Triage Categories:
    state_corruption, rule_violation, combat_error, calculation_error,
    data_integrity, other (fallback)

Category is informational only and never participates in the fingerprint.
"""
from typing import Literal, Optional

from bugregistry.core.constants import UNKNOWN_TYPE

EquivalenceMode = Literal["structural", "behavioral"]

STRUCTURAL = "structural"
BEHAVIORAL = "behavioral"


# ---------------------------------------------------------------------------
# 1. Structural defect types
# ---------------------------------------------------------------------------
STRUCTURAL_TYPES: frozenset[str] = frozenset({
    # Invalid board / zone state
    "zombie_creature",
    "duplicate_ids",
    "field_not_array",
    "field_slot_count",
    "missing_instance_id",
    "missing_name",
    "missing_type",
    "hand_overflow",

    # Values outside a valid bound
    "hp_underflow",
    "hp_overflow",
    "negative_attack",
    "stat_overflow",
    "negative_nutrition",
    "excessive_nutrition",

    # Card data problems
    "conflicting_keywords",
    "invalid_carrion_card",
    "exile_missing_id",
})


# ---------------------------------------------------------------------------
# 2. Triage category table
# ---------------------------------------------------------------------------
CATEGORY_OTHER = "other"

CATEGORIES = [
    "state_corruption",
    "rule_violation",
    "combat_error",
    "calculation_error",
    "data_integrity",
    CATEGORY_OTHER,
]

_CATEGORY_MAP: dict[str, str] = {
    # State corruption
    "zombie_creature":           "state_corruption",
    "duplicate_ids":             "state_corruption",
    "field_not_array":           "state_corruption",
    "field_slot_count":          "state_corruption",
    "missing_instance_id":       "state_corruption",
    "missing_name":              "state_corruption",
    "missing_type":              "state_corruption",

    # Rule violations
    "summoning_sickness":        "rule_violation",
    "dry_drop_keyword_retained": "rule_violation",
    "turn_decreased":            "rule_violation",
    "turn_skipped":              "rule_violation",
    "invalid_active_player":     "rule_violation",

    # Combat errors
    "barrier_bypass":            "combat_error",
    "passive_attack":            "combat_error",
    "lure_bypass":               "combat_error",
    "lure_bypass_direct":        "combat_error",
    "hidden_targeted":           "combat_error",
    "invisible_targeted":        "combat_error",

    # Stat calculation
    "hp_underflow":              "calculation_error",
    "hp_overflow":               "calculation_error",
    "negative_attack":           "calculation_error",
    "stat_overflow":             "calculation_error",
    "negative_nutrition":        "calculation_error",
    "excessive_nutrition":       "calculation_error",

    # Data integrity
    "invalid_carrion_card":      "data_integrity",
    "exile_missing_id":          "data_integrity",
    "conflicting_keywords":      "data_integrity",
    "hand_overflow":             "data_integrity",
}


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------
def resolve_defect_type(defect_type: Optional[str]) -> str:
    """Return the defect type, or "unknown_type" when it is missing or empty."""
    return defect_type or UNKNOWN_TYPE


def equivalence_mode_of(defect_type: Optional[str]) -> EquivalenceMode:
    """
    Return the equivalence mode for a defect type.

    Parameters
    ----------
    defect_type : str | None
        Taxonomy key reported by the detector.

    Returns
    -------
    str
        "structural" for enumerated structural types, otherwise "behavioral".
    """
    if resolve_defect_type(defect_type) in STRUCTURAL_TYPES:
        return STRUCTURAL
    return BEHAVIORAL


def is_structural(defect_type: Optional[str]) -> bool:
    return equivalence_mode_of(defect_type) == STRUCTURAL


def category_of(defect_type: Optional[str]) -> str:
    """Map a defect type to its triage category ("other" if unlisted)."""
    return _CATEGORY_MAP.get(resolve_defect_type(defect_type), CATEGORY_OTHER)
