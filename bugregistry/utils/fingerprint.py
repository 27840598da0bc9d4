"""
Fingerprint Utility
===================
Generates stable fingerprints for defect occurrences so that the same
underlying bug collapses into one record across games, turns and triggers.

A fingerprint combines:
    - defect_type (fallback "unknown_type")
    - subject_id  (normalized card name, fallback "NO_CARD")
    - action_type + phase, only for behavioral defect types

Structural:
    [defect_type, subject_id]
Behavioral:
    [defect_type, action_type | "NO_ACTION", phase | "UNKNOWN_PHASE", subject_id]

Components are joined with "|", lowercased and hashed with djb2 over
UTF-16 code units (seed 5381, h = h * 33 + c, wrapped to a signed 32-bit
integer at every step). The absolute value is rendered as 8 lowercase hex
characters. Stored fingerprints depend on this exact algorithm; widening
it requires migrating every existing record.
"""
from typing import List, Optional

from bugregistry.core.constants import (
    COMPONENT_SEPARATOR,
    FINGERPRINT_WIDTH,
    NO_ACTION,
    UNKNOWN_PHASE,
)
from bugregistry.models.occurrence import Context, Occurrence
from bugregistry.parser.subject_extractor import extract_subject_id
from bugregistry.parser.taxonomy import is_structural, resolve_defect_type

_DJB2_SEED = 5381
_UINT32_MASK = 0xFFFFFFFF
_INT32_SIGN = 0x80000000


def _to_int32(value: int) -> int:
    value &= _UINT32_MASK
    return value - 0x100000000 if value & _INT32_SIGN else value


def _utf16_code_units(text: str) -> List[int]:
    raw = text.encode("utf-16-le")
    return [int.from_bytes(raw[i:i + 2], "little") for i in range(0, len(raw), 2)]


def hash_string(text: str) -> str:
    """
    Hash a string with 32-bit djb2.

    Parameters
    ----------
    text : str
        Canonical component string.

    Returns
    -------
    str
        Exactly 8 lowercase hex characters.
    """
    acc = _DJB2_SEED
    for code in _utf16_code_units(text):
        acc = _to_int32(acc * 33 + code)
    return format(abs(acc), "x").zfill(FINGERPRINT_WIDTH)


def fingerprint_components(occurrence: Occurrence, context: Optional[Context] = None) -> List[str]:
    """Return the ordered identity components for an occurrence."""
    context = context or Context()
    defect_type = resolve_defect_type(occurrence.defect_type)
    subject_id = extract_subject_id(occurrence.details)

    if is_structural(defect_type):
        return [defect_type, subject_id]

    return [
        defect_type,
        context.action_type or NO_ACTION,
        context.phase or UNKNOWN_PHASE,
        subject_id,
    ]


def generate_fingerprint(occurrence: Occurrence, context: Optional[Context] = None) -> str:
    """
    Generate a deterministic fingerprint for an occurrence.

    Same defect → same fingerprint, in any process, at any time.

    Parameters
    ----------
    occurrence : Occurrence
        The raw detection event.
    context : Context | None
        Situation the occurrence was detected in.

    Returns
    -------
    str
        8-character lowercase hex fingerprint.
    """
    joined = COMPONENT_SEPARATOR.join(fingerprint_components(occurrence, context))
    return hash_string(joined.lower())


def describe_fingerprint_components(occurrence: Occurrence, context: Optional[Context] = None) -> str:
    """
    Render the fingerprint inputs as a labelled string for operators.

    Never used for identity.
    """
    components = fingerprint_components(occurrence, context)

    if len(components) == 2:
        defect_type, subject_id = components
        return f"Type: {defect_type}, Card: {subject_id} (structural - action/phase ignored)"

    defect_type, action, phase, subject_id = components
    return f"Type: {defect_type}, Action: {action}, Phase: {phase}, Card: {subject_id}"
