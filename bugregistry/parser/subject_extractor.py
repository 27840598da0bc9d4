"""
Subject Extractor
=================
Pulls the implicated card out of an occurrence's loosely structured details.

The detector attaches entity references under different keys depending on
which check fired. Candidates are checked in a fixed order and the first
accessor that yields a usable name wins:

    creature → card → attacker → target → cardName

A candidate is usable when it is either
    - a non-empty string, or
    - a mapping carrying a non-empty string "name" field.

Normalization: lowercase, every whitespace run replaced by one underscore.
"Black Swan", "black  swan" and "black_swan" all map to "black_swan".

If nothing matches, the sentinel "NO_CARD" is returned.
"""
import re
from collections.abc import Mapping
from typing import Any, Callable, Optional

from bugregistry.core.constants import NO_CARD

_WHITESPACE_RE = re.compile(r"\s+")

# Ordered candidate keys (first match wins)
CANDIDATE_KEYS = ["creature", "card", "attacker", "target", "cardName"]


def normalize_identifier(name: str) -> str:
    """Lowercase and collapse whitespace runs into a single underscore."""
    return _WHITESPACE_RE.sub("_", name.lower())


# ---------------------------------------------------------------------------
# Typed accessors
# ---------------------------------------------------------------------------
def _name_from_string(value: Any) -> Optional[str]:
    if isinstance(value, str) and value:
        return value
    return None


def _name_from_mapping(value: Any) -> Optional[str]:
    if isinstance(value, Mapping):
        return _name_from_string(value.get("name"))
    return None


_VALUE_ACCESSORS: list[Callable[[Any], Optional[str]]] = [
    _name_from_string,
    _name_from_mapping,
]


def _accessor_for(key: str) -> Callable[[Mapping], Optional[str]]:
    def accessor(details: Mapping) -> Optional[str]:
        value = details.get(key)
        for read_name in _VALUE_ACCESSORS:
            name = read_name(value)
            if name is not None:
                return name
        return None
    accessor.__name__ = f"subject_from_{key}"
    return accessor


SUBJECT_ACCESSORS: list[Callable[[Mapping], Optional[str]]] = [
    _accessor_for(key) for key in CANDIDATE_KEYS
]


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------
def extract_subject_id(details: Optional[Mapping[str, Any]]) -> str:
    """
    Resolve the normalized subject identifier for an occurrence.

    Parameters
    ----------
    details : Mapping | None
        The occurrence's details payload.

    Returns
    -------
    str
        Normalized card identifier, or "NO_CARD" when none can be found.
    """
    if not details:
        return NO_CARD

    for accessor in SUBJECT_ACCESSORS:
        name = accessor(details)
        if name is not None:
            return normalize_identifier(name)

    return NO_CARD
