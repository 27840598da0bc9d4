"""
Constants
Centralised storage for sentinels, severities and fingerprint rules.
"""
SEVERITIES = ["critical", "high", "medium", "low"]
DEFAULT_SEVERITY = "medium"

# Fingerprint component fallbacks
UNKNOWN_TYPE = "unknown_type"
NO_ACTION = "NO_ACTION"
UNKNOWN_PHASE = "UNKNOWN_PHASE"
NO_CARD = "NO_CARD"

COMPONENT_SEPARATOR = "|"
FINGERPRINT_WIDTH = 8

# Title prefix used when records are pushed to the external tracker
AUTO_TITLE_PREFIX = "AUTO"
