"""
Configuration
=============
Loads environment variables from .env file using python-dotenv.

Environment Variables:
    BUG_STORE_PATH           — JSON file backing the bug store (default: in-memory)
    SAMPLE_REPORT_LIMIT      — Occurrence snapshots kept per record (default: 5)
    MIN_OCCURRENCES_TO_SYNC  — Records below this count are not uploaded (default: 2)
    SYNC_INTERVAL_SECONDS    — Period of the background sync runner (default: 30)
    DEFAULT_TOP_N            — Default size of the top-N triage view (default: 10)
    LOG_LEVEL                — Root logging level name (default: INFO)
    LOG_DIR                  — Directory for the daily log file (default: logs)

Sync Threshold:
    MIN_OCCURRENCES_TO_SYNC keeps one-off detections out of the external
    tracker. A record seen once stays pending until it repeats or an
    operator reports it immediately.
"""
import os
from dotenv import load_dotenv

load_dotenv()

BUG_STORE_PATH = os.getenv("BUG_STORE_PATH", "")

SAMPLE_REPORT_LIMIT = int(os.getenv("SAMPLE_REPORT_LIMIT", 5))

MIN_OCCURRENCES_TO_SYNC = int(os.getenv("MIN_OCCURRENCES_TO_SYNC", 2))

SYNC_INTERVAL_SECONDS = float(os.getenv("SYNC_INTERVAL_SECONDS", 30))

DEFAULT_TOP_N = int(os.getenv("DEFAULT_TOP_N", 10))

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_DIR = os.getenv("LOG_DIR", "logs")
