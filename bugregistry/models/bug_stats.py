"""
Bug Stats Model
Aggregates produced by the query service for the triage dashboard.
"""
from typing import List
from pydantic import BaseModel

from .bug_record import BugRecord


class CategoryStats(BaseModel):
    count: int = 0          # distinct records in the category
    occurrences: int = 0    # summed occurrence_count


class BugStats(BaseModel):
    unique_bugs: int = 0
    total_occurrences: int = 0
    by_category: dict[str, CategoryStats] = {}
    by_severity: dict[str, int] = {}
    most_frequent: List[BugRecord] = []


class SubjectCount(BaseModel):
    subject_id: str
    bug_involvements: int
