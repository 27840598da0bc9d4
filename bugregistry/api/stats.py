"""
GET /stats
Aggregate triage statistics and the cards most implicated in defects.
"""
from typing import List

from fastapi import APIRouter, Depends, Query

from bugregistry.models.bug_stats import BugStats, SubjectCount
from bugregistry.services.dedup_engine import DedupEngine
from bugregistry.api.dependencies import get_engine

router = APIRouter(prefix="/stats", tags=["Stats"])


@router.get("", response_model=BugStats)
async def get_stats(engine: DedupEngine = Depends(get_engine)):
    return engine.stats()


@router.get("/subjects", response_model=List[SubjectCount])
async def get_subject_stats(limit: int = Query(5, ge=0), engine: DedupEngine = Depends(get_engine)):
    return engine.top_subjects(limit)
