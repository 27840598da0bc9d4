"""
POST /occurrences
Detector ingress: fingerprints and records one occurrence, returning the merged record.
Storage failures are reported as 503 so the detector can retry.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from bugregistry.models.bug_record import BugRecord
from bugregistry.models.occurrence import Context, Occurrence
from bugregistry.services.bug_store import PersistenceError
from bugregistry.services.dedup_engine import DedupEngine
from bugregistry.api.dependencies import get_engine

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Occurrences"])


class OccurrenceRequest(BaseModel):
    occurrence: Occurrence
    context: Optional[Context] = None


@router.post("/occurrences", response_model=BugRecord)
async def record_occurrence(payload: OccurrenceRequest, engine: DedupEngine = Depends(get_engine)):
    try:
        return engine.record(payload.occurrence, payload.context)
    except PersistenceError as e:
        logger.error("Failed to record occurrence: %s", e)
        raise HTTPException(status_code=503, detail="Bug store unavailable")
