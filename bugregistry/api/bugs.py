"""
Bug Endpoints
=============
Triage views over deduplicated bug records.

Routes:
    GET  /bugs                        — all records, most frequent first
    GET  /bugs/top?n=10               — top-N records
    GET  /bugs/unsynced               — records pending tracker sync
    GET  /bugs/{fingerprint}          — one record (404 if unknown)
    POST /bugs/{fingerprint}/synced   — attach a tracker ID (404 if unknown)
"""
import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, field_validator

from bugregistry.core.config import DEFAULT_TOP_N
from bugregistry.models.bug_record import BugRecord
from bugregistry.services.dedup_engine import DedupEngine
from bugregistry.api.dependencies import get_engine

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/bugs", tags=["Bugs"])


class MarkSyncedRequest(BaseModel):
    external_id: str

    @field_validator("external_id")
    @classmethod
    def validate_external_id(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("external_id must not be empty")
        return v.strip()


@router.get("", response_model=List[BugRecord])
async def list_bugs(engine: DedupEngine = Depends(get_engine)):
    return engine.get_all()


@router.get("/top", response_model=List[BugRecord])
async def top_bugs(n: int = Query(DEFAULT_TOP_N, ge=0), engine: DedupEngine = Depends(get_engine)):
    return engine.top_n(n)


@router.get("/unsynced", response_model=List[BugRecord])
async def unsynced_bugs(engine: DedupEngine = Depends(get_engine)):
    return engine.get_unsynced()


@router.get("/{fingerprint}", response_model=BugRecord)
async def get_bug(fingerprint: str, engine: DedupEngine = Depends(get_engine)):
    record = engine.get_by_fingerprint(fingerprint)
    if record is None:
        raise HTTPException(status_code=404, detail=f"Unknown fingerprint {fingerprint}")
    return record


@router.post("/{fingerprint}/synced", response_model=BugRecord)
async def mark_bug_synced(
    fingerprint: str,
    payload: MarkSyncedRequest,
    engine: DedupEngine = Depends(get_engine),
):
    if not engine.mark_synced(fingerprint, payload.external_id):
        raise HTTPException(status_code=404, detail=f"Unknown fingerprint {fingerprint}")
    return engine.get_by_fingerprint(fingerprint)
