from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from app.models.models import MatchRecord, MatchStatus
from app.models.requests import MatchNotesUpdate, MatchStatusUpdate
from app.models.response import MatchListResponse
from app.services.repository import MatchStore
from app.utils.logging_config import get_logger

router = APIRouter(prefix="/matches", tags=["matches"])
logger = get_logger(__name__)


def get_match_store(request: Request) -> MatchStore:
    return MatchStore(request.app.state.db)


@router.get("", response_model=MatchListResponse)
async def list_matches(
    status: Optional[MatchStatus] = Query(None, description="Only matches in this triage status"),
    candidate_id: Optional[str] = Query(None),
    job_id: Optional[str] = Query(None),
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    store: MatchStore = Depends(get_match_store),
):
    """List matches, best overall score first"""
    rows = await store.list_matches(
        status=status.value if status else None,
        candidate_id=candidate_id,
        job_id=job_id,
        limit=limit,
        offset=offset,
    )
    return MatchListResponse(matches=[MatchRecord(**row) for row in rows], count=len(rows))


@router.get("/{match_id}", response_model=MatchRecord)
async def get_match(match_id: str, store: MatchStore = Depends(get_match_store)):
    return MatchRecord(**await store.get(match_id))


@router.patch("/{match_id}/status", response_model=MatchRecord)
async def update_match_status(
    match_id: str, payload: MatchStatusUpdate, store: MatchStore = Depends(get_match_store)
):
    """Move a match to any triage status; no transition order is enforced"""
    row = await store.update_status(match_id, payload.status)
    logger.info(f"Match {match_id} status set to {payload.status.value}")
    return MatchRecord(**row)


@router.patch("/{match_id}/notes", response_model=MatchRecord)
async def update_match_notes(
    match_id: str, payload: MatchNotesUpdate, store: MatchStore = Depends(get_match_store)
):
    return MatchRecord(**await store.update_notes(match_id, payload.notes))
