from fastapi import APIRouter, Depends, Request

from app.services.matching import MatchingProxy
from app.services.repository import MatchStore, RecordRepository
from app.utils.exceptions import InvalidRequestError
from app.utils.logging_config import get_logger

router = APIRouter(prefix="/ai-match", tags=["ai-match"])
logger = get_logger(__name__)


def get_matching_proxy(request: Request) -> MatchingProxy:
    """Proxy wired to the settings and database the app was started with"""
    state = request.app.state
    return MatchingProxy(state.settings, RecordRepository(state.db), MatchStore(state.db))


@router.post("")
async def ai_match(request: Request, proxy: MatchingProxy = Depends(get_matching_proxy)):
    """
    Single entry point for AI matching.

    Body: {type: match_one | power_match | match_resumes | reverse_match,
    candidate_id?, job_id?, job_description?, matched_by?}
    """
    try:
        body = await request.json()
    except ValueError as e:
        raise InvalidRequestError("Request body must be valid JSON") from e

    return await proxy.handle(body)
