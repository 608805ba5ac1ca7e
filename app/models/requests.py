from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, Field, ValidationError

from app.models.models import MatchStatus
from app.utils.exceptions import InvalidRequestError

# Input schemas for the ai-match entry point; `type` selects the variant


class MatchOneRequest(BaseModel):
    """Score one candidate against one job without persisting"""
    type: Literal["match_one"]
    candidate_id: str = Field(..., min_length=1)
    job_id: str = Field(..., min_length=1)


class PowerMatchRequest(BaseModel):
    """Score one candidate against one job and upsert the match record"""
    type: Literal["power_match"]
    candidate_id: str = Field(..., min_length=1)
    job_id: str = Field(..., min_length=1)
    matched_by: Optional[str] = None  # recorded only when the match is created


class MatchResumesRequest(BaseModel):
    """Rank the candidate pool against free-text job description"""
    type: Literal["match_resumes"]
    job_description: str = Field(..., min_length=1)


class ReverseMatchRequest(BaseModel):
    """Rank the open-job pool against one candidate"""
    type: Literal["reverse_match"]
    candidate_id: str = Field(..., min_length=1)


MatchRequest = Union[MatchOneRequest, PowerMatchRequest, MatchResumesRequest, ReverseMatchRequest]

REQUEST_TYPES = {
    "match_one": MatchOneRequest,
    "power_match": PowerMatchRequest,
    "match_resumes": MatchResumesRequest,
    "reverse_match": ReverseMatchRequest,
}


def _describe(exc: ValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()))
        parts.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
    return "; ".join(parts)


def parse_match_request(body: Any) -> MatchRequest:
    """Validate a raw JSON body into one of the four request variants"""
    if not isinstance(body, dict):
        raise InvalidRequestError("Invalid type", field="type")

    kind = body.get("type")
    if not isinstance(kind, str) or kind not in REQUEST_TYPES:
        raise InvalidRequestError("Invalid type", field="type", value=kind)

    try:
        return REQUEST_TYPES[kind](**body)
    except ValidationError as exc:
        raise InvalidRequestError(
            f"Invalid {kind} request: {_describe(exc)}",
            details={"fields": [".".join(str(p) for p in e.get("loc", ())) for e in exc.errors()]},
        ) from exc


# Match record store payloads

class MatchStatusUpdate(BaseModel):
    status: MatchStatus


class MatchNotesUpdate(BaseModel):
    notes: Optional[str] = Field(default=None, max_length=5000)

