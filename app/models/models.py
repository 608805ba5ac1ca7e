from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, validator

SCORE_FIELDS = (
    "overall_score",
    "skill_score",
    "experience_score",
    "education_score",
    "location_score",
    "salary_score",
)

FALLBACK_SCORE = 50.0
FALLBACK_NOTE = "Unable to analyze"
FALLBACK_RECOMMENDATION = "AI analysis unavailable. Please review manually."


def clamp_score(value: Any) -> float:
    """Coerce a model-supplied score into [0, 100]; non-numeric values raise ValueError"""
    if isinstance(value, bool):
        raise ValueError("score must be a number")
    try:
        score = float(value)
    except (TypeError, ValueError):
        raise ValueError(f"score must be a number, got {value!r}")
    if score != score:  # NaN
        raise ValueError("score must be a number")
    return max(0.0, min(100.0, score))


class MatchStatus(str, Enum):
    NEW = "new"
    REVIEWED = "reviewed"
    SHORTLISTED = "shortlisted"
    REJECTED = "rejected"
    HIRED = "hired"


class Company(BaseModel):
    name: Optional[str] = None
    location: Optional[str] = None


class Candidate(BaseModel):
    id: str
    full_name: str = ""
    skills: List[str] = Field(default_factory=list)
    experience_years: Optional[float] = None
    current_designation: Optional[str] = None
    current_company: Optional[str] = None
    education: Optional[str] = None
    location: Optional[str] = None
    current_salary: Optional[float] = None
    expected_salary: Optional[float] = None
    status: Optional[str] = None

    @validator('skills', pre=True)
    def none_skills(cls, v):
        return v or []


class Job(BaseModel):
    id: str
    title: str = ""
    companies: Optional[Company] = None
    description: Optional[str] = None
    skills: List[str] = Field(default_factory=list)
    experience_min: Optional[float] = None
    experience_max: Optional[float] = None
    location: Optional[str] = None
    salary_min: Optional[float] = None
    salary_max: Optional[float] = None
    salary_currency: Optional[str] = None
    job_type: Optional[str] = None
    status: Optional[str] = None

    @validator('skills', pre=True)
    def none_skills(cls, v):
        return v or []


class ScoreResult(BaseModel):
    """Six scores plus narrative from one scoring call"""
    overall_score: float
    skill_score: float
    experience_score: float
    education_score: float
    location_score: float
    salary_score: float
    strengths: List[str] = Field(default_factory=list)
    gaps: List[str] = Field(default_factory=list)
    recommendation: str = ""
    degraded: bool = False

    @validator(*SCORE_FIELDS, pre=True)
    def bound_score(cls, v):
        return clamp_score(v)

    @classmethod
    def fallback(cls) -> "ScoreResult":
        return cls(
            **{name: FALLBACK_SCORE for name in SCORE_FIELDS},
            strengths=[FALLBACK_NOTE],
            gaps=[FALLBACK_NOTE],
            recommendation=FALLBACK_RECOMMENDATION,
            degraded=True,
        )


class RankedEntry(BaseModel):
    """One pool row chosen by a batch scoring call"""
    index: int
    score: float
    reason: str = ""

    @validator('score', pre=True)
    def bound_score(cls, v):
        return clamp_score(v)


class MatchRecord(BaseModel):
    id: str
    candidate_id: str
    job_id: str
    overall_score: Optional[float] = None
    skill_score: Optional[float] = None
    experience_score: Optional[float] = None
    education_score: Optional[float] = None
    location_score: Optional[float] = None
    salary_score: Optional[float] = None
    score_breakdown: Optional[Dict[str, Any]] = None
    status: MatchStatus = MatchStatus.NEW
    notes: Optional[str] = None
    matched_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    candidate: Optional[Dict[str, Any]] = None
    job: Optional[Dict[str, Any]] = None
