# models/response.py
from typing import List

from pydantic import BaseModel

from app.models.models import MatchRecord


class MatchListResponse(BaseModel):
    matches: List[MatchRecord]
    count: int
