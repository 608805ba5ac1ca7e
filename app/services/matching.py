"""
Matching proxy: turns one typed ai-match request into scores, persisting
them for power_match only.
"""
import asyncio
import functools
from typing import Any, Dict, List

from app.models.ai_settings import AppSettings
from app.models.models import Candidate, Job, ScoreResult
from app.models.requests import (
    MatchOneRequest,
    MatchResumesRequest,
    PowerMatchRequest,
    ReverseMatchRequest,
    parse_match_request,
)
from app.services.repository import MatchStore, RecordRepository
from app.services.scoring import LLMScorer, RankingResult
from app.utils.exceptions import ConfigurationError
from app.utils.logging_config import PerformanceMonitor, get_logger

logger = get_logger(__name__)


async def _in_executor(func, *args):
    # The gateway client is blocking; keep it off the event loop
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, functools.partial(func, *args))


def _ranked(result: RankingResult, pool: List[Dict[str, Any]], key: str) -> Dict[str, Any]:
    return {
        "matches": [
            {key: pool[e.index], "score": e.score, "reason": e.reason}
            for e in result.entries
        ],
        "degraded": result.degraded,
    }


class MatchingProxy:
    def __init__(
        self,
        settings: AppSettings,
        records: RecordRepository,
        store: MatchStore,
        scorer: LLMScorer = None,
    ):
        self.settings = settings
        self.records = records
        self.store = store
        self.scorer = scorer or LLMScorer(settings.gateway, settings.matching)
        self._handlers = {
            MatchOneRequest: self.match_one,
            PowerMatchRequest: self.power_match,
            MatchResumesRequest: self.match_resumes,
            ReverseMatchRequest: self.reverse_match,
        }

    async def handle(self, body: Any) -> Dict[str, Any]:
        """Validate a raw request body and run the operation it names"""
        request = parse_match_request(body)

        if not self.settings.gateway.api_key:
            raise ConfigurationError("LLM gateway API key not configured", config_key="LLM_API_KEY")

        logger.info(f"ai-match {request.type} requested")
        with PerformanceMonitor(f"ai-match {request.type}", logger, threshold_ms=15000):
            return await self._handlers[type(request)](request)

    async def _pair(self, candidate_id: str, job_id: str) -> ScoreResult:
        candidate, job = await asyncio.gather(
            self.records.get_candidate(candidate_id),
            self.records.get_job(job_id),
        )
        return await _in_executor(self.scorer.score_pair, Candidate(**candidate), Job(**job))

    async def match_one(self, request: MatchOneRequest) -> Dict[str, Any]:
        scores = await self._pair(request.candidate_id, request.job_id)
        return scores.dict()

    async def power_match(self, request: PowerMatchRequest) -> Dict[str, Any]:
        scores = await self._pair(request.candidate_id, request.job_id)
        match = await self.store.upsert(
            request.candidate_id, request.job_id, scores, matched_by=request.matched_by
        )
        logger.info(
            f"Stored match {match.get('id')} for candidate={request.candidate_id} "
            f"job={request.job_id} overall={scores.overall_score} degraded={scores.degraded}"
        )
        return {"match": match, "scores": scores.dict()}

    async def match_resumes(self, request: MatchResumesRequest) -> Dict[str, Any]:
        pool = await self.records.candidate_pool(self.settings.matching.pool_cap)
        if not pool:
            return {"matches": [], "degraded": False}

        candidates = [Candidate(**row) for row in pool]
        result = await _in_executor(self.scorer.rank_candidates, candidates, request.job_description)
        return _ranked(result, pool, "candidate")

    async def reverse_match(self, request: ReverseMatchRequest) -> Dict[str, Any]:
        candidate = await self.records.get_candidate(request.candidate_id)
        pool = await self.records.open_job_pool(self.settings.matching.pool_cap)
        if not pool:
            return {"matches": [], "degraded": False}

        jobs = [Job(**row) for row in pool]
        result = await _in_executor(self.scorer.rank_jobs, Candidate(**candidate), jobs)
        return _ranked(result, pool, "job")
