"""
LLM-backed scoring for candidate/job pairs and pools.

Every public method makes at most one gateway call and never raises for
upstream trouble: pairwise scoring degrades to ScoreResult.fallback(), pool
ranking degrades to an empty, flagged RankingResult.
"""
from typing import Any, Dict, List

from pydantic import BaseModel, Field, ValidationError

from app.helpers import prompts
from app.helpers.tools import CANDIDATE_MATCHES_TOOL, JOB_MATCHES_TOOL, SCORES_TOOL
from app.models.ai_settings import GatewaySettings, MatchingSettings
from app.models.models import Candidate, Job, RankedEntry, ScoreResult
from app.utils.exceptions import ExternalServiceError, ScoringOutputError
from app.utils.logging_config import PerformanceMonitor, get_logger
from app.utils.utils import gateway_tool_call

logger = get_logger(__name__)


class RankingResult(BaseModel):
    entries: List[RankedEntry] = Field(default_factory=list)
    degraded: bool = False


def rank_entries(raw: Any, pool_size: int, top_n: int) -> List[RankedEntry]:
    """Validate ranked items, drop ones that do not point into the pool, best first"""
    if not isinstance(raw, list):
        raise ScoringOutputError("`matches` is not a list")

    entries = []
    for item in raw:
        if not isinstance(item, dict):
            continue
        try:
            entry = RankedEntry(**item)
        except (ValidationError, TypeError):
            logger.debug(f"Skipping malformed ranked item: {item!r}")
            continue
        if 0 <= entry.index < pool_size:
            entries.append(entry)

    entries.sort(key=lambda e: e.score, reverse=True)

    seen = set()
    ranked = []
    for entry in entries:
        if entry.index in seen:
            continue
        seen.add(entry.index)
        ranked.append(entry)
    return ranked[:top_n]


class LLMScorer:
    def __init__(self, gateway: GatewaySettings, matching: MatchingSettings):
        self.gateway = gateway
        self.matching = matching

    def _call(self, system: str, prompt: str, tool: Dict[str, Any]) -> Dict[str, Any]:
        messages = [
            {"role": "system", "content": system},
            {"role": "user", "content": prompt},
        ]
        with PerformanceMonitor(f"gateway {tool['function']['name']}", logger, threshold_ms=10000):
            return gateway_tool_call(self.gateway, messages, tool)

    def score_pair(self, candidate: Candidate, job: Job) -> ScoreResult:
        prompt = prompts.render_pair_prompt(candidate, job, self.matching.description_chars)
        try:
            data = self._call(prompts.PAIR_SYSTEM_PROMPT, prompt, SCORES_TOOL)
            data.pop("degraded", None)
            return ScoreResult(**data)
        except (ExternalServiceError, ScoringOutputError, ValidationError, TypeError) as e:
            logger.warning(
                f"Pair scoring degraded to fallback for candidate={candidate.id} job={job.id}: {e}"
            )
            return ScoreResult.fallback()

    def _rank(self, system: str, prompt: str, tool: Dict[str, Any], pool_size: int) -> RankingResult:
        try:
            data = self._call(system, prompt, tool)
            entries = rank_entries(data.get("matches"), pool_size, self.matching.top_n)
        except (ExternalServiceError, ScoringOutputError) as e:
            logger.warning(f"Batch scoring degraded to empty result: {e}")
            return RankingResult(degraded=True)
        return RankingResult(entries=entries)

    def rank_candidates(self, candidates: List[Candidate], job_description: str) -> RankingResult:
        prompt = prompts.render_candidates_prompt(candidates, job_description, self.matching.top_n)
        return self._rank(prompts.CANDIDATES_SYSTEM_PROMPT, prompt, CANDIDATE_MATCHES_TOOL, len(candidates))

    def rank_jobs(self, candidate: Candidate, jobs: List[Job]) -> RankingResult:
        prompt = prompts.render_jobs_prompt(candidate, jobs, self.matching.top_n)
        return self._rank(prompts.JOBS_SYSTEM_PROMPT, prompt, JOB_MATCHES_TOOL, len(jobs))
