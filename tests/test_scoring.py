import json
from unittest.mock import patch

import pytest
import requests

from app.models.ai_settings import GatewaySettings, MatchingSettings
from app.models.models import (
    FALLBACK_RECOMMENDATION,
    SCORE_FIELDS,
    Candidate,
    Company,
    Job,
    ScoreResult,
)
from app.services.scoring import LLMScorer, rank_entries
from app.utils.exceptions import ScoringOutputError


@pytest.fixture
def scorer():
    return LLMScorer(
        GatewaySettings(api_key="test-key", url="https://gateway.test/v1/chat/completions", model="test-model", timeout=7),
        MatchingSettings(top_n=3),
    )


@pytest.fixture
def candidate(candidate_row):
    return Candidate(**candidate_row)


@pytest.fixture
def job(job_row):
    return Job(**job_row, companies=Company(name="Globex"))


def _pool(n):
    return [Candidate(id=f"c{i}", full_name=f"Person {i}") for i in range(n)]


class TestScorePair:
    """Pairwise scoring and its fallback"""

    @patch('app.utils.utils.requests.post')
    def test_success(self, mock_post, scorer, candidate, job, make_gateway_response, make_pair_arguments):
        mock_post.return_value = make_gateway_response(make_pair_arguments())

        result = scorer.score_pair(candidate, job)

        assert result.overall_score == 78
        assert result.location_score == 100
        assert result.strengths[0] == "React"
        assert result.recommendation == "Strong fit; screen for TypeScript."
        assert result.degraded is False

    @patch('app.utils.utils.requests.post')
    def test_request_shape(self, mock_post, scorer, candidate, job, make_gateway_response, make_pair_arguments):
        mock_post.return_value = make_gateway_response(make_pair_arguments())

        scorer.score_pair(candidate, job)

        args, kwargs = mock_post.call_args
        assert args[0] == "https://gateway.test/v1/chat/completions"
        assert kwargs["timeout"] == 7
        assert kwargs["headers"]["Authorization"] == "Bearer test-key"
        body = kwargs["json"]
        assert body["model"] == "test-model"
        assert [m["role"] for m in body["messages"]] == ["system", "user"]
        assert "Asha Rao" in body["messages"][1]["content"]
        assert body["tools"][0]["function"]["name"] == "return_scores"
        assert body["tool_choice"] == {"type": "function", "function": {"name": "return_scores"}}
        required = body["tools"][0]["function"]["parameters"]["required"]
        assert set(SCORE_FIELDS) | {"strengths", "gaps", "recommendation"} == set(required)

    @patch('app.utils.utils.requests.post')
    def test_scores_clamped_into_range(self, mock_post, scorer, candidate, job, make_gateway_response, make_pair_arguments):
        mock_post.return_value = make_gateway_response(
            make_pair_arguments(overall_score=130, skill_score=-5, salary_score="64.5")
        )

        result = scorer.score_pair(candidate, job)

        assert result.overall_score == 100
        assert result.skill_score == 0
        assert result.salary_score == 64.5
        for name in SCORE_FIELDS:
            assert 0 <= getattr(result, name) <= 100

    @pytest.mark.parametrize("status_code", [429, 500, 503])
    @patch('app.utils.utils.requests.post')
    def test_error_status_falls_back(self, mock_post, status_code, scorer, candidate, job, make_gateway_response):
        mock_post.return_value = make_gateway_response(status_code=status_code)

        result = scorer.score_pair(candidate, job)

        assert result == ScoreResult.fallback()

    @patch('app.utils.utils.requests.post')
    def test_timeout_falls_back(self, mock_post, scorer, candidate, job):
        mock_post.side_effect = requests.Timeout("read timed out")

        result = scorer.score_pair(candidate, job)

        assert result.degraded is True
        assert all(getattr(result, name) == 50 for name in SCORE_FIELDS)

    @pytest.mark.parametrize("response_kwargs", [
        {"raw_arguments": "{not json"},
        {"body": {"choices": []}},
        {"body": {"choices": [{"message": {"content": "free text instead of a tool call"}}]}},
        {"arguments": {"overall_score": 80}},
        {"arguments": {"overall_score": None, "skill_score": 60, "experience_score": 60, "education_score": 60,
                       "location_score": 60, "salary_score": 60, "strengths": [], "gaps": [], "recommendation": ""}},
        {"arguments": {**{name: "high" for name in SCORE_FIELDS}, "strengths": [], "gaps": [], "recommendation": ""}},
        {"raw_arguments": json.dumps(["not", "an", "object"])},
    ])
    @patch('app.utils.utils.requests.post')
    def test_unusable_payload_falls_back(self, mock_post, response_kwargs, scorer, candidate, job, make_gateway_response):
        mock_post.return_value = make_gateway_response(**response_kwargs)

        result = scorer.score_pair(candidate, job)

        assert result == ScoreResult.fallback()

    @patch('app.utils.utils.requests.post')
    def test_model_cannot_claim_degraded(self, mock_post, scorer, candidate, job, make_gateway_response, make_pair_arguments):
        mock_post.return_value = make_gateway_response(make_pair_arguments(degraded=True))

        assert scorer.score_pair(candidate, job).degraded is False

    def test_fallback_literal(self):
        fallback = ScoreResult.fallback().dict()

        assert fallback == {
            "overall_score": 50,
            "skill_score": 50,
            "experience_score": 50,
            "education_score": 50,
            "location_score": 50,
            "salary_score": 50,
            "strengths": ["Unable to analyze"],
            "gaps": ["Unable to analyze"],
            "recommendation": FALLBACK_RECOMMENDATION,
            "degraded": True,
        }


class TestRankEntries:

    def test_sorted_descending_and_filtered(self):
        raw = [
            {"index": 0, "score": 40, "reason": "weak"},
            {"index": 7, "score": 99, "reason": "out of range"},
            {"index": 2, "score": 91, "reason": "best"},
            {"index": -1, "score": 95, "reason": "negative"},
            {"index": 1, "score": 65, "reason": "ok"},
        ]

        ranked = rank_entries(raw, pool_size=3, top_n=10)

        assert [e.index for e in ranked] == [2, 1, 0]
        assert [e.score for e in ranked] == [91, 65, 40]

    def test_malformed_items_skipped(self):
        raw = [
            {"index": "first", "score": 90, "reason": "bad index"},
            {"index": 0, "score": "n/a", "reason": "bad score"},
            "not an object",
            {"index": 1, "score": 55, "reason": "fine"},
        ]

        ranked = rank_entries(raw, pool_size=2, top_n=10)

        assert [(e.index, e.reason) for e in ranked] == [(1, "fine")]

    @pytest.mark.parametrize("bad_score", [None, [1], {}])
    def test_non_numeric_score_dropped(self, bad_score):
        raw = [
            {"index": 0, "score": bad_score, "reason": "x"},
            {"index": 1, "score": 70, "reason": "ok"},
        ]

        ranked = rank_entries(raw, pool_size=2, top_n=10)

        assert [e.index for e in ranked] == [1]

    def test_duplicate_index_keeps_best(self):
        raw = [
            {"index": 0, "score": 30, "reason": "low"},
            {"index": 0, "score": 80, "reason": "high"},
        ]

        ranked = rank_entries(raw, pool_size=1, top_n=10)

        assert len(ranked) == 1
        assert ranked[0].reason == "high"

    def test_truncated_to_top_n(self):
        raw = [{"index": i, "score": i, "reason": ""} for i in range(20)]

        ranked = rank_entries(raw, pool_size=20, top_n=5)

        assert [e.index for e in ranked] == [19, 18, 17, 16, 15]

    def test_scores_clamped(self):
        ranked = rank_entries([{"index": 0, "score": 250, "reason": ""}], pool_size=1, top_n=1)
        assert ranked[0].score == 100

    def test_matches_must_be_list(self):
        with pytest.raises(ScoringOutputError):
            rank_entries({"index": 0}, pool_size=1, top_n=1)


class TestRankPools:

    @patch('app.utils.utils.requests.post')
    def test_rank_candidates(self, mock_post, scorer, make_gateway_response):
        mock_post.return_value = make_gateway_response({"matches": [
            {"index": 1, "score": 60, "reason": "some overlap"},
            {"index": 3, "score": 88, "reason": "strong"},
        ]})

        result = scorer.rank_candidates(_pool(4), "Senior React engineer")

        assert result.degraded is False
        assert [(e.index, e.score) for e in result.entries] == [(3, 88), (1, 60)]
        body = mock_post.call_args.kwargs["json"]
        assert body["tool_choice"]["function"]["name"] == "return_matches"
        assert "[3] Person 3" in body["messages"][1]["content"]

    @patch('app.utils.utils.requests.post')
    def test_rank_jobs_degrades_on_error_status(self, mock_post, scorer, candidate, make_gateway_response):
        mock_post.return_value = make_gateway_response(status_code=503)

        result = scorer.rank_jobs(candidate, [Job(id="j1", title="Dev")])

        assert result.degraded is True
        assert result.entries == []

    @patch('app.utils.utils.requests.post')
    def test_rank_degrades_on_connection_error(self, mock_post, scorer):
        mock_post.side_effect = requests.ConnectionError("no route to host")

        result = scorer.rank_candidates(_pool(2), "anything")

        assert result.degraded is True
        assert result.entries == []

    @patch('app.utils.utils.requests.post')
    def test_rank_degrades_on_missing_matches(self, mock_post, scorer, make_gateway_response):
        mock_post.return_value = make_gateway_response({"results": []})

        result = scorer.rank_candidates(_pool(2), "anything")

        assert result.degraded is True

    @pytest.mark.parametrize("bad_score", [None, [1], {}])
    @patch('app.utils.utils.requests.post')
    def test_rank_skips_non_numeric_scores(self, mock_post, bad_score, scorer, make_gateway_response):
        mock_post.return_value = make_gateway_response({"matches": [
            {"index": 0, "score": bad_score, "reason": "x"},
            {"index": 1, "score": 70, "reason": "ok"},
        ]})

        result = scorer.rank_candidates(_pool(2), "anything")

        assert result.degraded is False
        assert [e.index for e in result.entries] == [1]
