import pytest

from app.models.requests import (
    MatchOneRequest,
    MatchResumesRequest,
    PowerMatchRequest,
    ReverseMatchRequest,
    parse_match_request,
)
from app.utils.exceptions import InvalidRequestError


class TestParseMatchRequest:
    """Dispatching raw bodies onto the four request variants"""

    @pytest.mark.parametrize("body,expected", [
        ({"type": "match_one", "candidate_id": "c", "job_id": "j"}, MatchOneRequest),
        ({"type": "power_match", "candidate_id": "c", "job_id": "j"}, PowerMatchRequest),
        ({"type": "match_resumes", "job_description": "React dev"}, MatchResumesRequest),
        ({"type": "reverse_match", "candidate_id": "c"}, ReverseMatchRequest),
    ])
    def test_known_types(self, body, expected):
        assert isinstance(parse_match_request(body), expected)

    @pytest.mark.parametrize("body", [
        {"type": "score_everything"},
        {"candidate_id": "c", "job_id": "j"},
        {"type": None},
        {"type": ["match_one"]},
        [],
        "match_one",
    ])
    def test_unknown_or_missing_type(self, body):
        with pytest.raises(InvalidRequestError) as exc_info:
            parse_match_request(body)

        assert exc_info.value.message == "Invalid type"
        assert exc_info.value.status_code == 400

    def test_missing_required_field(self):
        with pytest.raises(InvalidRequestError) as exc_info:
            parse_match_request({"type": "match_one", "candidate_id": "c"})

        assert "job_id" in exc_info.value.message
        assert exc_info.value.details["fields"] == ["job_id"]

    def test_empty_job_description_rejected(self):
        with pytest.raises(InvalidRequestError):
            parse_match_request({"type": "match_resumes", "job_description": ""})

    def test_power_match_keeps_matched_by(self):
        request = parse_match_request(
            {"type": "power_match", "candidate_id": "c", "job_id": "j", "matched_by": "recruiter-7"}
        )
        assert request.matched_by == "recruiter-7"

    def test_unrelated_fields_ignored(self):
        request = parse_match_request(
            {"type": "reverse_match", "candidate_id": "c", "job_id": "ignored", "job_description": "x"}
        )
        assert request.candidate_id == "c"
