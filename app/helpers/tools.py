"""
Function/tool schemas sent to the gateway so scores come back as parseable arguments.
"""
from typing import Any, Dict

RETURN_SCORES = "return_scores"
RETURN_MATCHES = "return_matches"


def _score(description: str) -> Dict[str, Any]:
    return {"type": "number", "description": description}


SCORES_TOOL: Dict[str, Any] = {
    "type": "function",
    "function": {
        "name": RETURN_SCORES,
        "description": "Return matching scores for a candidate-job pair",
        "parameters": {
            "type": "object",
            "properties": {
                "overall_score": _score("Overall match 0-100"),
                "skill_score": _score("Skills match 0-100"),
                "experience_score": _score("Experience match 0-100"),
                "education_score": _score("Education match 0-100"),
                "location_score": _score("Location match 0-100"),
                "salary_score": _score("Salary match 0-100"),
                "strengths": {"type": "array", "items": {"type": "string"}, "description": "Top 3 strengths"},
                "gaps": {"type": "array", "items": {"type": "string"}, "description": "Top 3 gaps"},
                "recommendation": {"type": "string", "description": "Brief recommendation (1-2 sentences)"},
            },
            "required": [
                "overall_score", "skill_score", "experience_score", "education_score",
                "location_score", "salary_score", "strengths", "gaps", "recommendation",
            ],
            "additionalProperties": False,
        },
    },
}


def matches_tool(description: str) -> Dict[str, Any]:
    """Batch schema: one {index, score, reason} per ranked pool row"""
    return {
        "type": "function",
        "function": {
            "name": RETURN_MATCHES,
            "description": description,
            "parameters": {
                "type": "object",
                "properties": {
                    "matches": {
                        "type": "array",
                        "items": {
                            "type": "object",
                            "properties": {
                                "index": {"type": "number"},
                                "score": _score("0-100"),
                                "reason": {"type": "string"},
                            },
                            "required": ["index", "score", "reason"],
                            "additionalProperties": False,
                        },
                    },
                },
                "required": ["matches"],
                "additionalProperties": False,
            },
        },
    }


CANDIDATE_MATCHES_TOOL = matches_tool("Return scored candidate matches")
JOB_MATCHES_TOOL = matches_tool("Return scored job matches")


def tool_choice(tool: Dict[str, Any]) -> Dict[str, Any]:
    return {"type": "function", "function": {"name": tool["function"]["name"]}}
