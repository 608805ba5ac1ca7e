"""
Shared fixtures: settings, sample rows, an in-memory stand-in for the motor
database, and builders for gateway responses.
"""
import copy
import json
import os

# === Set environment BEFORE any app imports ===
os.environ.setdefault("ENVIRONMENT", "testing")

from unittest.mock import MagicMock

import pytest
from pymongo import ReturnDocument

from app.models.ai_settings import AppSettings, GatewaySettings
from app.services.repository import MatchStore, RecordRepository


# ---------------------------------------------------------------------------
# In-memory collections (the subset of the motor API the repositories use)
# ---------------------------------------------------------------------------

def _matches(doc, query):
    for key, cond in query.items():
        value = doc.get(key)
        if isinstance(cond, dict) and "$in" in cond:
            if value not in cond["$in"]:
                return False
        elif value != cond:
            return False
    return True


def _project(doc, projection):
    doc = copy.deepcopy(doc)
    if not projection:
        return doc
    included = [k for k, v in projection.items() if v and k != "_id"]
    if included:
        doc = {k: doc[k] for k in included if k in doc}
    if projection.get("_id", 1) == 0:
        doc.pop("_id", None)
    return doc


class FakeCursor:
    def __init__(self, docs):
        self.docs = docs
        self.limit_value = None

    def sort(self, key, direction=1):
        present = [d for d in self.docs if d.get(key) is not None]
        missing = [d for d in self.docs if d.get(key) is None]
        present.sort(key=lambda d: d[key], reverse=direction == -1)
        self.docs = present + missing
        return self

    def skip(self, n):
        self.docs = self.docs[n:]
        return self

    def limit(self, n):
        self.limit_value = n
        self.docs = self.docs[:n]
        return self

    async def to_list(self, length=None):
        return list(self.docs if length is None else self.docs[:length])


class FakeCollection:
    def __init__(self, name):
        self.name = name
        self.docs = []
        self.cursors = []

    async def find_one(self, query, projection=None):
        for doc in self.docs:
            if _matches(doc, query):
                return _project(doc, projection)
        return None

    def find(self, query=None, projection=None):
        cursor = FakeCursor([_project(d, projection) for d in self.docs if _matches(d, query or {})])
        self.cursors.append(cursor)
        return cursor

    async def find_one_and_update(self, query, update, projection=None, upsert=False,
                                  return_document=ReturnDocument.BEFORE):
        for doc in self.docs:
            if _matches(doc, query):
                doc.update(copy.deepcopy(update.get("$set", {})))
                return _project(doc, projection)
        if not upsert:
            return None
        doc = {k: v for k, v in query.items() if not isinstance(v, dict)}
        doc.update(copy.deepcopy(update.get("$set", {})))
        doc.update(copy.deepcopy(update.get("$setOnInsert", {})))
        self.docs.append(doc)
        return _project(doc, projection)

    async def create_index(self, keys, **kwargs):
        return "_".join(k for k, _ in keys)


class FakeDatabase:
    def __init__(self):
        self.collections = {}

    def __getitem__(self, name):
        if name not in self.collections:
            self.collections[name] = FakeCollection(name)
        return self.collections[name]


# ---------------------------------------------------------------------------
# Rows
# ---------------------------------------------------------------------------

@pytest.fixture
def candidate_row():
    return {
        "id": "cand-1",
        "full_name": "Asha Rao",
        "skills": ["React", "Node.js"],
        "experience_years": 5,
        "current_designation": "Frontend Engineer",
        "current_company": "Acme",
        "education": "B.Tech",
        "location": "Mumbai",
        "current_salary": 1200000,
        "expected_salary": 1500000,
        "status": "new",
    }


@pytest.fixture
def company_row():
    return {"id": "comp-1", "name": "Globex", "location": "Mumbai"}


@pytest.fixture
def job_row():
    return {
        "id": "job-1",
        "title": "Full Stack Developer",
        "company_id": "comp-1",
        "skills": ["React", "TypeScript"],
        "experience_min": 3,
        "experience_max": 7,
        "location": "Mumbai",
        "salary_min": 1000000,
        "salary_max": 1800000,
        "salary_currency": "INR",
        "job_type": "full_time",
        "description": "Build product features end to end.",
        "status": "open",
    }


@pytest.fixture
def fake_db(candidate_row, job_row, company_row):
    db = FakeDatabase()
    db["candidates"].docs.append(dict(candidate_row))
    db["jobs"].docs.append(dict(job_row))
    db["companies"].docs.append(dict(company_row))
    return db


@pytest.fixture
def settings():
    return AppSettings(gateway=GatewaySettings(api_key="test-key", timeout=5))


@pytest.fixture
def records(fake_db):
    return RecordRepository(fake_db)


@pytest.fixture
def store(fake_db):
    return MatchStore(fake_db)


# ---------------------------------------------------------------------------
# Gateway responses
# ---------------------------------------------------------------------------

def pair_arguments(**overrides):
    args = {
        "overall_score": 78,
        "skill_score": 70,
        "experience_score": 90,
        "education_score": 75,
        "location_score": 100,
        "salary_score": 80,
        "strengths": ["React", "Location match", "Relevant experience"],
        "gaps": ["No TypeScript"],
        "recommendation": "Strong fit; screen for TypeScript.",
    }
    args.update(overrides)
    return args


def gateway_response(arguments=None, status_code=200, raw_arguments=None, body=None):
    resp = MagicMock()
    resp.status_code = status_code
    resp.ok = 200 <= status_code < 300
    resp.text = "" if resp.ok else "upstream unavailable"
    if body is None:
        args = raw_arguments if raw_arguments is not None else json.dumps(arguments or {})
        body = {"choices": [{"message": {"tool_calls": [{"function": {"name": "tool", "arguments": args}}]}}]}
    resp.json.return_value = body
    return resp


@pytest.fixture
def make_gateway_response():
    return gateway_response


@pytest.fixture
def make_pair_arguments():
    return pair_arguments
