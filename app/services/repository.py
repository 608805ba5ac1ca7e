"""
Data access for the matching proxy and the match record store.
"""
import uuid
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from app.models.models import SCORE_FIELDS, MatchStatus, ScoreResult
from app.services.db import CANDIDATES, COMPANIES, JOBS, MATCHES, to_dict
from app.utils.exceptions import DatabaseError, ExceptionContext, NotFoundError
from app.utils.logging_config import get_logger

logger = get_logger(__name__)

NO_ID = {"_id": 0}
CANDIDATE_SUMMARY = {"_id": 0, "id": 1, "full_name": 1, "skills": 1, "location": 1, "experience_years": 1}


async def _companies_by_id(companies_coll, ids: Iterable[Optional[str]]) -> Dict[str, Dict[str, Any]]:
    wanted = sorted({i for i in ids if i})
    if not wanted:
        return {}
    cursor = companies_coll.find({"id": {"$in": wanted}}, {"_id": 0, "id": 1, "name": 1, "location": 1})
    rows = await cursor.to_list(length=len(wanted))
    return {row["id"]: {"name": row.get("name"), "location": row.get("location")} for row in rows}


class RecordRepository:
    """Reads candidates and jobs; jobs come back with `companies: {name, location}` embedded"""

    def __init__(self, db):
        self.candidates = db[CANDIDATES]
        self.jobs = db[JOBS]
        self.companies = db[COMPANIES]

    async def get_candidate(self, candidate_id: str) -> Dict[str, Any]:
        with ExceptionContext("get_candidate", logger, collection=CANDIDATES, candidate_id=candidate_id):
            doc = await self.candidates.find_one({"id": candidate_id}, NO_ID)
        if not doc:
            raise NotFoundError("Candidate not found", resource="candidate", resource_id=candidate_id)
        return to_dict(doc)

    async def get_job(self, job_id: str) -> Dict[str, Any]:
        with ExceptionContext("get_job", logger, collection=JOBS, job_id=job_id):
            doc = await self.jobs.find_one({"id": job_id}, NO_ID)
            if doc:
                [doc] = await self._with_companies([to_dict(doc)])
        if not doc:
            raise NotFoundError("Job not found", resource="job", resource_id=job_id)
        return doc

    async def candidate_pool(self, limit: int) -> List[Dict[str, Any]]:
        """Most recent candidates, never more than `limit`"""
        with ExceptionContext("candidate_pool", logger, collection=CANDIDATES):
            cursor = self.candidates.find({}, NO_ID).sort("created_at", -1).limit(limit)
            rows = await cursor.to_list(length=limit)
        return [to_dict(r) for r in rows[:limit]]

    async def open_job_pool(self, limit: int) -> List[Dict[str, Any]]:
        """Most recent open jobs, never more than `limit`"""
        with ExceptionContext("open_job_pool", logger, collection=JOBS):
            cursor = self.jobs.find({"status": "open"}, NO_ID).sort("created_at", -1).limit(limit)
            rows = await cursor.to_list(length=limit)
            return await self._with_companies([to_dict(r) for r in rows[:limit]])

    async def _with_companies(self, jobs: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        companies = await _companies_by_id(self.companies, (j.get("company_id") for j in jobs))
        for job in jobs:
            job["companies"] = companies.get(job.get("company_id"))
        return jobs


class MatchStore:
    """Per-(candidate, job) score records with a permissive triage status"""

    def __init__(self, db):
        self.matches = db[MATCHES]
        self.candidates = db[CANDIDATES]
        self.jobs = db[JOBS]
        self.companies = db[COMPANIES]

    async def upsert(
        self,
        candidate_id: str,
        job_id: str,
        scores: ScoreResult,
        matched_by: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Write the scores for a pair into its single match row.

        Scores, breakdown and updated_at are always replaced. id, status,
        matched_by and created_at are only written when the row is created,
        so rescoring keeps whatever triage status the row already has.
        """
        now = datetime.utcnow()
        key = {"candidate_id": candidate_id, "job_id": job_id}
        update = {
            "$set": {
                **{name: getattr(scores, name) for name in SCORE_FIELDS},
                "score_breakdown": scores.dict(),
                "updated_at": now,
            },
            "$setOnInsert": {
                "id": str(uuid.uuid4()),
                "status": MatchStatus.NEW.value,
                "notes": None,
                "matched_by": matched_by,
                "created_at": now,
            },
        }

        with ExceptionContext("upsert_match", logger, collection=MATCHES, **key):
            try:
                doc = await self.matches.find_one_and_update(
                    key, update, projection=NO_ID, upsert=True, return_document=ReturnDocument.AFTER
                )
            except DuplicateKeyError:
                # A concurrent upsert inserted the row first; overwrite it
                logger.info(f"Concurrent insert for pair {key}; applying scores as update")
                doc = await self.matches.find_one_and_update(
                    key, {"$set": update["$set"]}, projection=NO_ID, return_document=ReturnDocument.AFTER
                )
                if doc is None:
                    raise DatabaseError(
                        "Match row vanished during concurrent upsert",
                        operation="upsert_match",
                        collection=MATCHES,
                        details=dict(key),
                    )
        return to_dict(doc)

    async def list_matches(
        self,
        status: Optional[str] = None,
        candidate_id: Optional[str] = None,
        job_id: Optional[str] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[Dict[str, Any]]:
        query = {}
        if status:
            query["status"] = status
        if candidate_id:
            query["candidate_id"] = candidate_id
        if job_id:
            query["job_id"] = job_id

        with ExceptionContext("list_matches", logger, collection=MATCHES, **query):
            cursor = self.matches.find(query, NO_ID).sort("overall_score", -1).skip(offset).limit(limit)
            rows = await cursor.to_list(length=limit)
            return await self._with_summaries([to_dict(r) for r in rows])

    async def get(self, match_id: str) -> Dict[str, Any]:
        with ExceptionContext("get_match", logger, collection=MATCHES, match_id=match_id):
            doc = await self.matches.find_one({"id": match_id}, NO_ID)
            if doc:
                [doc] = await self._with_summaries([to_dict(doc)])
        if not doc:
            raise NotFoundError("Match not found", resource="match", resource_id=match_id)
        return doc

    async def _set(self, match_id: str, fields: Dict[str, Any], operation: str) -> Dict[str, Any]:
        with ExceptionContext(operation, logger, collection=MATCHES, match_id=match_id):
            doc = await self.matches.find_one_and_update(
                {"id": match_id},
                {"$set": {**fields, "updated_at": datetime.utcnow()}},
                projection=NO_ID,
                return_document=ReturnDocument.AFTER,
            )
        if not doc:
            raise NotFoundError("Match not found", resource="match", resource_id=match_id)
        return to_dict(doc)

    async def update_status(self, match_id: str, status: MatchStatus) -> Dict[str, Any]:
        """Any status may follow any other"""
        return await self._set(match_id, {"status": MatchStatus(status).value}, "update_match_status")

    async def update_notes(self, match_id: str, notes: Optional[str]) -> Dict[str, Any]:
        return await self._set(match_id, {"notes": notes}, "update_match_notes")

    async def _with_summaries(self, rows: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        if not rows:
            return rows

        candidate_ids = sorted({r["candidate_id"] for r in rows})
        job_ids = sorted({r["job_id"] for r in rows})

        cursor = self.candidates.find({"id": {"$in": candidate_ids}}, CANDIDATE_SUMMARY)
        candidates = {c["id"]: c for c in await cursor.to_list(length=len(candidate_ids))}

        cursor = self.jobs.find({"id": {"$in": job_ids}}, {"_id": 0, "id": 1, "title": 1, "company_id": 1})
        jobs = {j["id"]: j for j in await cursor.to_list(length=len(job_ids))}
        companies = await _companies_by_id(self.companies, (j.get("company_id") for j in jobs.values()))

        for row in rows:
            candidate = candidates.get(row["candidate_id"])
            row["candidate"] = {k: v for k, v in candidate.items() if k != "id"} if candidate else None
            job = jobs.get(row["job_id"])
            if job:
                company = companies.get(job.get("company_id"))
                row["job"] = {"title": job.get("title"), "companies": {"name": company["name"]} if company else None}
            else:
                row["job"] = None
        return rows
