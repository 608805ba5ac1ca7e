from typing import Any, Iterable, List

from app.models.models import Candidate, Job

PAIR_SYSTEM_PROMPT = "You are an ATS scoring engine. Return structured scores."
CANDIDATES_SYSTEM_PROMPT = "You are an ATS matching engine. Score candidates against a job description."
JOBS_SYSTEM_PROMPT = "You are an ATS reverse matching engine. Score jobs against a candidate profile."

PAIR_PROMPT = """You are an expert ATS scoring engine. Score this candidate against the job.

CANDIDATE:
- Name: {name}
- Skills: {skills}
- Experience: {experience} years
- Current Role: {designation} at {company}
- Education: {education}
- Location: {location}
- Current Salary: {current_salary}
- Expected Salary: {expected_salary}

JOB:
- Title: {title}
- Company: {job_company}
- Required Skills: {job_skills}
- Experience Range: {experience_min}-{experience_max} years
- Location: {job_location}
- Salary Range: {salary_min}-{salary_max} {salary_currency}
- Job Type: {job_type}
- Description: {description}"""

CANDIDATES_PROMPT = """JOB DESCRIPTION:
{job_description}

CANDIDATES:
{summaries}

Score the top {top_n} most relevant candidates."""

JOBS_PROMPT = """CANDIDATE:
Name: {name}
Skills: {skills}
Experience: {experience} years
Location: {location}
Current Role: {designation}

JOBS:
{summaries}

Score the top {top_n} most relevant jobs."""

NA = "N/A"
NOT_SPECIFIED = "Not specified"


def _or(value: Any, placeholder: str = NA) -> Any:
    # 0 is a real value for salaries and experience bounds
    if value is None or value == "":
        return placeholder
    return _num(value)


def _num(value: Any) -> Any:
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def join_skills(skills: Iterable[str], sep: str = ", ") -> str:
    return sep.join(s for s in skills if s) or NOT_SPECIFIED


def _company_name(job: Job) -> str:
    if job.companies and job.companies.name:
        return job.companies.name
    return NA


def render_pair_prompt(candidate: Candidate, job: Job, description_chars: int = 500) -> str:
    return PAIR_PROMPT.format(
        name=candidate.full_name,
        skills=join_skills(candidate.skills),
        experience=_num(candidate.experience_years or 0),
        designation=_or(candidate.current_designation),
        company=_or(candidate.current_company),
        education=_or(candidate.education),
        location=_or(candidate.location),
        current_salary=_or(candidate.current_salary),
        expected_salary=_or(candidate.expected_salary),
        title=job.title,
        job_company=_company_name(job),
        job_skills=join_skills(job.skills),
        experience_min=_num(job.experience_min or 0),
        experience_max=_or(job.experience_max, "any"),
        job_location=_or(job.location),
        salary_min=_or(job.salary_min),
        salary_max=_or(job.salary_max),
        salary_currency=job.salary_currency or "",
        job_type=_or(job.job_type),
        description=(job.description or "")[:description_chars],
    )


def candidate_summary(index: int, candidate: Candidate) -> str:
    return (
        f"[{index}] {candidate.full_name} | Skills: {join_skills(candidate.skills, ',')} | "
        f"Exp: {_num(candidate.experience_years or 0)}y | Location: {_or(candidate.location)}"
    )


def job_summary(index: int, job: Job) -> str:
    return (
        f"[{index}] {job.title} at {_company_name(job)} | Skills: {join_skills(job.skills, ',')} | "
        f"Exp: {_num(job.experience_min or 0)}-{_or(job.experience_max, 'any')}y | Location: {_or(job.location)}"
    )


def render_candidates_prompt(candidates: List[Candidate], job_description: str, top_n: int = 10) -> str:
    summaries = "\n".join(candidate_summary(i, c) for i, c in enumerate(candidates))
    return CANDIDATES_PROMPT.format(job_description=job_description, summaries=summaries, top_n=top_n)


def render_jobs_prompt(candidate: Candidate, jobs: List[Job], top_n: int = 10) -> str:
    summaries = "\n".join(job_summary(i, j) for i, j in enumerate(jobs))
    return JOBS_PROMPT.format(
        name=candidate.full_name,
        skills=join_skills(candidate.skills, ","),
        experience=_num(candidate.experience_years or 0),
        location=_or(candidate.location),
        designation=_or(candidate.current_designation),
        summaries=summaries,
        top_n=top_n,
    )
