"""
Job Service - job listings from the JSearch API (RapidAPI) with a job_feeds cache.

Search is cache-first: when the cache already holds at least half of the
requested number of matching, unexpired listings, those are returned without
calling the API. Fresh results are upserted on external_id and expire after
`job_cache_ttl_hours`.
"""

import math
import re
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Tuple

import httpx
from sqlalchemy import text

from prepcoach.core.config import get_settings
from prepcoach.db.postgres import get_db_session, new_id, utcnow, to_json, from_json
from prepcoach.core.logging import get_logger

settings = get_settings()
logger = get_logger(__name__)

DEFAULT_ROLE = "software engineer"
JOB_COLUMNS = (
    "id, external_id, title, company, location, description, apply_url, salary_range, "
    "employment_type, role_keywords, industry, seniority_level, source, created_at, expires_at"
)


class JobAPIError(Exception):
    """The external job API returned an error payload or status."""


def title_keywords(title: str) -> List[str]:
    return [w for w in re.split(r"[\s,\-]+", title.lower()) if len(w) > 2]


def format_salary(job: dict) -> Optional[str]:
    low, high = job.get("job_min_salary"), job.get("job_max_salary")
    if not low or not high:
        return None
    currency = job.get("job_salary_currency") or "USD"
    period = job.get("job_salary_period") or "YEAR"
    return f"{currency} {low:,.0f}-{high:,.0f}/{period}"


def map_external_job(job: dict) -> dict:
    """JSearch result -> job listing dict."""
    location = ", ".join(
        part for part in (job.get("job_city"), job.get("job_state"), job.get("job_country")) if part
    )
    posted = job.get("job_posted_at_timestamp")
    created_at = (
        datetime.fromtimestamp(posted, tz=timezone.utc).replace(tzinfo=None) if posted else utcnow()
    )
    return {
        "id": job["job_id"],
        "external_id": job["job_id"],
        "title": job.get("job_title") or "",
        "company": job.get("employer_name") or "",
        "location": location or None,
        "description": job.get("job_description"),
        "apply_url": job.get("job_apply_link"),
        "salary_range": format_salary(job),
        "employment_type": job.get("job_employment_type"),
        "role_keywords": title_keywords(job.get("job_title") or ""),
        "industry": None,
        "seniority_level": None,
        "source": "jsearch",
        "created_at": created_at,
        "expires_at": utcnow() + timedelta(hours=settings.job_cache_ttl_hours),
    }


def _matches(job: dict, keywords: List[str], industry: Optional[str],
             location: Optional[str], seniority: Optional[str]) -> bool:
    if keywords:
        wanted = {k.lower() for k in keywords}
        if not wanted & {k.lower() for k in job["role_keywords"]}:
            return False
    if industry and job["industry"] != industry:
        return False
    if location and location.lower() not in (job["location"] or "").lower():
        return False
    if seniority and job["seniority_level"] != seniority:
        return False
    return True


class JobService:

    def __init__(self, transport: Optional[httpx.BaseTransport] = None):
        self.client = httpx.Client(timeout=settings.http_timeout_seconds, transport=transport)

    def search_jobs(self, role: Optional[str] = None, keywords: Optional[List[str]] = None,
                    industry: Optional[str] = None, location: Optional[str] = None,
                    seniority: Optional[str] = None, limit: int = 20) -> Tuple[List[dict], bool]:
        """
        Returns (jobs, from_cache).
        On an API failure, cached matches are returned if any; otherwise the error propagates.
        """
        keywords = keywords or []
        search_keywords = [role, *keywords] if role else keywords

        cached = self.get_cached_jobs(search_keywords, industry, location, seniority, limit)
        if len(cached) >= math.ceil(limit / 2):
            logger.info(f"Returning {len(cached)} cached jobs")
            return cached, True

        try:
            fresh = self.fetch_from_api(role, location, limit)
        except (httpx.HTTPError, JobAPIError) as e:
            logger.error(f"Job API fetch failed: {e}")
            if cached:
                logger.info(f"Returning {len(cached)} cached jobs as fallback")
                return cached, True
            raise

        if fresh:
            self.cache_jobs(fresh, industry, seniority, search_keywords)
        return fresh, False

    def get_cached_jobs(self, keywords: List[str], industry: Optional[str] = None,
                        location: Optional[str] = None, seniority: Optional[str] = None,
                        limit: int = 20) -> List[dict]:
        with get_db_session() as db:
            rows = db.execute(
                text(f"""
                    SELECT {JOB_COLUMNS} FROM job_feeds
                    WHERE expires_at > :now
                    ORDER BY created_at DESC
                """),
                {"now": utcnow()}
            ).mappings().fetchall()

        jobs = []
        for row in rows:
            job = dict(row)
            job["role_keywords"] = from_json(job["role_keywords"], [])
            if _matches(job, keywords, industry, location, seniority):
                jobs.append(job)
                if len(jobs) >= limit:
                    break
        return jobs

    def fetch_from_api(self, role: Optional[str], location: Optional[str], limit: int = 20) -> List[dict]:
        if not settings.rapidapi_key:
            logger.warning("RAPIDAPI_KEY not configured, skipping external job fetch")
            return []

        role = role or DEFAULT_ROLE
        query = f"{role} in {location}" if location else role
        response = self.client.get(
            f"https://{settings.rapidapi_jobs_host}/search",
            params={"query": query, "num_pages": "1", "page": "1", "date_posted": "month"},
            headers={
                "X-RapidAPI-Key": settings.rapidapi_key,
                "X-RapidAPI-Host": settings.rapidapi_jobs_host,
            },
        )
        response.raise_for_status()
        payload = response.json()

        if payload.get("error"):
            raise JobAPIError(payload["error"])
        data = payload.get("data")
        if not isinstance(data, list):
            logger.warning("Job API returned no data")
            return []
        return [map_external_job(job) for job in data[:limit] if job.get("job_id")]

    def cache_jobs(self, jobs: List[dict], industry: Optional[str], seniority: Optional[str],
                   keywords: List[str]) -> None:
        now = utcnow()
        expires_at = now + timedelta(hours=settings.job_cache_ttl_hours)
        with get_db_session() as db:
            for job in jobs:
                db.execute(
                    text("""
                        INSERT INTO job_feeds (
                            id, external_id, title, company, location, description, apply_url,
                            salary_range, employment_type, role_keywords, industry, seniority_level,
                            source, created_at, expires_at
                        ) VALUES (
                            :id, :external_id, :title, :company, :location, :description, :apply_url,
                            :salary_range, :employment_type, :role_keywords, :industry, :seniority_level,
                            :source, :created_at, :expires_at
                        )
                        ON CONFLICT (external_id) DO UPDATE SET
                            title = excluded.title,
                            company = excluded.company,
                            location = excluded.location,
                            description = excluded.description,
                            apply_url = excluded.apply_url,
                            salary_range = excluded.salary_range,
                            employment_type = excluded.employment_type,
                            role_keywords = excluded.role_keywords,
                            industry = excluded.industry,
                            seniority_level = excluded.seniority_level,
                            expires_at = excluded.expires_at
                    """),
                    {
                        "id": new_id(),
                        "external_id": job["external_id"],
                        "title": job["title"],
                        "company": job["company"],
                        "location": job["location"],
                        "description": job["description"],
                        "apply_url": job["apply_url"],
                        "salary_range": job["salary_range"],
                        "employment_type": job["employment_type"],
                        "role_keywords": to_json(keywords or job["role_keywords"]),
                        "industry": industry or job["industry"],
                        "seniority_level": seniority or job["seniority_level"],
                        "source": job["source"],
                        "created_at": now,
                        "expires_at": expires_at,
                    }
                )
        logger.info(f"Cached {len(jobs)} jobs")

    def cleanup_expired(self) -> int:
        with get_db_session() as db:
            result = db.execute(text("DELETE FROM job_feeds WHERE expires_at <= :now"), {"now": utcnow()})
            deleted = result.rowcount
        logger.info(f"Removed {deleted} expired job listings")
        return deleted


# Singleton
_job_service = None


def get_job_service() -> JobService:
    global _job_service
    if _job_service is None:
        _job_service = JobService()
    return _job_service
