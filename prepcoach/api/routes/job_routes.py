"""
Job Routes

GET /jobs - Personalized job listings (cache-first, rate limited per user)
POST /jobs/cleanup - Remove expired cached listings (service key only)

Query parameters for GET /jobs:
- role: Target role (e.g. "Software Engineer")
- keywords: Comma-separated keywords
- industry, location, seniority: Filters
- limit: Number of results (default 20, max 50)
"""

import time
from typing import Optional

import httpx
from fastapi import APIRouter, HTTPException, Depends, Query
from fastapi.responses import JSONResponse

from prepcoach.core.auth import get_current_user, require_service_key
from prepcoach.core.config import get_settings
from prepcoach.core.rate_limit import RateLimiter
from prepcoach.services.job_service import get_job_service, JobAPIError, DEFAULT_ROLE
from prepcoach.services.profile_service import get_profile_service
from prepcoach.schemas.schemas import JobSearchResponse, JobCleanupResponse
from prepcoach.core.logging import get_logger

settings = get_settings()
logger = get_logger(__name__)

router = APIRouter(prefix="/jobs", tags=["Jobs"])

MAX_LIMIT = 50

rate_limiter = RateLimiter(settings.jobs_rate_limit_max, settings.jobs_rate_limit_window_seconds)


@router.get("", response_model=JobSearchResponse)
async def search_jobs(
    role: Optional[str] = Query(None),
    keywords: Optional[str] = Query(None, description="Comma-separated"),
    industry: Optional[str] = Query(None),
    location: Optional[str] = Query(None),
    seniority: Optional[str] = Query(None),
    limit: int = Query(20, ge=1),
    user: dict = Depends(get_current_user)
):
    allowed, retry_after = rate_limiter.check(user["user_id"])
    if not allowed:
        return JSONResponse(
            status_code=429,
            content={"detail": "Rate limit exceeded. Please try again later.", "retry_after": retry_after},
            headers={"Retry-After": str(retry_after)},
        )

    params = {
        "role": role,
        "keywords": [k.strip() for k in keywords.split(",") if k.strip()] if keywords else [],
        "industry": industry,
        "location": location,
        "seniority": seniority,
        "limit": min(limit, MAX_LIMIT),
    }

    # Fall back to a generic role for users who filled in a profile but sent no criteria
    if not params["role"] and not params["keywords"]:
        profile = get_profile_service().get_profile(user["user_id"])
        if profile and profile.get("bio"):
            params["role"] = DEFAULT_ROLE

    started = time.perf_counter()
    try:
        jobs, cached = get_job_service().search_jobs(**params)
    except (httpx.HTTPError, JobAPIError):
        logger.exception("Job search failed")
        raise HTTPException(status_code=500, detail="Internal server error. Please try again later.")
    duration_ms = int((time.perf_counter() - started) * 1000)

    logger.info(f"Job search completed in {duration_ms}ms, returned {len(jobs)} jobs")

    return JobSearchResponse(
        data=jobs,
        meta={"count": len(jobs), "duration_ms": duration_ms, "cached": cached, "params": params},
    )


@router.post("/cleanup", response_model=JobCleanupResponse, dependencies=[Depends(require_service_key)])
async def cleanup_jobs():
    return JobCleanupResponse(deleted_count=get_job_service().cleanup_expired())
