# ========================================
# recruitdesk/routes/job.py
# ========================================

from datetime import datetime, timezone
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response

from recruitdesk import cache as cache_keys
from recruitdesk.database import get_cache, get_store
from recruitdesk.schemas.job import (
    JobCreate,
    JobDeleteResult,
    JobDemographics,
    JobResponse,
    JobTitle,
    JobUpdate,
    JobWithCounts,
    JobWithStats,
)
from recruitdesk.utils.auth import get_current_user
from recruitdesk.utils.export import create_csv_response_headers, export_jobs_to_csv

router = APIRouter(prefix="/jobs", tags=["Jobs"])


# ===========================
# READ
# ===========================

# ✅ 1. JOB TABLE WITH APPLICATION COUNTS
@router.get("", response_model=List[JobWithCounts])
async def list_jobs(
    status: Optional[str] = Query(None, description="Filter by status: open, closed, on_hold"),
    search: Optional[str] = Query(None, description="Search in title or location"),
    store=Depends(get_store),
    cache=Depends(get_cache),
    current_user: dict = Depends(get_current_user),
):
    jobs = await cache.get_or_fetch(cache_keys.JOBS, store.list_jobs)

    if status:
        jobs = [job for job in jobs if job.status == status]
    if search:
        needle = search.lower()
        jobs = [
            job for job in jobs
            if needle in job.title.lower() or needle in (job.location or "").lower()
        ]
    return jobs


# ✅ 2. TITLES FOR FILTER DROP-DOWNS
@router.get("/titles", response_model=List[JobTitle])
async def list_job_titles(
    store=Depends(get_store),
    cache=Depends(get_cache),
    current_user: dict = Depends(get_current_user),
):
    return await cache.get_or_fetch(cache_keys.JOBS_LIST, store.list_job_titles)


# ✅ 3. EXPORT JOBS TO CSV
@router.get("/export")
async def export_jobs_csv(
    store=Depends(get_store),
    cache=Depends(get_cache),
    current_user: dict = Depends(get_current_user),
):
    jobs = await cache.get_or_fetch(cache_keys.JOBS, store.list_jobs)
    return Response(
        content=export_jobs_to_csv(jobs),
        media_type="text/csv",
        headers=create_csv_response_headers(f"jobs_{datetime.now(timezone.utc).strftime('%Y%m%d')}"),
    )


# ✅ 4. JOB DETAIL WITH PER-STATUS COUNTS
@router.get("/{job_id}", response_model=JobWithStats)
async def get_job(
    job_id: str,
    store=Depends(get_store),
    current_user: dict = Depends(get_current_user),
):
    return await store.get_job_with_stats(job_id)


# ✅ 5. APPLICANT DEMOGRAPHICS FOR ONE JOB
@router.get("/{job_id}/demographics", response_model=JobDemographics)
async def get_job_demographics(
    job_id: str,
    store=Depends(get_store),
    current_user: dict = Depends(get_current_user),
):
    return await store.get_job_demographics(job_id)


# ===========================
# WRITE
# ===========================

# ✅ 6. POST A JOB
@router.post("", response_model=JobResponse, status_code=201)
async def create_job(
    job: JobCreate,
    store=Depends(get_store),
    cache=Depends(get_cache),
    current_user: dict = Depends(get_current_user),
):
    created = await store.create_job(job.model_dump(exclude_none=True))
    cache.invalidate(cache_keys.after_job_change())
    return created


# ✅ 7. EDIT A JOB
@router.put("/{job_id}", response_model=JobResponse)
async def update_job(
    job_id: str,
    job_update: JobUpdate,
    store=Depends(get_store),
    cache=Depends(get_cache),
    current_user: dict = Depends(get_current_user),
):
    """Only the fields sent are changed."""
    fields = job_update.model_dump(exclude_unset=True)
    if not fields:
        raise HTTPException(status_code=400, detail="No fields to update")

    updated = await store.update_job(job_id, fields)
    # Applications embed the job title and location
    cache.invalidate(cache_keys.after_job_change() + [cache_keys.APPLICATIONS])
    return updated


# ✅ 8. DELETE A JOB (AND ITS APPLICATIONS)
@router.delete("/{job_id}", response_model=JobDeleteResult)
async def delete_job(
    job_id: str,
    store=Depends(get_store),
    cache=Depends(get_cache),
    current_user: dict = Depends(get_current_user),
):
    deleted = await store.delete_job(job_id)
    cache.invalidate(cache_keys.after_job_change(deleted=True) + [("application-detail",), ("applicant-applications",)])
    return JobDeleteResult(
        message="Job and its applications deleted",
        job_id=job_id,
        applications_deleted=deleted,
    )
