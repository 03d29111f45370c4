# ========================================
# recruitdesk/routes/application.py
# ========================================

from datetime import datetime, timezone
from typing import Annotated, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response

from recruitdesk import cache as cache_keys
from recruitdesk.database import get_cache, get_store
from recruitdesk.filters import (
    ApplicationFilters,
    distinct_wilayas,
    filter_applications,
    upcoming_interviews,
)
from recruitdesk.schemas.application import (
    ApplicationBulkUpdate,
    ApplicationRecord,
    ApplicationStatusUpdate,
    StatusUpdateResult,
)
from recruitdesk.utils.auth import get_current_user
from recruitdesk.utils.export import create_csv_response_headers, export_applications_to_csv

router = APIRouter(prefix="/applications", tags=["Applications"])

MAX_COMPARE = 4


async def cached_applications(store, cache) -> List[ApplicationRecord]:
    return await cache.get_or_fetch(cache_keys.APPLICATIONS, store.list_applications)


# ===========================
# LIST & SEARCH
# ===========================

# ✅ 1. LIST APPLICATIONS WITH FILTERS
@router.get("", response_model=List[ApplicationRecord])
async def list_applications(
    filters: Annotated[ApplicationFilters, Query()],
    store=Depends(get_store),
    cache=Depends(get_cache),
    current_user: dict = Depends(get_current_user),
):
    """All applications, newest first, narrowed by the filter bar."""
    applications = await cached_applications(store, cache)
    return filter_applications(applications, filters)


# ✅ 2. STATUS TAB COUNTS
@router.get("/status-counts")
async def get_status_counts(
    store=Depends(get_store),
    cache=Depends(get_cache),
    current_user: dict = Depends(get_current_user),
):
    """Badge counts for the status tabs (unfiltered)."""
    applications = await cached_applications(store, cache)

    counts = {"all": len(applications)}
    for app in applications:
        counts[app.status] = counts.get(app.status, 0) + 1
    return counts


# ✅ 3. WILAYA OPTIONS FOR THE FILTER BAR
@router.get("/wilayas", response_model=List[str])
async def get_wilayas(
    store=Depends(get_store),
    cache=Depends(get_cache),
    current_user: dict = Depends(get_current_user),
):
    applications = await cached_applications(store, cache)
    return distinct_wilayas(applications)


# ✅ 4. EXPORT FILTERED APPLICATIONS TO CSV
@router.get("/export")
async def export_applications_csv(
    filters: Annotated[ApplicationFilters, Query()],
    store=Depends(get_store),
    cache=Depends(get_cache),
    current_user: dict = Depends(get_current_user),
):
    """Download the filtered application list as CSV."""
    applications = filter_applications(await cached_applications(store, cache), filters)

    return Response(
        content=export_applications_to_csv(applications),
        media_type="text/csv",
        headers=create_csv_response_headers(
            f"applications_{datetime.now(timezone.utc).strftime('%Y%m%d')}"
        ),
    )


# ✅ 5. INTERVIEW SCHEDULE
@router.get("/interviews", response_model=List[ApplicationRecord])
async def get_interview_schedule(
    upcoming_days: Optional[int] = Query(None, ge=1, le=90, description="Only interviews in the next N days"),
    store=Depends(get_store),
    cache=Depends(get_cache),
    current_user: dict = Depends(get_current_user),
):
    """Applications with a scheduled interview, soonest first."""
    schedule = await cache.get_or_fetch(cache_keys.INTERVIEW_SCHEDULE, store.list_interview_schedule)
    if upcoming_days:
        return upcoming_interviews(schedule, datetime.now(timezone.utc), upcoming_days)
    return schedule


# ✅ 6. COMPARE APPLICANTS SIDE BY SIDE
@router.get("/compare", response_model=List[ApplicationRecord])
async def compare_applications(
    ids: List[str] = Query(..., description="2 to 4 application IDs"),
    store=Depends(get_store),
    cache=Depends(get_cache),
    current_user: dict = Depends(get_current_user),
):
    unique_ids = list(dict.fromkeys(ids))
    if len(unique_ids) < 2:
        raise HTTPException(status_code=400, detail="Select at least 2 applications to compare")
    if len(unique_ids) > MAX_COMPARE:
        raise HTTPException(
            status_code=400,
            detail=f"You can compare up to {MAX_COMPARE} applicants at a time",
        )

    applications = await cached_applications(store, cache)
    by_id = {app.id: app for app in applications}
    missing = [app_id for app_id in unique_ids if app_id not in by_id]
    if missing:
        raise HTTPException(status_code=404, detail=f"Application not found: {', '.join(missing)}")

    return [by_id[app_id] for app_id in unique_ids]


# ===========================
# STATUS UPDATES
# ===========================

# ✅ 7. BULK UPDATE APPLICATION STATUS
@router.put("/bulk-update", response_model=StatusUpdateResult)
async def bulk_update_status(
    bulk_update: ApplicationBulkUpdate,
    store=Depends(get_store),
    cache=Depends(get_cache),
    current_user: dict = Depends(get_current_user),
):
    """Update status for multiple applications at once."""
    result = await store.bulk_update_application_status(bulk_update.application_ids, bulk_update.status)
    if not result["success"]:
        raise HTTPException(status_code=400, detail=result["message"])

    keys = cache_keys.after_status_change()
    keys += [cache_keys.application_detail(app_id) for app_id in bulk_update.application_ids]
    cache.invalidate(keys)
    return result


# ✅ 8. GET ONE APPLICATION
@router.get("/{application_id}", response_model=ApplicationRecord)
async def get_application(
    application_id: str,
    store=Depends(get_store),
    cache=Depends(get_cache),
    current_user: dict = Depends(get_current_user),
):
    return await cache.get_or_fetch(
        cache_keys.application_detail(application_id),
        lambda: store.get_application(application_id),
    )


# ✅ 9. UPDATE APPLICATION STATUS
@router.put("/{application_id}/status", response_model=StatusUpdateResult)
async def update_status(
    application_id: str,
    status_update: ApplicationStatusUpdate,
    store=Depends(get_store),
    cache=Depends(get_cache),
    current_user: dict = Depends(get_current_user),
):
    """Set an application's status directly (status tabs / quick actions)."""
    result = await store.update_application_status(application_id, status_update.status)
    if not result["success"]:
        status_code = 404 if result["message"] == "Application not found" else 400
        raise HTTPException(status_code=status_code, detail=result["message"])

    cache.invalidate(cache_keys.after_status_change(application_id))
    return result


# ✅ 10. REMOVE AN APPLICATION'S CV
@router.delete("/{application_id}/cv")
async def delete_application_cv(
    application_id: str,
    store=Depends(get_store),
    cache=Depends(get_cache),
    current_user: dict = Depends(get_current_user),
):
    await store.update_application_fields(application_id, {"cv_url": None})
    cache.invalidate(cache_keys.after_application_edit(application_id))
    return {"message": "CV removed", "application_id": application_id}
