# ========================================
# recruitdesk/routes/dashboard.py
# ========================================

from typing import List

from fastapi import APIRouter, Depends, Query

from recruitdesk import cache as cache_keys
from recruitdesk.database import get_cache, get_store
from recruitdesk.schemas.application import RecentApplication
from recruitdesk.schemas.dashboard import (
    ApplicationsTimeline,
    DashboardStats,
    StatusDistribution,
)
from recruitdesk.utils.auth import get_current_user

router = APIRouter(prefix="/dashboard", tags=["Dashboard"])


# ✅ 1. HEADLINE NUMBERS
@router.get("/stats", response_model=DashboardStats)
async def get_dashboard_stats(
    store=Depends(get_store),
    cache=Depends(get_cache),
    current_user: dict = Depends(get_current_user),
):
    return await cache.get_or_fetch(cache_keys.DASHBOARD_STATS, store.get_dashboard_stats)


# ✅ 2. LATEST APPLICATIONS
@router.get("/recent-applications", response_model=List[RecentApplication])
async def get_recent_applications(
    limit: int = Query(5, ge=1, le=50),
    store=Depends(get_store),
    cache=Depends(get_cache),
    current_user: dict = Depends(get_current_user),
):
    return await cache.get_or_fetch(
        cache_keys.RECENT_APPLICATIONS + (limit,),
        lambda: store.list_recent_applications(limit),
    )


# ✅ 3. STATUS PIE CHART
@router.get("/status-distribution", response_model=StatusDistribution)
async def get_status_distribution(
    store=Depends(get_store),
    current_user: dict = Depends(get_current_user),
):
    slices = await store.get_status_distribution()
    return StatusDistribution(total=sum(s.value for s in slices), data=slices)


# ✅ 4. APPLICATIONS PER DAY
@router.get("/applications-timeline", response_model=ApplicationsTimeline)
async def get_applications_timeline(
    days: int = Query(7, ge=1, le=90),
    store=Depends(get_store),
    current_user: dict = Depends(get_current_user),
):
    points = await store.get_applications_timeline(days)
    return ApplicationsTimeline(days=days, data=points)
