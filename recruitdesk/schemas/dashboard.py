# ========================================
# recruitdesk/schemas/dashboard.py
# ========================================

from pydantic import BaseModel
from typing import List


class DashboardStats(BaseModel):
    """Headline numbers for the overview screen"""
    total_jobs: int
    open_jobs: int
    closed_jobs: int
    total_applicants: int
    total_applications: int
    pending_applications: int
    reviewing_applications: int
    shortlisted_applications: int
    offered_applications: int
    accepted_applications: int
    rejected_applications: int
    applications_today: int
    applications_this_week: int
    applications_this_month: int


class StatusSlice(BaseModel):
    """One slice of the status pie chart"""
    name: str
    value: int


class TimelinePoint(BaseModel):
    date: str  # YYYY-MM-DD
    count: int


class StatusDistribution(BaseModel):
    total: int
    data: List[StatusSlice]


class ApplicationsTimeline(BaseModel):
    days: int
    data: List[TimelinePoint]

