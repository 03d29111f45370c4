# ========================================
# recruitdesk/schemas/job.py
# ========================================

from pydantic import BaseModel, Field, field_validator
from typing import Dict, Literal, Optional
from datetime import datetime

JobType = Literal["full_time", "part_time", "contract", "internship", "remote"]
JobStatus = Literal["open", "closed", "on_hold"]


def _required_text(value):
    if value is None or not str(value).strip():
        raise ValueError("must not be blank")
    return str(value).strip()


# 1. Input: What HR sends when posting a job
class JobCreate(BaseModel):
    title: str
    location: str
    description: Optional[str] = None
    job_type: JobType = "full_time"
    salary_range: Optional[str] = None
    status: JobStatus = "open"
    deadline: Optional[datetime] = None
    image_url: Optional[str] = None
    max_applicants: Optional[int] = Field(None, ge=1)

    @field_validator("title", "location", mode="before")
    @classmethod
    def not_blank(cls, value):
        return _required_text(value)


# 2. Input: Update existing job
class JobUpdate(BaseModel):
    """Schema for updating job details"""
    title: Optional[str] = None
    location: Optional[str] = None
    description: Optional[str] = None
    job_type: Optional[JobType] = None
    salary_range: Optional[str] = None
    status: Optional[JobStatus] = None
    deadline: Optional[datetime] = None
    image_url: Optional[str] = None
    max_applicants: Optional[int] = Field(None, ge=1)

    # Runs only for fields that were sent, so an explicit null is refused
    @field_validator("title", "location")
    @classmethod
    def not_blank(cls, value):
        return _required_text(value)


# 3. Output: Basic Response
class JobResponse(BaseModel):
    id: str
    title: str
    location: str
    description: Optional[str] = None
    job_type: str = "full_time"
    salary_range: Optional[str] = None
    status: str = "open"
    deadline: Optional[datetime] = None
    image_url: Optional[str] = None
    max_applicants: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


# 4. Output: Job table row with counts
class JobWithCounts(JobResponse):
    total_applications: int = 0
    is_deadline_passed: bool = False


# 5. Output: Job detail with per-status counts
class JobWithStats(JobWithCounts):
    pending_count: int = 0
    reviewing_count: int = 0
    shortlisted_count: int = 0
    offered_count: int = 0
    accepted_count: int = 0
    rejected_count: int = 0


# 6. Output: Applicant demographics for one job
class JobDemographics(BaseModel):
    job_id: str
    total_applicants: int
    male_count: int
    female_count: int
    avg_age: Optional[float] = None
    top_wilaya: Optional[str] = None
    wilaya_distribution: Dict[str, int] = {}


# 7. Output: Title list for filter drop-downs
class JobTitle(BaseModel):
    id: str
    title: str


class JobDeleteResult(BaseModel):
    message: str
    job_id: str
    applications_deleted: int = 0

