# ========================================
# recruitdesk/schemas/application.py
# ========================================

from datetime import datetime
from typing import Annotated, List, Literal, Optional

from pydantic import AfterValidator, BaseModel, Field

from recruitdesk.recruitment import APPLICATION_STATUSES
from recruitdesk.schemas.applicant import ApplicantResponse


def _check_status(value: str) -> str:
    if value not in APPLICATION_STATUSES:
        raise ValueError(f"status must be one of: {', '.join(APPLICATION_STATUSES)}")
    return value


StatusValue = Annotated[str, AfterValidator(_check_status)]
OfferStatusValue = Literal["pending", "accepted", "declined", "negotiating"]


# 1. Nested job reference
class JobBrief(BaseModel):
    id: str
    title: Optional[str] = None
    location: Optional[str] = None


# 2. Output: Application joined with its job and applicant
class ApplicationRecord(BaseModel):
    id: str
    job_id: Optional[str] = None
    applicant_id: Optional[str] = None
    status: str = "pending"
    applied_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    cv_url: Optional[str] = None
    cover_letter: Optional[str] = None

    # Stage fields, kept after the stage is left
    hr_notes: Optional[str] = None
    screening_notes: Optional[str] = None
    interview_date: Optional[datetime] = None
    interview_notes: Optional[str] = None
    technical_score: Optional[int] = None
    proposed_salary: Optional[str] = None
    offer_status: Optional[str] = None
    final_notes: Optional[str] = None

    job: Optional[JobBrief] = None
    applicant: Optional[ApplicantResponse] = None

    class Config:
        from_attributes = True


# 3. Output: Dashboard "recent applications" row
class RecentApplication(BaseModel):
    application_id: str
    applicant_id: Optional[str] = None
    applicant_name: str
    applicant_email: Optional[str] = None
    applicant_avatar_url: Optional[str] = None
    job_id: Optional[str] = None
    job_title: Optional[str] = None
    status: str
    applied_at: Optional[datetime] = None


# 4. Input: Update status
class ApplicationStatusUpdate(BaseModel):
    status: StatusValue


# 5. Input: Bulk update
class ApplicationBulkUpdate(BaseModel):
    """Schema for updating multiple applications at once"""
    application_ids: List[str] = Field(..., min_length=1)
    status: StatusValue


# 6. Output: Status write result
class StatusUpdateResult(BaseModel):
    success: bool
    message: str
    updated_count: Optional[int] = None


# 7. Input: Stage-specific fields
class ApplicationFieldsUpdate(BaseModel):
    hr_notes: Optional[str] = None
    screening_notes: Optional[str] = None
    interview_date: Optional[datetime] = None
    interview_notes: Optional[str] = None
    technical_score: Optional[int] = Field(None, ge=1, le=10)
    proposed_salary: Optional[str] = None
    offer_status: Optional[OfferStatusValue] = None
    final_notes: Optional[str] = None
