# ========================================
# recruitdesk/schemas/pipeline.py
# ========================================

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from recruitdesk.recruitment import RecruitmentStage
from recruitdesk.schemas.application import ApplicationRecord, OfferStatusValue


class StageInfo(BaseModel):
    key: RecruitmentStage
    label: str
    description: str
    reached: bool
    is_current: bool


class PipelineView(BaseModel):
    """Timeline plus the panel selected for viewing"""
    application: ApplicationRecord
    stages: List[StageInfo]
    current_stage: RecruitmentStage
    active_stage: RecruitmentStage
    final_decision: Optional[str] = None
    is_finalized: bool
    available_actions: List[str]


# Input: Move to the next stage, with the fields that stage collects
class AdvanceRequest(BaseModel):
    notes: Optional[str] = None
    interview_date: Optional[datetime] = None
    technical_score: Optional[int] = Field(None, ge=1, le=10)
    proposed_salary: Optional[str] = None
    offer_status: Optional[OfferStatusValue] = None


class DecisionRequest(BaseModel):
    notes: Optional[str] = None


class StageNotesRequest(BaseModel):
    stage: RecruitmentStage
    notes: str
