"""
Recruitment pipeline vocabulary.

Applications are persisted with a ``status`` string; the dashboard shows them
as one of five pipeline stages. The two helpers below translate between the
two vocabularies.
"""

from enum import Enum
from typing import Optional


class RecruitmentStage(str, Enum):
    APPLIED = "applied"
    TEST_STAGE = "test_stage"
    INTERVIEW = "interview"
    OFFER = "offer"
    DECISION = "decision"


class ApplicationStatus(str, Enum):
    PENDING = "pending"
    REVIEWING = "reviewing"
    SHORTLISTED = "shortlisted"
    OFFERED = "offered"
    REJECTED = "rejected"
    ACCEPTED = "accepted"


class OfferStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"
    NEGOTIATING = "negotiating"


class FinalDecision(str, Enum):
    HIRED = "hired"
    REJECTED = "rejected"


RECRUITMENT_STAGES = (
    (RecruitmentStage.APPLIED, "Applied", "Initial application received"),
    (RecruitmentStage.TEST_STAGE, "Test Stage", "Technical assessment and evaluation"),
    (RecruitmentStage.INTERVIEW, "Interview", "Interview scheduling and feedback"),
    (RecruitmentStage.OFFER, "Offer", "Salary negotiation and offer"),
    (RecruitmentStage.DECISION, "Decision", "Final hiring decision"),
)

STAGE_ORDER = tuple(stage for stage, _, _ in RECRUITMENT_STAGES)

_STAGE_LABELS = {stage: label for stage, label, _ in RECRUITMENT_STAGES}

APPLICATION_STATUSES = tuple(status.value for status in ApplicationStatus)

FINAL_STATUSES = (ApplicationStatus.ACCEPTED.value, ApplicationStatus.REJECTED.value)

_STATUS_TO_STAGE = {
    "pending": RecruitmentStage.APPLIED,
    "reviewing": RecruitmentStage.TEST_STAGE,
    "shortlisted": RecruitmentStage.INTERVIEW,
    "offered": RecruitmentStage.OFFER,
    "accepted": RecruitmentStage.DECISION,
    "rejected": RecruitmentStage.DECISION,
}

# "decision" defaults to accepted; rejection always goes through an explicit action
_STAGE_TO_STATUS = {
    RecruitmentStage.APPLIED: ApplicationStatus.PENDING.value,
    RecruitmentStage.TEST_STAGE: ApplicationStatus.REVIEWING.value,
    RecruitmentStage.INTERVIEW: ApplicationStatus.SHORTLISTED.value,
    RecruitmentStage.OFFER: ApplicationStatus.OFFERED.value,
    RecruitmentStage.DECISION: ApplicationStatus.ACCEPTED.value,
}


def _status_value(status) -> Optional[str]:
    if isinstance(status, Enum):
        status = status.value
    if isinstance(status, str):
        return status
    return None


def status_to_stage(status) -> RecruitmentStage:
    """Map a persisted status to its pipeline stage.

    Unknown or legacy values (including ``None``) land on ``applied``.
    """
    value = _status_value(status)
    if value is None:
        return RecruitmentStage.APPLIED
    return _STATUS_TO_STAGE.get(value, RecruitmentStage.APPLIED)


def stage_to_status(stage) -> str:
    """Status written when a candidate is moved into ``stage``."""
    return _STAGE_TO_STATUS[RecruitmentStage(stage)]


def stage_index(stage) -> int:
    return STAGE_ORDER.index(RecruitmentStage(stage))


def next_stage(stage) -> Optional[RecruitmentStage]:
    index = stage_index(stage)
    if index + 1 < len(STAGE_ORDER):
        return STAGE_ORDER[index + 1]
    return None


def is_final_status(status) -> bool:
    return _status_value(status) in FINAL_STATUSES


def final_decision(status) -> Optional[FinalDecision]:
    value = _status_value(status)
    if value == ApplicationStatus.ACCEPTED.value:
        return FinalDecision.HIRED
    if value == ApplicationStatus.REJECTED.value:
        return FinalDecision.REJECTED
    return None


def stage_label(stage) -> str:
    return _STAGE_LABELS[RecruitmentStage(stage)]
