"""
Drives the five-stage recruitment timeline for a single application.

The controller keeps two notions of "stage" apart: ``current_stage`` is where
the record actually is (derived from its status), ``active_stage`` is the
panel being looked at. Every action results in exactly one write to the
store, after which the affected cache keys are invalidated and the record is
re-read so the controller reflects what the backend holds.
"""

import logging
from typing import List, Optional

from recruitdesk import cache as cache_keys
from recruitdesk.errors import PipelineError
from recruitdesk.recruitment import (
    STAGE_ORDER,
    ApplicationStatus,
    RecruitmentStage,
    final_decision,
    is_final_status,
    next_stage,
    stage_index,
    stage_to_status,
    status_to_stage,
)

logger = logging.getLogger(__name__)

STAGE_NOTE_FIELDS = {
    RecruitmentStage.APPLIED: "hr_notes",
    RecruitmentStage.TEST_STAGE: "screening_notes",
    RecruitmentStage.INTERVIEW: "interview_notes",
    RecruitmentStage.DECISION: "final_notes",
}

STAGE_FIELDS = frozenset({"interview_date", "technical_score", "proposed_salary", "offer_status"})

ADVANCE = "advance"
HIRE = "hire"
REJECT = "reject"


class PipelineController:
    def __init__(self, store, cache, application):
        self.store = store
        self.cache = cache
        self.application = application
        self.active_stage = self.current_stage

    @classmethod
    async def load(cls, store, cache, application_id: str) -> "PipelineController":
        application = await cache.get_or_fetch(
            cache_keys.application_detail(application_id),
            lambda: store.get_application(application_id),
        )
        return cls(store, cache, application)

    @property
    def application_id(self) -> str:
        return self.application.id

    @property
    def status(self) -> str:
        return self.application.status

    @property
    def current_stage(self) -> RecruitmentStage:
        return status_to_stage(self.status)

    @property
    def is_finalized(self) -> bool:
        return is_final_status(self.status)

    @property
    def final_decision(self):
        return final_decision(self.status)

    def can_view(self, stage) -> bool:
        return stage_index(stage) <= stage_index(self.current_stage)

    def select_stage(self, stage) -> bool:
        """Show ``stage``'s panel if the record has reached it."""
        stage = RecruitmentStage(stage)
        if not self.can_view(stage):
            return False
        self.active_stage = stage
        return True

    def reached_stages(self) -> List[RecruitmentStage]:
        return [stage for stage in STAGE_ORDER if self.can_view(stage)]

    def available_actions(self) -> List[str]:
        if self.is_finalized:
            return []
        if self.current_stage == RecruitmentStage.OFFER:
            return [HIRE, REJECT]
        return [ADVANCE, REJECT]

    # ===========================
    # ACTIONS
    # ===========================

    def _require(self, action: str) -> None:
        if self.is_finalized:
            raise PipelineError(f"Application is already {self.status}; no further actions")
        if action not in self.available_actions():
            raise PipelineError(f"Cannot {action} from the {self.current_stage.value} stage")

    async def _write(self, updates: dict, status_changed: bool) -> None:
        await self.store.update_application_fields(self.application_id, updates)

        keys = cache_keys.after_application_edit(self.application_id)
        if status_changed:
            keys += cache_keys.after_status_change(self.application_id)
        self.cache.invalidate(keys)

        self.application = await self.cache.get_or_fetch(
            cache_keys.application_detail(self.application_id),
            lambda: self.store.get_application(self.application_id),
        )
        self.active_stage = self.current_stage

    async def advance(self, fields: Optional[dict] = None, notes: Optional[str] = None) -> RecruitmentStage:
        """Move to the next stage, storing the fields collected on the way."""
        self._require(ADVANCE)
        target = next_stage(self.current_stage)

        updates = {k: v for k, v in (fields or {}).items() if v is not None}
        unknown = set(updates) - STAGE_FIELDS
        if unknown:
            raise PipelineError(f"Fields not collected by the pipeline: {', '.join(sorted(unknown))}")

        note_field = STAGE_NOTE_FIELDS.get(self.current_stage)
        if notes is not None and note_field:
            updates[note_field] = notes
        updates["status"] = stage_to_status(target)

        logger.info("Application %s: %s -> %s", self.application_id, self.current_stage.value, target.value)
        await self._write(updates, status_changed=True)
        return target

    async def reject(self, notes: Optional[str] = None) -> None:
        self._require(REJECT)
        updates = {"status": ApplicationStatus.REJECTED.value}
        note_field = STAGE_NOTE_FIELDS.get(self.current_stage, "final_notes")
        if notes is not None:
            updates[note_field] = notes

        logger.info("Application %s rejected at %s", self.application_id, self.current_stage.value)
        await self._write(updates, status_changed=True)

    async def hire(self, notes: Optional[str] = None) -> None:
        self._require(HIRE)
        updates = {"status": ApplicationStatus.ACCEPTED.value}
        if notes is not None:
            updates["final_notes"] = notes

        logger.info("Application %s hired", self.application_id)
        await self._write(updates, status_changed=True)

    async def save_stage_notes(self, stage, notes: str) -> None:
        stage = RecruitmentStage(stage)
        field = STAGE_NOTE_FIELDS.get(stage)
        if field is None:
            raise PipelineError(f"The {stage.value} stage has no notes")
        if not self.can_view(stage):
            raise PipelineError(f"The {stage.value} stage has not been reached")
        await self._write({field: notes}, status_changed=False)

    async def update_stage_fields(self, fields: dict) -> None:
        if self.is_finalized:
            raise PipelineError(f"Application is already {self.status}; stage fields are frozen")
        updates = {k: v for k, v in fields.items() if v is not None}
        if not updates:
            raise PipelineError("No fields to update")
        unknown = set(updates) - STAGE_FIELDS
        if unknown:
            raise PipelineError(f"Fields not collected by the pipeline: {', '.join(sorted(unknown))}")
        await self._write(updates, status_changed=False)
