# ========================================
# recruitdesk/routes/pipeline.py
# ========================================

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from recruitdesk.database import get_cache, get_store
from recruitdesk.pipeline import PipelineController
from recruitdesk.recruitment import RECRUITMENT_STAGES, RecruitmentStage
from recruitdesk.schemas.application import ApplicationFieldsUpdate
from recruitdesk.schemas.pipeline import (
    AdvanceRequest,
    DecisionRequest,
    PipelineView,
    StageInfo,
    StageNotesRequest,
)
from recruitdesk.utils.auth import get_current_user

router = APIRouter(prefix="/applications/{application_id}/pipeline", tags=["Recruitment Pipeline"])


async def get_controller(
    application_id: str,
    current_user: dict = Depends(get_current_user),
    store=Depends(get_store),
    cache=Depends(get_cache),
) -> PipelineController:
    """Authenticate first, then load the application."""
    return await PipelineController.load(store, cache, application_id)


def build_view(controller: PipelineController) -> PipelineView:
    current = controller.current_stage
    decision = controller.final_decision
    return PipelineView(
        application=controller.application,
        stages=[
            StageInfo(
                key=stage,
                label=label,
                description=description,
                reached=controller.can_view(stage),
                is_current=stage == current,
            )
            for stage, label, description in RECRUITMENT_STAGES
        ],
        current_stage=current,
        active_stage=controller.active_stage,
        final_decision=decision.value if decision else None,
        is_finalized=controller.is_finalized,
        available_actions=controller.available_actions(),
    )


# ✅ 1. TIMELINE + SELECTED STAGE PANEL
@router.get("", response_model=PipelineView)
async def get_pipeline(
    stage: Optional[RecruitmentStage] = Query(None, description="Stage panel to display"),
    controller: PipelineController = Depends(get_controller),
):
    """Where the application is, and which panel to show."""
    if stage is not None and not controller.select_stage(stage):
        raise HTTPException(
            status_code=400,
            detail=f"The {stage.value} stage has not been reached yet",
        )
    return build_view(controller)


# ✅ 2. ADVANCE TO THE NEXT STAGE
@router.post("/advance", response_model=PipelineView)
async def advance_stage(
    request: AdvanceRequest,
    controller: PipelineController = Depends(get_controller),
):
    fields = request.model_dump(exclude={"notes"}, exclude_none=True)
    await controller.advance(fields, notes=request.notes)
    return build_view(controller)


# ✅ 3. REJECT FROM ANY OPEN STAGE
@router.post("/reject", response_model=PipelineView)
async def reject_application(
    request: DecisionRequest,
    controller: PipelineController = Depends(get_controller),
):
    await controller.reject(notes=request.notes)
    return build_view(controller)


# ✅ 4. HIRE (FROM THE OFFER STAGE)
@router.post("/hire", response_model=PipelineView)
async def hire_applicant(
    request: DecisionRequest,
    controller: PipelineController = Depends(get_controller),
):
    await controller.hire(notes=request.notes)
    return build_view(controller)


# ✅ 5. SAVE NOTES FOR A STAGE
@router.post("/notes", response_model=PipelineView)
async def save_stage_notes(
    request: StageNotesRequest,
    controller: PipelineController = Depends(get_controller),
):
    await controller.save_stage_notes(request.stage, request.notes)
    return build_view(controller)


# ✅ 6. UPDATE STAGE FIELDS (INTERVIEW DATE, SCORE, SALARY, OFFER STATUS)
@router.patch("/fields", response_model=PipelineView)
async def update_stage_fields(
    fields: ApplicationFieldsUpdate,
    controller: PipelineController = Depends(get_controller),
):
    await controller.update_stage_fields(
        fields.model_dump(
            include={"interview_date", "technical_score", "proposed_salary", "offer_status"},
            exclude_none=True,
        )
    )
    return build_view(controller)
