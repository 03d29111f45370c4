# ========================================
# recruitdesk/routes/applicant.py
# ========================================

import logging
import time
from typing import List, Optional

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile

from recruitdesk import cache as cache_keys
from recruitdesk.database import get_cache, get_store
from recruitdesk.filters import distinct_skills, filter_applicants
from recruitdesk.schemas.applicant import (
    ApplicantCreate,
    ApplicantRatingUpdate,
    ApplicantResponse,
    ApplicantSummary,
    ApplicantUpdate,
)
from recruitdesk.schemas.application import ApplicationRecord
from recruitdesk.utils.auth import get_current_user

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/applicants", tags=["Applicants"])

FILES_BUCKET = "applicant-files"

CV_TYPES = {
    "application/pdf": "pdf",
    "application/msword": "doc",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document": "docx",
}
AVATAR_TYPES = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
}
MAX_CV_SIZE = 5 * 1024 * 1024
MAX_AVATAR_SIZE = 2 * 1024 * 1024


async def read_upload(file: UploadFile, allowed: dict, max_size: int, kind: str):
    """Validate type and size; returns ``(contents, extension)``."""
    extension = allowed.get(file.content_type)
    if extension is None:
        raise HTTPException(
            status_code=400,
            detail=f"Invalid {kind} type. Allowed: {', '.join(sorted(set(allowed.values())))}",
        )

    contents = await file.read()
    if len(contents) > max_size:
        raise HTTPException(
            status_code=400,
            detail=f"File size exceeds {max_size // (1024 * 1024)}MB limit",
        )
    return contents, extension


def storage_path(folder: str, applicant_id: str, extension: str) -> str:
    return f"{folder}/{applicant_id}-{int(time.time() * 1000)}.{extension}"


# ===========================
# BROWSE & PROFILE
# ===========================

# ✅ 1. LIST APPLICANTS (SERVER-SIDE FILTERS)
@router.get("", response_model=List[ApplicantSummary])
async def list_applicants(
    search: Optional[str] = Query(None, description="Name or email"),
    gender: Optional[str] = None,
    wilaya: Optional[str] = None,
    min_age: Optional[int] = Query(None, ge=0),
    max_age: Optional[int] = Query(None, ge=0),
    min_rating: Optional[int] = Query(None, ge=0, le=5),
    skill: Optional[str] = None,
    store=Depends(get_store),
    cache=Depends(get_cache),
    current_user: dict = Depends(get_current_user),
):
    key = cache_keys.APPLICANTS + (search, gender, wilaya, min_age, max_age, min_rating)
    applicants = await cache.get_or_fetch(
        key,
        lambda: store.list_applicants(search, gender, wilaya, min_age, max_age, min_rating),
    )
    if skill:
        return filter_applicants(applicants, skill=skill)
    return applicants


# ✅ 2. SKILL OPTIONS FOR THE CANDIDATE BROWSER
@router.get("/skills", response_model=List[str])
async def list_skills(
    store=Depends(get_store),
    cache=Depends(get_cache),
    current_user: dict = Depends(get_current_user),
):
    applicants = await cache.get_or_fetch(
        cache_keys.APPLICANTS + (None, None, None, None, None, None),
        store.list_applicants,
    )
    return distinct_skills(applicants)


# ✅ 3. GET APPLICANT PROFILE
@router.get("/{applicant_id}", response_model=ApplicantResponse)
async def get_applicant(
    applicant_id: str,
    store=Depends(get_store),
    cache=Depends(get_cache),
    current_user: dict = Depends(get_current_user),
):
    return await cache.get_or_fetch(
        cache_keys.applicant_profile(applicant_id),
        lambda: store.get_applicant(applicant_id),
    )


# ✅ 4. MANUAL ENTRY
@router.post("", response_model=ApplicantResponse, status_code=201)
async def create_applicant(
    applicant: ApplicantCreate,
    store=Depends(get_store),
    cache=Depends(get_cache),
    current_user: dict = Depends(get_current_user),
):
    created = await store.create_applicant(applicant.model_dump(mode="json", exclude_none=True))
    cache.invalidate([cache_keys.APPLICANTS, cache_keys.DASHBOARD_STATS])
    return created


# ✅ 5. EDIT PROFILE
@router.put("/{applicant_id}", response_model=ApplicantResponse)
async def update_applicant(
    applicant_id: str,
    update: ApplicantUpdate,
    store=Depends(get_store),
    cache=Depends(get_cache),
    current_user: dict = Depends(get_current_user),
):
    fields = update.model_dump(mode="json", exclude_unset=True)
    if not fields:
        raise HTTPException(status_code=400, detail="No fields to update")

    await store.update_applicant(applicant_id, fields)
    cache.invalidate(cache_keys.after_applicant_edit(applicant_id))
    return await store.get_applicant(applicant_id)


# ✅ 6. STAR RATING
@router.put("/{applicant_id}/rating", response_model=ApplicantResponse)
async def rate_applicant(
    applicant_id: str,
    rating_update: ApplicantRatingUpdate,
    store=Depends(get_store),
    cache=Depends(get_cache),
    current_user: dict = Depends(get_current_user),
):
    await store.update_applicant_rating(applicant_id, rating_update.rating)
    cache.invalidate(cache_keys.after_applicant_edit(applicant_id))
    return await store.get_applicant(applicant_id)


# ✅ 7. APPLICATION HISTORY
@router.get("/{applicant_id}/applications", response_model=List[ApplicationRecord])
async def get_applicant_applications(
    applicant_id: str,
    store=Depends(get_store),
    cache=Depends(get_cache),
    current_user: dict = Depends(get_current_user),
):
    return await cache.get_or_fetch(
        cache_keys.applicant_applications(applicant_id),
        lambda: store.list_applicant_applications(applicant_id),
    )


# ===========================
# UPLOADS
# ===========================

# ✅ 8. UPLOAD AVATAR
@router.post("/{applicant_id}/avatar", response_model=ApplicantResponse)
async def upload_avatar(
    applicant_id: str,
    file: UploadFile = File(...),
    store=Depends(get_store),
    cache=Depends(get_cache),
    current_user: dict = Depends(get_current_user),
):
    """JPEG, PNG or WebP, up to 2MB."""
    await store.get_applicant(applicant_id)
    contents, extension = await read_upload(file, AVATAR_TYPES, MAX_AVATAR_SIZE, "image")

    path = storage_path("avatars", applicant_id, extension)
    url = await store.upload_file(FILES_BUCKET, path, contents, file.content_type)
    await store.update_applicant(applicant_id, {"avatar_url": url})

    cache.invalidate(cache_keys.after_applicant_edit(applicant_id))
    return await store.get_applicant(applicant_id)


# ✅ 9. UPLOAD CV
@router.post("/{applicant_id}/cv")
async def upload_cv(
    applicant_id: str,
    file: UploadFile = File(...),
    store=Depends(get_store),
    cache=Depends(get_cache),
    current_user: dict = Depends(get_current_user),
):
    """PDF, DOC or DOCX, up to 5MB. Attached to the most recent application."""
    await store.get_applicant(applicant_id)
    contents, extension = await read_upload(file, CV_TYPES, MAX_CV_SIZE, "CV")

    path = storage_path("cvs", applicant_id, extension)
    url = await store.upload_file(FILES_BUCKET, path, contents, file.content_type)

    applications = await store.list_applicant_applications(applicant_id)
    application_id = applications[0].id if applications else None
    if application_id:
        await store.update_application_fields(application_id, {"cv_url": url})
        cache.invalidate(cache_keys.after_application_edit(application_id))
    await store.update_applicant(applicant_id, {"cv_url": url})
    cache.invalidate(cache_keys.after_applicant_edit(applicant_id))

    logger.info("CV uploaded for applicant %s (application %s)", applicant_id, application_id)
    return {
        "message": "CV uploaded successfully",
        "cv_url": url,
        "application_id": application_id,
        "size_kb": round(len(contents) / 1024, 2),
    }
