# ========================================
# recruitdesk/schemas/applicant.py
# ========================================

import json
from datetime import datetime
from typing import Any, List, Literal, Optional

from pydantic import BaseModel, EmailStr, Field, field_validator


def decode_json_list(value: Any) -> list:
    """Normalize a list field that may be stored as a JSON-encoded string.

    Anything that does not decode to a list becomes an empty list.
    """
    if value is None:
        return []
    if isinstance(value, list):
        return value
    if isinstance(value, str):
        try:
            decoded = json.loads(value)
        except ValueError:
            return []
        return decoded if isinstance(decoded, list) else []
    return []


# 1. Nested profile records
class EducationEntry(BaseModel):
    degree: Optional[str] = None
    school: Optional[str] = None
    field: Optional[str] = None
    year: Optional[str] = None

    @field_validator("year", mode="before")
    @classmethod
    def year_as_text(cls, value):
        return str(value) if value is not None else None


class ExperienceEntry(BaseModel):
    title: Optional[str] = None
    company: Optional[str] = None
    duration: Optional[str] = None
    description: Optional[str] = None


class ProfileListsMixin(BaseModel):
    """Skills, education and experience decoded once at the boundary."""

    skills: List[str] = []
    education: List[EducationEntry] = []
    experience: List[ExperienceEntry] = []

    @field_validator("skills", mode="before")
    @classmethod
    def decode_skills(cls, value):
        return [str(skill) for skill in decode_json_list(value) if skill is not None]

    @field_validator("education", "experience", mode="before")
    @classmethod
    def decode_records(cls, value):
        return [record for record in decode_json_list(value) if isinstance(record, dict)]


# 2. Output: Full applicant profile
class ApplicantResponse(ProfileListsMixin):
    id: str
    full_name: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    gender: Optional[str] = None
    wilaya: Optional[str] = None
    age: Optional[int] = None
    rating: Optional[int] = None
    avatar_url: Optional[str] = None
    cv_url: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# 3. Output: Row of the candidate browser
class ApplicantSummary(BaseModel):
    id: str
    full_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    gender: Optional[str] = None
    wilaya: Optional[str] = None
    age: Optional[int] = None
    rating: Optional[int] = None
    avatar_url: Optional[str] = None
    skills: List[str] = []
    total_applications: int = 0

    @field_validator("skills", mode="before")
    @classmethod
    def decode_skills(cls, value):
        return [str(skill) for skill in decode_json_list(value) if skill is not None]


# 4. Input: Manual entry
class ApplicantCreate(BaseModel):
    full_name: str = Field(..., min_length=1)
    email: EmailStr
    phone: Optional[str] = None
    address: Optional[str] = None
    gender: Optional[Literal["male", "female"]] = None
    wilaya: Optional[str] = None
    age: Optional[int] = Field(None, ge=0, le=120)
    skills: List[str] = []
    education: List[EducationEntry] = []
    experience: List[ExperienceEntry] = []


# 5. Input: Profile edit
class ApplicantUpdate(BaseModel):
    full_name: Optional[str] = None
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    gender: Optional[Literal["male", "female"]] = None
    wilaya: Optional[str] = None
    age: Optional[int] = Field(None, ge=0, le=120)
    skills: Optional[List[str]] = None
    education: Optional[List[EducationEntry]] = None
    experience: Optional[List[ExperienceEntry]] = None


# 6. Input: Star rating
class ApplicantRatingUpdate(BaseModel):
    rating: int = Field(..., ge=1, le=5)
