"""
In-memory filtering for the applications and applicants screens.

Lists are fetched once (and cached); narrowing them by the filter bar happens
here so that changing a filter never triggers another backend request.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Iterable, List, Optional, Sequence

from pydantic import BaseModel, Field

ALL = "all"


class ApplicationFilters(BaseModel):
    """Filter bar state; unset fields do not constrain the result."""

    status: Optional[str] = None
    search: Optional[str] = None
    job_id: Optional[str] = None
    gender: Optional[str] = None
    wilaya: Optional[str] = None
    min_rating: int = Field(0, ge=0, le=5)
    min_age: Optional[int] = Field(None, ge=0)
    max_age: Optional[int] = Field(None, ge=0)
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None

    def is_empty(self) -> bool:
        return (
            (not self.status or self.status == ALL)
            and not self.search
            and not self.job_id
            and not self.gender
            and not self.wilaya
            and self.min_rating <= 0
            and self.min_age is None
            and self.max_age is None
            and self.date_from is None
            and self.date_to is None
        )


def _field(obj: Any, name: str) -> Any:
    if obj is None:
        return None
    if isinstance(obj, dict):
        return obj.get(name)
    return getattr(obj, name, None)


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def get_person_display_name(person: Any) -> str:
    full = (_field(person, "full_name") or "").strip()
    if full:
        return full

    first = (_field(person, "first_name") or "").strip()
    last = (_field(person, "last_name") or "").strip()
    combined = f"{first} {last}".strip()
    if combined:
        return combined

    return "Unknown"


def get_person_initials(person: Any) -> str:
    parts = get_person_display_name(person).split()
    initials = "".join(part[0] for part in parts[:2])
    return (initials or "??").upper()


def _contains(haystack: Optional[str], needle: str) -> bool:
    return bool(haystack) and needle in haystack.lower()


def _matches(application: Any, criteria: ApplicationFilters) -> bool:
    applicant = _field(application, "applicant")
    job = _field(application, "job")

    if criteria.status and criteria.status != ALL:
        if _field(application, "status") != criteria.status:
            return False

    if criteria.search:
        needle = criteria.search.lower()
        if not (
            needle in get_person_display_name(applicant).lower()
            or _contains(_field(applicant, "email"), needle)
            or _contains(_field(job, "title"), needle)
        ):
            return False

    if criteria.job_id:
        job_id = _field(job, "id") or _field(application, "job_id")
        if job_id != criteria.job_id:
            return False

    if criteria.gender and _field(applicant, "gender") != criteria.gender:
        return False

    if criteria.wilaya and _field(applicant, "wilaya") != criteria.wilaya:
        return False

    if criteria.min_rating > 0:
        rating = _field(applicant, "rating")
        if rating is None or rating < criteria.min_rating:
            return False

    if criteria.min_age is not None or criteria.max_age is not None:
        age = _field(applicant, "age")
        if age is None:
            return False
        if criteria.min_age is not None and age < criteria.min_age:
            return False
        if criteria.max_age is not None and age > criteria.max_age:
            return False

    if criteria.date_from is not None or criteria.date_to is not None:
        applied_at = _as_utc(_field(application, "applied_at"))
        if applied_at is None:
            return False
        if criteria.date_from is not None and applied_at < _as_utc(criteria.date_from):
            return False
        if criteria.date_to is not None and applied_at > _as_utc(criteria.date_to):
            return False

    return True


def filter_applications(
    applications: Sequence[Any], criteria: Optional[ApplicationFilters] = None
) -> List[Any]:
    """Return the applications matching every supplied criterion, in input order."""
    if criteria is None or criteria.is_empty():
        return list(applications)
    return [application for application in applications if _matches(application, criteria)]


def filter_applicants(
    applicants: Sequence[Any],
    search: Optional[str] = None,
    skill: Optional[str] = None,
    wilaya: Optional[str] = None,
) -> List[Any]:
    """Filter for the candidate browser (name/email search, skill, wilaya)."""
    needle = (search or "").lower()
    result = []
    for applicant in applicants:
        if needle and not (
            needle in get_person_display_name(applicant).lower()
            or _contains(_field(applicant, "email"), needle)
        ):
            continue
        if skill and skill != ALL and skill not in (_field(applicant, "skills") or []):
            continue
        if wilaya and wilaya != ALL and _field(applicant, "wilaya") != wilaya:
            continue
        result.append(applicant)
    return result


def distinct_wilayas(applications: Iterable[Any]) -> List[str]:
    wilayas = {_field(_field(app, "applicant"), "wilaya") for app in applications}
    return sorted(w for w in wilayas if w)


def distinct_skills(applicants: Iterable[Any]) -> List[str]:
    skills = set()
    for applicant in applicants:
        skills.update(_field(applicant, "skills") or [])
    return sorted(skills)


def upcoming_interviews(applications: Iterable[Any], now: datetime, days: int = 7) -> List[Any]:
    """Interviews scheduled between ``now`` and ``days`` days ahead, soonest first."""
    start = _as_utc(now)
    end = start + timedelta(days=days)
    upcoming = []
    for app in applications:
        when = _as_utc(_field(app, "interview_date"))
        if when is not None and start <= when <= end:
            upcoming.append((when, app))
    upcoming.sort(key=lambda item: item[0])
    return [app for _, app in upcoming]
