"""
Data access for the dashboard.

``RecruitmentStore`` is the only place that talks to MongoDB. Reads return
typed schema objects (so JSON-ish list fields are decoded exactly once) and
writes take plain dicts of already validated fields.
"""

import io
import logging
import re
from collections import Counter
from datetime import datetime, timedelta, timezone
from typing import Dict, Iterable, List, Optional, Sequence

from bson import ObjectId
from gridfs.errors import NoFile

from recruitdesk.errors import InvalidInput, RecordNotFound
from recruitdesk.recruitment import APPLICATION_STATUSES
from recruitdesk.schemas.applicant import ApplicantResponse, ApplicantSummary
from recruitdesk.schemas.application import ApplicationRecord, RecentApplication
from recruitdesk.schemas.dashboard import DashboardStats, StatusSlice, TimelinePoint
from recruitdesk.schemas.job import (
    JobDemographics,
    JobResponse,
    JobTitle,
    JobWithCounts,
    JobWithStats,
)
from recruitdesk.filters import get_person_display_name

logger = logging.getLogger(__name__)

APPLICATION_FIELDS = frozenset({
    "status",
    "cv_url",
    "cover_letter",
    "hr_notes",
    "screening_notes",
    "interview_date",
    "interview_notes",
    "technical_score",
    "proposed_salary",
    "offer_status",
    "final_notes",
})

APPLICANT_FIELDS = frozenset({
    "full_name",
    "first_name",
    "last_name",
    "email",
    "phone",
    "address",
    "gender",
    "wilaya",
    "age",
    "skills",
    "education",
    "experience",
    "rating",
    "avatar_url",
    "cv_url",
})

JOB_FIELDS = frozenset({
    "title",
    "description",
    "location",
    "job_type",
    "salary_range",
    "status",
    "deadline",
    "image_url",
    "max_applicants",
})

REQUIRED_JOB_FIELDS = ("title", "location")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_object_id(value: str, label: str = "ID") -> ObjectId:
    if not isinstance(value, str) or not ObjectId.is_valid(value):
        raise InvalidInput(f"Invalid {label}")
    return ObjectId(value)


def _object_ids(values: Iterable[Optional[str]]) -> List[ObjectId]:
    return [ObjectId(v) for v in set(values) if isinstance(v, str) and ObjectId.is_valid(v)]


def serialize(doc: dict) -> dict:
    """Copy a Mongo document, exposing ``_id`` as a string ``id``."""
    data = {k: v for k, v in doc.items() if k != "_id"}
    data["id"] = str(doc["_id"])
    return data


def _ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _restrict(fields: dict, allowed: frozenset, kind: str) -> dict:
    unknown = sorted(set(fields) - allowed)
    if unknown:
        raise InvalidInput(f"Unknown {kind} fields: {', '.join(unknown)}")
    return dict(fields)


# ===========================
# QUERY BUILDERS
# ===========================

def build_applicant_query(
    search_term: Optional[str] = None,
    gender: Optional[str] = None,
    wilaya: Optional[str] = None,
    min_age: Optional[int] = None,
    max_age: Optional[int] = None,
    min_rating: Optional[int] = None,
) -> dict:
    query: dict = {}

    if search_term:
        pattern = {"$regex": re.escape(search_term), "$options": "i"}
        query["$or"] = [
            {"full_name": pattern},
            {"first_name": pattern},
            {"last_name": pattern},
            {"email": pattern},
        ]

    if gender:
        query["gender"] = gender

    if wilaya:
        query["wilaya"] = wilaya

    age: dict = {}
    if min_age is not None:
        age["$gte"] = min_age
    if max_age is not None:
        age["$lte"] = max_age
    if age:
        query["age"] = age

    if min_rating:
        query["rating"] = {"$gte": min_rating}

    return query


def period_starts(now: datetime):
    """Start of today, of the current ISO week (Monday) and of the month."""
    today = now.replace(hour=0, minute=0, second=0, microsecond=0)
    week = today - timedelta(days=today.weekday())
    month = today.replace(day=1)
    return today, week, month


def bucket_by_day(timestamps: Iterable[datetime], days: int, now: datetime) -> List[TimelinePoint]:
    """Count timestamps per calendar day for the last ``days`` days, oldest first."""
    today = now.date()
    labels = [(today - timedelta(days=offset)).isoformat() for offset in range(days - 1, -1, -1)]
    counts = Counter(_ensure_utc(ts).astimezone(now.tzinfo or timezone.utc).date().isoformat() for ts in timestamps if ts)
    return [TimelinePoint(date=label, count=counts.get(label, 0)) for label in labels]


def summarize_demographics(job_id: str, applicants: Sequence[dict]) -> JobDemographics:
    genders = Counter(a.get("gender") for a in applicants)
    ages = [a["age"] for a in applicants if isinstance(a.get("age"), (int, float))]
    wilayas = Counter(a["wilaya"] for a in applicants if a.get("wilaya"))

    top_wilaya = None
    if wilayas:
        # ties go to the alphabetically first wilaya
        top_wilaya = sorted(wilayas.items(), key=lambda item: (-item[1], item[0]))[0][0]

    return JobDemographics(
        job_id=job_id,
        total_applicants=len(applicants),
        male_count=genders.get("male", 0),
        female_count=genders.get("female", 0),
        avg_age=round(sum(ages) / len(ages), 1) if ages else None,
        top_wilaya=top_wilaya,
        wilaya_distribution=dict(sorted(wilayas.items())),
    )


class RecruitmentStore:
    def __init__(self, db, buckets: Optional[Dict[str, object]] = None, public_base_url: str = ""):
        self.db = db
        self.buckets = buckets or {}
        self.public_base_url = public_base_url.rstrip("/")

    # ===========================
    # JOINS
    # ===========================

    async def _jobs_by_id(self, job_ids: Iterable[Optional[str]]) -> Dict[str, dict]:
        ids = _object_ids(job_ids)
        if not ids:
            return {}
        jobs = await self.db.jobs.find({"_id": {"$in": ids}}, {"title": 1, "location": 1}).to_list(None)
        return {str(job["_id"]): serialize(job) for job in jobs}

    async def _applicants_by_id(self, applicant_ids: Iterable[Optional[str]]) -> Dict[str, dict]:
        ids = _object_ids(applicant_ids)
        if not ids:
            return {}
        applicants = await self.db.applicants.find({"_id": {"$in": ids}}).to_list(None)
        return {str(a["_id"]): serialize(a) for a in applicants}

    async def _join_applications(self, docs: List[dict]) -> List[ApplicationRecord]:
        jobs = await self._jobs_by_id(d.get("job_id") for d in docs)
        applicants = await self._applicants_by_id(d.get("applicant_id") for d in docs)

        records = []
        for doc in docs:
            data = serialize(doc)
            data["job"] = jobs.get(doc.get("job_id"))
            data["applicant"] = applicants.get(doc.get("applicant_id"))
            records.append(ApplicationRecord.model_validate(data))
        return records

    async def _count_by(self, collection, field: str, match: Optional[dict] = None) -> Dict[str, int]:
        pipeline = []
        if match:
            pipeline.append({"$match": match})
        pipeline.append({"$group": {"_id": f"${field}", "count": {"$sum": 1}}})
        rows = await collection.aggregate(pipeline).to_list(None)
        return {row["_id"]: row["count"] for row in rows}

    # ===========================
    # APPLICATIONS
    # ===========================

    async def list_applications(
        self, status: Optional[str] = None, job_id: Optional[str] = None
    ) -> List[ApplicationRecord]:
        query = {}
        if status:
            query["status"] = status
        if job_id:
            query["job_id"] = job_id

        docs = await self.db.applications.find(query).sort("applied_at", -1).to_list(None)
        return await self._join_applications(docs)

    async def get_application(self, application_id: str) -> ApplicationRecord:
        oid = parse_object_id(application_id, "application ID")
        doc = await self.db.applications.find_one({"_id": oid})
        if not doc:
            raise RecordNotFound("Application not found")
        return (await self._join_applications([doc]))[0]

    async def update_application_status(self, application_id: str, new_status: str) -> dict:
        if new_status not in APPLICATION_STATUSES:
            return {"success": False, "message": f"Invalid status: {new_status}"}
        if not ObjectId.is_valid(application_id):
            return {"success": False, "message": "Application not found"}

        result = await self.db.applications.update_one(
            {"_id": ObjectId(application_id)},
            {"$set": {"status": new_status, "updated_at": utcnow()}},
        )
        if result.matched_count == 0:
            return {"success": False, "message": "Application not found"}

        logger.info("Application %s moved to %s", application_id, new_status)
        return {"success": True, "message": f"Application marked as {new_status}"}

    async def bulk_update_application_status(self, application_ids: Sequence[str], new_status: str) -> dict:
        if new_status not in APPLICATION_STATUSES:
            return {"success": False, "message": f"Invalid status: {new_status}", "updated_count": 0}

        valid_ids = _object_ids(application_ids)
        if len(valid_ids) != len(set(application_ids)):
            return {"success": False, "message": "Some application IDs are invalid", "updated_count": 0}

        result = await self.db.applications.update_many(
            {"_id": {"$in": valid_ids}},
            {"$set": {"status": new_status, "updated_at": utcnow()}},
        )
        logger.info("Bulk status update to %s: %d applications", new_status, result.modified_count)
        return {
            "success": True,
            "message": f"Successfully updated {result.modified_count} applications",
            "updated_count": result.modified_count,
        }

    async def update_application_fields(self, application_id: str, fields: dict) -> None:
        oid = parse_object_id(application_id, "application ID")
        updates = _restrict(fields, APPLICATION_FIELDS, "application")
        if not updates:
            raise InvalidInput("No fields to update")
        if "status" in updates and updates["status"] not in APPLICATION_STATUSES:
            raise InvalidInput(f"Invalid status: {updates['status']}")

        updates["updated_at"] = utcnow()
        result = await self.db.applications.update_one({"_id": oid}, {"$set": updates})
        if result.matched_count == 0:
            raise RecordNotFound("Application not found")
        logger.info("Application %s updated: %s", application_id, ", ".join(sorted(fields)))

    async def list_interview_schedule(self) -> List[ApplicationRecord]:
        docs = await self.db.applications.find(
            {"interview_date": {"$ne": None}}
        ).sort("interview_date", 1).to_list(None)
        return await self._join_applications(docs)

    async def list_recent_applications(self, limit: int = 5) -> List[RecentApplication]:
        docs = await self.db.applications.find().sort("applied_at", -1).limit(limit).to_list(limit)
        records = await self._join_applications(docs)
        return [
            RecentApplication(
                application_id=record.id,
                applicant_id=record.applicant_id,
                applicant_name=get_person_display_name(record.applicant),
                applicant_email=record.applicant.email if record.applicant else None,
                applicant_avatar_url=record.applicant.avatar_url if record.applicant else None,
                job_id=record.job_id,
                job_title=record.job.title if record.job else None,
                status=record.status,
                applied_at=record.applied_at,
            )
            for record in records
        ]

    # ===========================
    # APPLICANTS
    # ===========================

    async def list_applicants(
        self,
        search_term: Optional[str] = None,
        gender: Optional[str] = None,
        wilaya: Optional[str] = None,
        min_age: Optional[int] = None,
        max_age: Optional[int] = None,
        min_rating: Optional[int] = None,
    ) -> List[ApplicantSummary]:
        query = build_applicant_query(search_term, gender, wilaya, min_age, max_age, min_rating)
        docs = await self.db.applicants.find(query).sort("created_at", -1).to_list(None)

        ids = [str(doc["_id"]) for doc in docs]
        counts = await self._count_by(self.db.applications, "applicant_id", {"applicant_id": {"$in": ids}}) if ids else {}

        result = []
        for doc in docs:
            data = serialize(doc)
            data["full_name"] = get_person_display_name(doc)
            data["total_applications"] = counts.get(data["id"], 0)
            result.append(ApplicantSummary.model_validate(data))
        return result

    async def get_applicant(self, applicant_id: str) -> ApplicantResponse:
        oid = parse_object_id(applicant_id, "applicant ID")
        doc = await self.db.applicants.find_one({"_id": oid})
        if not doc:
            raise RecordNotFound("Applicant not found")
        return ApplicantResponse.model_validate(serialize(doc))

    async def create_applicant(self, fields: dict) -> ApplicantResponse:
        doc = _restrict(fields, APPLICANT_FIELDS, "applicant")
        now = utcnow()
        doc.update({"created_at": now, "updated_at": now})
        result = await self.db.applicants.insert_one(doc)
        logger.info("Applicant %s created", result.inserted_id)
        return ApplicantResponse.model_validate({**doc, "id": str(result.inserted_id)})

    async def update_applicant(self, applicant_id: str, fields: dict) -> None:
        oid = parse_object_id(applicant_id, "applicant ID")
        updates = _restrict(fields, APPLICANT_FIELDS, "applicant")
        if not updates:
            raise InvalidInput("No fields to update")

        updates["updated_at"] = utcnow()
        result = await self.db.applicants.update_one({"_id": oid}, {"$set": updates})
        if result.matched_count == 0:
            raise RecordNotFound("Applicant not found")
        logger.info("Applicant %s updated: %s", applicant_id, ", ".join(sorted(fields)))

    async def update_applicant_rating(self, applicant_id: str, rating: int) -> None:
        if not isinstance(rating, int) or not 1 <= rating <= 5:
            raise InvalidInput("Rating must be between 1 and 5")
        await self.update_applicant(applicant_id, {"rating": rating})

    async def list_applicant_applications(self, applicant_id: str) -> List[ApplicationRecord]:
        parse_object_id(applicant_id, "applicant ID")
        docs = await self.db.applications.find(
            {"applicant_id": applicant_id}
        ).sort("applied_at", -1).to_list(None)
        return await self._join_applications(docs)

    # ===========================
    # JOBS
    # ===========================

    async def list_jobs(self) -> List[JobWithCounts]:
        docs = await self.db.jobs.find().sort("created_at", -1).to_list(None)
        counts = await self._count_by(self.db.applications, "job_id")
        now = utcnow()

        result = []
        for doc in docs:
            data = serialize(doc)
            deadline = _ensure_utc(doc.get("deadline"))
            data["total_applications"] = counts.get(data["id"], 0)
            data["is_deadline_passed"] = bool(deadline and deadline < now)
            result.append(JobWithCounts.model_validate(data))
        return result

    async def list_job_titles(self) -> List[JobTitle]:
        docs = await self.db.jobs.find({}, {"title": 1}).sort("title", 1).to_list(None)
        return [JobTitle(id=str(doc["_id"]), title=doc.get("title", "")) for doc in docs]

    async def _get_job_doc(self, job_id: str) -> dict:
        oid = parse_object_id(job_id, "job ID")
        doc = await self.db.jobs.find_one({"_id": oid})
        if not doc:
            raise RecordNotFound("Job not found")
        return doc

    async def get_job_with_stats(self, job_id: str) -> JobWithStats:
        doc = await self._get_job_doc(job_id)
        counts = await self._count_by(self.db.applications, "status", {"job_id": job_id})
        deadline = _ensure_utc(doc.get("deadline"))

        data = serialize(doc)
        data["total_applications"] = sum(counts.values())
        data["is_deadline_passed"] = bool(deadline and deadline < utcnow())
        for status in APPLICATION_STATUSES:
            data[f"{status}_count"] = counts.get(status, 0)
        return JobWithStats.model_validate(data)

    async def get_job_demographics(self, job_id: str) -> JobDemographics:
        await self._get_job_doc(job_id)
        applicant_ids = await self.db.applications.distinct("applicant_id", {"job_id": job_id})
        applicants = await self._applicants_by_id(applicant_ids)
        return summarize_demographics(job_id, list(applicants.values()))

    async def create_job(self, fields: dict) -> JobResponse:
        doc = _restrict(fields, JOB_FIELDS, "job")
        now = utcnow()
        doc.update({"created_at": now, "updated_at": now})
        result = await self.db.jobs.insert_one(doc)
        logger.info("Job %s created: %s", result.inserted_id, doc.get("title"))
        return JobResponse.model_validate({**doc, "id": str(result.inserted_id)})

    async def update_job(self, job_id: str, fields: dict) -> JobResponse:
        oid = parse_object_id(job_id, "job ID")
        updates = _restrict(fields, JOB_FIELDS, "job")
        if not updates:
            raise InvalidInput("No fields to update")
        for required in REQUIRED_JOB_FIELDS:
            if required in updates and not str(updates[required] or "").strip():
                raise InvalidInput(f"Job {required} is required")

        updates["updated_at"] = utcnow()
        result = await self.db.jobs.update_one({"_id": oid}, {"$set": updates})
        if result.matched_count == 0:
            raise RecordNotFound("Job not found")

        logger.info("Job %s updated: %s", job_id, ", ".join(sorted(fields)))
        return JobResponse.model_validate(serialize(await self.db.jobs.find_one({"_id": oid})))

    async def delete_job(self, job_id: str) -> int:
        """Delete a job and its applications; returns the number of applications removed."""
        oid = parse_object_id(job_id, "job ID")
        result = await self.db.jobs.delete_one({"_id": oid})
        if result.deleted_count == 0:
            raise RecordNotFound("Job not found")

        cascade = await self.db.applications.delete_many({"job_id": job_id})
        logger.info("Job %s deleted with %d applications", job_id, cascade.deleted_count)
        return cascade.deleted_count

    # ===========================
    # DASHBOARD
    # ===========================

    async def get_dashboard_stats(self, now: Optional[datetime] = None) -> DashboardStats:
        now = now or utcnow()
        today, week_start, month_start = period_starts(now)
        by_status = await self._count_by(self.db.applications, "status")

        return DashboardStats(
            total_jobs=await self.db.jobs.count_documents({}),
            open_jobs=await self.db.jobs.count_documents({"status": "open"}),
            closed_jobs=await self.db.jobs.count_documents({"status": "closed"}),
            total_applicants=await self.db.applicants.count_documents({}),
            total_applications=sum(by_status.values()),
            pending_applications=by_status.get("pending", 0),
            reviewing_applications=by_status.get("reviewing", 0),
            shortlisted_applications=by_status.get("shortlisted", 0),
            offered_applications=by_status.get("offered", 0),
            accepted_applications=by_status.get("accepted", 0),
            rejected_applications=by_status.get("rejected", 0),
            applications_today=await self.db.applications.count_documents({"applied_at": {"$gte": today}}),
            applications_this_week=await self.db.applications.count_documents({"applied_at": {"$gte": week_start}}),
            applications_this_month=await self.db.applications.count_documents({"applied_at": {"$gte": month_start}}),
        )

    async def get_status_distribution(self) -> List[StatusSlice]:
        counts = await self._count_by(self.db.applications, "status")
        return [StatusSlice(name=status, value=counts.get(status, 0)) for status in APPLICATION_STATUSES]

    async def get_applications_timeline(self, days: int = 7, now: Optional[datetime] = None) -> List[TimelinePoint]:
        now = now or utcnow()
        start = now.replace(hour=0, minute=0, second=0, microsecond=0) - timedelta(days=days - 1)
        docs = await self.db.applications.find(
            {"applied_at": {"$gte": start}}, {"applied_at": 1}
        ).to_list(None)
        return bucket_by_day((doc.get("applied_at") for doc in docs), days, now)

    # ===========================
    # FILES
    # ===========================

    def _bucket(self, bucket: str):
        if bucket not in self.buckets:
            raise InvalidInput(f"Unknown storage bucket: {bucket}")
        return self.buckets[bucket]

    def public_url(self, bucket: str, path: str) -> str:
        return f"{self.public_base_url}/files/{bucket}/{path}"

    async def upload_file(self, bucket: str, path: str, data: bytes, content_type: str) -> str:
        fs = self._bucket(bucket)
        await fs.upload_from_stream(
            path,
            io.BytesIO(data),
            metadata={"content_type": content_type, "size": len(data), "uploaded_at": utcnow()},
        )
        logger.info("Stored %s/%s (%d bytes)", bucket, path, len(data))
        return self.public_url(bucket, path)

    async def open_file(self, bucket: str, path: str):
        """Return ``(contents, content_type)`` of the latest revision of ``path``."""
        fs = self._bucket(bucket)
        try:
            grid_out = await fs.open_download_stream_by_name(path)
        except NoFile:
            raise RecordNotFound("File not found")
        contents = await grid_out.read()
        metadata = grid_out.metadata or {}
        return contents, metadata.get("content_type", "application/octet-stream")

    # ===========================
    # USERS & ROLES
    # ===========================

    async def check_role(self, user_id: str, role: str) -> bool:
        return await self.db.user_roles.find_one({"user_id": str(user_id), "role": role}) is not None

    async def list_roles(self, user_id: str) -> List[str]:
        rows = await self.db.user_roles.find({"user_id": str(user_id)}).to_list(None)
        return sorted(row["role"] for row in rows)

    async def get_user_by_email(self, email: str) -> Optional[dict]:
        return await self.db.users.find_one({"email": email})

    async def update_password_hash(self, user_id: str, hashed_password: str) -> None:
        await self.db.users.update_one(
            {"_id": parse_object_id(user_id, "user")},
            {"$set": {"password": hashed_password}},
        )

    async def create_user(self, name: str, email: str, hashed_password: str, role: str = "user") -> dict:
        if await self.db.users.find_one({"email": email}):
            raise InvalidInput("Email already registered")

        user = {"name": name, "email": email, "password": hashed_password, "created_at": utcnow()}
        result = await self.db.users.insert_one(user)
        user_id = str(result.inserted_id)
        await self.db.user_roles.insert_one({"user_id": user_id, "role": role})

        logger.info("User %s created with role %s", user_id, role)
        return {"id": user_id, "name": name, "email": email, "roles": [role]}
