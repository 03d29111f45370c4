"""
Pytest configuration and shared fixtures.

Routes talk to the store through ``get_store``; the tests swap it for an
in-memory ``FakeStore`` exposing the same coroutine methods, so no MongoDB
is needed. Store-level tests run ``RecruitmentStore`` against ``FakeDatabase``,
a dict-backed double of the Motor collections it uses.
"""

import re
from collections import Counter
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest
from bson import ObjectId
from fastapi.testclient import TestClient

from recruitdesk.cache import QueryCache
from recruitdesk.database import get_store
from recruitdesk.errors import InvalidInput, RecordNotFound
from recruitdesk.main import app
from recruitdesk.recruitment import APPLICATION_STATUSES
from recruitdesk.schemas.applicant import ApplicantResponse, ApplicantSummary
from recruitdesk.schemas.application import ApplicationRecord
from recruitdesk.schemas.dashboard import StatusSlice
from recruitdesk.schemas.job import JobResponse, JobTitle, JobWithCounts
from recruitdesk.store import RecruitmentStore, summarize_demographics
from recruitdesk.utils.auth import get_current_user

NOW = datetime(2024, 3, 14, 10, 0, tzinfo=timezone.utc)

TEST_USER = {"_id": "u-1", "name": "Sara HR", "email": "sara@recruitdesk.io", "password": "x"}


def make_applicant(applicant_id, full_name, **fields):
    doc = {
        "id": applicant_id,
        "full_name": full_name,
        "email": f"{applicant_id}@mail.test",
        "gender": "female",
        "wilaya": "Alger",
        "age": 28,
        "rating": 3,
        "skills": ["python"],
    }
    doc.update(fields)
    return doc


def make_application(application_id, applicant_id, job_id="job-1", status="pending", days_ago=0, **fields):
    doc = {
        "id": application_id,
        "applicant_id": applicant_id,
        "job_id": job_id,
        "status": status,
        "applied_at": NOW - timedelta(days=days_ago),
    }
    doc.update(fields)
    return doc


class FakeStore:
    """In-memory stand-in for RecruitmentStore."""

    def __init__(self):
        self.jobs = {
            "job-1": {"id": "job-1", "title": "Backend Developer", "location": "Alger", "status": "open"},
            "job-2": {"id": "job-2", "title": "Data Analyst", "location": "Oran", "status": "closed"},
        }
        self.applicants = {
            "a-1": make_applicant("a-1", "Amina Benali", rating=5, skills=["python", "sql"]),
            "a-2": make_applicant("a-2", "Karim Haddad", gender="male", wilaya="Oran", age=35, rating=2),
            "a-3": make_applicant("a-3", None, first_name="Lina", last_name="Saidi", wilaya="Blida", age=24),
        }
        self.applications = {
            "app-1": make_application("app-1", "a-1", status="pending", days_ago=0),
            "app-2": make_application("app-2", "a-2", status="shortlisted", days_ago=1,
                                      interview_date=NOW + timedelta(days=2)),
            "app-3": make_application("app-3", "a-3", job_id="job-2", status="offered", days_ago=3),
        }
        self.files = {}
        self.users = {TEST_USER["email"]: dict(TEST_USER)}
        self.roles = {"u-1": ["user"]}
        self.calls = Counter()
        self.writes = []

    # Applications

    def _record(self, doc):
        data = dict(doc)
        data["job"] = self.jobs.get(doc.get("job_id"))
        data["applicant"] = self.applicants.get(doc.get("applicant_id"))
        return ApplicationRecord.model_validate(data)

    async def list_applications(self, status=None, job_id=None):
        self.calls["list_applications"] += 1
        docs = sorted(self.applications.values(), key=lambda d: d["applied_at"], reverse=True)
        return [self._record(d) for d in docs]

    async def get_application(self, application_id):
        self.calls["get_application"] += 1
        if application_id not in self.applications:
            raise RecordNotFound("Application not found")
        return self._record(self.applications[application_id])

    async def update_application_status(self, application_id, new_status):
        if new_status not in APPLICATION_STATUSES:
            return {"success": False, "message": f"Invalid status: {new_status}"}
        if application_id not in self.applications:
            return {"success": False, "message": "Application not found"}
        self.applications[application_id]["status"] = new_status
        return {"success": True, "message": f"Application marked as {new_status}"}

    async def bulk_update_application_status(self, application_ids, new_status):
        if any(app_id not in self.applications for app_id in application_ids):
            return {"success": False, "message": "Some application IDs are invalid"}
        for app_id in application_ids:
            self.applications[app_id]["status"] = new_status
        return {
            "success": True,
            "message": f"{len(application_ids)} applications marked as {new_status}",
            "updated_count": len(application_ids),
        }

    async def update_application_fields(self, application_id, fields):
        if not fields:
            raise InvalidInput("No fields to update")
        if application_id not in self.applications:
            raise RecordNotFound("Application not found")
        self.writes.append((application_id, dict(fields)))
        self.applications[application_id].update(fields)

    async def list_interview_schedule(self):
        docs = [d for d in self.applications.values() if d.get("interview_date")]
        return [self._record(d) for d in sorted(docs, key=lambda d: d["interview_date"])]

    async def list_recent_applications(self, limit=5):
        return []

    # Applicants

    async def list_applicants(self, search_term=None, gender=None, wilaya=None,
                              min_age=None, max_age=None, min_rating=None):
        self.calls["list_applicants"] += 1
        result = []
        for doc in self.applicants.values():
            if gender and doc.get("gender") != gender:
                continue
            if wilaya and doc.get("wilaya") != wilaya:
                continue
            total = sum(1 for a in self.applications.values() if a["applicant_id"] == doc["id"])
            result.append(ApplicantSummary.model_validate({**doc, "total_applications": total}))
        return result

    async def get_applicant(self, applicant_id):
        if applicant_id not in self.applicants:
            raise RecordNotFound("Applicant not found")
        return ApplicantResponse.model_validate(self.applicants[applicant_id])

    async def create_applicant(self, fields):
        applicant_id = f"a-{len(self.applicants) + 1}"
        self.applicants[applicant_id] = {**fields, "id": applicant_id}
        return ApplicantResponse.model_validate(self.applicants[applicant_id])

    async def update_applicant(self, applicant_id, fields):
        if applicant_id not in self.applicants:
            raise RecordNotFound("Applicant not found")
        self.applicants[applicant_id].update(fields)

    async def update_applicant_rating(self, applicant_id, rating):
        await self.update_applicant(applicant_id, {"rating": rating})

    async def list_applicant_applications(self, applicant_id):
        docs = [d for d in self.applications.values() if d["applicant_id"] == applicant_id]
        docs.sort(key=lambda d: d["applied_at"], reverse=True)
        return [self._record(d) for d in docs]

    # Jobs

    async def list_jobs(self):
        self.calls["list_jobs"] += 1
        counts = Counter(a["job_id"] for a in self.applications.values())
        return [
            JobWithCounts.model_validate({**job, "total_applications": counts.get(job_id, 0)})
            for job_id, job in self.jobs.items()
        ]

    async def list_job_titles(self):
        return [JobTitle(id=job["id"], title=job["title"]) for job in self.jobs.values()]

    async def get_job_demographics(self, job_id):
        if job_id not in self.jobs:
            raise RecordNotFound("Job not found")
        ids = {a["applicant_id"] for a in self.applications.values() if a["job_id"] == job_id}
        return summarize_demographics(job_id, [self.applicants[i] for i in sorted(ids)])

    async def create_job(self, fields):
        job_id = f"job-{len(self.jobs) + 1}"
        self.jobs[job_id] = {**fields, "id": job_id}
        return JobResponse.model_validate(self.jobs[job_id])

    async def update_job(self, job_id, fields):
        if job_id not in self.jobs:
            raise RecordNotFound("Job not found")
        self.jobs[job_id].update(fields)
        return JobResponse.model_validate(self.jobs[job_id])

    async def delete_job(self, job_id):
        if self.jobs.pop(job_id, None) is None:
            raise RecordNotFound("Job not found")
        removed = [k for k, a in self.applications.items() if a["job_id"] == job_id]
        for key in removed:
            del self.applications[key]
        return len(removed)

    # Dashboard

    async def get_status_distribution(self):
        counts = Counter(a["status"] for a in self.applications.values())
        return [StatusSlice(name=s, value=counts.get(s, 0)) for s in APPLICATION_STATUSES]

    # Files

    async def upload_file(self, bucket, path, data, content_type):
        self.files[(bucket, path)] = (data, content_type)
        return f"http://testserver/files/{bucket}/{path}"

    async def open_file(self, bucket, path):
        if (bucket, path) not in self.files:
            raise RecordNotFound("File not found")
        return self.files[(bucket, path)]

    # Users

    async def get_user_by_email(self, email):
        return self.users.get(email)

    async def check_role(self, user_id, role):
        return role in self.roles.get(str(user_id), [])

    async def list_roles(self, user_id):
        return sorted(self.roles.get(str(user_id), []))

    async def update_password_hash(self, user_id, hashed_password):
        self.calls["update_password_hash"] += 1
        for user in self.users.values():
            if user["_id"] == user_id:
                user["password"] = hashed_password

    async def create_user(self, name, email, hashed_password, role="user"):
        if email in self.users:
            raise InvalidInput("Email already registered")
        user_id = f"u-{len(self.users) + 1}"
        self.users[email] = {"_id": user_id, "name": name, "email": email, "password": hashed_password}
        self.roles[user_id] = [role]
        return {"id": user_id, "name": name, "email": email, "roles": [role]}


# In-memory Motor collections for exercising RecruitmentStore itself

def _matches_condition(value, condition):
    if not isinstance(condition, dict) or not any(str(k).startswith("$") for k in condition):
        return value == condition
    for op, arg in condition.items():
        if op == "$in" and value not in arg:
            return False
        if op == "$ne" and value == arg:
            return False
        if op == "$gte" and (value is None or value < arg):
            return False
        if op == "$lte" and (value is None or value > arg):
            return False
        if op == "$regex":
            flags = re.IGNORECASE if "i" in condition.get("$options", "") else 0
            if not isinstance(value, str) or not re.search(arg, value, flags):
                return False
    return True


def matches(doc, query):
    for key, condition in (query or {}).items():
        if key == "$or":
            if not any(matches(doc, branch) for branch in condition):
                return False
        elif not _matches_condition(doc.get(key), condition):
            return False
    return True


def _project(doc, projection):
    if not projection:
        return dict(doc)
    return {k: v for k, v in doc.items() if k == "_id" or projection.get(k)}


class FakeCursor:
    def __init__(self, docs):
        self.docs = docs

    def sort(self, key, direction=1):
        # missing values sort first ascending, last descending
        self.docs.sort(key=lambda d: (d.get(key) is not None, d.get(key)), reverse=direction < 0)
        return self

    def limit(self, n):
        self.docs = self.docs[:n]
        return self

    async def to_list(self, length=None):
        return list(self.docs if length is None else self.docs[:length])


class FakeCollection:
    def __init__(self):
        self.docs = []

    def _matching(self, query):
        return [d for d in self.docs if matches(d, query)]

    def find(self, query=None, projection=None):
        return FakeCursor([_project(d, projection) for d in self._matching(query)])

    async def find_one(self, query=None, projection=None):
        found = self._matching(query)
        return _project(found[0], projection) if found else None

    async def insert_one(self, doc):
        doc.setdefault("_id", ObjectId())
        self.docs.append(dict(doc))
        return SimpleNamespace(inserted_id=doc["_id"])

    async def update_one(self, query, update):
        found = self._matching(query)[:1]
        for doc in found:
            doc.update(update["$set"])
        return SimpleNamespace(matched_count=len(found), modified_count=len(found))

    async def update_many(self, query, update):
        found = self._matching(query)
        for doc in found:
            doc.update(update["$set"])
        return SimpleNamespace(matched_count=len(found), modified_count=len(found))

    async def delete_one(self, query):
        found = self._matching(query)[:1]
        for doc in found:
            self.docs.remove(doc)
        return SimpleNamespace(deleted_count=len(found))

    async def delete_many(self, query):
        found = self._matching(query)
        self.docs = [d for d in self.docs if not any(d is f for f in found)]
        return SimpleNamespace(deleted_count=len(found))

    async def count_documents(self, query):
        return len(self._matching(query))

    async def distinct(self, field, query=None):
        values = []
        for doc in self._matching(query):
            if doc.get(field) not in values:
                values.append(doc.get(field))
        return values

    def aggregate(self, pipeline):
        docs = self.docs
        rows = []
        for stage in pipeline:
            if "$match" in stage:
                docs = [d for d in docs if matches(d, stage["$match"])]
            elif "$group" in stage:
                field = stage["$group"]["_id"].lstrip("$")
                counts = Counter(d.get(field) for d in docs)
                rows = [{"_id": value, "count": count} for value, count in counts.items()]
        return FakeCursor(rows)


class FakeDatabase:
    def __init__(self):
        self.collections = {}

    def __getattr__(self, name):
        if name.startswith("_") or name == "collections":
            raise AttributeError(name)
        return self.collections.setdefault(name, FakeCollection())


@pytest.fixture
def mongo():
    return FakeDatabase()


@pytest.fixture
def mongo_store(mongo):
    return RecruitmentStore(mongo)


@pytest.fixture
def store():
    return FakeStore()


@pytest.fixture
def cache():
    return QueryCache(ttl_seconds=300)


@pytest.fixture
def client(store, cache):
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_current_user] = lambda: TEST_USER
    app.state.cache = cache
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def anonymous_client(store, cache):
    app.dependency_overrides[get_store] = lambda: store
    app.state.cache = cache
    yield TestClient(app)
    app.dependency_overrides.clear()
