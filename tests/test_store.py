"""
RecruitmentStore against the in-memory collections from conftest.
"""

from datetime import datetime, timedelta, timezone

import pytest
from bson import ObjectId

from recruitdesk.errors import InvalidInput, RecordNotFound

NOW = datetime(2024, 3, 14, 10, 0, tzinfo=timezone.utc)  # a Thursday

BACKEND = ObjectId()
ANALYST = ObjectId()
AMINA = ObjectId()
KARIM = ObjectId()


@pytest.fixture
async def seeded(mongo):
    await mongo.jobs.insert_one({"_id": BACKEND, "title": "Backend Developer", "location": "Alger",
                                 "status": "open", "created_at": NOW - timedelta(days=10)})
    await mongo.jobs.insert_one({"_id": ANALYST, "title": "Data Analyst", "location": "Oran",
                                 "status": "closed", "created_at": NOW - timedelta(days=5)})
    await mongo.applicants.insert_one({"_id": AMINA, "full_name": "Amina Benali", "gender": "female",
                                       "created_at": NOW - timedelta(days=9)})
    await mongo.applicants.insert_one({"_id": KARIM, "first_name": "Karim", "last_name": "Haddad",
                                       "gender": "male", "created_at": NOW - timedelta(days=2)})

    ids = {}
    for name, applicant, job, status, applied in [
        ("today", AMINA, BACKEND, "pending", NOW - timedelta(hours=1)),
        ("tuesday", KARIM, BACKEND, "shortlisted", datetime(2024, 3, 12, 15, 0, tzinfo=timezone.utc)),
        ("early_march", KARIM, ANALYST, "offered", datetime(2024, 3, 2, 9, 0, tzinfo=timezone.utc)),
        ("february", AMINA, ANALYST, "rejected", datetime(2024, 2, 20, 9, 0, tzinfo=timezone.utc)),
    ]:
        result = await mongo.applications.insert_one({
            "applicant_id": str(applicant),
            "job_id": str(job),
            "status": status,
            "applied_at": applied,
        })
        ids[name] = str(result.inserted_id)
    return ids


async def test_status_update_writes_and_reports_missing(mongo_store, mongo, seeded):
    result = await mongo_store.update_application_status(seeded["today"], "reviewing")
    assert result["success"] is True

    doc = await mongo.applications.find_one({"_id": ObjectId(seeded["today"])})
    assert doc["status"] == "reviewing"
    assert doc["updated_at"] is not None

    assert (await mongo_store.update_application_status(str(ObjectId()), "reviewing"))["success"] is False
    assert (await mongo_store.update_application_status(seeded["today"], "archived"))["success"] is False


async def test_field_write_keeps_earlier_stage_fields(mongo_store, mongo, seeded):
    app_id = seeded["tuesday"]
    await mongo_store.update_application_fields(app_id, {"interview_notes": "Solid", "technical_score": 8})
    await mongo_store.update_application_fields(app_id, {"status": "offered", "proposed_salary": "140000 DZD"})

    doc = await mongo.applications.find_one({"_id": ObjectId(app_id)})
    assert doc["status"] == "offered"
    assert doc["interview_notes"] == "Solid"
    assert doc["technical_score"] == 8
    assert doc["proposed_salary"] == "140000 DZD"


async def test_field_write_errors(mongo_store, mongo, seeded):
    app_id = seeded["today"]
    with pytest.raises(InvalidInput):
        await mongo_store.update_application_fields(app_id, {"salary": "x"})
    with pytest.raises(InvalidInput):
        await mongo_store.update_application_fields(app_id, {"status": "archived"})
    with pytest.raises(InvalidInput):
        await mongo_store.update_application_fields("not-an-id", {"hr_notes": "x"})
    with pytest.raises(RecordNotFound):
        await mongo_store.update_application_fields(str(ObjectId()), {"hr_notes": "x"})

    doc = await mongo.applications.find_one({"_id": ObjectId(app_id)})
    assert doc["status"] == "pending"
    assert "salary" not in doc


async def test_list_applications_joins_newest_first(mongo_store, seeded):
    records = await mongo_store.list_applications()
    assert [r.id for r in records] == [seeded["today"], seeded["tuesday"], seeded["early_march"], seeded["february"]]
    assert records[0].job.title == "Backend Developer"
    assert records[0].applicant.full_name == "Amina Benali"

    offered = await mongo_store.list_applications(status="offered")
    assert [r.id for r in offered] == [seeded["early_march"]]
    assert offered[0].job.location == "Oran"


async def test_delete_job_cascades_to_its_applications(mongo_store, mongo, seeded):
    assert await mongo_store.delete_job(str(ANALYST)) == 2
    assert await mongo.jobs.count_documents({}) == 1
    remaining = await mongo.applications.distinct("job_id")
    assert remaining == [str(BACKEND)]

    with pytest.raises(RecordNotFound):
        await mongo_store.delete_job(str(ANALYST))


async def test_dashboard_period_counts(mongo_store, seeded):
    stats = await mongo_store.get_dashboard_stats(now=NOW)

    assert stats.total_jobs == 2
    assert stats.open_jobs == 1
    assert stats.closed_jobs == 1
    assert stats.total_applicants == 2
    assert stats.total_applications == 4
    assert stats.pending_applications == 1
    assert stats.rejected_applications == 1
    assert stats.applications_today == 1
    assert stats.applications_this_week == 2
    assert stats.applications_this_month == 3


async def test_list_applicants_counts_applications(mongo_store, seeded):
    applicants = await mongo_store.list_applicants()
    assert [a.full_name for a in applicants] == ["Karim Haddad", "Amina Benali"]
    assert [a.total_applications for a in applicants] == [2, 2]

    await mongo_store.delete_job(str(ANALYST))
    assert [a.total_applications for a in await mongo_store.list_applicants()] == [1, 1]

    men = await mongo_store.list_applicants(gender="male")
    assert [a.id for a in men] == [str(KARIM)]


async def test_update_job_refuses_null_title(mongo_store, mongo, seeded):
    for fields in ({"title": None}, {"location": "  "}):
        with pytest.raises(InvalidInput):
            await mongo_store.update_job(str(BACKEND), fields)

    doc = await mongo.jobs.find_one({"_id": BACKEND})
    assert doc["title"] == "Backend Developer"
    assert doc["location"] == "Alger"


async def test_update_job_returns_the_stored_job(mongo_store, seeded):
    updated = await mongo_store.update_job(str(BACKEND), {"title": "Senior Backend Developer", "status": "on_hold"})
    assert updated.title == "Senior Backend Developer"
    assert updated.location == "Alger"
    assert updated.status == "on_hold"

    with pytest.raises(RecordNotFound):
        await mongo_store.update_job(str(ObjectId()), {"title": "Ghost"})

    jobs = {job.id: job for job in await mongo_store.list_jobs()}
    assert jobs[str(BACKEND)].title == "Senior Backend Developer"
    assert jobs[str(BACKEND)].total_applications == 2


async def test_password_hash_upgrade(mongo_store, mongo):
    await mongo_store.create_user("Sara HR", "sara@recruitdesk.io", "old-hash", role="admin")
    user = await mongo_store.get_user_by_email("sara@recruitdesk.io")

    await mongo_store.update_password_hash(str(user["_id"]), "new-hash")

    assert (await mongo_store.get_user_by_email("sara@recruitdesk.io"))["password"] == "new-hash"
    assert await mongo_store.check_role(str(user["_id"]), "admin")
