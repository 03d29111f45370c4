import logging
import os
from pathlib import Path

from dotenv import load_dotenv
from fastapi import Request
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorGridFSBucket

from recruitdesk.store import RecruitmentStore

logger = logging.getLogger(__name__)

env_path = Path(__file__).resolve().parent.parent / ".env"
if env_path.exists():
    load_dotenv(dotenv_path=env_path)
else:
    load_dotenv()

MONGO_URI = os.getenv("MONGO_URI")
DATABASE_NAME = os.getenv("DATABASE_NAME", "recruitdesk")
PUBLIC_BASE_URL = os.getenv("PUBLIC_BASE_URL", "http://localhost:8000").rstrip("/")
CACHE_TTL_SECONDS = float(os.getenv("CACHE_TTL_SECONDS", "300"))

# Storage buckets exposed through /files/{bucket}/...
FILE_BUCKETS = ("applicant-files",)

client = None
db = None
fs_buckets = {}


async def connect_to_mongo():
    global client, db, fs_buckets

    if not MONGO_URI:
        raise ValueError("MONGO_URI environment variable is not set! Check your .env file.")

    client = AsyncIOMotorClient(MONGO_URI, tz_aware=True)
    db = client[DATABASE_NAME]
    fs_buckets = {
        name: AsyncIOMotorGridFSBucket(db, bucket_name=name.replace("-", "_"))
        for name in FILE_BUCKETS
    }
    await client.admin.command("ping")

    if "mongodb+srv" in MONGO_URI:
        logger.info("Connected to MongoDB Atlas, database %s", DATABASE_NAME)
    else:
        logger.warning("Connected to a non-Atlas MongoDB, database %s", DATABASE_NAME)


async def close_mongo_connection():
    if client:
        client.close()
        logger.info("MongoDB connection closed")


def get_store():
    return RecruitmentStore(db, fs_buckets, PUBLIC_BASE_URL)


def get_cache(request: Request):
    return request.app.state.cache
