# ========================================
# recruitdesk/main.py
# ========================================

import logging
import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from recruitdesk.cache import QueryCache
from recruitdesk.database import CACHE_TTL_SECONDS, close_mongo_connection, connect_to_mongo
from recruitdesk.errors import register_error_handlers

# ===========================
# IMPORT ALL ROUTERS
# ===========================

from recruitdesk.routes.user import router as user_router
from recruitdesk.routes.dashboard import router as dashboard_router
from recruitdesk.routes.job import router as job_router
from recruitdesk.routes.application import router as application_router
from recruitdesk.routes.pipeline import router as pipeline_router
from recruitdesk.routes.applicant import router as applicant_router
from recruitdesk.routes.files import router as files_router

VERSION = "1.0.0"


def configure_logging():
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


configure_logging()

# ===========================
# CREATE FASTAPI APP
# ===========================

app = FastAPI(
    title="RecruitDesk API",
    description="HR back office: jobs, applicants and the five-stage recruitment pipeline",
    version=VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
)
app.state.cache = QueryCache(ttl_seconds=CACHE_TTL_SECONDS)

# ===========================
# CORS MIDDLEWARE
# ===========================
raw_origins = os.getenv("ALLOWED_ORIGINS", "")
origins = [o.strip() for o in raw_origins.split(",") if o.strip()]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_error_handlers(app)

# ===========================
# DATABASE EVENTS
# ===========================

@app.on_event("startup")
async def start_db():
    """Connect to MongoDB on startup"""
    await connect_to_mongo()


@app.on_event("shutdown")
async def stop_db():
    """Close MongoDB connection on shutdown"""
    await close_mongo_connection()
    app.state.cache.clear()

# ===========================
# REGISTER ROUTERS
# ===========================

app.include_router(user_router)
app.include_router(dashboard_router)
app.include_router(job_router)
app.include_router(pipeline_router)
app.include_router(application_router)
app.include_router(applicant_router)
app.include_router(files_router)

# ===========================
# ROOT ENDPOINTS
# ===========================

@app.get("/")
async def root():
    return {
        "status": "RecruitDesk API running",
        "version": VERSION,
        "documentation": "/docs",
    }


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "version": VERSION}
