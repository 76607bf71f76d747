"""
InternHub - Main Application

FastAPI backend with:
- PostgreSQL for accounts, postings and applications
- MongoDB for notifications, wishlists, preferences and messages
- WebSocket channel for live events
- Background maintenance jobs (reminders, deadline alerts, expiry)
- JWT authentication

Run: uvicorn internhub.main:app --reload
"""

import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from internhub import __version__
from internhub.api import api_router, realtime_router
from internhub.core.config import get_settings
from internhub.core.logging_setup import setup_logging
from internhub.db.mongodb import init_mongo_indexes, test_mongo_connection
from internhub.db.postgres import init_postgres_schema, test_postgres_connection
from internhub.services.realtime import manager
from internhub.services.scheduler import MaintenanceScheduler

settings = get_settings()

setup_logging(settings.log_level, settings.log_file)
logger = logging.getLogger(__name__)

UPLOAD_DIR = Path(settings.upload_dir)
UPLOAD_DIR.mkdir(parents=True, exist_ok=True)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Prepare both databases, then run maintenance jobs while the app is up."""
    init_postgres_schema()
    try:
        init_mongo_indexes()
    except Exception:
        logger.exception("MongoDB index initialization failed")

    scheduler = MaintenanceScheduler(settings)
    if settings.scheduler_enabled:
        scheduler.start()

    yield

    await scheduler.stop()


# Create FastAPI app
app = FastAPI(
    title="InternHub API",
    description="""
    Internship marketplace connecting students and companies.

    ## Features
    - **Authentication**: JWT-based auth for students, companies and admins
    - **Internships**: Posting, search and filtering
    - **Applications**: Status workflow with timeline and interviews
    - **Wishlist**: Saved postings with reminders and deadline alerts
    - **Notifications**: Persisted and pushed live over WebSocket
    - **Messaging**: Conversations between users
    - **Admin**: Moderation, announcements, maintenance jobs
    """,
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API routes
app.include_router(api_router, prefix="/api")
app.include_router(realtime_router)

# Uploaded files are served as-is
app.mount("/uploads", StaticFiles(directory=str(UPLOAD_DIR)), name="uploads")


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled error on {request.method} {request.url.path}", exc_info=exc)
    return JSONResponse(status_code=500, content={"detail": "Server error"})


@app.get("/", tags=["Health"])
async def root():
    return {"status": "healthy", "app": "InternHub", "version": __version__}


@app.get("/health", tags=["Health"])
async def health_check():
    """Detailed health check."""
    return {
        "status": "healthy",
        "postgres": "connected" if test_postgres_connection() else "disconnected",
        "mongodb": "connected" if test_mongo_connection() else "disconnected",
        "connections": manager.connection_count(),
    }
