"""Main FastAPI application entry point."""

from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

from matchtracker.api import api_router
from matchtracker.core.config import settings
from matchtracker.core.logger import setup_logger
from matchtracker.database import init_db
from matchtracker.scheduler import ReminderScheduler
from matchtracker.services import build_reminder_service


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    setup_logger()
    logger.info("Starting Match Tracker API...")

    init_db()

    reminder_service = build_reminder_service()
    app.state.reminder_service = reminder_service

    reminder_scheduler = None
    reminder_job = None
    if settings.SCHEDULER_ENABLED:
        reminder_scheduler = ReminderScheduler(reminder_service)
        reminder_job = reminder_scheduler.start()
    else:
        logger.info("In-process scheduler disabled; rely on the cron endpoint")

    logger.info("Application started successfully!")

    yield

    logger.info("Shutting down...")
    if reminder_scheduler is not None:
        reminder_scheduler.stop(reminder_job)
        await reminder_scheduler.shutdown()
    logger.info("Application stopped")


app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.VERSION,
    description=settings.DESCRIPTION,
    openapi_url=f"{settings.API_V1_PREFIX}/openapi.json",
    docs_url=f"{settings.API_V1_PREFIX}/docs",
    redoc_url=f"{settings.API_V1_PREFIX}/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router, prefix=settings.API_V1_PREFIX)


@app.get("/", tags=["Health"])
async def root() -> dict[str, str]:
    """Root endpoint - Health check."""
    return {
        "message": "Welcome to Match Tracker API",
        "status": "running",
        "version": settings.VERSION,
    }


@app.get("/health", tags=["Health"])
async def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "healthy"}
