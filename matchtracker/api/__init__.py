"""API routes package."""

from fastapi import APIRouter

from matchtracker.api.routes import admin, cron

api_router = APIRouter()

api_router.include_router(cron.router, prefix="/cron", tags=["Cron"])
api_router.include_router(admin.router, prefix="/admin", tags=["Admin"])
