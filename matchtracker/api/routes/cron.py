"""Cron routes - entry point for external schedulers."""

from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from loguru import logger

from matchtracker.api.deps import get_reminder_service, verify_cron_secret
from matchtracker.core.exceptions import StoreError
from matchtracker.services.reminder_service import MatchReminderService

router = APIRouter()


@router.api_route(
    "/check-matches",
    methods=["GET", "POST"],
    dependencies=[Depends(verify_cron_secret)],
)
async def check_matches(
    reminder_service: MatchReminderService = Depends(get_reminder_service),
) -> Any:
    """
    Run one match reminder scan now.

    Meant for external cron services that hit this endpoint every few
    minutes. The recurring in-process job is not affected.
    """
    logger.info("Running match reminder check from cron endpoint...")
    try:
        result = await reminder_service.run_scan_once()
    except StoreError as e:
        logger.error(f"Error in cron job: {e}")
        return JSONResponse(
            status_code=500,
            content={"error": "Failed to check matches", "message": str(e)},
        )

    return {
        "success": True,
        "message": "Match notifications checked successfully",
        "checked": result.checked,
        "notified": result.notified,
        "failed": result.failed,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
