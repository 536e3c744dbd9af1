"""Shared FastAPI dependencies."""

from fastapi import Header, HTTPException, Request, status

from matchtracker.core.config import settings
from matchtracker.services import build_reminder_service
from matchtracker.services.reminder_service import MatchReminderService


def get_reminder_service(request: Request) -> MatchReminderService:
    """Return the app's reminder service, building one if the app has none."""
    service = getattr(request.app.state, "reminder_service", None)
    if service is None:
        service = build_reminder_service()
        request.app.state.reminder_service = service
    return service


def verify_cron_secret(authorization: str | None = Header(default=None)) -> None:
    """Require ``Authorization: Bearer <CRON_SECRET>`` when a secret is configured."""
    if settings.CRON_SECRET and authorization != f"Bearer {settings.CRON_SECRET}":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
        )
