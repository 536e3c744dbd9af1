"""Admin routes for diagnosing match reminders."""

from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, Depends, HTTPException

from matchtracker.api.deps import get_reminder_service, verify_cron_secret
from matchtracker.core.config import settings
from matchtracker.core.exceptions import StoreError
from matchtracker.services.push_service import is_push_token
from matchtracker.services.reminder_service import MatchReminderService

router = APIRouter()


@router.post("/notifications/diagnose", dependencies=[Depends(verify_cron_secret)])
async def diagnose_notifications(
    reminder_service: MatchReminderService = Depends(get_reminder_service),
) -> dict[str, Any]:
    """
    Show which matches the next reminder scan would pick up, and why.

    Nothing is sent and no match is marked. The response never contains
    email addresses, names or push tokens.
    """
    now = datetime.now(timezone.utc)
    window_start = now + reminder_service.low_offset
    window_end = now + reminder_service.high_offset

    try:
        candidates = reminder_service.store.find_due_matches(
            reminder_service.low_offset, reminder_service.high_offset, now
        )
    except StoreError as e:
        raise HTTPException(status_code=500, detail=f"Could not load due matches: {e}")

    return {
        "now": now.isoformat(),
        "window": {
            "start": window_start.isoformat(),
            "end": window_end.isoformat(),
        },
        "configuration": {
            "encryption_key_set": bool(settings.ENCRYPTION_KEY),
            "mailgun_configured": settings.mailgun_configured,
            "scheduler_enabled": settings.SCHEDULER_ENABLED,
            "scan_interval_seconds": settings.SCAN_INTERVAL_SECONDS,
        },
        "due_matches": [
            {
                "id": match.id,
                "opponent": match.opponent,
                "date": match.date.isoformat(),
                "push": {
                    "enabled": match.owner.push_enabled,
                    "token_present": bool(match.owner.push_token),
                    "token_valid": is_push_token(match.owner.push_token),
                },
                "email": {
                    "enabled": match.owner.email_enabled,
                    "address_present": bool(match.owner.encrypted_email),
                },
            }
            for match in candidates
        ],
    }
