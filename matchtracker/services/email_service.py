"""Mailgun email service and match reminder templates."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from html import escape

import httpx
from loguru import logger

from matchtracker.core.config import settings
from matchtracker.core.exceptions import ChannelDeliveryError
from matchtracker.schemas.notification import EmailResult, NotifiableMatch


def render_match_reminder(user_name: str | None, match: NotifiableMatch) -> tuple[str, str, str]:
    """
    Render the reminder email for a match.

    Args:
        user_name: Decrypted display name of the recipient, if any
        match: The match starting soon

    Returns:
        Tuple of (subject, text body, html body)
    """
    greeting_name = user_name or "there"
    venue = match.venue or "TBD"
    formatted_date = match.date.strftime("%A, %B %d, %Y").replace(" 0", " ")
    formatted_time = match.date.strftime("%H:%M")
    match_type = match.match_type.capitalize() if match.match_type else None

    subject = f"⚽ Match Reminder: {match.opponent}"

    detail_lines = [
        f"- Opponent: {match.opponent}",
        f"- Date: {formatted_date}",
        f"- Time: {formatted_time}",
        f"- Venue: {venue}",
    ]
    if match_type:
        detail_lines.append(f"- Type: {match_type}")

    text = "\n".join([
        f"Hi {greeting_name},",
        "",
        "This is a reminder that your match is starting soon!",
        "",
        "Match Details:",
        *detail_lines,
        "",
        "Good luck with your match!",
        "",
        "---",
        "MatchTracker",
    ])

    rows = [
        ("Opponent", match.opponent),
        ("Date", formatted_date),
        ("Time", formatted_time),
        ("Venue", venue),
    ]
    if match_type:
        rows.append(("Type", match_type))
    row_html = "\n".join(
        f'<tr><td style="padding: 8px 0; color: #666666; width: 100px;">{label}:</td>'
        f'<td style="padding: 8px 0; color: #333333; font-weight: 600;">{escape(value)}</td></tr>'
        for label, value in rows
    )

    html = f"""<!DOCTYPE html>
<html>
<head><meta charset="utf-8"><title>Match Reminder</title></head>
<body style="margin: 0; padding: 20px; font-family: Arial, sans-serif; background-color: #f5f5f5;">
  <table width="600" cellpadding="0" cellspacing="0" style="background-color: #ffffff; border-radius: 8px;">
    <tr><td style="background-color: #2563eb; padding: 30px 20px; text-align: center; color: #ffffff;">
      <h2 style="margin: 0;">⚽ Match Starting Soon!</h2>
    </td></tr>
    <tr><td style="padding: 30px;">
      <p>Hi {escape(greeting_name)},</p>
      <p>This is a reminder that your match is starting soon!</p>
      <table width="100%" cellpadding="0" cellspacing="0">
{row_html}
      </table>
      <p style="font-weight: 600;">Good luck with your match! 🍀</p>
    </td></tr>
    <tr><td style="padding: 20px; text-align: center; font-size: 12px; color: #666666;">
      MatchTracker - Track your football matches
    </td></tr>
  </table>
</body>
</html>"""

    return subject, text, html


class MailgunEmailService:
    """Service to send transactional email through the Mailgun HTTP API."""

    def __init__(self, client: httpx.AsyncClient | None = None, timeout: float = 10.0) -> None:
        """Initialize Mailgun service."""
        self.api_key = settings.MAILGUN_API_KEY
        self.domain = settings.MAILGUN_DOMAIN
        self.base_url = settings.MAILGUN_BASE_URL.rstrip("/")
        self.from_email = settings.MAILGUN_FROM_EMAIL or f"MatchTracker <noreply@{self.domain}>"
        self.client = client
        self.timeout = timeout

    @property
    def configured(self) -> bool:
        return bool(self.api_key and self.domain)

    @asynccontextmanager
    async def _http(self) -> AsyncIterator[httpx.AsyncClient]:
        if self.client is not None:
            yield self.client
        else:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                yield client

    async def send_email(
        self,
        to_address: str,
        subject: str,
        text_body: str,
        html_body: str | None = None,
    ) -> EmailResult:
        """
        Send an email via Mailgun.

        Args:
            to_address: Recipient email address
            subject: Email subject
            text_body: Plain text version
            html_body: HTML version (falls back to the text body)

        Returns:
            Mailgun message id on success

        Raises:
            ChannelDeliveryError: if Mailgun could not be reached or rejected the message
        """
        if not self.configured:
            logger.warning("Mailgun not configured - missing MAILGUN_API_KEY or MAILGUN_DOMAIN")
            return EmailResult(ok=False, reason="not_configured")

        url = f"{self.base_url}/v3/{self.domain}/messages"
        form = {
            "from": self.from_email,
            "to": to_address,
            "subject": subject,
            "text": text_body,
            "html": html_body or text_body,
        }

        try:
            async with self._http() as client:
                response = await client.post(url, data=form, auth=("api", self.api_key))
                response.raise_for_status()
                payload = response.json()
        except httpx.HTTPError as e:
            raise ChannelDeliveryError("email", str(e)) from e
        except ValueError as e:
            raise ChannelDeliveryError("email", f"invalid response body: {e}") from e

        message_id = payload.get("id")
        logger.debug(f"Email accepted by Mailgun: {message_id}")
        return EmailResult(ok=True, id=message_id)

    async def send_match_reminder(
        self, to_address: str, user_name: str | None, match: NotifiableMatch
    ) -> EmailResult:
        """Render and send the reminder email for ``match``."""
        subject, text_body, html_body = render_match_reminder(user_name, match)
        return await self.send_email(to_address, subject, text_body, html_body)

