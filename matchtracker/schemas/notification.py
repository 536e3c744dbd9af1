"""Schemas exchanged between the reminder engine, the store and the senders."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class RecipientPreferences(BaseModel):
    """Owner projection needed to decide which channels to use.

    ``encrypted_email`` and ``encrypted_name`` are stored ciphertext and are
    only decrypted while building an outbound email.
    """

    model_config = ConfigDict(frozen=True)

    push_enabled: bool = False
    push_token: str | None = None
    email_enabled: bool = False
    encrypted_email: str | None = None
    encrypted_name: str | None = None

    @property
    def wants_push(self) -> bool:
        return self.push_enabled and bool(self.push_token)

    @property
    def wants_email(self) -> bool:
        return self.email_enabled and bool(self.encrypted_email)


class NotifiableMatch(BaseModel):
    """A match that may need a reminder, with its owner's preferences."""

    model_config = ConfigDict(frozen=True)

    id: int
    user_id: str
    opponent: str
    date: datetime
    venue: str | None = None
    match_type: str | None = None
    is_finished: bool = False
    notification_sent: bool = False
    notification_sent_at: datetime | None = None
    owner: RecipientPreferences = Field(default_factory=RecipientPreferences)


class PushResult(BaseModel):
    """Outcome of handing one push message to the provider."""

    ok: bool
    reason: str | None = None
    ticket_id: str | None = None


class EmailResult(BaseModel):
    """Outcome of handing one email to the provider."""

    ok: bool
    id: str | None = None
    reason: str | None = None


class ScanResult(BaseModel):
    """Counters reported by one reminder scan."""

    checked: int = 0
    notified: int = 0
    skipped: int = 0
    failed: int = 0
    channel_failures: int = 0
