"""Database models package."""

from matchtracker.models.user import User
from matchtracker.models.match import Match
from matchtracker.models.notification import Notification

__all__ = ["User", "Match", "Notification"]
