"""Notification delivery log model."""

from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Text

from matchtracker.database import Base


class Notification(Base):
    """One reminder delivery attempt on one channel."""

    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, index=True)
    match_id = Column(Integer, ForeignKey("matches.id"), nullable=False, index=True)

    channel = Column(String(20), nullable=False)  # push, email
    status = Column(String(20), nullable=False, default="sent")  # sent, failed
    error_message = Column(Text, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)

    def __repr__(self) -> str:
        return f"<Notification {self.id} {self.channel} for Match {self.match_id}>"
