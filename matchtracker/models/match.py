"""Match model."""

from datetime import datetime
from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey
from sqlalchemy.orm import relationship

from matchtracker.database import Base


class Match(Base):
    """Match database model."""

    __tablename__ = "matches"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(64), ForeignKey("users.id"), nullable=False, index=True)

    # Match details
    opponent = Column(String(200), nullable=False)
    date = Column(DateTime, nullable=False, index=True)  # naive UTC
    venue = Column(String(200), nullable=True)
    match_type = Column(String(50), nullable=True)  # league, cup, friendly, ...
    is_finished = Column(Boolean, nullable=False, default=False)
    is_deleted = Column(Boolean, nullable=False, default=False)

    # Reminder state
    notification_sent = Column(Boolean, nullable=False, default=False, index=True)
    notification_sent_at = Column(DateTime, nullable=True)

    # Metadata
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    user = relationship("User", back_populates="matches")

    def __repr__(self) -> str:
        return f"<Match {self.id}: vs {self.opponent}>"
