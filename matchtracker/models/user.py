"""User model."""

from datetime import datetime
from sqlalchemy import Column, String, Boolean, DateTime, Text
from sqlalchemy.orm import relationship

from matchtracker.database import Base


class User(Base):
    """User database model.

    ``email`` and ``name`` hold values produced by
    :func:`matchtracker.core.encryption.encrypt`, never plaintext.
    """

    __tablename__ = "users"

    id = Column(String(64), primary_key=True, index=True)

    # Encrypted PII
    email = Column(Text, nullable=False)
    name = Column(Text, nullable=True)

    # Notification preferences
    push_token = Column(String(255), nullable=True)
    push_notifications = Column(Boolean, nullable=False, default=True)
    email_notifications = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    matches = relationship("Match", back_populates="user")

    def __repr__(self) -> str:
        return f"<User {self.id}>"
