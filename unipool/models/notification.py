"""
Notification model.
"""

from sqlalchemy import Column, Integer, String, Boolean, DateTime, Enum, JSON
import enum
from unipool.core.database import Base, utcnow

class NotificationType(str, enum.Enum):
    RIDE_REQUEST = "ride_request"
    RIDE_ACCEPTED = "ride_accepted"
    RIDE_DECLINED = "ride_declined"
    MESSAGE = "message"
    RATING = "rating"
    REWARD = "reward"
    REMINDER = "reminder"
    RIDE_COMPLETED = "ride_completed"

class Notification(Base):
    """User-facing notification. Only the addressee flips ``read``."""

    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(128), nullable=False, index=True)
    type = Column(Enum(NotificationType), nullable=False)
    title = Column(String(200), nullable=False)
    message = Column(String(1000), nullable=False)
    read = Column(Boolean, nullable=False, default=False)
    payload = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    def __repr__(self):
        return f"<Notification(id={self.id}, user={self.user_id}, type={self.type}, read={self.read})>"
