"""
User profile model for riders and drivers.

Accounts live with the identity provider; this table only keeps the profile
the app shows to other users.
"""

from sqlalchemy import Column, Integer, String, Float, DateTime, Enum
import enum
from unipool.core.database import Base, utcnow

class UserRole(str, enum.Enum):
    RIDER = "rider"
    DRIVER = "driver"

class UserProfile(Base):
    """Profile keyed by the identity provider's user id."""

    __tablename__ = "user_profiles"

    id = Column(String(128), primary_key=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    display_name = Column(String(120), nullable=False)
    phone = Column(String(30), nullable=True)
    role = Column(Enum(UserRole), nullable=True)  # chosen after sign-up

    # Rating aggregate, updated atomically by RatingService
    rating_total = Column(Float, nullable=False, default=0.0)
    rating_count = Column(Integer, nullable=False, default=0)

    # Timestamps
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=True, onupdate=utcnow)

    @property
    def rating(self):
        if not self.rating_count:
            return None
        return round(self.rating_total / self.rating_count, 2)

    def __repr__(self):
        return f"<UserProfile(id={self.id}, email={self.email}, role={self.role})>"
