"""
Rating model.
"""

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Text, UniqueConstraint, CheckConstraint
from unipool.core.database import Base, utcnow

class Rating(Base):
    """Stars one user gave another, optionally tied to a shared ride."""

    __tablename__ = "ratings"

    id = Column(Integer, primary_key=True, index=True)
    ride_id = Column(Integer, ForeignKey("rides.id", ondelete="SET NULL"), nullable=True, index=True)
    rater_id = Column(String(128), nullable=False, index=True)
    ratee_id = Column(String(128), nullable=False, index=True)
    stars = Column(Integer, nullable=False)
    comment = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    __table_args__ = (
        UniqueConstraint("rater_id", "ratee_id", "ride_id", name="uq_rating_once_per_ride"),
        CheckConstraint("stars >= 1 AND stars <= 5", name="check_rating_stars_range"),
    )

    def __repr__(self):
        return f"<Rating(id={self.id}, {self.rater_id}->{self.ratee_id}, stars={self.stars})>"
