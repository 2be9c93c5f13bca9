"""
Ride model for driver-posted trips and their seat inventory.
"""

from sqlalchemy import Column, Integer, String, Float, Date, Time, DateTime, Enum, CheckConstraint
from sqlalchemy.orm import relationship
import enum
from unipool.core.database import Base, utcnow

class RideStatus(str, enum.Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

class Ride(Base):
    """A scheduled trip offered by a driver with a fixed seat capacity."""

    __tablename__ = "rides"

    id = Column(Integer, primary_key=True, index=True)

    # Driver (identity provider uid plus display details captured at posting time)
    driver_id = Column(String(128), nullable=False, index=True)
    driver_name = Column(String(120), nullable=False)
    driver_phone = Column(String(30), nullable=True)
    driver_rating = Column(Float, nullable=True)

    # Route and schedule
    origin = Column(String(200), nullable=False)
    destination = Column(String(200), nullable=False)
    date = Column(Date, nullable=False, index=True)
    time = Column(Time, nullable=False)

    # Seat inventory, only mutated through RideInventory.reserve_seats/release_seats
    total_seats = Column(Integer, nullable=False)
    available_seats = Column(Integer, nullable=False)

    price = Column(Float, nullable=False, default=0.0)
    status = Column(Enum(RideStatus), nullable=False, default=RideStatus.ACTIVE, index=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    # Relationships
    requests = relationship("BookingRequest", back_populates="ride")
    bookings = relationship("Booking", back_populates="ride")

    __table_args__ = (
        CheckConstraint("available_seats >= 0", name="check_ride_available_non_negative"),
        CheckConstraint("available_seats <= total_seats", name="check_ride_available_le_total"),
        CheckConstraint("price >= 0", name="check_ride_price_non_negative"),
    )

    @property
    def route(self) -> str:
        return f"{self.origin} → {self.destination}"

    def __repr__(self):
        return (
            f"<Ride(id={self.id}, status={self.status}, "
            f"seats={self.available_seats}/{self.total_seats})>"
        )
