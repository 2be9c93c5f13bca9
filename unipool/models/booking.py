"""
Booking request and direct booking models.
"""

from sqlalchemy import Column, Integer, String, Float, Date, Time, DateTime, Enum, ForeignKey, CheckConstraint, Index, text
from sqlalchemy.orm import relationship
import enum
from unipool.core.database import Base, utcnow

class RequestStatus(str, enum.Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"

class BookingStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"

# Enum columns store member names
OPEN_REQUEST_CLAUSE = text(f"status IN ('{RequestStatus.PENDING.name}', '{RequestStatus.ACCEPTED.name}')")
LIVE_BOOKING_CLAUSE = text(f"status != '{BookingStatus.CANCELLED.name}'")

class BookingRequest(Base):
    """A rider's ask to join a ride, decided once by the driver."""

    __tablename__ = "booking_requests"

    id = Column(Integer, primary_key=True, index=True)
    ride_id = Column(Integer, ForeignKey("rides.id"), nullable=False, index=True)
    rider_id = Column(String(128), nullable=False, index=True)
    rider_name = Column(String(120), nullable=True)

    passengers = Column(Integer, nullable=False, default=1)
    status = Column(Enum(RequestStatus), nullable=False, default=RequestStatus.PENDING)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    decided_at = Column(DateTime(timezone=True), nullable=True)

    ride = relationship("Ride", back_populates="requests")

    __table_args__ = (
        CheckConstraint("passengers > 0", name="check_request_passengers_positive"),
        # One open request per rider and ride
        Index(
            "uq_booking_requests_open_rider",
            "ride_id",
            "rider_id",
            unique=True,
            sqlite_where=OPEN_REQUEST_CLAUSE,
            postgresql_where=OPEN_REQUEST_CLAUSE,
        ),
    )

    def __repr__(self):
        return f"<BookingRequest(id={self.id}, ride={self.ride_id}, rider={self.rider_id}, status={self.status})>"

class Booking(Base):
    """Confirmed reservation from the direct-booking flow.

    Route, schedule and price are copied from the ride when the booking is
    made so the rider's history stays stable if the ride changes later.
    """

    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)
    ride_id = Column(Integer, ForeignKey("rides.id"), nullable=False, index=True)

    rider_id = Column(String(128), nullable=False, index=True)
    rider_name = Column(String(120), nullable=False)
    rider_phone = Column(String(30), nullable=True)
    driver_id = Column(String(128), nullable=False, index=True)
    driver_name = Column(String(120), nullable=False)

    seats = Column(Integer, nullable=False, default=1)
    status = Column(Enum(BookingStatus), nullable=False, default=BookingStatus.CONFIRMED)

    # Denormalized ride details
    origin = Column(String(200), nullable=False)
    destination = Column(String(200), nullable=False)
    date = Column(Date, nullable=False)
    time = Column(Time, nullable=False)
    price = Column(Float, nullable=False)

    booked_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)

    ride = relationship("Ride", back_populates="bookings")

    __table_args__ = (
        CheckConstraint("seats > 0", name="check_booking_seats_positive"),
        Index(
            "uq_bookings_live_rider",
            "ride_id",
            "rider_id",
            unique=True,
            sqlite_where=LIVE_BOOKING_CLAUSE,
            postgresql_where=LIVE_BOOKING_CLAUSE,
        ),
    )

    def __repr__(self):
        return f"<Booking(id={self.id}, ride={self.ride_id}, rider={self.rider_id}, status={self.status})>"
