"""
Booking request workflow and direct bookings.

A booking request moves ``pending -> accepted`` or ``pending -> declined``
exactly once. Seats are not held while a request is pending: the seat check
at submission is advisory and the authoritative one happens when the driver
accepts, so several riders can compete for the same free seats.

Accepting a request reserves seats and flips the request status inside one
transaction; both statements are conditional updates, so two concurrent
accepts for more seats than remain end with exactly one success and one
:class:`InsufficientSeatsError`.
"""

import logging
from typing import List, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from unipool.core.database import utcnow
from unipool.core.exceptions import (
    BookingNotFoundError,
    DuplicateRequestError,
    InsufficientSeatsError,
    InvalidStateError,
    NotOwnerError,
    RequestNotFoundError,
    RideNotActiveError,
    UnipoolError,
    ValidationError,
)
from unipool.models.booking import Booking, BookingRequest, BookingStatus, RequestStatus
from unipool.models.ride import Ride, RideStatus
from unipool.services.notifications import NotificationEmitter
from unipool.services.rides import RideInventory

logger = logging.getLogger(__name__)

OPEN_REQUEST_STATUSES = (RequestStatus.PENDING, RequestStatus.ACCEPTED)

def describe_ride(ride: Ride) -> str:
    return f"from {ride.origin} to {ride.destination} on {ride.date.isoformat()} at {ride.time.strftime('%H:%M')}"

class BookingWorkflow:
    """Request/accept/decline state machine layered on the ride inventory."""

    def __init__(self, session: AsyncSession, emitter: NotificationEmitter):
        self.session = session
        self.emitter = emitter
        self.rides = RideInventory(session)

    # ---------- requests ----------

    async def submit_request(
        self,
        ride_id: int,
        rider_id: str,
        passengers: int = 1,
        rider_name: Optional[str] = None,
    ) -> BookingRequest:
        """Ask to join a ride. Nothing is reserved until the driver accepts."""
        if passengers < 1:
            raise ValidationError("At least one passenger is required", field="passengers", value=passengers)

        ride = await self.rides.get_ride(ride_id, refresh=True)
        if ride.driver_id == rider_id:
            raise ValidationError("Drivers cannot request seats on their own ride", field="rider_id")
        if ride.status != RideStatus.ACTIVE:
            raise RideNotActiveError(ride_id, ride.status.value)
        if passengers > ride.available_seats:
            raise InsufficientSeatsError(ride_id, passengers, ride.available_seats)

        existing_id = await self._open_request_id(ride_id, rider_id)
        if existing_id is not None:
            raise DuplicateRequestError(ride_id, rider_id, existing_id)

        request = BookingRequest(
            ride_id=ride_id,
            rider_id=rider_id,
            rider_name=rider_name,
            passengers=passengers,
            status=RequestStatus.PENDING,
        )
        self.session.add(request)
        try:
            await self.session.commit()
        except IntegrityError:
            # Lost a race with a concurrent submission by the same rider
            await self.session.rollback()
            existing_id = await self._open_request_id(ride_id, rider_id)
            if existing_id is None:
                raise
            raise DuplicateRequestError(ride_id, rider_id, existing_id)

        logger.info(f"Booking request {request.id}: rider {rider_id} asked for {passengers} seat(s) on ride {ride_id}")

        await self.emitter.notify_ride_request(
            ride.driver_id,
            rider_name or rider_id,
            describe_ride(ride),
            ride_id=ride_id,
            request_id=request.id,
            passengers=passengers,
        )
        return request

    async def _open_request_id(self, ride_id: int, rider_id: str) -> Optional[int]:
        result = await self.session.execute(
            select(BookingRequest.id).where(
                BookingRequest.ride_id == ride_id,
                BookingRequest.rider_id == rider_id,
                BookingRequest.status.in_(OPEN_REQUEST_STATUSES),
            )
        )
        return result.scalars().first()

    async def get_request(self, request_id: int, refresh: bool = False) -> BookingRequest:
        request = await self.session.get(BookingRequest, request_id, populate_existing=refresh)
        if request is None:
            raise RequestNotFoundError(request_id)
        return request

    async def _pending_request_on_ride(
        self, request_id: int, driver_id: Optional[str], action: str, ride_id: Optional[int] = None
    ):
        request = await self.get_request(request_id, refresh=True)
        if ride_id is not None and request.ride_id != ride_id:
            raise ValidationError(
                f"Request {request_id} does not belong to ride {ride_id}",
                field="ride_id",
                request_ride_id=request.ride_id,
            )
        ride = await self.rides.get_ride(request.ride_id, refresh=True)
        if driver_id is not None and ride.driver_id != driver_id:
            raise NotOwnerError(driver_id, f"{action} requests on ride {ride.id}")
        if request.status != RequestStatus.PENDING:
            raise InvalidStateError(
                f"Request {request_id} was already {request.status.value}",
                current=request.status.value,
            )
        return request, ride

    async def _decide(self, request_id: int, new_status: RequestStatus) -> None:
        result = await self.session.execute(
            update(BookingRequest)
            .where(BookingRequest.id == request_id, BookingRequest.status == RequestStatus.PENDING)
            .values(status=new_status, decided_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            current = await self.session.scalar(
                select(BookingRequest.status).where(BookingRequest.id == request_id)
            )
            raise InvalidStateError(
                f"Request {request_id} is no longer pending",
                current=current.value if current else None,
            )

    async def accept_request(
        self,
        request_id: int,
        ride_id: int,
        driver_id: Optional[str] = None,
    ) -> BookingRequest:
        """Accept a pending request, taking its seats from the ride."""
        request, ride = await self._pending_request_on_ride(request_id, driver_id, "accept", ride_id)

        try:
            await self.rides.reserve_seats(ride_id, request.passengers, commit=False)
            await self._decide(request_id, RequestStatus.ACCEPTED)
            await self.session.commit()
        except UnipoolError as e:
            await self.session.rollback()
            logger.info(f"Accept of request {request_id} on ride {ride_id} rejected: {e.message}")
            raise
        except Exception:
            await self.session.rollback()
            raise

        request = await self.get_request(request_id, refresh=True)
        logger.info(f"Booking request {request_id} accepted on ride {ride_id}")

        await self.emitter.notify_ride_accepted(
            request.rider_id,
            ride.driver_name,
            ride_id=ride_id,
            request_id=request_id,
            passengers=request.passengers,
        )
        return request

    async def decline_request(self, request_id: int, driver_id: Optional[str] = None) -> BookingRequest:
        """Decline a pending request. Seats are untouched."""
        request, ride = await self._pending_request_on_ride(request_id, driver_id, "decline")

        try:
            await self._decide(request_id, RequestStatus.DECLINED)
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise

        request = await self.get_request(request_id, refresh=True)
        logger.info(f"Booking request {request_id} declined on ride {ride.id}")

        await self.emitter.notify_ride_declined(
            request.rider_id,
            ride.driver_name,
            ride_id=ride.id,
            request_id=request_id,
        )
        return request

    async def list_ride_requests(self, ride_id: int, status: Optional[RequestStatus] = None) -> List[BookingRequest]:
        query = select(BookingRequest).where(BookingRequest.ride_id == ride_id)
        if status:
            query = query.where(BookingRequest.status == status)
        query = query.order_by(BookingRequest.created_at.asc(), BookingRequest.id.asc())
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def list_rider_requests(self, rider_id: str) -> List[BookingRequest]:
        query = (
            select(BookingRequest)
            .where(BookingRequest.rider_id == rider_id)
            .order_by(BookingRequest.created_at.desc(), BookingRequest.id.desc())
        )
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def list_driver_requests(self, driver_id: str, status: Optional[RequestStatus] = None) -> List[BookingRequest]:
        """Incoming requests across all of a driver's rides."""
        query = (
            select(BookingRequest)
            .join(Ride, Ride.id == BookingRequest.ride_id)
            .where(Ride.driver_id == driver_id)
        )
        if status:
            query = query.where(BookingRequest.status == status)
        query = query.order_by(BookingRequest.created_at.desc(), BookingRequest.id.desc())
        result = await self.session.execute(query)
        return list(result.scalars().all())

    # ---------- direct bookings ----------

    async def create_booking(
        self,
        ride_id: int,
        rider_id: str,
        rider_name: str,
        seats: int = 1,
        rider_phone: Optional[str] = None,
    ) -> Booking:
        """Book seats immediately, without a driver decision."""
        if seats < 1:
            raise ValidationError("At least one seat is required", field="seats", value=seats)

        ride = await self.rides.get_ride(ride_id, refresh=True)
        if ride.driver_id == rider_id:
            raise ValidationError("Drivers cannot book their own ride", field="rider_id")
        if ride.status != RideStatus.ACTIVE:
            raise RideNotActiveError(ride_id, ride.status.value)

        existing_id = await self._live_booking_id(ride_id, rider_id)
        if existing_id is not None:
            raise DuplicateRequestError(ride_id, rider_id, existing_id)

        booking = Booking(
            ride_id=ride_id,
            rider_id=rider_id,
            rider_name=rider_name,
            rider_phone=rider_phone,
            driver_id=ride.driver_id,
            driver_name=ride.driver_name,
            seats=seats,
            status=BookingStatus.CONFIRMED,
            origin=ride.origin,
            destination=ride.destination,
            date=ride.date,
            time=ride.time,
            price=ride.price,
        )

        try:
            await self.rides.reserve_seats(ride_id, seats, commit=False)
            self.session.add(booking)
            await self.session.commit()
        except IntegrityError:
            # The reservation is rolled back with the losing insert
            await self.session.rollback()
            existing_id = await self._live_booking_id(ride_id, rider_id)
            if existing_id is None:
                raise
            raise DuplicateRequestError(ride_id, rider_id, existing_id)
        except Exception:
            await self.session.rollback()
            raise

        logger.info(f"Booking {booking.id}: rider {rider_id} booked {seats} seat(s) on ride {ride_id}")
        return booking

    async def _live_booking_id(self, ride_id: int, rider_id: str) -> Optional[int]:
        result = await self.session.execute(
            select(Booking.id).where(
                Booking.ride_id == ride_id,
                Booking.rider_id == rider_id,
                Booking.status != BookingStatus.CANCELLED,
            )
        )
        return result.scalars().first()

    async def get_booking(self, booking_id: int, refresh: bool = False) -> Booking:
        booking = await self.session.get(Booking, booking_id, populate_existing=refresh)
        if booking is None:
            raise BookingNotFoundError(booking_id)
        return booking

    async def cancel_booking(self, booking_id: int, acting_user_id: str) -> Booking:
        """Cancel a booking as its rider or driver and give the seats back."""
        booking = await self.get_booking(booking_id, refresh=True)
        if acting_user_id not in (booking.rider_id, booking.driver_id):
            raise NotOwnerError(acting_user_id, f"cancel booking {booking_id}")
        if booking.status == BookingStatus.CANCELLED:
            raise InvalidStateError(
                f"Booking {booking_id} is already cancelled",
                current=booking.status.value,
            )

        try:
            result = await self.session.execute(
                update(Booking)
                .where(Booking.id == booking_id, Booking.status != BookingStatus.CANCELLED)
                .values(status=BookingStatus.CANCELLED, cancelled_at=utcnow())
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                raise InvalidStateError(
                    f"Booking {booking_id} is already cancelled",
                    current=BookingStatus.CANCELLED.value,
                )
            await self.rides.release_seats(booking.ride_id, booking.seats, commit=False)
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise

        logger.info(f"Booking {booking_id} cancelled by {acting_user_id}")
        return await self.get_booking(booking_id, refresh=True)

    async def _bookings(self, *criteria) -> List[Booking]:
        query = select(Booking).where(*criteria).order_by(Booking.booked_at.desc(), Booking.id.desc())
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def get_ride_bookings(self, ride_id: int) -> List[Booking]:
        return await self._bookings(Booking.ride_id == ride_id, Booking.status == BookingStatus.CONFIRMED)

    async def get_driver_bookings(self, driver_id: str) -> List[Booking]:
        return await self._bookings(Booking.driver_id == driver_id, Booking.status == BookingStatus.CONFIRMED)

    async def get_rider_bookings(self, rider_id: str) -> List[Booking]:
        return await self._bookings(Booking.rider_id == rider_id)

    # ---------- ride completion ----------

    async def complete_ride(self, ride_id: int, driver_id: str) -> Ride:
        """Mark a ride completed and tell everyone who rode along."""
        ride = await self.rides.complete_ride(ride_id, driver_id)

        requests = await self.list_ride_requests(ride_id, RequestStatus.ACCEPTED)
        bookings = await self.get_ride_bookings(ride_id)
        riders = {r.rider_id for r in requests} | {b.rider_id for b in bookings}

        for rider_id in sorted(riders):
            await self.emitter.notify_ride_completed(
                rider_id,
                describe_ride(ride),
                ride_id=ride_id,
                driver_id=ride.driver_id,
            )
        return ride
