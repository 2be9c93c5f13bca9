"""
Ride inventory: posting, searching and retiring rides, and the seat counter.

``available_seats`` is only ever changed by :meth:`RideInventory.reserve_seats`
and :meth:`RideInventory.release_seats`. Both are single conditional UPDATE
statements, so the check and the write happen atomically in the database
and concurrent callers cannot overdraw the pool.

Methods that mutate rides on behalf of a larger unit of work take
``commit=False`` so the caller can fold them into its own transaction.
"""

import logging
from dataclasses import dataclass
from datetime import date as date_type, time as time_type
from typing import List, Optional

from sqlalchemy import select, update, delete, func, case

from sqlalchemy.ext.asyncio import AsyncSession

from unipool.core.config import settings
from unipool.core.exceptions import (
    InsufficientSeatsError,
    InvalidStateError,
    NotOwnerError,
    RideNotActiveError,
    RideNotFoundError,
    ValidationError,
)
from unipool.models.booking import Booking, BookingRequest, BookingStatus, RequestStatus
from unipool.models.ride import Ride, RideStatus

logger = logging.getLogger(__name__)

@dataclass
class RideSpec:
    """What a driver fills in when posting a ride."""

    driver_id: str
    driver_name: str
    origin: str
    destination: str
    date: date_type
    time: time_type
    total_seats: int
    price: float
    driver_phone: Optional[str] = None
    driver_rating: Optional[float] = None

@dataclass
class RideFilter:
    origin: Optional[str] = None
    destination: Optional[str] = None
    date: Optional[date_type] = None
    min_seats: Optional[int] = None
    max_price: Optional[float] = None
    sort_by: str = "departure"

SORT_OPTIONS = {
    "departure": (Ride.date.asc(), Ride.time.asc()),
    "price_low": (Ride.price.asc(),),
    "price_high": (Ride.price.desc(),),
    "rating": (Ride.driver_rating.desc(),),
    "seats": (Ride.available_seats.desc(),),
}

class RideInventory:
    """Owns ride rows and the seat-count invariant."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create_ride(self, spec: RideSpec) -> Ride:
        """Post a new ride; all seats start out available."""
        if not (spec.driver_id or "").strip():
            raise ValidationError("driver_id is required", field="driver_id")
        if not (spec.origin or "").strip() or not (spec.destination or "").strip():
            raise ValidationError("origin and destination are required", field="origin")
        if not settings.MIN_RIDE_SEATS <= spec.total_seats <= settings.MAX_RIDE_SEATS:
            raise ValidationError(
                f"Total seats must be between {settings.MIN_RIDE_SEATS} and {settings.MAX_RIDE_SEATS}",
                field="total_seats",
                value=spec.total_seats,
            )
        if spec.price < 0:
            raise ValidationError("Price cannot be negative", field="price", value=spec.price)

        ride = Ride(
            driver_id=spec.driver_id,
            driver_name=spec.driver_name,
            driver_phone=spec.driver_phone,
            driver_rating=spec.driver_rating,
            origin=spec.origin.strip(),
            destination=spec.destination.strip(),
            date=spec.date,
            time=spec.time,
            total_seats=spec.total_seats,
            available_seats=spec.total_seats,
            price=spec.price,
            status=RideStatus.ACTIVE,
        )
        self.session.add(ride)
        await self.session.commit()

        logger.info(f"Ride posted: {ride.id} by driver {ride.driver_id} ({ride.total_seats} seats)")
        return ride

    async def get_ride(self, ride_id: int, refresh: bool = False) -> Ride:
        ride = await self.session.get(Ride, ride_id, populate_existing=refresh)
        if ride is None:
            raise RideNotFoundError(ride_id)
        return ride

    async def list_available_rides(self, filter: Optional[RideFilter] = None) -> List[Ride]:
        """Active rides with at least one free seat, narrowed by ``filter``."""
        filter = filter or RideFilter()

        query = select(Ride).where(
            Ride.status == RideStatus.ACTIVE,
            Ride.available_seats > 0,
        )
        if filter.origin:
            query = query.where(Ride.origin.ilike(f"%{filter.origin.strip()}%"))
        if filter.destination:
            query = query.where(Ride.destination.ilike(f"%{filter.destination.strip()}%"))
        if filter.date:
            query = query.where(Ride.date == filter.date)
        if filter.min_seats:
            query = query.where(Ride.available_seats >= filter.min_seats)
        if filter.max_price is not None:
            query = query.where(Ride.price <= filter.max_price)

        order_by = SORT_OPTIONS.get(filter.sort_by, SORT_OPTIONS["departure"])
        query = query.order_by(*order_by, Ride.id.asc())

        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def list_driver_rides(self, driver_id: str, status: Optional[RideStatus] = None) -> List[Ride]:
        query = select(Ride).where(Ride.driver_id == driver_id)
        if status:
            query = query.where(Ride.status == status)
        query = query.order_by(Ride.created_at.desc(), Ride.id.desc())

        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def reserve_seats(self, ride_id: int, count: int, commit: bool = True) -> Ride:
        """Atomically take ``count`` seats from an active ride.

        Raises without mutating anything when the ride is missing, not active
        or does not have ``count`` seats left.
        """
        if count < 1:
            raise ValidationError("Seat count must be at least 1", field="count", value=count)

        result = await self.session.execute(
            update(Ride)
            .where(
                Ride.id == ride_id,
                Ride.status == RideStatus.ACTIVE,
                Ride.available_seats >= count,
            )
            .values(available_seats=Ride.available_seats - count)
            .execution_options(synchronize_session=False)
        )

        if result.rowcount == 0:
            ride = await self.get_ride(ride_id, refresh=True)
            if ride.status != RideStatus.ACTIVE:
                raise RideNotActiveError(ride_id, ride.status.value)
            raise InsufficientSeatsError(ride_id, count, ride.available_seats)

        if commit:
            await self.session.commit()

        ride = await self.get_ride(ride_id, refresh=True)
        logger.info(f"Reserved {count} seat(s) on ride {ride_id}, {ride.available_seats} left")
        return ride

    async def release_seats(self, ride_id: int, count: int, commit: bool = True) -> Ride:
        """Return ``count`` seats to the pool, never exceeding ``total_seats``."""
        if count < 1:
            raise ValidationError("Seat count must be at least 1", field="count", value=count)

        result = await self.session.execute(
            update(Ride)
            .where(
                Ride.id == ride_id,
                Ride.available_seats + count <= Ride.total_seats,
            )
            .values(available_seats=Ride.available_seats + count)
            .execution_options(synchronize_session=False)
        )

        if result.rowcount == 0:
            ride = await self.get_ride(ride_id, refresh=True)
            logger.warning(
                f"Seat release would overflow ride {ride_id}: releasing {count} with "
                f"{ride.available_seats}/{ride.total_seats} available, clamping to total"
            )
            await self.session.execute(
                update(Ride)
                .where(Ride.id == ride_id)
                .values(available_seats=case(
                    (Ride.available_seats + count > Ride.total_seats, Ride.total_seats),
                    else_=Ride.available_seats + count,
                ))
                .execution_options(synchronize_session=False)
            )

        if commit:
            await self.session.commit()

        ride = await self.get_ride(ride_id, refresh=True)
        logger.info(f"Released {count} seat(s) on ride {ride_id}, {ride.available_seats} left")
        return ride

    async def _owned_ride(self, ride_id: int, requester_id: str, action: str) -> Ride:
        ride = await self.get_ride(ride_id, refresh=True)
        if ride.driver_id != requester_id:
            raise NotOwnerError(requester_id, f"{action} ride {ride_id}")
        return ride

    async def _retire(self, ride_id: int, requester_id: str, new_status: RideStatus, action: str) -> Ride:
        ride = await self._owned_ride(ride_id, requester_id, action)
        if ride.status != RideStatus.ACTIVE:
            raise InvalidStateError(
                f"Only active rides can be {new_status.value}",
                current=ride.status.value,
            )

        result = await self.session.execute(
            update(Ride)
            .where(Ride.id == ride_id, Ride.status == RideStatus.ACTIVE)
            .values(status=new_status)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            await self.session.rollback()
            ride = await self.get_ride(ride_id, refresh=True)
            raise InvalidStateError(
                f"Only active rides can be {new_status.value}",
                current=ride.status.value,
            )
        await self.session.commit()

        logger.info(f"Ride {ride_id} {new_status.value} by driver {requester_id}")
        return await self.get_ride(ride_id, refresh=True)

    async def cancel_ride(self, ride_id: int, requester_id: str) -> Ride:
        return await self._retire(ride_id, requester_id, RideStatus.CANCELLED, "cancel")

    async def complete_ride(self, ride_id: int, requester_id: str) -> Ride:
        return await self._retire(ride_id, requester_id, RideStatus.COMPLETED, "complete")

    async def _seat_holders(self, ride_id: int) -> int:
        """Accepted requests plus non-cancelled bookings on the ride."""
        accepted = await self.session.execute(
            select(func.count(BookingRequest.id)).where(
                BookingRequest.ride_id == ride_id,
                BookingRequest.status == RequestStatus.ACCEPTED,
            )
        )
        live = await self.session.execute(
            select(func.count(Booking.id)).where(
                Booking.ride_id == ride_id,
                Booking.status != BookingStatus.CANCELLED,
            )
        )
        return accepted.scalar_one() + live.scalar_one()

    async def delete_ride(self, ride_id: int, requester_id: str) -> None:
        """Hard-delete a ride nobody holds seats on."""
        ride = await self._owned_ride(ride_id, requester_id, "delete")
        status = ride.status.value

        holders = await self._seat_holders(ride_id)
        if holders:
            raise InvalidStateError(
                "Ride has accepted riders; cancel it instead of deleting",
                current=status,
                seat_holders=holders,
            )

        accepted = select(BookingRequest.id).where(
            BookingRequest.ride_id == ride_id,
            BookingRequest.status == RequestStatus.ACCEPTED,
        )
        live = select(Booking.id).where(
            Booking.ride_id == ride_id,
            Booking.status != BookingStatus.CANCELLED,
        )

        # Every statement skips seat holders, so an accept or booking that
        # commits after the count above blocks the delete instead of being lost
        try:
            await self.session.execute(
                delete(BookingRequest)
                .where(BookingRequest.ride_id == ride_id, BookingRequest.status != RequestStatus.ACCEPTED)
                .execution_options(synchronize_session=False)
            )
            await self.session.execute(
                delete(Booking)
                .where(Booking.ride_id == ride_id, Booking.status == BookingStatus.CANCELLED)
                .execution_options(synchronize_session=False)
            )
            result = await self.session.execute(
                delete(Ride)
                .where(Ride.id == ride_id, ~accepted.exists(), ~live.exists())
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                raise InvalidStateError(
                    "Ride has accepted riders; cancel it instead of deleting",
                    current=status,
                    seat_holders=await self._seat_holders(ride_id),
                )
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise

        self.session.expunge(ride)

        logger.info(f"Ride {ride_id} deleted by driver {requester_id}")
