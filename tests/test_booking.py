"""Tests for the booking request workflow and direct bookings."""

import asyncio

import pytest
from sqlalchemy.exc import IntegrityError

from unipool.core.exceptions import (
    DuplicateRequestError,
    InsufficientSeatsError,
    InvalidStateError,
    NotOwnerError,
    RequestNotFoundError,
    RideNotActiveError,
    RideNotFoundError,
    ValidationError,
)
from unipool.models.booking import BookingRequest, BookingStatus, RequestStatus
from unipool.models.notification import NotificationType
from unipool.services.booking import BookingWorkflow
from unipool.services.notifications import NotificationEmitter
from unipool.services.rides import RideInventory

from conftest import DRIVER_ID, RIDER_A, RIDER_B


async def accepted_passengers(workflow, ride_id):
    requests = await workflow.list_ride_requests(ride_id, RequestStatus.ACCEPTED)
    return sum(r.passengers for r in requests)


class TestSubmitRequest:

    async def test_creates_pending_request_and_notifies_driver(self, workflow, emitter, make_ride):
        ride = await make_ride()

        request = await workflow.submit_request(ride.id, RIDER_A, passengers=2, rider_name="Ana")

        assert request.status == RequestStatus.PENDING
        assert request.passengers == 2
        assert request.decided_at is None

        sent = emitter.for_user(DRIVER_ID, NotificationType.RIDE_REQUEST)
        assert len(sent) == 1
        assert "Ana requested to join your ride" in sent[0]["message"]
        assert sent[0]["payload"]["request_id"] == request.id

    async def test_seats_are_not_held_while_pending(self, workflow, inventory, make_ride):
        ride = await make_ride(total_seats=3)

        await workflow.submit_request(ride.id, RIDER_A, passengers=2)

        assert (await inventory.get_ride(ride.id, refresh=True)).available_seats == 3

    async def test_second_open_request_is_a_duplicate(self, workflow, make_ride):
        ride = await make_ride()
        await workflow.submit_request(ride.id, RIDER_A, passengers=1)

        with pytest.raises(DuplicateRequestError):
            await workflow.submit_request(ride.id, RIDER_A, passengers=1)

    async def test_accepted_request_also_blocks_a_new_one(self, workflow, make_ride):
        ride = await make_ride()
        request = await workflow.submit_request(ride.id, RIDER_A, passengers=1)
        await workflow.accept_request(request.id, ride.id)

        with pytest.raises(DuplicateRequestError):
            await workflow.submit_request(ride.id, RIDER_A, passengers=1)

    async def test_rider_may_ask_again_after_decline(self, workflow, make_ride):
        ride = await make_ride()
        first = await workflow.submit_request(ride.id, RIDER_A, passengers=1)
        await workflow.decline_request(first.id)

        second = await workflow.submit_request(ride.id, RIDER_A, passengers=1)

        assert second.id != first.id
        assert second.status == RequestStatus.PENDING

    async def test_missing_ride(self, workflow):
        with pytest.raises(RideNotFoundError):
            await workflow.submit_request(404, RIDER_A, passengers=1)

    async def test_inactive_ride(self, workflow, inventory, make_ride):
        ride = await make_ride()
        await inventory.cancel_ride(ride.id, DRIVER_ID)

        with pytest.raises(RideNotActiveError):
            await workflow.submit_request(ride.id, RIDER_A, passengers=1)

    async def test_more_passengers_than_free_seats(self, workflow, make_ride):
        ride = await make_ride(total_seats=2)

        with pytest.raises(InsufficientSeatsError):
            await workflow.submit_request(ride.id, RIDER_A, passengers=3)

    async def test_zero_passengers(self, workflow, make_ride):
        ride = await make_ride()
        with pytest.raises(ValidationError):
            await workflow.submit_request(ride.id, RIDER_A, passengers=0)

    async def test_driver_cannot_request_own_ride(self, workflow, make_ride):
        ride = await make_ride()
        with pytest.raises(ValidationError):
            await workflow.submit_request(ride.id, DRIVER_ID, passengers=1)


class TestAcceptDecline:

    async def test_accept_then_competing_request_fails_precheck(self, workflow, inventory, emitter, make_ride):
        ride = await make_ride(total_seats=3)
        request_a = await workflow.submit_request(ride.id, RIDER_A, passengers=2)

        accepted = await workflow.accept_request(request_a.id, ride.id)

        assert accepted.status == RequestStatus.ACCEPTED
        assert accepted.decided_at is not None
        assert (await inventory.get_ride(ride.id, refresh=True)).available_seats == 1
        assert len(emitter.for_user(RIDER_A, NotificationType.RIDE_ACCEPTED)) == 1

        with pytest.raises(InsufficientSeatsError) as exc_info:
            await workflow.submit_request(ride.id, RIDER_B, passengers=2)
        assert exc_info.value.available == 1

    async def test_accept_revalidates_seats(self, workflow, inventory, emitter, make_ride):
        ride = await make_ride(total_seats=3)
        ride_id = ride.id
        request_a = await workflow.submit_request(ride_id, RIDER_A, passengers=2)
        request_b = await workflow.submit_request(ride_id, RIDER_B, passengers=2)
        request_b_id = request_b.id
        await workflow.accept_request(request_a.id, ride_id)

        with pytest.raises(InsufficientSeatsError):
            await workflow.accept_request(request_b_id, ride_id)

        request_b = await workflow.get_request(request_b_id, refresh=True)
        assert request_b.status == RequestStatus.PENDING
        assert request_b.decided_at is None
        assert (await inventory.get_ride(ride_id, refresh=True)).available_seats == 1
        assert emitter.for_user(RIDER_B, NotificationType.RIDE_ACCEPTED) == []

    async def test_accept_is_single_shot(self, workflow, make_ride):
        ride = await make_ride()
        request = await workflow.submit_request(ride.id, RIDER_A, passengers=1)
        await workflow.accept_request(request.id, ride.id)

        with pytest.raises(InvalidStateError):
            await workflow.accept_request(request.id, ride.id)

    async def test_accept_on_cancelled_ride(self, workflow, inventory, make_ride):
        ride = await make_ride()
        ride_id = ride.id
        request = await workflow.submit_request(ride_id, RIDER_A, passengers=1)
        request_id = request.id
        await inventory.cancel_ride(ride_id, DRIVER_ID)

        with pytest.raises(RideNotActiveError):
            await workflow.accept_request(request_id, ride_id)

        assert (await workflow.get_request(request_id, refresh=True)).status == RequestStatus.PENDING

    async def test_accept_checks_ride_and_driver(self, workflow, make_ride):
        ride = await make_ride()
        other = await make_ride()
        request = await workflow.submit_request(ride.id, RIDER_A, passengers=1)

        with pytest.raises(ValidationError):
            await workflow.accept_request(request.id, other.id)
        with pytest.raises(NotOwnerError):
            await workflow.accept_request(request.id, ride.id, driver_id=RIDER_B)

    async def test_accept_unknown_request(self, workflow, make_ride):
        ride = await make_ride()
        with pytest.raises(RequestNotFoundError):
            await workflow.accept_request(12345, ride.id)

    async def test_decline_never_touches_seats(self, workflow, inventory, emitter, make_ride):
        ride = await make_ride(total_seats=3)
        request = await workflow.submit_request(ride.id, RIDER_A, passengers=2)

        declined = await workflow.decline_request(request.id)

        assert declined.status == RequestStatus.DECLINED
        assert declined.decided_at is not None
        assert (await inventory.get_ride(ride.id, refresh=True)).available_seats == 3
        assert len(emitter.for_user(RIDER_A, NotificationType.RIDE_DECLINED)) == 1

        with pytest.raises(InvalidStateError):
            await workflow.decline_request(request.id)
        with pytest.raises(InvalidStateError):
            await workflow.accept_request(request.id, ride.id)

    async def test_accepted_passengers_never_exceed_capacity(self, workflow, inventory, make_ride):
        ride = await make_ride(total_seats=5)
        ride_id = ride.id
        request_ids = []
        for i in range(6):
            request = await workflow.submit_request(ride_id, f"rider-{i}", passengers=2 if i < 3 else 1)
            request_ids.append(request.id)

        outcomes = []
        for request_id in request_ids:
            try:
                await workflow.accept_request(request_id, ride_id)
                outcomes.append(True)
            except InsufficientSeatsError:
                outcomes.append(False)

        ride = await inventory.get_ride(ride_id, refresh=True)
        assert outcomes == [True, True, False, True, False, False]
        assert ride.available_seats == 0
        assert await accepted_passengers(workflow, ride.id) == ride.total_seats


class TestConcurrentAccepts:
    """Two accepts racing for the same seats on separate connections."""

    async def test_exactly_one_wins(self, session_factory, emitter, workflow, make_ride):
        ride = await make_ride(total_seats=3)
        request_a = await workflow.submit_request(ride.id, RIDER_A, passengers=2)
        request_b = await workflow.submit_request(ride.id, RIDER_B, passengers=2)

        async def accept(request_id):
            async with session_factory() as session:
                try:
                    await BookingWorkflow(session, emitter).accept_request(request_id, ride.id)
                    return "accepted"
                except InsufficientSeatsError:
                    return "insufficient"

        results = await asyncio.gather(accept(request_a.id), accept(request_b.id))

        assert sorted(results) == ["accepted", "insufficient"]

        async with session_factory() as session:
            check = BookingWorkflow(session, emitter)
            fresh = await RideInventory(session).get_ride(ride.id)
            assert fresh.available_seats == 1
            assert await accepted_passengers(check, ride.id) == 2
            pending = await check.list_ride_requests(ride.id, RequestStatus.PENDING)
            assert len(pending) == 1


class TestConcurrentSubmissions:
    """The same rider tapping "request" or "book" several times at once."""

    async def test_only_one_open_request_survives(self, session_factory, emitter, workflow, make_ride):
        ride = await make_ride(total_seats=3)
        ride_id = ride.id

        async def submit():
            async with session_factory() as session:
                try:
                    await BookingWorkflow(session, emitter).submit_request(ride_id, RIDER_A, passengers=1)
                    return "created"
                except DuplicateRequestError:
                    return "duplicate"

        results = await asyncio.gather(*(submit() for _ in range(4)))

        assert sorted(results) == ["created", "duplicate", "duplicate", "duplicate"]
        pending = await workflow.list_ride_requests(ride_id, RequestStatus.PENDING)
        assert len(pending) == 1
        assert len(emitter.for_user(DRIVER_ID, NotificationType.RIDE_REQUEST)) == 1

    async def test_only_one_booking_holds_seats(self, session_factory, emitter, workflow, inventory, make_ride):
        ride = await make_ride(total_seats=4)
        ride_id = ride.id

        async def book():
            async with session_factory() as session:
                try:
                    await BookingWorkflow(session, emitter).create_booking(ride_id, RIDER_A, "Ana")
                    return "booked"
                except DuplicateRequestError:
                    return "duplicate"

        results = await asyncio.gather(*(book() for _ in range(3)))

        assert sorted(results) == ["booked", "duplicate", "duplicate"]
        assert len(await workflow.get_ride_bookings(ride_id)) == 1
        assert (await inventory.get_ride(ride_id, refresh=True)).available_seats == 3

    async def test_database_rejects_a_second_open_request(self, session, make_ride):
        ride = await make_ride()
        session.add(BookingRequest(ride_id=ride.id, rider_id=RIDER_A, passengers=1, status=RequestStatus.PENDING))
        await session.commit()

        session.add(BookingRequest(ride_id=ride.id, rider_id=RIDER_A, passengers=1, status=RequestStatus.ACCEPTED))
        with pytest.raises(IntegrityError):
            await session.commit()
        await session.rollback()

    async def test_declined_requests_do_not_count(self, session, make_ride):
        ride = await make_ride()
        ride_id = ride.id
        for _ in range(2):
            session.add(BookingRequest(ride_id=ride_id, rider_id=RIDER_A, passengers=1, status=RequestStatus.DECLINED))
        session.add(BookingRequest(ride_id=ride_id, rider_id=RIDER_A, passengers=1, status=RequestStatus.PENDING))

        await session.commit()


class TestDirectBookings:

    async def test_booking_reserves_and_copies_ride_details(self, workflow, inventory, make_ride):
        ride = await make_ride(total_seats=3, price=4.0)

        booking = await workflow.create_booking(ride.id, RIDER_A, "Ana", seats=2)

        assert booking.status == BookingStatus.CONFIRMED
        assert booking.driver_id == DRIVER_ID
        assert booking.origin == ride.origin
        assert booking.price == 4.0
        assert (await inventory.get_ride(ride.id, refresh=True)).available_seats == 1

    async def test_cancel_returns_seats_up_to_total(self, workflow, inventory, make_ride):
        ride = await make_ride(total_seats=3)
        booking = await workflow.create_booking(ride.id, RIDER_A, "Ana", seats=2)
        assert (await inventory.get_ride(ride.id, refresh=True)).available_seats == 1

        cancelled = await workflow.cancel_booking(booking.id, RIDER_A)

        assert cancelled.status == BookingStatus.CANCELLED
        assert cancelled.cancelled_at is not None
        assert (await inventory.get_ride(ride.id, refresh=True)).available_seats == 3

    async def test_driver_may_cancel_a_booking(self, workflow, make_ride):
        ride = await make_ride()
        booking = await workflow.create_booking(ride.id, RIDER_A, "Ana")

        cancelled = await workflow.cancel_booking(booking.id, DRIVER_ID)

        assert cancelled.status == BookingStatus.CANCELLED

    async def test_stranger_cannot_cancel(self, workflow, inventory, make_ride):
        ride = await make_ride(total_seats=3)
        booking = await workflow.create_booking(ride.id, RIDER_A, "Ana")

        with pytest.raises(NotOwnerError):
            await workflow.cancel_booking(booking.id, RIDER_B)

        assert (await inventory.get_ride(ride.id, refresh=True)).available_seats == 2

    async def test_cancel_twice(self, workflow, inventory, make_ride):
        ride = await make_ride(total_seats=3)
        booking = await workflow.create_booking(ride.id, RIDER_A, "Ana")
        await workflow.cancel_booking(booking.id, RIDER_A)

        with pytest.raises(InvalidStateError):
            await workflow.cancel_booking(booking.id, RIDER_A)

        assert (await inventory.get_ride(ride.id, refresh=True)).available_seats == 3

    async def test_duplicate_booking(self, workflow, make_ride):
        ride = await make_ride()
        await workflow.create_booking(ride.id, RIDER_A, "Ana")

        with pytest.raises(DuplicateRequestError):
            await workflow.create_booking(ride.id, RIDER_A, "Ana")

    async def test_overbooking_leaves_no_booking_behind(self, workflow, make_ride):
        ride = await make_ride(total_seats=1)

        with pytest.raises(InsufficientSeatsError):
            await workflow.create_booking(ride.id, RIDER_A, "Ana", seats=2)

        assert await workflow.get_rider_bookings(RIDER_A) == []

    async def test_booking_lists(self, workflow, make_ride):
        ride = await make_ride(total_seats=4)
        kept = await workflow.create_booking(ride.id, RIDER_A, "Ana")
        dropped = await workflow.create_booking(ride.id, RIDER_B, "Ben")
        await workflow.cancel_booking(dropped.id, RIDER_B)

        assert [b.id for b in await workflow.get_ride_bookings(ride.id)] == [kept.id]
        assert [b.id for b in await workflow.get_driver_bookings(DRIVER_ID)] == [kept.id]
        assert [b.id for b in await workflow.get_rider_bookings(RIDER_B)] == [dropped.id]


class TestCompleteRide:

    async def test_riders_are_told_the_ride_is_complete(self, workflow, emitter, make_ride):
        ride = await make_ride(total_seats=3)
        request = await workflow.submit_request(ride.id, RIDER_A, passengers=1)
        await workflow.accept_request(request.id, ride.id)
        await workflow.create_booking(ride.id, RIDER_B, "Ben")
        await workflow.submit_request(ride.id, "rider-pending", passengers=1)

        await workflow.complete_ride(ride.id, DRIVER_ID)

        assert len(emitter.for_user(RIDER_A, NotificationType.RIDE_COMPLETED)) == 1
        assert len(emitter.for_user(RIDER_B, NotificationType.RIDE_COMPLETED)) == 1
        assert emitter.for_user("rider-pending", NotificationType.RIDE_COMPLETED) == []


class BrokenEmitter(NotificationEmitter):
    async def emit(self, user_id, type, title, message, payload=None):
        raise RuntimeError("notification backend down")


async def test_notification_failure_does_not_undo_booking_state(session, make_ride):
    workflow = BookingWorkflow(session, BrokenEmitter())
    ride = await make_ride(total_seats=2)

    request = await workflow.submit_request(ride.id, RIDER_A, passengers=1)
    accepted = await workflow.accept_request(request.id, ride.id)

    assert accepted.status == RequestStatus.ACCEPTED
    assert (await workflow.rides.get_ride(ride.id, refresh=True)).available_seats == 1
