"""
Direct booking API endpoints.
"""

from fastapi import APIRouter, Depends, status
from typing import List
import logging

from unipool.api.deps import get_booking_workflow
from unipool.api.v1.schemas import BookingCreate, BookingResponse
from unipool.core.identity import current_user_id
from unipool.services.booking import BookingWorkflow

logger = logging.getLogger(__name__)
router = APIRouter()

@router.post("/", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
async def create_booking(
    booking_data: BookingCreate,
    rider_id: str = Depends(current_user_id),
    workflow: BookingWorkflow = Depends(get_booking_workflow)
):
    """Book seats on a ride right away."""

    return await workflow.create_booking(
        booking_data.ride_id,
        rider_id,
        booking_data.rider_name,
        seats=booking_data.seats,
        rider_phone=booking_data.rider_phone,
    )

@router.post("/{booking_id}/cancel", response_model=BookingResponse)
async def cancel_booking(
    booking_id: int,
    user_id: str = Depends(current_user_id),
    workflow: BookingWorkflow = Depends(get_booking_workflow)
):
    """Cancel a booking as its rider or driver."""

    return await workflow.cancel_booking(booking_id, user_id)

@router.get("/ride/{ride_id}", response_model=List[BookingResponse])
async def get_ride_bookings(
    ride_id: int,
    workflow: BookingWorkflow = Depends(get_booking_workflow)
):
    """Confirmed bookings on a ride."""

    return await workflow.get_ride_bookings(ride_id)

@router.get("/driver/me", response_model=List[BookingResponse])
async def get_driver_bookings(
    driver_id: str = Depends(current_user_id),
    workflow: BookingWorkflow = Depends(get_booking_workflow)
):
    """Confirmed bookings across the caller's rides."""

    return await workflow.get_driver_bookings(driver_id)

@router.get("/rider/me", response_model=List[BookingResponse])
async def get_rider_bookings(
    rider_id: str = Depends(current_user_id),
    workflow: BookingWorkflow = Depends(get_booking_workflow)
):
    """All of the caller's bookings, newest first."""

    return await workflow.get_rider_bookings(rider_id)
