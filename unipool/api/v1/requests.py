"""
Booking request API endpoints.
"""

from fastapi import APIRouter, Depends, status
from typing import List, Optional
import logging

from unipool.api.deps import get_booking_workflow
from unipool.api.v1.schemas import BookingRequestCreate, BookingRequestResponse, RequestStatus
from unipool.core.identity import current_user_id
from unipool.services.booking import BookingWorkflow

logger = logging.getLogger(__name__)
router = APIRouter()

@router.post("/", response_model=BookingRequestResponse, status_code=status.HTTP_201_CREATED)
async def submit_request(
    request_data: BookingRequestCreate,
    rider_id: str = Depends(current_user_id),
    workflow: BookingWorkflow = Depends(get_booking_workflow)
):
    """Ask to join a ride."""

    return await workflow.submit_request(
        request_data.ride_id,
        rider_id,
        passengers=request_data.passengers,
        rider_name=request_data.rider_name,
    )

@router.post("/{request_id}/accept", response_model=BookingRequestResponse)
async def accept_request(
    request_id: int,
    ride_id: int,
    driver_id: str = Depends(current_user_id),
    workflow: BookingWorkflow = Depends(get_booking_workflow)
):
    """Accept a pending request on one of the caller's rides."""

    return await workflow.accept_request(request_id, ride_id, driver_id=driver_id)

@router.post("/{request_id}/decline", response_model=BookingRequestResponse)
async def decline_request(
    request_id: int,
    driver_id: str = Depends(current_user_id),
    workflow: BookingWorkflow = Depends(get_booking_workflow)
):
    """Decline a pending request on one of the caller's rides."""

    return await workflow.decline_request(request_id, driver_id=driver_id)

@router.get("/ride/{ride_id}", response_model=List[BookingRequestResponse])
async def get_ride_requests(
    ride_id: int,
    status: Optional[RequestStatus] = None,
    workflow: BookingWorkflow = Depends(get_booking_workflow)
):
    """Get requests for a specific ride, oldest first."""

    return await workflow.list_ride_requests(ride_id, status)

@router.get("/rider/me", response_model=List[BookingRequestResponse])
async def get_my_requests(
    rider_id: str = Depends(current_user_id),
    workflow: BookingWorkflow = Depends(get_booking_workflow)
):
    """Get the caller's own requests."""

    return await workflow.list_rider_requests(rider_id)

@router.get("/driver/me", response_model=List[BookingRequestResponse])
async def get_incoming_requests(
    status: Optional[RequestStatus] = None,
    driver_id: str = Depends(current_user_id),
    workflow: BookingWorkflow = Depends(get_booking_workflow)
):
    """Get requests across all of the caller's rides."""

    return await workflow.list_driver_requests(driver_id, status)
