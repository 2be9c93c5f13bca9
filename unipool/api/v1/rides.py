"""
Ride management API endpoints.
"""

from fastapi import APIRouter, Depends, status
from typing import List, Optional
import logging
from datetime import date as date_type

from unipool.api.deps import get_booking_workflow, get_ride_inventory
from unipool.api.v1.schemas import RideCreate, RideResponse, RideSort, RideStatus
from unipool.core.identity import current_user_id
from unipool.services.booking import BookingWorkflow
from unipool.services.rides import RideFilter, RideInventory, RideSpec

logger = logging.getLogger(__name__)
router = APIRouter()

@router.post("/", response_model=RideResponse, status_code=status.HTTP_201_CREATED)
async def post_ride(
    ride_data: RideCreate,
    driver_id: str = Depends(current_user_id),
    rides: RideInventory = Depends(get_ride_inventory)
):
    """Post a new ride offer as the calling driver."""

    ride = await rides.create_ride(RideSpec(driver_id=driver_id, **ride_data.model_dump()))
    return ride

@router.get("/", response_model=List[RideResponse])
async def search_rides(
    origin: Optional[str] = None,
    destination: Optional[str] = None,
    date: Optional[date_type] = None,
    passengers: Optional[int] = None,
    max_price: Optional[float] = None,
    sort_by: RideSort = RideSort.DEPARTURE,
    rides: RideInventory = Depends(get_ride_inventory)
):
    """Search active rides that still have free seats."""

    ride_filter = RideFilter(
        origin=origin,
        destination=destination,
        date=date,
        min_seats=passengers,
        max_price=max_price,
        sort_by=sort_by.value,
    )
    return await rides.list_available_rides(ride_filter)

@router.get("/driver/{driver_id}", response_model=List[RideResponse])
async def get_driver_rides(
    driver_id: str,
    status: Optional[RideStatus] = None,
    rides: RideInventory = Depends(get_ride_inventory)
):
    """Get rides posted by a specific driver."""

    return await rides.list_driver_rides(driver_id, status)

@router.get("/{ride_id}", response_model=RideResponse)
async def get_ride(
    ride_id: int,
    rides: RideInventory = Depends(get_ride_inventory)
):
    """Get ride details by ID."""

    return await rides.get_ride(ride_id)

@router.post("/{ride_id}/cancel", response_model=RideResponse)
async def cancel_ride(
    ride_id: int,
    driver_id: str = Depends(current_user_id),
    rides: RideInventory = Depends(get_ride_inventory)
):
    """Cancel a ride. Only the posting driver may do this."""

    return await rides.cancel_ride(ride_id, driver_id)

@router.post("/{ride_id}/complete", response_model=RideResponse)
async def complete_ride(
    ride_id: int,
    driver_id: str = Depends(current_user_id),
    workflow: BookingWorkflow = Depends(get_booking_workflow)
):
    """Mark a ride completed and notify its riders."""

    return await workflow.complete_ride(ride_id, driver_id)

@router.delete("/{ride_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_ride(
    ride_id: int,
    driver_id: str = Depends(current_user_id),
    rides: RideInventory = Depends(get_ride_inventory)
):
    """Delete a ride that nobody holds seats on."""

    await rides.delete_ride(ride_id, driver_id)
