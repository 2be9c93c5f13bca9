"""
Shared FastAPI dependencies.
"""

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from unipool.core.database import AsyncSessionLocal, get_db
from unipool.services.booking import BookingWorkflow
from unipool.services.chat import ChatService
from unipool.services.notifications import (
    DatabaseNotificationEmitter,
    NotificationEmitter,
    NotificationService,
    notification_hub,
)
from unipool.services.ratings import RatingService
from unipool.services.rides import RideInventory

async def get_notification_emitter() -> NotificationEmitter:
    """Dependency to get the notification emitter."""
    return DatabaseNotificationEmitter(AsyncSessionLocal, hub=notification_hub)

async def get_ride_inventory(db: AsyncSession = Depends(get_db)) -> RideInventory:
    return RideInventory(db)

async def get_booking_workflow(
    db: AsyncSession = Depends(get_db),
    emitter: NotificationEmitter = Depends(get_notification_emitter),
) -> BookingWorkflow:
    return BookingWorkflow(db, emitter)

async def get_notification_service(db: AsyncSession = Depends(get_db)) -> NotificationService:
    return NotificationService(db)

async def get_rating_service(
    db: AsyncSession = Depends(get_db),
    emitter: NotificationEmitter = Depends(get_notification_emitter),
) -> RatingService:
    return RatingService(db, emitter)

async def get_chat_service(
    db: AsyncSession = Depends(get_db),
    emitter: NotificationEmitter = Depends(get_notification_emitter),
) -> ChatService:
    return ChatService(db, emitter)
