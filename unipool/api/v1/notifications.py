"""
Notification API endpoints, including the live websocket feed.
"""

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect, status
from typing import List, Optional
import asyncio
import logging

from unipool.api.deps import get_notification_service
from unipool.api.v1.schemas import (
    MarkedReadResponse, NotificationResponse, UnreadCountResponse
)
from unipool.core.identity import current_user_id, optional_user_id
from unipool.services.notifications import NotificationService, listener_queue, notification_hub

logger = logging.getLogger(__name__)
router = APIRouter()

@router.get("/", response_model=List[NotificationResponse])
async def list_notifications(
    unread_only: bool = False,
    limit: Optional[int] = None,
    user_id: str = Depends(current_user_id),
    notifications: NotificationService = Depends(get_notification_service)
):
    """Get the caller's notifications, newest first."""

    return await notifications.list_for_user(user_id, unread_only=unread_only, limit=limit)

@router.get("/unread-count", response_model=UnreadCountResponse)
async def unread_count(
    user_id: str = Depends(current_user_id),
    notifications: NotificationService = Depends(get_notification_service)
):
    return UnreadCountResponse(count=await notifications.unread_count(user_id))

@router.post("/read-all", response_model=MarkedReadResponse)
async def mark_all_read(
    user_id: str = Depends(current_user_id),
    notifications: NotificationService = Depends(get_notification_service)
):
    return MarkedReadResponse(updated=await notifications.mark_all_as_read(user_id))

@router.post("/{notification_id}/read", response_model=NotificationResponse)
async def mark_read(
    notification_id: int,
    user_id: str = Depends(current_user_id),
    notifications: NotificationService = Depends(get_notification_service)
):
    """Mark one of the caller's notifications as read."""

    return await notifications.mark_as_read(notification_id, user_id)

@router.websocket("/ws/{user_id}")
async def notification_feed(
    websocket: WebSocket,
    user_id: str,
    caller_id: Optional[str] = Depends(optional_user_id)
):
    """Push new notifications for ``user_id`` as they are created.

    Only the addressee may listen; anyone else is closed with 1008.
    """

    if caller_id != user_id:
        logger.info(f"Rejected notification feed for {user_id} requested by {caller_id}")
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    queue, unsubscribe = listener_queue(notification_hub, user_id)

    async def forward():
        while True:
            notification = await queue.get()
            payload = NotificationResponse.model_validate(notification).model_dump(mode="json")
            await websocket.send_json(payload)

    await websocket.accept()
    forwarder = asyncio.create_task(forward())
    logger.info(f"Notification feed opened for {user_id}")
    try:
        # Reading is how a client disconnect is noticed
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        logger.info(f"Notification feed closed for {user_id}")
    finally:
        forwarder.cancel()
        unsubscribe()
