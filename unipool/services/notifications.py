"""
Notification emission, live subscriptions and read-state management.

Workflows call the ``notify_*`` helpers on a :class:`NotificationEmitter`
after their own transaction has committed. Delivery is best-effort: a failed
emit is logged and never reaches the caller, so booking correctness does not
depend on the notification side channel.
"""

import asyncio
import inspect
import logging
from typing import Any, Callable, Dict, List, Optional, Set

from sqlalchemy import select, update, func
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from unipool.core.config import settings
from unipool.core.exceptions import NotificationNotFoundError, NotOwnerError
from unipool.models.notification import Notification, NotificationType

logger = logging.getLogger(__name__)

Listener = Callable[[Notification], Any]

class NotificationHub:
    """In-process fan-out of freshly created notifications to subscribers."""

    def __init__(self):
        self._listeners: Dict[str, Set[Listener]] = {}

    def subscribe(self, user_id: str, callback: Listener) -> Callable[[], None]:
        """Register ``callback`` for ``user_id``; returns the unsubscribe function."""
        self._listeners.setdefault(user_id, set()).add(callback)

        def unsubscribe() -> None:
            listeners = self._listeners.get(user_id)
            if not listeners:
                return
            listeners.discard(callback)
            if not listeners:
                del self._listeners[user_id]

        return unsubscribe

    def subscriber_count(self, user_id: str) -> int:
        return len(self._listeners.get(user_id, ()))

    async def publish(self, notification: Notification) -> None:
        for callback in list(self._listeners.get(notification.user_id, ())):
            try:
                result = callback(notification)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.error(f"Notification listener failed for user {notification.user_id}: {e}")

notification_hub = NotificationHub()

class NotificationEmitter:
    """Interface used by the workflows to tell users about state changes."""

    async def emit(
        self,
        user_id: str,
        type: NotificationType,
        title: str,
        message: str,
        payload: Optional[Dict[str, Any]] = None,
    ) -> None:
        raise NotImplementedError

    async def _deliver(self, user_id, type, title, message, payload=None) -> None:
        try:
            await self.emit(user_id, type, title, message, payload)
        except Exception as e:
            logger.error(f"Failed to deliver {type.value} notification to {user_id}: {e}")

    async def notify_ride_request(self, driver_id: str, rider_name: str, ride_details: str, **payload):
        await self._deliver(
            driver_id,
            NotificationType.RIDE_REQUEST,
            "New Ride Request",
            f"{rider_name} requested to join your ride {ride_details}",
            {"rider_name": rider_name, "ride_details": ride_details, **payload},
        )

    async def notify_ride_accepted(self, rider_id: str, driver_name: str, **payload):
        await self._deliver(
            rider_id,
            NotificationType.RIDE_ACCEPTED,
            "Ride Request Accepted",
            f"{driver_name} accepted your ride request",
            {"driver_name": driver_name, **payload},
        )

    async def notify_ride_declined(self, rider_id: str, driver_name: str, **payload):
        await self._deliver(
            rider_id,
            NotificationType.RIDE_DECLINED,
            "Ride Request Declined",
            f"{driver_name} declined your ride request",
            {"driver_name": driver_name, **payload},
        )

    async def notify_ride_completed(self, rider_id: str, ride_details: str, **payload):
        await self._deliver(
            rider_id,
            NotificationType.RIDE_COMPLETED,
            "Ride Completed",
            f"Your ride {ride_details} is complete. Don't forget to rate your driver!",
            {"ride_details": ride_details, **payload},
        )

    async def notify_new_message(self, user_id: str, sender_name: str, **payload):
        await self._deliver(
            user_id,
            NotificationType.MESSAGE,
            "New Message",
            f"You have a new message from {sender_name}",
            {"sender_name": sender_name, **payload},
        )

    async def notify_new_rating(self, user_id: str, rater_name: str, rating: int, **payload):
        await self._deliver(
            user_id,
            NotificationType.RATING,
            "New Rating",
            f"{rater_name} rated you {rating} stars!",
            {"rater_name": rater_name, "rating": rating, **payload},
        )

class DatabaseNotificationEmitter(NotificationEmitter):
    """Persists notifications in their own session and pushes them to the hub."""

    def __init__(self, session_factory: async_sessionmaker, hub: Optional[NotificationHub] = None):
        self.session_factory = session_factory
        self.hub = hub

    async def emit(self, user_id, type, title, message, payload=None) -> None:
        async with self.session_factory() as session:
            notification = Notification(
                user_id=user_id,
                type=type,
                title=title,
                message=message,
                read=False,
                payload=payload,
            )
            session.add(notification)
            await session.commit()

        logger.debug(f"Notification {notification.id} ({type.value}) created for {user_id}")

        if self.hub is not None:
            await self.hub.publish(notification)

class NotificationService:
    """Read side of notifications for the addressed user."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def list_for_user(
        self,
        user_id: str,
        unread_only: bool = False,
        limit: Optional[int] = None,
    ) -> List[Notification]:
        query = select(Notification).where(Notification.user_id == user_id)
        if unread_only:
            query = query.where(Notification.read.is_(False))
        query = query.order_by(Notification.created_at.desc(), Notification.id.desc())
        query = query.limit(limit or settings.NOTIFICATION_PAGE_SIZE)

        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def mark_as_read(self, notification_id: int, user_id: str) -> Notification:
        notification = await self.session.get(Notification, notification_id)
        if notification is None:
            raise NotificationNotFoundError(notification_id)
        if notification.user_id != user_id:
            raise NotOwnerError(user_id, "mark this notification as read")

        if not notification.read:
            notification.read = True
            await self.session.commit()
        return notification

    async def mark_all_as_read(self, user_id: str) -> int:
        result = await self.session.execute(
            update(Notification)
            .where(Notification.user_id == user_id, Notification.read.is_(False))
            .values(read=True)
            .execution_options(synchronize_session=False)
        )
        await self.session.commit()
        logger.info(f"Marked {result.rowcount} notifications read for {user_id}")
        return result.rowcount

    async def unread_count(self, user_id: str) -> int:
        result = await self.session.execute(
            select(func.count(Notification.id)).where(
                Notification.user_id == user_id,
                Notification.read.is_(False),
            )
        )
        return result.scalar_one()

def listener_queue(hub: NotificationHub, user_id: str):
    """Subscribe an ``asyncio.Queue`` to ``user_id``; returns (queue, unsubscribe)."""
    queue: asyncio.Queue = asyncio.Queue()
    unsubscribe = hub.subscribe(user_id, queue.put_nowait)
    return queue, unsubscribe
