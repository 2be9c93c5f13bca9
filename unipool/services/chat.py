"""
One-to-one chat between riders and drivers.
"""

import logging
from typing import List, Optional

from sqlalchemy import select, update, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from unipool.core.database import utcnow
from unipool.core.exceptions import ChatNotFoundError, NotOwnerError, ValidationError
from unipool.models.chat import Chat, Message
from unipool.services.notifications import NotificationEmitter
from unipool.services.rides import RideInventory

logger = logging.getLogger(__name__)

MAX_MESSAGE_LENGTH = 2000

class ChatService:
    def __init__(self, session: AsyncSession, emitter: NotificationEmitter):
        self.session = session
        self.emitter = emitter

    async def _find_chat(self, user_a: str, user_b: str) -> Optional[Chat]:
        result = await self.session.execute(
            select(Chat).where(Chat.participant_a == user_a, Chat.participant_b == user_b)
        )
        return result.scalars().first()

    async def get_or_create_chat(
        self,
        user_id_1: str,
        user_id_2: str,
        user_name_1: str,
        user_name_2: str,
        ride_id: Optional[int] = None,
    ) -> Chat:
        """Return the chat between two users, creating it on first contact."""
        if user_id_1 == user_id_2:
            raise ValidationError("Cannot open a chat with yourself", field="user_id")
        if ride_id is not None:
            await RideInventory(self.session).get_ride(ride_id)

        (a, name_a), (b, name_b) = sorted([(user_id_1, user_name_1), (user_id_2, user_name_2)])

        chat = await self._find_chat(a, b)
        if chat is not None:
            return chat

        chat = Chat(
            participant_a=a,
            participant_b=b,
            participant_a_name=name_a,
            participant_b_name=name_b,
            ride_id=ride_id,
            last_message="",
        )
        self.session.add(chat)
        try:
            await self.session.commit()
        except IntegrityError:
            # Both sides opened the chat at the same moment
            await self.session.rollback()
            chat = await self._find_chat(a, b)
            if chat is None:
                raise
            return chat

        logger.info(f"Chat {chat.id} opened between {a} and {b}")
        return chat

    async def get_chat(self, chat_id: int) -> Chat:
        chat = await self.session.get(Chat, chat_id)
        if chat is None:
            raise ChatNotFoundError(chat_id)
        return chat

    async def send_message(self, chat_id: int, sender_id: str, text: str) -> Message:
        text = (text or "").strip()
        if not text:
            raise ValidationError("Message text is required", field="text")
        if len(text) > MAX_MESSAGE_LENGTH:
            raise ValidationError(
                f"Messages are limited to {MAX_MESSAGE_LENGTH} characters",
                field="text",
                length=len(text),
            )

        chat = await self.get_chat(chat_id)
        if not chat.has_participant(sender_id):
            raise NotOwnerError(sender_id, f"post in chat {chat_id}")

        sent_at = utcnow()
        message = Message(
            chat_id=chat_id,
            sender_id=sender_id,
            sender_name=chat.name_of(sender_id),
            text=text,
            read=False,
            created_at=sent_at,
        )
        self.session.add(message)
        chat.last_message = text
        chat.last_message_at = sent_at
        await self.session.commit()

        await self.emitter.notify_new_message(
            chat.other_participant(sender_id),
            message.sender_name,
            chat_id=chat_id,
            message_id=message.id,
        )
        return message

    async def get_messages(self, chat_id: int, user_id: Optional[str] = None) -> List[Message]:
        """Messages oldest first; when ``user_id`` is given it must be a participant."""
        chat = await self.get_chat(chat_id)
        if user_id is not None and not chat.has_participant(user_id):
            raise NotOwnerError(user_id, f"read chat {chat_id}")

        result = await self.session.execute(
            select(Message)
            .where(Message.chat_id == chat_id)
            .order_by(Message.created_at.asc(), Message.id.asc())
        )
        return list(result.scalars().all())

    async def mark_messages_read(self, chat_id: int, user_id: str) -> int:
        """Mark everything the other participant sent as read."""
        chat = await self.get_chat(chat_id)
        if not chat.has_participant(user_id):
            raise NotOwnerError(user_id, f"read chat {chat_id}")

        result = await self.session.execute(
            update(Message)
            .where(
                Message.chat_id == chat_id,
                Message.sender_id != user_id,
                Message.read.is_(False),
            )
            .values(read=True)
            .execution_options(synchronize_session=False)
        )
        await self.session.commit()
        return result.rowcount

    async def list_user_chats(self, user_id: str) -> List[Chat]:
        result = await self.session.execute(
            select(Chat)
            .where(or_(Chat.participant_a == user_id, Chat.participant_b == user_id))
            .order_by(Chat.last_message_at.desc(), Chat.id.desc())
        )
        return list(result.scalars().all())
