"""
Chat and message models.
"""

from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, Text, UniqueConstraint
from sqlalchemy.orm import relationship
from unipool.core.database import Base, utcnow

class Chat(Base):
    """Conversation between exactly two users.

    Participants are stored sorted (``participant_a < participant_b``) so a
    pair maps to a single row whichever side opens the chat.
    """

    __tablename__ = "chats"

    id = Column(Integer, primary_key=True, index=True)
    participant_a = Column(String(128), nullable=False, index=True)
    participant_b = Column(String(128), nullable=False, index=True)
    participant_a_name = Column(String(120), nullable=False)
    participant_b_name = Column(String(120), nullable=False)
    ride_id = Column(Integer, ForeignKey("rides.id", ondelete="SET NULL"), nullable=True)

    last_message = Column(Text, nullable=False, default="")
    last_message_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    messages = relationship("Message", back_populates="chat", cascade="all, delete-orphan")

    __table_args__ = (
        UniqueConstraint("participant_a", "participant_b", name="uq_chat_participants"),
    )

    @property
    def participants(self):
        return [self.participant_a, self.participant_b]

    def has_participant(self, user_id: str) -> bool:
        return user_id in (self.participant_a, self.participant_b)

    def other_participant(self, user_id: str) -> str:
        return self.participant_b if user_id == self.participant_a else self.participant_a

    def name_of(self, user_id: str) -> str:
        return self.participant_a_name if user_id == self.participant_a else self.participant_b_name

class Message(Base):
    __tablename__ = "messages"

    id = Column(Integer, primary_key=True, index=True)
    chat_id = Column(Integer, ForeignKey("chats.id"), nullable=False, index=True)
    sender_id = Column(String(128), nullable=False)
    sender_name = Column(String(120), nullable=False)
    text = Column(Text, nullable=False)
    read = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    chat = relationship("Chat", back_populates="messages")
