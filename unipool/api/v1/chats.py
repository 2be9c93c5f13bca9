"""
Chat API endpoints.
"""

from fastapi import APIRouter, Depends, status
from typing import List
import logging

from unipool.api.deps import get_chat_service
from unipool.api.v1.schemas import ChatOpen, ChatResponse, MarkedReadResponse, MessageCreate, MessageResponse
from unipool.core.identity import current_user_id
from unipool.services.chat import ChatService

logger = logging.getLogger(__name__)
router = APIRouter()

@router.post("/", response_model=ChatResponse)
async def open_chat(
    chat_data: ChatOpen,
    user_id: str = Depends(current_user_id),
    chats: ChatService = Depends(get_chat_service)
):
    """Open (or reopen) the chat between the caller and another user."""

    return await chats.get_or_create_chat(
        user_id,
        chat_data.other_user_id,
        chat_data.my_name,
        chat_data.other_name,
        ride_id=chat_data.ride_id,
    )

@router.get("/", response_model=List[ChatResponse])
async def list_chats(
    user_id: str = Depends(current_user_id),
    chats: ChatService = Depends(get_chat_service)
):
    return await chats.list_user_chats(user_id)

@router.post("/{chat_id}/messages", response_model=MessageResponse, status_code=status.HTTP_201_CREATED)
async def send_message(
    chat_id: int,
    message: MessageCreate,
    user_id: str = Depends(current_user_id),
    chats: ChatService = Depends(get_chat_service)
):
    return await chats.send_message(chat_id, user_id, message.text)

@router.get("/{chat_id}/messages", response_model=List[MessageResponse])
async def get_messages(
    chat_id: int,
    user_id: str = Depends(current_user_id),
    chats: ChatService = Depends(get_chat_service)
):
    return await chats.get_messages(chat_id, user_id)

@router.post("/{chat_id}/read", response_model=MarkedReadResponse)
async def mark_read(
    chat_id: int,
    user_id: str = Depends(current_user_id),
    chats: ChatService = Depends(get_chat_service)
):
    return MarkedReadResponse(updated=await chats.mark_messages_read(chat_id, user_id))
