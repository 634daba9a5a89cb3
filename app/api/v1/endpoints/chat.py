from fastapi import APIRouter, Depends, Path, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.api.deps import get_current_active_user
from app.schemas.chat import (
    ConversationList, ConversationMessages, MessageCreate, MessageResponse, UnreadCount
)
from app.schemas.user import MAX_ID
from app.models.user import User as UserModel
from app.services.chat import ChatService

router = APIRouter()


@router.get("", response_model=ConversationList)
async def get_conversations(
    current_user: UserModel = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db)
):
    """Get the current user's conversations, most recent first"""
    service = ChatService(db)
    return await service.get_conversations(current_user.id)


@router.post("", response_model=MessageResponse, status_code=status.HTTP_201_CREATED)
async def send_message(
    message_data: MessageCreate,
    current_user: UserModel = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db)
):
    """Send a message to a friend"""
    service = ChatService(db)
    return await service.send_message(current_user.id, message_data.recipient_id, message_data.content)


@router.get("/unread", response_model=UnreadCount)
async def get_unread_count(
    current_user: UserModel = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db)
):
    """Get the number of unread messages"""
    service = ChatService(db)
    return await service.get_unread_count(current_user.id)


@router.get("/{user_id}", response_model=ConversationMessages)
async def get_conversation(
    user_id: int = Path(..., ge=1, le=MAX_ID),
    current_user: UserModel = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db)
):
    """Get the conversation with a friend and mark it as read"""
    service = ChatService(db)
    return await service.get_conversation(current_user.id, user_id)
