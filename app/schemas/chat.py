from pydantic import BaseModel, ConfigDict, Field, field_validator
from datetime import datetime
from typing import List, Optional

from app.core.config import settings
from app.schemas.user import MAX_ID


class MessageCreate(BaseModel):
    recipient_id: int = Field(..., ge=1, le=MAX_ID)
    content: str = Field(..., min_length=1, max_length=settings.MESSAGE_MAX_LENGTH)

    @field_validator("content", mode="before")
    @classmethod
    def strip_content(cls, v):
        return v.strip() if isinstance(v, str) else v


class Message(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    sender_id: int
    recipient_id: int
    content: str
    is_read: bool = False
    created_at: datetime


class MessageResponse(BaseModel):
    ok: bool = True
    message: Message


class ConversationMessages(BaseModel):
    ok: bool = True
    messages: List[Message]
    total_count: int


class ConversationPartner(BaseModel):
    id: int
    name: str
    avatar_url: Optional[str] = None


class ConversationPreview(BaseModel):
    partner: ConversationPartner
    last_message: Message
    unread_count: int = 0


class ConversationList(BaseModel):
    ok: bool = True
    conversations: List[ConversationPreview]
    total_count: int


class UnreadCount(BaseModel):
    ok: bool = True
    unread_count: int
