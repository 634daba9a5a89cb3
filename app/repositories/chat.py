from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, and_, or_, func, desc
from typing import List

from app.models.chat import Message
from app.models.user import utcnow


class ChatRepository:

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create_message(self, sender_id: int, recipient_id: int, content: str) -> Message:
        """Create a new unread message"""
        message = Message(
            sender_id=sender_id,
            recipient_id=recipient_id,
            content=content,
            is_read=False
        )
        self.db.add(message)
        await self.db.commit()
        await self.db.refresh(message)
        return message

    async def get_conversation_messages(self, user_id: int, other_user_id: int) -> List[Message]:
        """All messages exchanged between two users, oldest first"""
        stmt = select(Message).where(
            or_(
                and_(Message.sender_id == user_id, Message.recipient_id == other_user_id),
                and_(Message.sender_id == other_user_id, Message.recipient_id == user_id)
            )
        ).order_by(Message.created_at, Message.id).execution_options(populate_existing=True)

        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def mark_conversation_as_read(self, reader_id: int, other_user_id: int) -> int:
        """Mark every unread message from other_user_id to reader_id as read"""
        stmt = update(Message).where(
            and_(
                Message.recipient_id == reader_id,
                Message.sender_id == other_user_id,
                Message.is_read == False
            )
        ).values(
            is_read=True,
            updated_at=utcnow()
        ).execution_options(synchronize_session=False)

        result = await self.db.execute(stmt)
        await self.db.commit()
        return result.rowcount

    async def get_recent_messages(self, user_id: int, limit: int = 100) -> List[Message]:
        """The most recent messages sent or received by user_id, newest first"""
        stmt = select(Message).where(
            or_(
                Message.sender_id == user_id,
                Message.recipient_id == user_id
            )
        ).order_by(desc(Message.created_at), desc(Message.id)).limit(limit).execution_options(
            populate_existing=True
        )

        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def get_unread_count(self, user_id: int) -> int:
        """Number of unread messages addressed to user_id"""
        stmt = select(func.count(Message.id)).where(
            and_(
                Message.recipient_id == user_id,
                Message.is_read == False
            )
        )
        result = await self.db.execute(stmt)
        return result.scalar() or 0
