import logging
from collections import defaultdict
from typing import Dict

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.models.chat import Message as MessageModel
from app.repositories.chat import ChatRepository
from app.repositories.user import UserRepository
from app.schemas.chat import (
    ConversationList, ConversationMessages, ConversationPartner, ConversationPreview,
    Message, MessageResponse, UnreadCount
)
from app.utils.exceptions import AuthorizationError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)


class ChatService:
    """Direct messages between mutual friends"""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.chat_repo = ChatRepository(db)
        self.user_repo = UserRepository(db)

    async def send_message(self, sender_id: int, recipient_id: int, content: str) -> MessageResponse:
        """Send a message to a friend"""
        if sender_id == recipient_id:
            raise ValidationError(
                "Cannot send message to yourself",
                reason="self_message_not_allowed"
            )

        recipient = await self.user_repo.get_by_id(recipient_id)
        if not recipient:
            raise NotFoundError("Recipient not found", reason="recipient_not_found")

        if not await self.user_repo.has_friend(sender_id, recipient_id):
            raise AuthorizationError(
                "You must be friends to send messages",
                reason="not_friends"
            )

        content = self._clean_content(content)

        message = await self.chat_repo.create_message(sender_id, recipient_id, content)
        logger.info("Message %s sent from %s to %s", message.id, sender_id, recipient_id)
        return MessageResponse(message=Message.model_validate(message))

    async def get_conversation(self, user_id: int, other_user_id: int) -> ConversationMessages:
        """Messages with a friend, oldest first. Marks the ones addressed to user_id as read."""
        # Checked on every read, so an unfriended conversation is no longer visible
        if not await self.user_repo.has_friend(user_id, other_user_id):
            raise AuthorizationError(
                "You must be friends to view this conversation",
                reason="not_friends"
            )

        marked = await self.chat_repo.mark_conversation_as_read(user_id, other_user_id)
        if marked:
            logger.debug("Marked %d messages from %s to %s as read", marked, other_user_id, user_id)

        messages = await self.chat_repo.get_conversation_messages(user_id, other_user_id)
        return ConversationMessages(
            messages=[Message.model_validate(m) for m in messages],
            total_count=len(messages)
        )

    async def get_conversations(self, user_id: int) -> ConversationList:
        """One preview per conversation partner, most recent conversation first.

        Only the latest ``CONVERSATION_SCAN_LIMIT`` messages of the user are
        scanned, so a partner whose messages all fall outside that window is
        not listed.
        """
        messages = await self.chat_repo.get_recent_messages(user_id, settings.CONVERSATION_SCAN_LIMIT)

        latest: Dict[int, MessageModel] = {}
        unread: Dict[int, int] = defaultdict(int)
        for message in messages:
            partner_id = message.recipient_id if message.sender_id == user_id else message.sender_id
            if partner_id not in latest:
                latest[partner_id] = message
            if message.recipient_id == user_id and not message.is_read:
                unread[partner_id] += 1

        partners = {user.id: user for user in await self.user_repo.get_by_ids(list(latest))}

        conversations = []
        for partner_id, message in latest.items():
            partner = partners.get(partner_id)
            if partner is None:
                continue
            conversations.append(
                ConversationPreview(
                    partner=ConversationPartner(
                        id=partner.id,
                        name=partner.name,
                        avatar_url=partner.avatar_url
                    ),
                    last_message=Message.model_validate(message),
                    unread_count=unread[partner_id]
                )
            )
        conversations.sort(
            key=lambda c: (c.last_message.created_at, c.last_message.id),
            reverse=True
        )
        return ConversationList(conversations=conversations, total_count=len(conversations))

    async def get_unread_count(self, user_id: int) -> UnreadCount:
        count = await self.chat_repo.get_unread_count(user_id)
        return UnreadCount(unread_count=count)

    @staticmethod
    def _clean_content(content: str) -> str:
        content = (content or "").strip()
        if not content:
            raise ValidationError("Message content cannot be empty", reason="empty_content")
        if len(content) > settings.MESSAGE_MAX_LENGTH:
            raise ValidationError(
                f"Message content cannot exceed {settings.MESSAGE_MAX_LENGTH} characters",
                reason="content_too_long"
            )
        return content
