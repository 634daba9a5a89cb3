from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import or_, and_, select
from sqlalchemy.orm import selectinload
from typing import List, Optional

from app.models.friendship import FriendRequest, make_pair_key
from app.models.user import User, utcnow
from app.schemas.friendship import FriendRequestStatus


class FriendshipRepository:

    def __init__(self, db: AsyncSession):
        self.db = db

    async def search_users(
        self,
        query: str,
        current_user_id: int,
        excluded_ids: List[int],
        limit: int = 20
    ) -> List[User]:
        """Search active users by name or email, skipping the caller and excluded ids"""
        pattern = f"%{query}%"
        stmt = select(User).where(
            and_(
                User.id != current_user_id,
                User.is_active == True,
                or_(
                    User.name.ilike(pattern),
                    User.email.ilike(pattern)
                )
            )
        )
        if excluded_ids:
            stmt = stmt.where(User.id.notin_(excluded_ids))
        stmt = stmt.order_by(User.name, User.id).limit(limit)

        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def get_request_between(self, user1_id: int, user2_id: int) -> Optional[FriendRequest]:
        """Get the request for the unordered pair {user1, user2}, whichever side sent it"""
        stmt = select(FriendRequest).where(
            or_(
                and_(FriendRequest.sender_id == user1_id, FriendRequest.receiver_id == user2_id),
                and_(FriendRequest.sender_id == user2_id, FriendRequest.receiver_id == user1_id)
            )
        )
        result = await self.db.execute(stmt)
        return result.scalars().first()

    async def get_requests_between(self, user_id: int, other_ids: List[int]) -> List[FriendRequest]:
        """Get every request linking user_id with any of other_ids"""
        if not other_ids:
            return []
        stmt = select(FriendRequest).where(
            or_(
                and_(FriendRequest.sender_id == user_id, FriendRequest.receiver_id.in_(other_ids)),
                and_(FriendRequest.receiver_id == user_id, FriendRequest.sender_id.in_(other_ids))
            )
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def create_request(self, sender_id: int, receiver_id: int) -> FriendRequest:
        """Create a new pending friend request"""
        friend_request = FriendRequest(
            sender_id=sender_id,
            receiver_id=receiver_id,
            pair_key=make_pair_key(sender_id, receiver_id),
            status=FriendRequestStatus.PENDING.value
        )
        self.db.add(friend_request)
        await self.db.commit()
        await self.db.refresh(friend_request)
        return friend_request

    async def reopen_request(self, friend_request: FriendRequest, sender_id: int, receiver_id: int) -> FriendRequest:
        """Turn an existing record for the pair back into a pending request from sender_id"""
        friend_request.sender_id = sender_id
        friend_request.receiver_id = receiver_id
        friend_request.status = FriendRequestStatus.PENDING.value
        # Sorts as a new request
        friend_request.created_at = utcnow()
        await self.db.commit()
        await self.db.refresh(friend_request)
        return friend_request

    async def get_request(self, request_id: int) -> Optional[FriendRequest]:
        """Get a specific friend request by ID"""
        stmt = select(FriendRequest).where(FriendRequest.id == request_id)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def set_status(self, friend_request: FriendRequest, new_status: FriendRequestStatus) -> FriendRequest:
        friend_request.status = new_status.value
        await self.db.commit()
        await self.db.refresh(friend_request)
        return friend_request

    async def get_incoming_requests(self, user_id: int) -> List[FriendRequest]:
        """Pending requests addressed to user_id, newest first"""
        stmt = select(FriendRequest).options(
            selectinload(FriendRequest.sender)
        ).where(
            and_(
                FriendRequest.receiver_id == user_id,
                FriendRequest.status == FriendRequestStatus.PENDING.value
            )
        ).order_by(FriendRequest.created_at.desc(), FriendRequest.id.desc())
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def get_outgoing_requests(self, user_id: int) -> List[FriendRequest]:
        """Pending requests sent by user_id, newest first"""
        stmt = select(FriendRequest).options(
            selectinload(FriendRequest.receiver)
        ).where(
            and_(
                FriendRequest.sender_id == user_id,
                FriendRequest.status == FriendRequestStatus.PENDING.value
            )
        ).order_by(FriendRequest.created_at.desc(), FriendRequest.id.desc())
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def get_accepted_requests(self, user_id: int) -> List[FriendRequest]:
        """Accepted requests where user_id is either side"""
        stmt = select(FriendRequest).where(
            and_(
                FriendRequest.status == FriendRequestStatus.ACCEPTED.value,
                or_(
                    FriendRequest.sender_id == user_id,
                    FriendRequest.receiver_id == user_id
                )
            )
        ).order_by(FriendRequest.id)
        result = await self.db.execute(stmt)
        return list(result.scalars().all())
