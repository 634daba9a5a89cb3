from typing import Any, Dict, List, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import Table, delete, insert, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError

from app.models.user import User, user_blocks, user_friends, utcnow
from app.schemas.user import UserCreate, UserUpdate
from app.core.security import get_password_hash

# Dialects with a native "insert unless present"
_INSERT_IGNORE = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


class UserRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def create(self, user_data: UserCreate) -> Optional[User]:
        """Create a new user"""
        try:
            db_user = User(
                email=user_data.email,
                name=user_data.name,
                hashed_password=get_password_hash(user_data.password),
                role="user",
                is_active=True,
            )
            self.db.add(db_user)
            await self.db.commit()
            await self.db.refresh(db_user)
            return db_user
        except IntegrityError:
            await self.db.rollback()
            return None

    async def get_by_id(self, user_id: int) -> Optional[User]:
        """Get user by ID"""
        query = select(User).filter(User.id == user_id)
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def get_by_ids(self, user_ids: List[int]) -> List[User]:
        """Get all users whose id is in user_ids"""
        if not user_ids:
            return []
        query = select(User).filter(User.id.in_(user_ids)).order_by(User.name, User.id)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def get_by_email(self, email: str) -> Optional[User]:
        """Get user by email"""
        query = select(User).filter(User.email == email.strip().lower())
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def update_profile(self, user: User, user_data: UserUpdate) -> User:
        """Apply the fields present in user_data to the user's profile"""
        update_data: Dict[str, Any] = user_data.model_dump(exclude_unset=True)
        # name is required on the record, an explicit null leaves it unchanged
        if update_data.get("name") is None:
            update_data.pop("name", None)
        if update_data.get("website") is not None:
            update_data["website"] = str(update_data["website"])

        for field, value in update_data.items():
            setattr(user, field, value)
        user.bio_updated_at = utcnow()

        await self.db.commit()
        await self.db.refresh(user)
        return user

    async def deactivate(self, user: User) -> User:
        """Soft-disable a user; users are never hard-deleted"""
        user.is_active = False
        await self.db.commit()
        await self.db.refresh(user)
        return user

    # Friends / blocked sets

    async def get_friend_ids(self, user_id: int) -> List[int]:
        query = select(user_friends.c.friend_id).where(user_friends.c.user_id == user_id)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def has_friend(self, user_id: int, friend_id: int) -> bool:
        query = select(user_friends.c.friend_id).where(
            user_friends.c.user_id == user_id,
            user_friends.c.friend_id == friend_id,
        )
        result = await self.db.execute(query)
        return result.first() is not None

    async def add_friend(self, user_id: int, friend_id: int) -> bool:
        """Add friend_id to user_id's friends set. Returns False if it was already there."""
        return await self._add_to_set(user_friends, "friend_id", user_id, friend_id)

    async def remove_friend(self, user_id: int, friend_id: int) -> bool:
        """Remove friend_id from user_id's friends set. Returns False if it was not there."""
        stmt = delete(user_friends).where(
            user_friends.c.user_id == user_id,
            user_friends.c.friend_id == friend_id,
        )
        result = await self.db.execute(stmt)
        await self.db.commit()
        return result.rowcount > 0

    async def get_blocked_ids(self, user_id: int) -> List[int]:
        query = select(user_blocks.c.blocked_id).where(user_blocks.c.user_id == user_id)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def add_blocked(self, user_id: int, blocked_id: int) -> bool:
        """Add blocked_id to user_id's blocked set. Returns False if it was already there."""
        return await self._add_to_set(user_blocks, "blocked_id", user_id, blocked_id)

    async def _add_to_set(self, table: Table, member_column: str, owner_id: int, member_id: int) -> bool:
        values = {"user_id": owner_id, member_column: member_id, "created_at": utcnow()}
        insert_ignore = _INSERT_IGNORE.get(self.db.bind.dialect.name)

        if insert_ignore is not None:
            stmt = insert_ignore(table).values(**values).on_conflict_do_nothing()
            result = await self.db.execute(stmt)
            await self.db.commit()
            return result.rowcount > 0

        exists = await self.db.execute(
            select(table.c.user_id).where(
                table.c.user_id == owner_id,
                table.c[member_column] == member_id,
            )
        )
        if exists.first() is not None:
            return False
        await self.db.execute(insert(table).values(**values))
        await self.db.commit()
        return True
