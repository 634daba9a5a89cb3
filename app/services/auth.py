from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.security import (
    create_access_token,
    create_refresh_token,
    decode_token,
    verify_password,
)
from app.repositories.user import UserRepository
from app.schemas.user import UserCreate
from app.schemas.auth import Token
from app.models.user import User


class AuthService:
    def __init__(self, db: AsyncSession):
        self.user_repo = UserRepository(db)

    async def register(self, user_data: UserCreate) -> Optional[User]:
        """Register a new user, None if the email is already taken"""
        existing_user = await self.user_repo.get_by_email(user_data.email)
        if existing_user:
            return None

        return await self.user_repo.create(user_data)

    async def authenticate(self, email: str, password: str) -> Optional[User]:
        """Authenticate user with email and password"""
        user = await self.user_repo.get_by_email(email)
        if not user or not user.hashed_password:
            return None

        if not user.is_active:
            return None

        if not verify_password(password, user.hashed_password):
            return None

        return user

    def create_tokens(self, user: User) -> Token:
        """Create access and refresh tokens for user"""
        return Token(
            access_token=create_access_token(user.id, email=user.email, role=user.role),
            refresh_token=create_refresh_token(user.id),
            token_type="bearer"
        )

    async def refresh_access_token(self, refresh_token: str) -> Optional[Token]:
        """Refresh access token using refresh token"""
        payload = decode_token(refresh_token)
        if not payload or payload.get("type") != "refresh":
            return None

        user_id = payload.get("sub")
        if not user_id or not str(user_id).isdigit():
            return None

        user = await self.user_repo.get_by_id(int(user_id))
        if not user or not user.is_active:
            return None

        return self.create_tokens(user)
