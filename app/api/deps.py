from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.database import get_db
from app.core.security import decode_token
from app.models.user import User
from app.repositories.user import UserRepository
from app.utils.exceptions import AuthenticationError

bearer_scheme = HTTPBearer(auto_error=False)


def _resolve_token(request: Request, credentials: Optional[HTTPAuthorizationCredentials]) -> Optional[str]:
    if credentials and credentials.credentials:
        return credentials.credentials
    return request.cookies.get(settings.AUTH_COOKIE_NAME)


async def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db)
) -> User:
    """Resolve the caller from the bearer token or the session cookie"""
    token = _resolve_token(request, credentials)
    if not token:
        raise AuthenticationError("Not authenticated", reason="not_authenticated")

    payload = decode_token(token)
    if not payload or payload.get("type") != "access":
        raise AuthenticationError("Invalid session", reason="invalid_session")

    subject = payload.get("sub")
    if not subject or not str(subject).isdigit():
        raise AuthenticationError("Invalid session", reason="invalid_session")

    user = await UserRepository(db).get_by_id(int(subject))
    if not user:
        raise AuthenticationError("Invalid session", reason="invalid_session")

    return user


async def get_current_active_user(
    current_user: User = Depends(get_current_user)
) -> User:
    if not current_user.is_active:
        raise AuthenticationError("Account is disabled", reason="inactive_user")
    return current_user
