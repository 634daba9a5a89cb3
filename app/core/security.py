from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional
import logging

from jose import JWTError, jwt
from passlib.context import CryptContext

from app.core.config import settings

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def get_password_hash(password: str) -> str:
    """Hash a plain-text password"""
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Check a plain-text password against its stored hash"""
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except ValueError:
        # Malformed or unknown hash format stored for this user
        logger.warning("Password hash could not be verified")
        return False


def _create_token(subject: int, token_type: str, expires_delta: timedelta, claims: Optional[Dict[str, Any]] = None) -> str:
    now = datetime.now(timezone.utc)
    to_encode: Dict[str, Any] = dict(claims or {})
    to_encode.update({
        "sub": str(subject),
        "type": token_type,
        "iat": now,
        "exp": now + expires_delta,
    })
    return jwt.encode(to_encode, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def create_access_token(subject: int, email: Optional[str] = None, role: Optional[str] = None) -> str:
    """Create a signed access token for a user id"""
    claims = {}
    if email:
        claims["email"] = email
    if role:
        claims["role"] = role
    return _create_token(
        subject,
        "access",
        timedelta(minutes=settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES),
        claims,
    )


def create_refresh_token(subject: int) -> str:
    """Create a signed refresh token for a user id"""
    return _create_token(
        subject,
        "refresh",
        timedelta(days=settings.JWT_REFRESH_TOKEN_EXPIRE_DAYS),
    )


def decode_token(token: str) -> Optional[Dict[str, Any]]:
    """Decode a token, returning None when it is invalid or expired"""
    try:
        return jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except JWTError:
        return None
