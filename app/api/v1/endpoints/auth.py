from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.database import get_db
from app.api.deps import get_current_active_user
from app.schemas.auth import (
    AuthResponse,
    AuthUser,
    LoginRequest,
    MeResponse,
    RefreshTokenRequest,
    Token,
)
from app.schemas.friendship import ActionResult
from app.schemas.user import UserCreate
from app.models.user import User as UserModel
from app.services.auth import AuthService
from app.utils.exceptions import AuthenticationError, ConflictError

router = APIRouter()


def _set_session_cookie(response: Response, access_token: str) -> None:
    response.set_cookie(
        key=settings.AUTH_COOKIE_NAME,
        value=access_token,
        httponly=True,
        secure=settings.AUTH_COOKIE_SECURE,
        samesite="lax",
        path="/",
        max_age=settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES * 60,
    )


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def register(
    user_data: UserCreate,
    response: Response,
    db: AsyncSession = Depends(get_db)
):
    """Register a new user and start a session"""
    auth_service = AuthService(db)
    user = await auth_service.register(user_data)

    if not user:
        raise ConflictError("Email is already in use", reason="email_in_use")

    tokens = auth_service.create_tokens(user)
    _set_session_cookie(response, tokens.access_token)
    return AuthResponse(user=AuthUser.model_validate(user), **tokens.model_dump())


@router.post("/login", response_model=AuthResponse)
async def login(
    login_data: LoginRequest,
    response: Response,
    db: AsyncSession = Depends(get_db)
):
    """Login with email and password"""
    auth_service = AuthService(db)

    user = await auth_service.authenticate(login_data.email, login_data.password)
    if not user:
        raise AuthenticationError("Invalid credentials", reason="invalid_credentials")

    tokens = auth_service.create_tokens(user)
    _set_session_cookie(response, tokens.access_token)
    return AuthResponse(user=AuthUser.model_validate(user), **tokens.model_dump())


@router.post("/refresh", response_model=Token)
async def refresh_token(
    refresh_data: RefreshTokenRequest,
    db: AsyncSession = Depends(get_db)
):
    """Refresh access token"""
    auth_service = AuthService(db)
    tokens = await auth_service.refresh_access_token(refresh_data.refresh_token)

    if not tokens:
        raise AuthenticationError("Invalid refresh token", reason="invalid_session")

    return tokens


@router.post("/logout", response_model=ActionResult)
async def logout(response: Response):
    """Clear the session cookie"""
    response.delete_cookie(settings.AUTH_COOKIE_NAME, path="/")
    return ActionResult(message="Logged out")


@router.get("/me", response_model=MeResponse)
async def me(current_user: UserModel = Depends(get_current_active_user)):
    """Identity of the current session"""
    return MeResponse(user=AuthUser.model_validate(current_user))
