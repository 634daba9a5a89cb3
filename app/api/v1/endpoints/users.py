from fastapi import APIRouter, Depends, Path, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.database import get_db
from app.api.deps import get_current_active_user
from app.schemas.friendship import ActionResult, UserSearchResults
from app.schemas.user import MAX_ID, PublicProfile, PublicProfileResponse, User, UserResponse, UserUpdate
from app.models.user import User as UserModel
from app.repositories.user import UserRepository
from app.services.friendship import FriendshipService
from app.utils.exceptions import NotFoundError

router = APIRouter()


@router.get("/me", response_model=UserResponse)
async def get_current_user_profile(
    current_user: UserModel = Depends(get_current_active_user)
):
    """Get current user profile"""
    return UserResponse(user=User.model_validate(current_user))


@router.put("/me", response_model=UserResponse)
async def update_current_user(
    user_update: UserUpdate,
    current_user: UserModel = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db)
):
    """Update current user profile"""
    user_repo = UserRepository(db)
    updated_user = await user_repo.update_profile(current_user, user_update)
    return UserResponse(user=User.model_validate(updated_user))


@router.delete("/me", response_model=ActionResult)
async def deactivate_current_user(
    current_user: UserModel = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db)
):
    """Disable current user account"""
    user_repo = UserRepository(db)
    await user_repo.deactivate(current_user)
    return ActionResult(message="Account disabled")


@router.get("/search", response_model=UserSearchResults)
async def search_users(
    q: str = Query(..., min_length=settings.USER_SEARCH_MIN_LENGTH, description="Search query (name or email)"),
    limit: int = Query(settings.USER_SEARCH_LIMIT, ge=1, le=50, description="Maximum number of results"),
    current_user: UserModel = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db)
):
    """Search for users by name or email"""
    service = FriendshipService(db)
    return await service.search_users(q, current_user.id, limit)


@router.get("/{user_id}", response_model=PublicProfileResponse)
async def get_user_profile(
    user_id: int = Path(..., ge=1, le=MAX_ID),
    current_user: UserModel = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db)
):
    """Get another user's public profile"""
    user = await UserRepository(db).get_by_id(user_id)
    if not user or not user.is_active:
        raise NotFoundError("User not found", reason="user_not_found")
    return PublicProfileResponse(user=PublicProfile.model_validate(user))
