from fastapi import APIRouter, Depends, Path
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.api.deps import get_current_active_user
from app.schemas.friendship import (
    ActionResult, ContactList, FriendRequestCreate, FriendRequestRespond,
    FriendRequestResponse, IncomingRequests, OutgoingRequests, SyncResult
)
from app.schemas.user import MAX_ID
from app.models.user import User as UserModel
from app.services.friendship import FriendshipService

router = APIRouter()


@router.get("", response_model=ContactList)
async def get_friends(
    current_user: UserModel = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db)
):
    """Get the current user's friends"""
    service = FriendshipService(db)
    return await service.get_contacts(current_user.id)


@router.post("/requests", response_model=FriendRequestResponse)
async def send_friend_request(
    request_data: FriendRequestCreate,
    current_user: UserModel = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db)
):
    """Send a friend request to another user"""
    service = FriendshipService(db)
    return await service.send_friend_request(current_user.id, request_data.receiver_id)


@router.put("/requests/{request_id}", response_model=FriendRequestResponse)
async def respond_to_friend_request(
    action_data: FriendRequestRespond,
    request_id: int = Path(..., ge=1, le=MAX_ID),
    current_user: UserModel = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db)
):
    """Accept, reject or block an incoming friend request"""
    service = FriendshipService(db)
    return await service.respond_to_request(request_id, current_user.id, action_data.action)


@router.get("/requests", response_model=IncomingRequests)
async def get_incoming_requests(
    current_user: UserModel = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db)
):
    """Get pending friend requests sent to the current user"""
    service = FriendshipService(db)
    return await service.get_incoming_requests(current_user.id)


@router.get("/requests/outgoing", response_model=OutgoingRequests)
async def get_outgoing_requests(
    current_user: UserModel = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db)
):
    """Get pending friend requests sent by the current user"""
    service = FriendshipService(db)
    return await service.get_outgoing_requests(current_user.id)


@router.post("/sync", response_model=SyncResult)
async def sync_friends(
    current_user: UserModel = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db)
):
    """Repair the friends sets from every accepted request of the current user"""
    service = FriendshipService(db)
    return await service.sync_friends(current_user.id)


@router.delete("/{friend_id}", response_model=ActionResult)
async def remove_friend(
    friend_id: int = Path(..., ge=1, le=MAX_ID),
    current_user: UserModel = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db)
):
    """Remove friendship with another user"""
    service = FriendshipService(db)
    return await service.remove_friend(current_user.id, friend_id)
