from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime
from typing import List, Optional
from enum import Enum

from app.schemas.user import MAX_ID, ContactProfile


class FriendRequestStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    BLOCKED = "blocked"


class FriendRequestAction(str, Enum):
    ACCEPT = "accept"
    REJECT = "reject"
    BLOCK = "block"


class FriendRequestCreate(BaseModel):
    receiver_id: int = Field(..., ge=1, le=MAX_ID)


class FriendRequestRespond(BaseModel):
    action: FriendRequestAction


class FriendRequest(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    sender_id: int
    receiver_id: int
    status: FriendRequestStatus
    created_at: datetime
    updated_at: Optional[datetime] = None


class FriendRequestResponse(BaseModel):
    ok: bool = True
    request: FriendRequest
    # True when an already accepted request was re-applied to the friends sets
    reconciled: bool = False


class IncomingRequest(BaseModel):
    id: int
    status: FriendRequestStatus
    sender: ContactProfile
    created_at: datetime


class OutgoingRequest(BaseModel):
    id: int
    status: FriendRequestStatus
    receiver: ContactProfile
    created_at: datetime


class IncomingRequests(BaseModel):
    ok: bool = True
    requests: List[IncomingRequest]
    total_count: int


class OutgoingRequests(BaseModel):
    ok: bool = True
    requests: List[OutgoingRequest]
    total_count: int


class ContactList(BaseModel):
    ok: bool = True
    contacts: List[ContactProfile]
    total_count: int


class UserSearchResult(ContactProfile):
    is_friend: bool = False
    friendship_status: Optional[FriendRequestStatus] = None


class UserSearchResults(BaseModel):
    ok: bool = True
    users: List[UserSearchResult]


class SyncResult(BaseModel):
    ok: bool = True
    synced: int
    friends: List[int]


class ActionResult(BaseModel):
    ok: bool = True
    message: str
