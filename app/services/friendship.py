import logging
from typing import Dict, List, Optional, Union

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.models.friendship import FriendRequest as FriendRequestModel
from app.repositories.friendship import FriendshipRepository
from app.repositories.user import UserRepository
from app.schemas.friendship import (
    ActionResult, ContactList, FriendRequest, FriendRequestAction, FriendRequestResponse,
    FriendRequestStatus, IncomingRequest, IncomingRequests, OutgoingRequest,
    OutgoingRequests, SyncResult, UserSearchResult, UserSearchResults
)
from app.schemas.user import ContactProfile
from app.utils.exceptions import (
    AuthorizationError, ConflictError, NotFoundError, ValidationError
)

logger = logging.getLogger(__name__)


class FriendshipService:
    """Owns the friend request lifecycle and keeps every user's friends set
    consistent with the accepted requests.

    The two halves of a symmetric friends-set update are separate writes, each
    of them idempotent. A partially applied accept is repaired by resubmitting
    the request (or by ``sync_friends``), which re-applies both insertions.
    """

    def __init__(self, db: AsyncSession):
        self.db = db
        self.repo = FriendshipRepository(db)
        self.user_repo = UserRepository(db)

    async def search_users(self, query: str, current_user_id: int, limit: Optional[int] = None) -> UserSearchResults:
        """Search users, leaving out the caller and everyone the caller blocked"""
        query = (query or "").strip()
        if len(query) < settings.USER_SEARCH_MIN_LENGTH:
            raise ValidationError(
                f"Search query must be at least {settings.USER_SEARCH_MIN_LENGTH} characters long",
                reason="query_too_short"
            )

        blocked_ids = await self.user_repo.get_blocked_ids(current_user_id)
        users = await self.repo.search_users(
            query, current_user_id, blocked_ids, limit or settings.USER_SEARCH_LIMIT
        )

        friend_ids = set(await self.user_repo.get_friend_ids(current_user_id))
        statuses: Dict[int, FriendRequestStatus] = {}
        for friend_request in await self.repo.get_requests_between(current_user_id, [u.id for u in users]):
            other_id = (
                friend_request.receiver_id
                if friend_request.sender_id == current_user_id
                else friend_request.sender_id
            )
            statuses[other_id] = FriendRequestStatus(friend_request.status)

        results = [
            UserSearchResult.model_validate(user).model_copy(update={
                "is_friend": user.id in friend_ids,
                "friendship_status": statuses.get(user.id),
            })
            for user in users
        ]
        return UserSearchResults(users=results)

    async def send_friend_request(self, sender_id: int, receiver_id: int) -> FriendRequestResponse:
        """Send a friend request, or repair the friends sets of an already accepted pair"""
        if sender_id == receiver_id:
            raise ValidationError(
                "Cannot send friend request to yourself",
                reason="self_request_not_allowed"
            )

        receiver = await self.user_repo.get_by_id(receiver_id)
        if not receiver or not receiver.is_active:
            raise NotFoundError("User not found", reason="user_not_found")

        if await self.user_repo.has_friend(sender_id, receiver_id):
            raise ConflictError(
                "You are already friends with this user",
                reason="already_friends"
            )

        existing = await self.repo.get_request_between(sender_id, receiver_id)
        if existing:
            existing_status = FriendRequestStatus(existing.status)

            if existing_status == FriendRequestStatus.ACCEPTED:
                added = await self._reconcile(existing)
                logger.info(
                    "Reconciled accepted friend request %s between %s and %s (%d set entries added)",
                    existing.id, sender_id, receiver_id, added
                )
                return FriendRequestResponse(
                    request=FriendRequest.model_validate(existing),
                    reconciled=True
                )

            if existing_status == FriendRequestStatus.PENDING:
                raise ConflictError(
                    "Friend request already pending",
                    reason="request_already_pending"
                )

            if existing_status == FriendRequestStatus.BLOCKED:
                raise ConflictError(
                    "Cannot send friend request to this user",
                    reason="request_blocked"
                )

            # Rejected: the pair's single record becomes a fresh pending request
            reopened = await self.repo.reopen_request(existing, sender_id, receiver_id)
            logger.info("Friend request %s reopened by %s for %s", reopened.id, sender_id, receiver_id)
            return FriendRequestResponse(request=FriendRequest.model_validate(reopened))

        try:
            friend_request = await self.repo.create_request(sender_id, receiver_id)
        except IntegrityError:
            # Lost a race against another request for the same pair
            await self.db.rollback()
            raise ConflictError(
                "Friend request already pending",
                reason="request_already_pending"
            )

        logger.info("Friend request %s sent by %s to %s", friend_request.id, sender_id, receiver_id)
        return FriendRequestResponse(request=FriendRequest.model_validate(friend_request))

    async def respond_to_request(
        self,
        request_id: int,
        responder_id: int,
        action: Union[FriendRequestAction, str]
    ) -> FriendRequestResponse:
        """Accept, reject or block an incoming friend request"""
        try:
            action = FriendRequestAction(action)
        except ValueError:
            raise ValidationError(
                "Action must be 'accept', 'reject' or 'block'",
                reason="invalid_action"
            )

        friend_request = await self.repo.get_request(request_id)
        if not friend_request:
            raise NotFoundError("Friend request not found", reason="request_not_found")

        if friend_request.receiver_id != responder_id:
            raise AuthorizationError(
                "Only the receiver can respond to this friend request",
                reason="not_request_receiver"
            )

        if friend_request.status != FriendRequestStatus.PENDING.value:
            raise ConflictError(
                "Friend request is no longer pending",
                reason="request_not_pending"
            )

        sender_id = friend_request.sender_id

        if action == FriendRequestAction.ACCEPT:
            await self.user_repo.add_friend(responder_id, sender_id)
            await self.user_repo.add_friend(sender_id, responder_id)
            friend_request = await self.repo.set_status(friend_request, FriendRequestStatus.ACCEPTED)
        elif action == FriendRequestAction.REJECT:
            friend_request = await self.repo.set_status(friend_request, FriendRequestStatus.REJECTED)
        else:
            # Existing friendship, if any, is left alone
            await self.user_repo.add_blocked(responder_id, sender_id)
            friend_request = await self.repo.set_status(friend_request, FriendRequestStatus.BLOCKED)

        logger.info(
            "Friend request %s from %s %s by %s",
            friend_request.id, sender_id, friend_request.status, responder_id
        )
        return FriendRequestResponse(request=FriendRequest.model_validate(friend_request))

    async def remove_friend(self, user_id: int, friend_id: int) -> ActionResult:
        """Remove the friendship in both directions; the request record is kept"""
        if user_id == friend_id:
            raise ValidationError("Cannot unfriend yourself", reason="self_target_not_allowed")

        await self.user_repo.remove_friend(user_id, friend_id)
        await self.user_repo.remove_friend(friend_id, user_id)

        logger.info("User %s removed friend %s", user_id, friend_id)
        return ActionResult(message="Friend removed")

    async def get_contacts(self, user_id: int) -> ContactList:
        """Resolve the user's friends set to public profiles"""
        friend_ids = await self.user_repo.get_friend_ids(user_id)
        friends = await self.user_repo.get_by_ids(friend_ids)

        contacts = [ContactProfile.model_validate(friend) for friend in friends]
        return ContactList(contacts=contacts, total_count=len(contacts))

    async def get_incoming_requests(self, user_id: int) -> IncomingRequests:
        requests = await self.repo.get_incoming_requests(user_id)
        incoming = [
            IncomingRequest(
                id=req.id,
                status=FriendRequestStatus(req.status),
                sender=ContactProfile.model_validate(req.sender),
                created_at=req.created_at
            )
            for req in requests
        ]
        return IncomingRequests(requests=incoming, total_count=len(incoming))

    async def get_outgoing_requests(self, user_id: int) -> OutgoingRequests:
        requests = await self.repo.get_outgoing_requests(user_id)
        outgoing = [
            OutgoingRequest(
                id=req.id,
                status=FriendRequestStatus(req.status),
                receiver=ContactProfile.model_validate(req.receiver),
                created_at=req.created_at
            )
            for req in requests
        ]
        return OutgoingRequests(requests=outgoing, total_count=len(outgoing))

    async def sync_friends(self, user_id: int) -> SyncResult:
        """Re-apply the friends-set insertions for every accepted request of the user"""
        accepted = await self.repo.get_accepted_requests(user_id)
        added = 0
        for friend_request in accepted:
            added += await self._reconcile(friend_request)

        friend_ids: List[int] = await self.user_repo.get_friend_ids(user_id)
        logger.info(
            "Synced %d accepted requests for user %s (%d set entries added)",
            len(accepted), user_id, added
        )
        return SyncResult(synced=len(accepted), friends=sorted(friend_ids))

    async def _reconcile(self, friend_request: FriendRequestModel) -> int:
        sender_id = friend_request.sender_id
        receiver_id = friend_request.receiver_id
        added = 0
        if await self.user_repo.add_friend(sender_id, receiver_id):
            added += 1
        if await self.user_repo.add_friend(receiver_id, sender_id):
            added += 1
        return added
