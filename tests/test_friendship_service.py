"""Service-level tests for friends-set consistency and store constraints."""
from __future__ import annotations

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from app.repositories.friendship import FriendshipRepository
from app.repositories.user import UserRepository
from app.schemas.friendship import FriendRequestStatus
from app.services.friendship import FriendshipService
from app.utils.exceptions import ConflictError


async def _pair(user_factory):
    alice = await user_factory("Alice")
    bob = await user_factory("Bob")
    return alice.id, bob.id


@pytest.mark.asyncio
async def test_interrupted_accept_can_be_retried(db_session, user_factory, monkeypatch):
    alice_id, bob_id = await _pair(user_factory)
    service = FriendshipService(db_session)
    users = UserRepository(db_session)
    sent = await service.send_friend_request(alice_id, bob_id)

    original_add_friend = UserRepository.add_friend
    calls = []

    async def add_friend_then_fail(self, user_id, friend_id):
        calls.append((user_id, friend_id))
        if len(calls) == 2:
            raise OperationalError("INSERT INTO user_friends", {}, ConnectionError("store went away"))
        return await original_add_friend(self, user_id, friend_id)

    monkeypatch.setattr(UserRepository, "add_friend", add_friend_then_fail)
    with pytest.raises(OperationalError):
        await service.respond_to_request(sent.request.id, bob_id, "accept")
    monkeypatch.undo()

    # Only the first half landed and the request is still pending
    assert await users.get_friend_ids(bob_id) == [alice_id]
    assert await users.get_friend_ids(alice_id) == []
    pending = await FriendshipRepository(db_session).get_request(sent.request.id)
    assert pending.status == FriendRequestStatus.PENDING.value

    retried = await service.respond_to_request(sent.request.id, bob_id, "accept")

    assert retried.request.status == FriendRequestStatus.ACCEPTED
    assert await users.get_friend_ids(alice_id) == [bob_id]
    assert await users.get_friend_ids(bob_id) == [alice_id]


@pytest.mark.asyncio
async def test_resubmitting_an_accepted_request_repairs_the_friends_sets(db_session, user_factory):
    alice_id, bob_id = await _pair(user_factory)
    service = FriendshipService(db_session)
    users = UserRepository(db_session)
    sent = await service.send_friend_request(alice_id, bob_id)
    await service.respond_to_request(sent.request.id, bob_id, "accept")
    await users.remove_friend(alice_id, bob_id)

    repaired = await service.send_friend_request(alice_id, bob_id)

    assert repaired.reconciled is True
    assert repaired.request.id == sent.request.id
    assert repaired.request.status == FriendRequestStatus.ACCEPTED
    assert await users.has_friend(alice_id, bob_id)
    assert await users.has_friend(bob_id, alice_id)

    # Once consistent, the pair is simply already friends
    with pytest.raises(ConflictError) as exc_info:
        await service.send_friend_request(bob_id, alice_id)
    assert exc_info.value.reason == "already_friends"


@pytest.mark.asyncio
async def test_add_friend_is_idempotent(db_session, user_factory):
    alice_id, bob_id = await _pair(user_factory)
    users = UserRepository(db_session)

    assert await users.add_friend(alice_id, bob_id) is True
    assert await users.add_friend(alice_id, bob_id) is False
    assert await users.get_friend_ids(alice_id) == [bob_id]


@pytest.mark.asyncio
async def test_sync_restores_friends_and_is_repeatable(db_session, user_factory):
    alice_id, bob_id = await _pair(user_factory)
    carol = await user_factory("Carol")
    carol_id = carol.id
    service = FriendshipService(db_session)
    users = UserRepository(db_session)
    for sender_id, receiver_id in ((alice_id, bob_id), (carol_id, alice_id)):
        sent = await service.send_friend_request(sender_id, receiver_id)
        await service.respond_to_request(sent.request.id, receiver_id, "accept")
    await users.remove_friend(alice_id, bob_id)
    await users.remove_friend(alice_id, carol_id)
    await users.remove_friend(carol_id, alice_id)

    first = await service.sync_friends(alice_id)
    second = await service.sync_friends(alice_id)

    expected = sorted([bob_id, carol_id])
    assert first.synced == 2
    assert first.friends == expected
    assert second.model_dump() == first.model_dump()
    assert await users.get_friend_ids(carol_id) == [alice_id]
    assert await users.get_friend_ids(bob_id) == [alice_id]


@pytest.mark.asyncio
async def test_store_allows_one_request_per_unordered_pair(db_session, user_factory):
    alice_id, bob_id = await _pair(user_factory)
    repo = FriendshipRepository(db_session)
    await repo.create_request(alice_id, bob_id)

    with pytest.raises(IntegrityError):
        await repo.create_request(bob_id, alice_id)
    await db_session.rollback()

    requests = await repo.get_requests_between(alice_id, [bob_id])
    assert [(r.sender_id, r.receiver_id) for r in requests] == [(alice_id, bob_id)]


@pytest.mark.asyncio
async def test_concurrent_request_for_the_same_pair_conflicts(db_session, user_factory, monkeypatch):
    alice_id, bob_id = await _pair(user_factory)
    service = FriendshipService(db_session)
    await service.send_friend_request(bob_id, alice_id)

    # Simulate losing the race: the lookup ran before the other request was stored
    async def nothing_yet(self, user1_id, user2_id):
        return None

    monkeypatch.setattr(FriendshipRepository, "get_request_between", nothing_yet)
    with pytest.raises(ConflictError) as exc_info:
        await service.send_friend_request(alice_id, bob_id)
    monkeypatch.undo()

    assert exc_info.value.reason == "request_already_pending"
    requests = await FriendshipRepository(db_session).get_requests_between(alice_id, [bob_id])
    assert len(requests) == 1
    assert requests[0].sender_id == bob_id


@pytest.mark.asyncio
async def test_block_adds_the_sender_to_the_blocked_set_only(db_session, user_factory):
    alice_id, bob_id = await _pair(user_factory)
    service = FriendshipService(db_session)
    users = UserRepository(db_session)
    sent = await service.send_friend_request(bob_id, alice_id)

    blocked = await service.respond_to_request(sent.request.id, alice_id, "block")

    assert blocked.request.status == FriendRequestStatus.BLOCKED
    assert await users.get_blocked_ids(alice_id) == [bob_id]
    assert await users.get_blocked_ids(bob_id) == []
    assert await users.get_friend_ids(alice_id) == []
