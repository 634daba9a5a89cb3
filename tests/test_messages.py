"""Integration tests for direct messages between friends."""
from __future__ import annotations

from fastapi.testclient import TestClient
from sqlalchemy.exc import DataError

from app.core.config import settings
from app.repositories.chat import ChatRepository

API = "/api/v1"


def _send(client: TestClient, sender, recipient, content: str):
    return client.post(
        f"{API}/messages",
        json={"recipient_id": recipient["id"], "content": content},
        headers=sender["headers"],
    )


def _conversation(client: TestClient, user, other):
    return client.get(f"{API}/messages/{other['id']}", headers=user["headers"])


def _unread(client: TestClient, user) -> int:
    response = client.get(f"{API}/messages/unread", headers=user["headers"])
    assert response.status_code == 200, response.text
    return response.json()["unread_count"]


def test_message_is_read_once_the_recipient_opens_the_conversation(client, register_user, make_friends):
    alice = register_user("Alice")
    bob = register_user("Bob")
    make_friends(alice, bob)

    sent = _send(client, alice, bob, "hello")
    assert sent.status_code == 201
    message = sent.json()["message"]
    assert message["is_read"] is False
    assert message["sender_id"] == alice["id"]
    assert message["recipient_id"] == bob["id"]
    assert _unread(client, bob) == 1

    # The sender reading the conversation does not mark it as read
    by_sender = _conversation(client, alice, bob).json()
    assert by_sender["messages"][0]["is_read"] is False
    assert _unread(client, bob) == 1

    first = _conversation(client, bob, alice).json()
    assert first["total_count"] == 1
    assert first["messages"][0]["content"] == "hello"
    assert first["messages"][0]["is_read"] is True

    second = _conversation(client, bob, alice).json()
    assert second["messages"][0]["is_read"] is True
    assert _unread(client, bob) == 0


def test_content_is_trimmed(client, register_user, make_friends):
    alice = register_user("Alice")
    bob = register_user("Bob")
    make_friends(alice, bob)

    response = _send(client, alice, bob, "   hi there  ")

    assert response.status_code == 201
    assert response.json()["message"]["content"] == "hi there"


def test_strangers_cannot_message_each_other(client, register_user):
    alice = register_user("Alice")
    bob = register_user("Bob")

    response = _send(client, alice, bob, "hello")

    assert response.status_code == 403
    assert response.json()["error"]["kind"] == "forbidden"
    assert response.json()["error"]["reason"] == "not_friends"
    assert _unread(client, bob) == 0
    assert client.get(f"{API}/messages", headers=bob["headers"]).json()["conversations"] == []


def test_pending_request_does_not_allow_messaging(client, register_user):
    alice = register_user("Alice")
    bob = register_user("Bob")
    client.post(f"{API}/friends/requests", json={"receiver_id": bob["id"]}, headers=alice["headers"])

    response = _send(client, alice, bob, "hello")

    assert response.status_code == 403


def test_messaging_yourself_is_invalid(client, register_user):
    alice = register_user("Alice")

    response = _send(client, alice, alice, "note to self")

    assert response.status_code == 400
    assert response.json()["error"]["reason"] == "self_message_not_allowed"


def test_message_to_unknown_recipient_is_not_found(client, register_user):
    alice = register_user("Alice")

    response = _send(client, alice, {"id": 9999}, "hello")

    assert response.status_code == 404
    assert response.json()["error"]["reason"] == "recipient_not_found"


def test_blank_and_oversized_content_are_rejected(client, register_user, make_friends):
    alice = register_user("Alice")
    bob = register_user("Bob")
    make_friends(alice, bob)

    for content in ("", "   \n\t "):
        response = _send(client, alice, bob, content)
        assert response.status_code == 400
        assert response.json()["error"]["kind"] == "invalid_input"

    too_long = _send(client, alice, bob, "x" * (settings.MESSAGE_MAX_LENGTH + 1))
    assert too_long.status_code == 400

    at_limit = _send(client, alice, bob, "x" * settings.MESSAGE_MAX_LENGTH)
    assert at_limit.status_code == 201
    assert _unread(client, bob) == 1


def test_conversation_is_ordered_oldest_first(client, register_user, make_friends):
    alice = register_user("Alice")
    bob = register_user("Bob")
    make_friends(alice, bob)
    for sender, recipient, text in (
        (alice, bob, "one"),
        (bob, alice, "two"),
        (alice, bob, "three"),
    ):
        assert _send(client, sender, recipient, text).status_code == 201

    conversation = _conversation(client, alice, bob).json()

    assert [m["content"] for m in conversation["messages"]] == ["one", "two", "three"]
    read_flags = {m["content"]: m["is_read"] for m in conversation["messages"]}
    # Alice opened it, so only the message addressed to her is read
    assert read_flags == {"one": False, "two": True, "three": False}


def test_conversation_list_has_latest_first_with_unread_counts(client, register_user, make_friends):
    alice = register_user("Alice")
    bob = register_user("Bob")
    carol = register_user("Carol")
    make_friends(alice, bob)
    make_friends(alice, carol)
    _send(client, bob, alice, "hey alice")
    _send(client, bob, alice, "are you there?")
    _send(client, alice, carol, "hi carol")

    listing = client.get(f"{API}/messages", headers=alice["headers"]).json()

    assert listing["total_count"] == 2
    first, second = listing["conversations"]
    assert first["partner"]["id"] == carol["id"]
    assert first["last_message"]["content"] == "hi carol"
    assert first["unread_count"] == 0
    assert second["partner"] == {"id": bob["id"], "name": "Bob", "avatar_url": None}
    assert second["last_message"]["content"] == "are you there?"
    assert second["unread_count"] == 2

    _conversation(client, alice, bob)
    listing = client.get(f"{API}/messages", headers=alice["headers"]).json()
    assert [c["unread_count"] for c in listing["conversations"]] == [0, 0]


def test_conversation_list_only_scans_recent_messages(client, register_user, make_friends, monkeypatch):
    alice = register_user("Alice")
    bob = register_user("Bob")
    carol = register_user("Carol")
    make_friends(alice, bob)
    make_friends(alice, carol)
    _send(client, alice, bob, "long ago")
    _send(client, alice, carol, "recent")
    _send(client, carol, alice, "more recent")

    monkeypatch.setattr(settings, "CONVERSATION_SCAN_LIMIT", 2)
    listing = client.get(f"{API}/messages", headers=alice["headers"]).json()

    assert [c["partner"]["id"] for c in listing["conversations"]] == [carol["id"]]


def test_unfriending_hides_the_conversation(client, register_user, make_friends):
    alice = register_user("Alice")
    bob = register_user("Bob")
    make_friends(alice, bob)
    _send(client, alice, bob, "hello")
    client.delete(f"{API}/friends/{alice['id']}", headers=bob["headers"])

    for user, other in ((alice, bob), (bob, alice)):
        response = _conversation(client, user, other)
        assert response.status_code == 403
        assert response.json()["error"]["reason"] == "not_friends"
    # Message stays unread, it was never opened
    assert _unread(client, bob) == 1


def test_messages_require_a_session(client):
    client.cookies.clear()

    assert client.get(f"{API}/messages").status_code == 401
    assert client.post(f"{API}/messages", json={"recipient_id": 1, "content": "x"}).status_code == 401


def test_value_rejected_by_the_store_is_invalid_input(client, register_user, monkeypatch):
    alice = register_user("Alice")

    async def out_of_range(self, user_id):
        raise DataError("SELECT count(messages.id)", {}, ValueError("integer out of range"))

    monkeypatch.setattr(ChatRepository, "get_unread_count", out_of_range)
    response = client.get(f"{API}/messages/unread", headers=alice["headers"])

    assert response.status_code == 400
    assert response.json()["error"] == {
        "kind": "invalid_input",
        "reason": "invalid_value",
        "message": "Value out of range for this field",
    }
