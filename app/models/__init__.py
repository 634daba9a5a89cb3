from app.models.user import User, user_friends, user_blocks
from app.models.friendship import FriendRequest
from app.models.chat import Message

__all__ = ["User", "user_friends", "user_blocks", "FriendRequest", "Message"]
