from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, UniqueConstraint, Index
from sqlalchemy.orm import relationship

from app.core.database import Base
from app.models.user import utcnow


def make_pair_key(user1_id: int, user2_id: int) -> str:
    """Order-independent key for the pair {user1, user2}"""
    low, high = sorted((user1_id, user2_id))
    return f"{low}:{high}"


class FriendRequest(Base):
    __tablename__ = "friend_requests"

    id = Column(Integer, primary_key=True, index=True)
    sender_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    receiver_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    pair_key = Column(String, nullable=False)
    status = Column(String, nullable=False, default="pending", index=True)  # pending, accepted, rejected, blocked

    # Timestamps
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    # Relationships
    sender = relationship("User", foreign_keys=[sender_id])
    receiver = relationship("User", foreign_keys=[receiver_id])

    # Constraints
    __table_args__ = (
        UniqueConstraint('sender_id', 'receiver_id', name='unique_friend_request'),
        UniqueConstraint('pair_key', name='unique_friend_request_pair'),
        Index('idx_receiver_status', 'receiver_id', 'status'),
    )
