from sqlalchemy import Column, Integer, Text, DateTime, ForeignKey, Boolean, Index

from app.core.database import Base
from app.models.user import utcnow


class Message(Base):
    __tablename__ = "messages"

    id = Column(Integer, primary_key=True, index=True)
    sender_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    recipient_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    content = Column(Text, nullable=False)

    # Read state, flipped by the recipient
    is_read = Column(Boolean, nullable=False, default=False)

    # Timestamps
    created_at = Column(DateTime(timezone=True), default=utcnow, index=True)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    # Indexes for efficient querying
    __table_args__ = (
        Index('idx_pair_created', 'sender_id', 'recipient_id', 'created_at'),
        Index('idx_recipient_read', 'recipient_id', 'is_read'),
    )
