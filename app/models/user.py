from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, Boolean, Table

from app.core.database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# Symmetric "friends" set. Each direction is its own row; symmetry is kept by
# the friendship service, not by the store.
user_friends = Table(
    "user_friends",
    Base.metadata,
    Column("user_id", Integer, ForeignKey("users.id"), primary_key=True),
    Column("friend_id", Integer, ForeignKey("users.id"), primary_key=True),
    Column("created_at", DateTime(timezone=True), default=utcnow),
)

# One-directional "blockedUsers" set
user_blocks = Table(
    "user_blocks",
    Base.metadata,
    Column("user_id", Integer, ForeignKey("users.id"), primary_key=True),
    Column("blocked_id", Integer, ForeignKey("users.id"), primary_key=True),
    Column("created_at", DateTime(timezone=True), default=utcnow),
)


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(320), unique=True, nullable=False, index=True)  # stored lower-cased
    name = Column(String(100), nullable=False)
    hashed_password = Column(String, nullable=False)
    role = Column(String, nullable=False, default="user")  # user, admin
    is_active = Column(Boolean, nullable=False, default=True)

    # Profile
    avatar_url = Column(String, nullable=True)
    bio = Column(Text, nullable=True)
    location = Column(String(100), nullable=True)
    phone = Column(String(40), nullable=True)
    website = Column(String, nullable=True)
    gender = Column(String, nullable=True)  # male, female, other, prefer-not-to-say
    date_of_birth = Column(DateTime(timezone=True), nullable=True)
    bio_updated_at = Column(DateTime(timezone=True), nullable=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), onupdate=utcnow)
