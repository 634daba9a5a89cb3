from typing import Literal, Optional
from pydantic import AnyHttpUrl, BaseModel, ConfigDict, EmailStr, Field, field_validator
from datetime import datetime

Gender = Literal["male", "female", "other", "prefer-not-to-say"]

# Range of the Integer id columns
MAX_ID = 2**31 - 1


class UserCreate(BaseModel):
    name: str = Field(..., min_length=2, max_length=100)
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=128)

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.strip().lower()


class UserUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=2, max_length=100)
    bio: Optional[str] = Field(None, max_length=500)
    location: Optional[str] = Field(None, max_length=100)
    phone: Optional[str] = Field(None, max_length=40)
    website: Optional[AnyHttpUrl] = None
    gender: Optional[Gender] = None
    date_of_birth: Optional[datetime] = None
    avatar_url: Optional[str] = None

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, v):
        return v.strip() if isinstance(v, str) else v


class ContactProfile(BaseModel):
    """Public projection of another user, as shown in lists"""
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    email: str
    avatar_url: Optional[str] = None
    location: Optional[str] = None
    bio: Optional[str] = None
    website: Optional[str] = None


class PublicProfile(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    avatar_url: Optional[str] = None
    bio: Optional[str] = None
    location: Optional[str] = None
    website: Optional[str] = None
    gender: Optional[str] = None
    created_at: Optional[datetime] = None


class User(PublicProfile):
    """Full profile of the calling user"""
    email: str
    role: str
    is_active: bool
    phone: Optional[str] = None
    date_of_birth: Optional[datetime] = None
    bio_updated_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class UserResponse(BaseModel):
    ok: bool = True
    user: User


class PublicProfileResponse(BaseModel):
    ok: bool = True
    user: PublicProfile
