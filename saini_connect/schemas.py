from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Snake_case in Python, camelCase on the wire."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# Storage inputs

class UserCreate(CamelModel):
    username: str = Field(min_length=1)
    password: str
    full_name: str
    email: EmailStr
    profile_image: Optional[str] = None
    cover_image: Optional[str] = None
    bio: Optional[str] = None
    location: Optional[str] = None
    occupation: Optional[str] = None


class UserUpdate(CamelModel):
    username: Optional[str] = Field(default=None, min_length=1)
    password: Optional[str] = None
    full_name: Optional[str] = None
    email: Optional[EmailStr] = None
    profile_image: Optional[str] = None
    cover_image: Optional[str] = None
    bio: Optional[str] = None
    location: Optional[str] = None
    occupation: Optional[str] = None


class PostCreate(CamelModel):
    user_id: int
    content: str = Field(min_length=1)
    images: List[str] = Field(default_factory=list)
    visibility: str = "public"


class CommentCreate(CamelModel):
    post_id: int
    user_id: int
    content: str = Field(min_length=1)
    parent_id: Optional[int] = None


class LikeCreate(CamelModel):
    post_id: int
    user_id: int
    type: str = "like"


class EventCreate(CamelModel):
    title: str = Field(min_length=1)
    description: str
    location: str
    date: datetime
    end_date: Optional[datetime] = None
    image: Optional[str] = None
    created_by: int


class GroupCreate(CamelModel):
    name: str = Field(min_length=1)
    description: Optional[str] = None
    image: Optional[str] = None
    created_by: int


class GroupMemberCreate(CamelModel):
    group_id: int
    user_id: int
    role: str = "member"


class ConnectionCreate(CamelModel):
    requester_id: int
    addressee_id: int
    status: str = "pending"


# Records returned by a store

class UserSummary(CamelModel):
    id: int
    username: str
    full_name: str
    profile_image: Optional[str] = None


class PublicUser(CamelModel):
    id: int
    username: str
    full_name: str
    email: str
    profile_image: Optional[str] = None
    cover_image: Optional[str] = None
    bio: Optional[str] = None
    location: Optional[str] = None
    occupation: Optional[str] = None
    join_date: datetime


class User(PublicUser):
    password: str


class Post(CamelModel):
    id: int
    user_id: int
    content: str
    images: List[str] = Field(default_factory=list)
    visibility: str
    created_at: datetime


class PostWithUser(Post):
    user: Optional[PublicUser] = None


class Comment(CamelModel):
    id: int
    post_id: int
    user_id: int
    content: str
    parent_id: Optional[int] = None
    created_at: datetime
    user: Optional[UserSummary] = None


class Like(CamelModel):
    id: int
    post_id: int
    user_id: int
    type: str
    created_at: datetime


class Event(CamelModel):
    id: int
    title: str
    description: str
    location: str
    date: datetime
    end_date: Optional[datetime] = None
    image: Optional[str] = None
    created_by: int
    created_at: datetime


class Group(CamelModel):
    id: int
    name: str
    description: Optional[str] = None
    image: Optional[str] = None
    created_by: int
    created_at: datetime
    member_count: int


class GroupMember(CamelModel):
    id: int
    group_id: int
    user_id: int
    role: str
    joined_at: datetime


class Connection(CamelModel):
    id: int
    requester_id: int
    addressee_id: int
    status: str
    created_at: datetime


# API request bodies

class UserRegister(CamelModel):
    username: str = Field(min_length=1)
    password: str = Field(min_length=1)
    email: EmailStr
    full_name: str = Field(min_length=1)


class PasswordResetRequest(CamelModel):
    email: EmailStr


class PostIn(CamelModel):
    content: str = Field(min_length=1)
    images: List[str] = Field(default_factory=list)
    visibility: str = "public"


class CommentIn(CamelModel):
    content: str = Field(min_length=1)
    parent_id: Optional[int] = None


class EventIn(CamelModel):
    title: str = Field(min_length=1)
    description: str
    location: str
    date: datetime
    end_date: Optional[datetime] = None
    image: Optional[str] = None


class GroupIn(CamelModel):
    name: str = Field(min_length=1)
    description: Optional[str] = None
    image: Optional[str] = None


class ConnectionIn(CamelModel):
    addressee_id: int


class ConnectionStatusIn(CamelModel):
    status: Literal["pending", "accepted", "rejected"]


# API responses

class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"


class AuthResponse(Token):
    user: PublicUser
