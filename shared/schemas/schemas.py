"""
shared/schemas/schemas.py
All Pydantic v2 request/response schemas for the portal.
"""

import uuid
from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from core.errors import InvalidVisibilityError
from shared.models.models import ResourceType, UserRole, Visibility


# ── Base ──────────────────────────────────────────────────────

class BaseSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True, use_enum_values=True)


class PaginatedResponse(BaseSchema):
    items: List[Any]
    total: int
    page: int
    page_size: int
    pages: int


def _parse_visibility(value):
    if value is None or isinstance(value, Visibility):
        return value
    try:
        return Visibility.parse(value)
    except InvalidVisibilityError as e:
        raise ValueError(e.message)


# ── Auth ──────────────────────────────────────────────────────

class SignupRequest(BaseSchema):
    username: str = Field(..., min_length=3, max_length=50, pattern=r"^[A-Za-z0-9_.-]+$")
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=128)
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)


class SigninRequest(BaseSchema):
    username: str = Field(..., description="Username or email")
    password: str


class TokenResponse(BaseSchema):
    access_token: str
    token_type: str = "bearer"
    expires_in: int  # seconds
    user: "UserResponse"


# ── User ──────────────────────────────────────────────────────

class UserResponse(BaseSchema):
    id: uuid.UUID
    username: str
    email: EmailStr
    first_name: str
    last_name: str
    role: UserRole
    is_active: bool
    bio: Optional[str] = None
    last_login_at: Optional[datetime] = None
    created_at: datetime


class PublicUserResponse(BaseSchema):
    id: uuid.UUID
    username: str
    first_name: str
    last_name: str
    bio: Optional[str] = None
    created_at: datetime


class AuthorSummary(BaseSchema):
    id: uuid.UUID
    username: str
    first_name: str
    last_name: str


class UserUpdateRequest(BaseSchema):
    first_name: Optional[str] = Field(None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(None, min_length=1, max_length=100)
    email: Optional[EmailStr] = None
    bio: Optional[str] = Field(None, max_length=2000)


class ChangePasswordRequest(BaseSchema):
    current_password: str
    new_password: str = Field(..., min_length=6, max_length=128)


# ── Prayer Request ────────────────────────────────────────────

class PrayerRequestCreate(BaseSchema):
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., min_length=1, max_length=5000)
    visibility: Optional[Visibility] = None
    is_anonymous: bool = False
    group_id: Optional[uuid.UUID] = None

    # Keep the enum member; use_enum_values would otherwise store the raw string
    model_config = ConfigDict(from_attributes=True, use_enum_values=False)

    @field_validator("visibility", mode="before")
    @classmethod
    def normalize_visibility(cls, v):
        return _parse_visibility(v)


class PrayerRequestUpdate(BaseSchema):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, min_length=1, max_length=5000)
    visibility: Optional[Visibility] = None
    is_anonymous: Optional[bool] = None

    model_config = ConfigDict(from_attributes=True, use_enum_values=False)

    @field_validator("visibility", mode="before")
    @classmethod
    def normalize_visibility(cls, v):
        return _parse_visibility(v)


class AnswerRequest(BaseSchema):
    answered_description: Optional[str] = Field(None, max_length=5000)


class PrayerRequestResponse(BaseSchema):
    id: uuid.UUID
    title: str
    description: str
    visibility: Visibility
    is_anonymous: bool
    is_answered: bool
    answered_description: Optional[str] = None
    answered_at: Optional[datetime] = None
    prayed_for_count: int
    group_id: Optional[uuid.UUID] = None
    created_at: datetime
    updated_at: datetime
    # Hidden for anonymous requests unless the viewer wrote it
    author_id: Optional[uuid.UUID] = None
    author: Optional[AuthorSummary] = None


class PrayResponse(BaseSchema):
    message: str
    prayed_for_count: int


# ── Comment ───────────────────────────────────────────────────

class CommentCreate(BaseSchema):
    content: str = Field(..., min_length=1, max_length=2000)


class CommentUpdate(BaseSchema):
    content: str = Field(..., min_length=1, max_length=2000)


class CommentResponse(BaseSchema):
    id: uuid.UUID
    content: str
    prayer_request_id: uuid.UUID
    author_id: uuid.UUID
    author: AuthorSummary
    created_at: datetime
    updated_at: datetime


# ── Group ─────────────────────────────────────────────────────

class GroupCreate(BaseSchema):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=1000)


class GroupUpdate(BaseSchema):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=1000)


class GroupResponse(BaseSchema):
    id: uuid.UUID
    name: str
    description: Optional[str] = None
    leader_id: uuid.UUID
    leader: AuthorSummary
    created_at: datetime
    # Injected per viewer
    member_count: int = 0
    is_member: bool = False


# ── Notification ──────────────────────────────────────────────

class NotificationResponse(BaseSchema):
    id: uuid.UUID
    type: str
    message: str
    related_entity_id: Optional[uuid.UUID] = None
    is_read: bool
    read_at: Optional[datetime] = None
    created_at: datetime


class UnreadCountResponse(BaseSchema):
    unread_count: int


# ── Resource ──────────────────────────────────────────────────

class ResourceCreate(BaseSchema):
    title: str = Field(..., min_length=1, max_length=200)
    content: Optional[str] = None
    type: ResourceType = ResourceType.ARTICLE
    author: Optional[str] = Field(None, max_length=255)
    is_active: bool = True


class ResourceUpdate(BaseSchema):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    content: Optional[str] = None
    type: Optional[ResourceType] = None
    author: Optional[str] = Field(None, max_length=255)
    is_active: Optional[bool] = None


class ResourceResponse(BaseSchema):
    id: uuid.UUID
    title: str
    content: Optional[str] = None
    type: ResourceType
    author: Optional[str] = None
    is_active: bool
    created_at: datetime
    updated_at: datetime


# ── Admin ─────────────────────────────────────────────────────

class AdminRoleUpdateRequest(BaseSchema):
    role: UserRole


class AdminAnalyticsResponse(BaseSchema):
    total_users: int
    active_users: int
    total_prayer_requests: int
    active_prayer_requests: int
    public_prayer_requests: int
    recent_prayer_requests: int
    total_groups: int


# ── Generic ───────────────────────────────────────────────────

class MessageResponse(BaseSchema):
    message: str
    success: bool = True


class ErrorResponse(BaseSchema):
    detail: str
    code: Optional[str] = None


TokenResponse.model_rebuild()
