"""
shared/models/models.py
All SQLAlchemy ORM models for the Prayer Portal.
UUID primary keys throughout; group membership lives only in group_members.
"""

import uuid
from datetime import datetime, timezone
from enum import Enum as PyEnum
from typing import List, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Table,
    Text,
    UniqueConstraint,
    Uuid,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from config.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ── Enumerations ──────────────────────────────────────────────

class UserRole(str, PyEnum):
    USER = "USER"
    ADMIN = "ADMIN"


class Visibility(str, PyEnum):
    PUBLIC = "PUBLIC"
    PRIVATE = "PRIVATE"
    GROUP_ONLY = "GROUP_ONLY"
    ADMIN_ONLY = "ADMIN_ONLY"

    @classmethod
    def parse(cls, value: str) -> "Visibility":
        """Case-insensitive lookup. Raises InvalidVisibilityError on unknown input."""
        from core.errors import InvalidVisibilityError

        try:
            return cls(value.strip().upper())
        except (AttributeError, ValueError):
            raise InvalidVisibilityError(value)


class NotificationType(str, PyEnum):
    COMMENT_RECEIVED = "COMMENT_RECEIVED"
    PRAYER_RECEIVED = "PRAYER_RECEIVED"


class ResourceType(str, PyEnum):
    ARTICLE = "ARTICLE"
    DEVOTIONAL = "DEVOTIONAL"
    SCRIPTURE = "SCRIPTURE"
    PRAYER_GUIDE = "PRAYER_GUIDE"
    VIDEO = "VIDEO"


# ── Mixins ────────────────────────────────────────────────────

class TimestampMixin:
    """Adds created_at and updated_at to any model."""
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        server_default=func.now(),
        onupdate=_utcnow,
        nullable=False,
    )


# ── Association ───────────────────────────────────────────────

# Owned by Group. The leader always has a row here.
group_members = Table(
    "group_members",
    Base.metadata,
    Column("group_id", Uuid, ForeignKey("groups.id", ondelete="CASCADE"), primary_key=True),
    Column("user_id", Uuid, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column(
        "joined_at",
        DateTime(timezone=True),
        default=_utcnow,
        server_default=func.now(),
        nullable=False,
    ),
    Index("ix_group_members_user_id", "user_id"),
)


# ── Models ────────────────────────────────────────────────────

class User(TimestampMixin, Base):
    """Community member or administrator. Local username/password account."""
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    username: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[UserRole] = mapped_column(
        Enum(UserRole), nullable=False, default=UserRole.USER
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    bio: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    last_login_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    # Notifications go with the account
    notifications: Mapped[List["Notification"]] = relationship(
        back_populates="user", cascade="all, delete-orphan", passive_deletes=True
    )

    __table_args__ = (Index("ix_users_role", "role"),)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    def __repr__(self) -> str:
        return f"<User {self.username} ({self.role})>"


class Group(Base):
    """Prayer group. Exactly one leader, who is always a member."""
    __tablename__ = "groups"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    leader_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now(), nullable=False
    )

    leader: Mapped["User"] = relationship(lazy="joined", innerjoin=True)

    __table_args__ = (Index("ix_groups_leader_id", "leader_id"),)

    def __repr__(self) -> str:
        return f"<Group {self.name}>"


class PrayerRequest(TimestampMixin, Base):
    """
    A prayer request. Author is fixed at creation.
    group_id is only ever set at creation, together with GROUP_ONLY visibility.
    is_answered moves one way: False -> True.
    """
    __tablename__ = "prayer_requests"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    visibility: Mapped[Visibility] = mapped_column(
        Enum(Visibility), nullable=False, default=Visibility.PUBLIC
    )
    is_anonymous: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_answered: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    answered_description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    answered_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    prayed_for_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    author_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    group_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("groups.id", ondelete="CASCADE"), nullable=True
    )

    author: Mapped["User"] = relationship(lazy="joined", innerjoin=True)

    __table_args__ = (
        Index("ix_prayer_requests_author_id", "author_id"),
        Index("ix_prayer_requests_group_id", "group_id"),
        Index("ix_prayer_requests_visibility", "visibility"),
        Index("ix_prayer_requests_created_at", "created_at"),
    )


class Comment(TimestampMixin, Base):
    """Comment on a prayer request."""
    __tablename__ = "comments"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    author_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    prayer_request_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("prayer_requests.id", ondelete="CASCADE"), nullable=False
    )

    author: Mapped["User"] = relationship(lazy="joined", innerjoin=True)

    __table_args__ = (Index("ix_comments_prayer_request_id", "prayer_request_id"),)


class Prayer(Base):
    """One user's acknowledgement of one prayer request. At most one per pair."""
    __tablename__ = "prayers"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    prayer_request_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("prayer_requests.id", ondelete="CASCADE"), nullable=False
    )
    prayed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now(), nullable=False
    )

    __table_args__ = (
        UniqueConstraint("user_id", "prayer_request_id", name="uq_prayer_user_request"),
    )


class Notification(Base):
    """In-app notification. Written only by the notification task."""
    __tablename__ = "notifications"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    message: Mapped[str] = mapped_column(Text, nullable=False)
    type: Mapped[NotificationType] = mapped_column(Enum(NotificationType), nullable=False)
    related_entity_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True)
    is_read: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    read_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now(), nullable=False
    )

    user: Mapped["User"] = relationship(back_populates="notifications")

    __table_args__ = (Index("ix_notifications_user_id_read", "user_id", "is_read"),)


class Resource(TimestampMixin, Base):
    """Devotional / teaching material curated by admins."""
    __tablename__ = "resources"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    content: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    type: Mapped[ResourceType] = mapped_column(
        Enum(ResourceType), nullable=False, default=ResourceType.ARTICLE
    )
    author: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    __table_args__ = (Index("ix_resources_type_active", "type", "is_active"),)


class AdminAuditLog(Base):
    """Immutable log of all admin actions."""
    __tablename__ = "admin_audit_logs"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    admin_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    action: Mapped[str] = mapped_column(String(100), nullable=False)
    entity_type: Mapped[str] = mapped_column(String(50), nullable=False)
    entity_id: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    payload: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    ip_address: Mapped[Optional[str]] = mapped_column(String(45), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now()
    )

    __table_args__ = (
        Index("ix_admin_audit_admin_id", "admin_id"),
        Index("ix_admin_audit_created_at", "created_at"),
    )
