"""
User Model

A user signs in either with email/password or through an OAuth provider
(Google, GitHub), or both once accounts are linked.

Invariant: a user always has a password hash or at least one provider id.
The identity resolver never creates a user without one, and the
ck_users_has_credential CHECK constraint rejects it at the store level.
"""

import uuid
from datetime import UTC, datetime
from enum import Enum
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, CheckConstraint, DateTime, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from catalog.database import Base

if TYPE_CHECKING:
    from catalog.models.review import Review
    from catalog.models.session import UserSession


class UserRole(str, Enum):
    USER = "user"
    ADMIN = "admin"


class User(Base):
    """
    User model representing registered users.

    Table: users

    Indexes:
    - email: unique, used for local login lookups
    - google_id / github_id: unique per provider; NULL for users that never
      signed in with that provider (NULLs do not collide)

    Example:
        # Email/password user
        user = User(
            email="ada@example.com",
            display_name="Ada",
            hashed_password=hash_password("secret123"),
        )

        # OAuth user
        user = User(
            email="ada@gmail.com",
            display_name="Ada",
            google_id="109876543210",
        )
    """

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    # -------------------------------------------------------------------------
    # Authentication Fields
    # -------------------------------------------------------------------------
    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        index=True,
        nullable=False,
        comment="User's email address (used for login)"
    )

    # Nullable because OAuth-only users don't have passwords
    hashed_password: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
        comment="Bcrypt hashed password (null for OAuth-only users)"
    )

    google_id: Mapped[str | None] = mapped_column(
        String(255),
        unique=True,
        index=True,
        nullable=True,
        comment="Google account id"
    )

    github_id: Mapped[str | None] = mapped_column(
        String(255),
        unique=True,
        index=True,
        nullable=True,
        comment="GitHub account id"
    )

    # -------------------------------------------------------------------------
    # Profile Fields
    # -------------------------------------------------------------------------
    display_name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Name shown next to the user's reviews"
    )

    avatar_url: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
        comment="Profile picture URL, usually taken from the OAuth profile"
    )

    # -------------------------------------------------------------------------
    # Account Status
    # -------------------------------------------------------------------------
    role: Mapped[str] = mapped_column(
        String(20),
        default=UserRole.USER.value,
        nullable=False,
        comment="user or admin"
    )

    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
        comment="Inactive users cannot sign in"
    )

    # -------------------------------------------------------------------------
    # Timestamps
    # -------------------------------------------------------------------------
    last_login_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        comment="When the user last signed in"
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
        nullable=False,
    )

    # -------------------------------------------------------------------------
    # Relationships
    # -------------------------------------------------------------------------
    reviews: Mapped[list["Review"]] = relationship(
        "Review",
        back_populates="user",
    )

    sessions: Mapped[list["UserSession"]] = relationship(
        "UserSession",
        back_populates="user",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        CheckConstraint(
            "hashed_password IS NOT NULL OR google_id IS NOT NULL OR github_id IS NOT NULL",
            name="ck_users_has_credential",
        ),
        CheckConstraint("role IN ('user', 'admin')", name="ck_users_role"),
    )

    def provider_id(self, provider: str) -> str | None:
        """Provider-specific account id (provider is 'google' or 'github')."""
        return getattr(self, f"{provider}_id")

    def __repr__(self) -> str:
        return f"User(id={self.id}, email='{self.email}')"
