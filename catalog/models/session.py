"""
Session Model

Server-side half of a login session for the database session backend.

Security Features:
- Only a keyed SHA-256 digest of the token is stored, never the token
- Sessions expire (24 hours by default) and are deleted on logout
- Deleting a user deletes their sessions
"""

import uuid
from datetime import UTC, datetime

from sqlalchemy import DateTime, ForeignKey, Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from catalog.database import Base


class UserSession(Base):
    """
    Table: sessions

    Example:
        session = UserSession(
            token_digest=digest_session_token(token),
            user_id=user.id,
            expires_at=datetime.now(UTC) + timedelta(hours=24),
        )
    """

    __tablename__ = "sessions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)

    token_digest: Mapped[str] = mapped_column(
        String(64),
        unique=True,
        index=True,
        nullable=False,
        comment="HMAC-SHA256 of the session token"
    )

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        comment="After this instant the session resolves to nobody"
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )

    user = relationship("User", back_populates="sessions")

    def __repr__(self) -> str:
        return f"UserSession(id={self.id}, user_id={self.user_id}, expires_at={self.expires_at})"
