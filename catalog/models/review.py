"""
Review Model

A user's opinion of one book.

Business Rules:
- One review per user per book (unique constraint)
- Rating must be 1-5
- user_id is set from the session on creation and never changes; it
  decides who may update or delete the review
"""

import uuid
from datetime import UTC, datetime

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from catalog.database import Base


class Review(Base):
    """
    Review model for book reviews.

    Attributes:
        id: Primary key
        book_id: Foreign key to books table
        user_id: Foreign key to users table (the author)
        rating: 1-5 star rating
        title: Review headline
        content: Review text
        helpful_votes: Number of "helpful" votes
        is_verified_purchase: Whether the reviewer bought the book
        created_at: When the review was created
        updated_at: When the review was last updated
    """

    __tablename__ = "reviews"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    book_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("books.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id"),
        nullable=False,
        index=True,
    )

    rating: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        comment="Rating from 1-5 stars",
    )
    title: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
    )
    content: Mapped[str] = mapped_column(
        Text,
        nullable=False,
    )

    helpful_votes: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
        comment="Number of helpful votes",
    )
    is_verified_purchase: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        index=True,
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
        nullable=False,
    )

    book = relationship("Book", back_populates="reviews")
    user = relationship("User", back_populates="reviews")

    __table_args__ = (
        # One review per user per book
        UniqueConstraint("book_id", "user_id", name="uq_review_book_user"),
        CheckConstraint("rating >= 1 AND rating <= 5", name="ck_review_rating_range"),
    )

    def __repr__(self) -> str:
        return f"<Review(id={self.id}, book_id={self.book_id}, user_id={self.user_id}, rating={self.rating})>"
