"""
Book Model

A catalog entry. Books carry no owner: any authenticated user may create,
update or delete any book.
"""

import uuid
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy import CheckConstraint, DateTime, Float, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from catalog.database import Base

if TYPE_CHECKING:
    from catalog.models.review import Review


class Book(Base):
    """
    Book model.

    Table: books

    Indexes:
    - isbn: unique; a second insert with the same ISBN raises IntegrityError,
      which the books router reports as a duplicate
    - title: for lookups and sorting

    Example:
        book = Book(
            title="Dune",
            author="Frank Herbert",
            published_year=1965,
            genre="Sci-Fi",
            isbn="9780441172719",
            summary="A desert planet saga of politics and prophecy.",
        )
    """

    __tablename__ = "books"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    title: Mapped[str] = mapped_column(
        String(500),
        index=True,
        nullable=False,
        comment="Book title"
    )

    author: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Author name as printed on the cover"
    )

    published_year: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        comment="Year of first publication"
    )

    genre: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
    )

    # Stored without hyphens or spaces so "978-0-441-17271-9" and
    # "9780441172719" collide on the unique index
    isbn: Mapped[str] = mapped_column(
        String(13),
        unique=True,
        index=True,
        nullable=False,
        comment="ISBN-10 or ISBN-13, digits only (X allowed as ISBN-10 check digit)"
    )

    rating: Mapped[float] = mapped_column(
        Float,
        default=0,
        nullable=False,
        comment="Catalog rating from 0 to 5"
    )

    summary: Mapped[str] = mapped_column(
        Text,
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

    reviews: Mapped[list["Review"]] = relationship(
        "Review",
        back_populates="book",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        CheckConstraint("rating >= 0 AND rating <= 5", name="ck_book_rating_range"),
    )

    def __repr__(self) -> str:
        return f"Book(id={self.id}, title='{self.title}', isbn='{self.isbn}')"
