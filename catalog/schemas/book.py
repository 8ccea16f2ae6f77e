"""
Book Pydantic Schemas

Handles:
- ISBN validation (ISBN-10 or ISBN-13, hyphens and spaces stripped)
- Publication year bounds (1000 up to the current year)
- Rating bounds (0-5, defaults to 0)
- Summary length

BookCreate is used for both POST and PUT: an update replaces the whole
record and is validated against the full schema.
"""

import re
import uuid
from datetime import UTC, datetime

from pydantic import Field, field_validator

from catalog.schemas.base import CamelModel

MIN_PUBLISHED_YEAR = 1000


class BookBase(CamelModel):
    """Shared book fields and their validation."""

    title: str = Field(
        ...,
        min_length=1,
        max_length=500,
        description="Book title",
        examples=["Dune"],
    )

    author: str = Field(
        ...,
        min_length=1,
        max_length=255,
        description="Author name",
        examples=["Frank Herbert"],
    )

    published_year: int = Field(
        ...,
        ge=MIN_PUBLISHED_YEAR,
        description="Year of publication (1000 to the current year)",
        examples=[1965],
    )

    genre: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Genre",
        examples=["Sci-Fi"],
    )

    isbn: str = Field(
        ...,
        max_length=20,
        description="ISBN-10 or ISBN-13",
        examples=["978-0-441-17271-9"],
    )

    rating: float = Field(
        default=0,
        ge=0,
        le=5,
        description="Catalog rating from 0 to 5",
        examples=[4.5],
    )

    summary: str = Field(
        ...,
        min_length=10,
        max_length=2000,
        description="Short summary of the book",
        examples=["A desert planet saga of politics and prophecy."],
    )

    @field_validator("published_year")
    @classmethod
    def year_not_in_future(cls, v: int) -> int:
        # Checked here rather than with le= because the bound moves every year
        current_year = datetime.now(UTC).year
        if v > current_year:
            raise ValueError(f"publishedYear cannot be later than {current_year}")
        return v

    @field_validator("isbn")
    @classmethod
    def validate_isbn(cls, v: str) -> str:
        """
        Validate ISBN format.

        Accepts:
        - ISBN-10: 9 digits followed by a digit or X
        - ISBN-13: 13 digits

        Hyphens and spaces are stripped for storage.
        """
        cleaned = re.sub(r"[-\s]", "", v).upper()

        if len(cleaned) == 10:
            if not re.match(r"^\d{9}[\dX]$", cleaned):
                raise ValueError(
                    "Invalid ISBN-10 format. Must be 10 characters: "
                    "9 digits followed by a digit or 'X'"
                )
        elif len(cleaned) == 13:
            if not cleaned.isdigit():
                raise ValueError("Invalid ISBN-13 format. Must be exactly 13 digits")
        else:
            raise ValueError("ISBN must be either 10 or 13 characters (excluding hyphens)")

        return cleaned

    @field_validator("title", "author", "genre", "summary")
    @classmethod
    def must_not_be_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Value cannot be empty or whitespace")
        return v.strip()


class BookCreate(BookBase):
    """
    Schema for creating or replacing a book.

    Example request body:
    {
        "title": "Dune",
        "author": "Frank Herbert",
        "publishedYear": 1965,
        "genre": "Sci-Fi",
        "isbn": "978-0-441-17271-9",
        "summary": "A desert planet saga of politics and prophecy."
    }
    """

    pass


class BookResponse(BookBase):
    """Book as returned by the API, with id and timestamps."""

    id: uuid.UUID = Field(..., description="Unique identifier")
    created_at: datetime = Field(..., description="When the book was created")
    updated_at: datetime = Field(..., description="When the book was last updated")


class BookMinimal(CamelModel):
    """Just enough to identify a book inside a review."""

    id: uuid.UUID
    title: str


class DeletedBookResponse(CamelModel):
    message: str
    deleted: BookMinimal
