"""
Review Pydantic Schemas

Schemas:
- ReviewCreate: create or replace a review (bookId in the body)
- ReviewResponse: review with embedded author and book summaries
- DeletedReviewResponse: confirmation after delete

Business Rules:
- Rating must be 1-5
- Title 3-100 characters, content 10-1000 characters
- One review per user per book (enforced at database level)
"""

import uuid
from datetime import datetime

from pydantic import Field

from catalog.schemas.base import CamelModel
from catalog.schemas.book import BookMinimal
from catalog.schemas.user import UserSummary


class ReviewBase(CamelModel):
    rating: int = Field(
        ...,
        ge=1,
        le=5,
        description="Rating from 1 to 5 stars",
        examples=[4, 5],
    )

    title: str = Field(
        ...,
        min_length=3,
        max_length=100,
        description="Review headline",
        examples=["A masterpiece!"],
    )

    content: str = Field(
        ...,
        min_length=10,
        max_length=1000,
        description="Review text",
        examples=["Herbert builds a whole ecology around a single resource."],
    )

    is_verified_purchase: bool = Field(
        default=False,
        description="Whether the reviewer bought the book",
    )


class ReviewCreate(ReviewBase):
    """
    Schema for creating or replacing a review.

    The author is never taken from the body; it is the signed-in user.

    Example request body:
    {
        "bookId": "0f8c5c36-8f5e-4d4b-9a59-3d6a1f0b8e21",
        "rating": 5,
        "title": "Amazing book!",
        "content": "One of the best books I've ever read..."
    }
    """

    book_id: uuid.UUID = Field(..., description="ID of the reviewed book")


class ReviewResponse(ReviewBase):
    id: uuid.UUID = Field(..., description="Unique review identifier")
    book_id: uuid.UUID = Field(..., description="ID of the reviewed book")
    user_id: uuid.UUID = Field(..., description="ID of the review author")
    helpful_votes: int = Field(default=0, description="Number of helpful votes")
    created_at: datetime
    updated_at: datetime

    user: UserSummary = Field(..., description="Review author")
    book: BookMinimal = Field(..., description="Reviewed book")


class ReviewMinimal(CamelModel):
    id: uuid.UUID
    title: str


class DeletedReviewResponse(CamelModel):
    message: str
    deleted: ReviewMinimal
