"""
Reviews Router

CRUD endpoints for book reviews.

Endpoints:
- GET /reviews - List all reviews, newest first
- POST /reviews - Create a review (author is the signed-in user)
- GET /reviews/{review_id} - Get a review
- PUT /reviews/{review_id} - Replace a review (author only)
- DELETE /reviews/{review_id} - Delete a review (author only)

Business Rules:
- One review per user per book (enforced by database constraint)
- Only the review author can update or delete their review
- Responses embed the author's display name and the book's title
"""

import logging
import uuid
from datetime import UTC, datetime

from fastapi import APIRouter, status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from catalog.dependencies import CurrentUser, DbSession, OwnedReview, ReviewById, ReviewUpdate
from catalog.errors import DuplicateError, NotFound
from catalog.models import Book, Review
from catalog.schemas import (
    DeletedReviewResponse,
    ReviewCreate,
    ReviewMinimal,
    ReviewResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/reviews",
    tags=["Reviews"],
    responses={
        400: {"description": "Validation error, malformed id or duplicate review"},
        401: {"description": "Not authenticated"},
        404: {"description": "Review or book not found"},
    },
)

DUPLICATE_REVIEW = "You have already reviewed this book"


def _require_book(db: Session, book_id: uuid.UUID) -> None:
    if db.get(Book, book_id) is None:
        raise NotFound("Book")


def _commit_or_duplicate(db: Session) -> None:
    # (book_id, user_id) is the only unique key on reviews
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise DuplicateError(DUPLICATE_REVIEW) from None


@router.get(
    "",
    response_model=list[ReviewResponse],
    summary="List all reviews",
)
def list_reviews(db: DbSession, user: CurrentUser) -> list[Review]:
    stmt = (
        select(Review)
        .options(selectinload(Review.user), selectinload(Review.book))
        .order_by(Review.created_at.desc())
    )
    return list(db.execute(stmt).scalars().all())


@router.post(
    "",
    response_model=ReviewResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a review",
    description="Review a book as the signed-in user. One review per book per user.",
)
def create_review(review_data: ReviewCreate, db: DbSession, user: CurrentUser) -> Review:
    """
    Create a new review.

    Raises:
        NotFound: 404 if the book does not exist
        DuplicateError: 400 if the user already reviewed this book
    """
    _require_book(db, review_data.book_id)

    review = Review(**review_data.model_dump(), user_id=user.id)
    db.add(review)
    _commit_or_duplicate(db)
    db.refresh(review)

    logger.info(f"Review {review.id} created for book {review.book_id} by {user.email}")
    return review


@router.get(
    "/{review_id}",
    response_model=ReviewResponse,
    summary="Get a review",
)
def get_review(review: ReviewById) -> Review:
    return review


@router.put(
    "/{review_id}",
    response_model=ReviewResponse,
    summary="Replace a review",
    description="Replace your own review. Only the review author can update.",
    # Body is parsed by get_review_update, after the ownership check
    openapi_extra={
        "requestBody": {
            "required": True,
            "content": {
                "application/json": {"schema": ReviewCreate.model_json_schema(by_alias=True)}
            },
        }
    },
)
def update_review(
    review_data: ReviewUpdate,
    review: OwnedReview,
    db: DbSession,
    user: CurrentUser,
) -> Review:
    """
    Replace every field of a review.

    user_id never changes. Moving the review to another book requires that
    book to exist.
    """
    if review_data.book_id != review.book_id:
        _require_book(db, review_data.book_id)

    for field, value in review_data.model_dump().items():
        setattr(review, field, value)
    # onupdate only fires when a column changed
    review.updated_at = datetime.now(UTC)

    _commit_or_duplicate(db)
    db.refresh(review)

    logger.info(f"Review {review.id} updated by {user.email}")
    return review


@router.delete(
    "/{review_id}",
    response_model=DeletedReviewResponse,
    summary="Delete a review",
    description="Delete your own review. Only the review author can delete.",
)
def delete_review(review: OwnedReview, db: DbSession, user: CurrentUser) -> DeletedReviewResponse:
    deleted = ReviewMinimal.model_validate(review)

    db.delete(review)
    db.commit()

    logger.info(f"Review {deleted.id} deleted by {user.email}")
    return DeletedReviewResponse(message="Review deleted successfully", deleted=deleted)
