"""
Books Router

CRUD endpoints for the catalog. Every route requires a signed-in user;
books have no owner, so any signed-in user may change any book.

Endpoints:
- GET /books - List all books, newest first
- POST /books - Create a book
- GET /books/{book_id} - Get a book
- PUT /books/{book_id} - Replace a book (full validation)
- DELETE /books/{book_id} - Delete a book and its reviews
"""

import logging
from datetime import UTC, datetime

from fastapi import APIRouter, status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from catalog.dependencies import BookById, CurrentUser, DbSession
from catalog.errors import DuplicateError
from catalog.models import Book
from catalog.schemas import BookCreate, BookMinimal, BookResponse, DeletedBookResponse

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/books",
    tags=["Books"],
    responses={
        400: {"description": "Validation error, malformed id or duplicate ISBN"},
        401: {"description": "Not authenticated"},
        404: {"description": "Book not found"},
    },
)

DUPLICATE_ISBN = "A book with this ISBN already exists"


def _commit_or_duplicate(db: Session) -> None:
    # isbn is the only unique column on books
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise DuplicateError(DUPLICATE_ISBN) from None


@router.get(
    "",
    response_model=list[BookResponse],
    summary="List all books",
)
def list_books(db: DbSession, user: CurrentUser) -> list[Book]:
    stmt = select(Book).order_by(Book.created_at.desc())
    return list(db.execute(stmt).scalars().all())


@router.post(
    "",
    response_model=BookResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a book",
    description="""
    Add a book to the catalog.

    **Validation:**
    - `publishedYear` between 1000 and the current year
    - `isbn` is ISBN-10 or ISBN-13; hyphens and spaces are stripped
    - `rating` between 0 and 5 (defaults to 0)
    - `summary` 10-2000 characters
    """,
)
def create_book(book_data: BookCreate, db: DbSession, user: CurrentUser) -> Book:
    """
    Create a new book.

    Raises:
        DuplicateError: 400 if the ISBN is already in the catalog
    """
    book = Book(**book_data.model_dump())
    db.add(book)
    _commit_or_duplicate(db)
    db.refresh(book)

    logger.info(f"Book created: {book.title} ({book.id}) by {user.email}")
    return book


@router.get(
    "/{book_id}",
    response_model=BookResponse,
    summary="Get a book",
)
def get_book(book: BookById) -> Book:
    return book


@router.put(
    "/{book_id}",
    response_model=BookResponse,
    summary="Replace a book",
    description="Replace every field of a book. The body is validated like a create.",
)
def update_book(
    book_data: BookCreate,
    book: BookById,
    db: DbSession,
    user: CurrentUser,
) -> Book:
    for field, value in book_data.model_dump().items():
        setattr(book, field, value)
    # onupdate only fires when a column changed
    book.updated_at = datetime.now(UTC)

    _commit_or_duplicate(db)
    db.refresh(book)

    logger.info(f"Book updated: {book.title} ({book.id}) by {user.email}")
    return book


@router.delete(
    "/{book_id}",
    response_model=DeletedBookResponse,
    summary="Delete a book",
    description="Delete a book. Its reviews are deleted with it.",
)
def delete_book(book: BookById, db: DbSession, user: CurrentUser) -> DeletedBookResponse:
    deleted = BookMinimal.model_validate(book)

    db.delete(book)
    db.commit()

    logger.info(f"Book deleted: {deleted.title} ({deleted.id}) by {user.email}")
    return DeletedBookResponse(message="Book deleted successfully", deleted=deleted)
