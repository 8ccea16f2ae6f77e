"""
FastAPI Dependencies Module

Dependencies are reusable components injected into route handlers.
FastAPI's Depends() function manages their lifecycle.

Chain for a protected route:
    get_db -> get_session_store -> get_session_manager
           -> get_optional_user -> require_authenticated

Resource dependencies (get_book_or_404, require_review_owner) turn the
path id into a loaded row, so handlers never see a malformed or missing id.
get_review_update parses the review PUT body only after ownership passed.
"""

import logging
import uuid
from datetime import timedelta
from typing import Annotated

from fastapi import Depends, Request
from pydantic import ValidationError
from sqlalchemy.orm import Session

from catalog.config import Settings, get_settings
from catalog.database import get_db
from catalog.errors import (
    Forbidden,
    MalformedIdentifier,
    NotFound,
    Unauthenticated,
    ValidationFailed,
    format_validation_errors,
)
from catalog.models import Book, Review, User
from catalog.schemas import ReviewCreate
from catalog.services.sessions import DatabaseSessionStore, SessionManager, SessionStore

logger = logging.getLogger(__name__)
settings = get_settings()

# =============================================================================
# Type Aliases with Annotated
# =============================================================================
# Instead of writing:
#   def list_books(db: Session = Depends(get_db)):
#
# You can write:
#   def list_books(db: DbSession):

DbSession = Annotated[Session, Depends(get_db)]


# =============================================================================
# Sessions
# =============================================================================
def _app_settings(request: Request) -> Settings:
    # create_app() may have been given settings other than the process ones
    return getattr(request.app.state, "settings", settings)


def get_session_store(request: Request, db: DbSession) -> SessionStore:
    """
    The store chosen at startup.

    The Redis store is shared and lives on app.state; the database store
    is bound to this request's session and built fresh.
    """
    store = getattr(request.app.state, "session_store", None)
    if store is not None:
        return store
    return DatabaseSessionStore(db, timedelta(hours=_app_settings(request).session_ttl_hours))


def get_session_manager(
    request: Request,
    store: Annotated[SessionStore, Depends(get_session_store)],
) -> SessionManager:
    app_settings = _app_settings(request)
    token = request.cookies.get(app_settings.session_cookie_name)
    return SessionManager(store, token, app_settings)


Sessions = Annotated[SessionManager, Depends(get_session_manager)]


# =============================================================================
# Authentication
# =============================================================================
def get_optional_user(sessions: Sessions, db: DbSession) -> User | None:
    """Signed-in user, or None for anonymous requests. Never raises."""
    return sessions.current_user(db)


def require_authenticated(
    user: Annotated[User | None, Depends(get_optional_user)],
) -> User:
    """
    Require a signed-in user.

    Raises:
        Unauthenticated: 401 if the request carries no live session
    """
    if user is None:
        raise Unauthenticated()
    return user


OptionalUser = Annotated[User | None, Depends(get_optional_user)]
CurrentUser = Annotated[User, Depends(require_authenticated)]


# =============================================================================
# Resource Loading
# =============================================================================
def parse_identifier(resource: str, raw_id: str) -> uuid.UUID:
    """
    Parse a path id.

    Raises:
        MalformedIdentifier: 400 if raw_id is not a UUID
    """
    try:
        return uuid.UUID(raw_id)
    except ValueError:
        raise MalformedIdentifier(resource, raw_id) from None


def get_book_or_404(book_id: str, db: DbSession, user: CurrentUser) -> Book:
    book = db.get(Book, parse_identifier("book", book_id))
    if book is None:
        raise NotFound("Book")
    return book


def get_review_or_404(review_id: str, db: DbSession, user: CurrentUser) -> Review:
    review = db.get(Review, parse_identifier("review", review_id))
    if review is None:
        raise NotFound("Review")
    return review


def require_review_owner(
    review: Annotated[Review, Depends(get_review_or_404)],
    user: CurrentUser,
) -> Review:
    """
    Only the author of a review may change or delete it.

    Resolved before the request body is validated, so a non-owner gets
    403 whatever they send.

    Raises:
        Forbidden: 403 if the signed-in user did not write the review
    """
    if review.user_id != user.id:
        logger.warning(f"User {user.email} tried to modify review {review.id} they do not own")
        raise Forbidden("You can only modify your own reviews")
    return review


BookById = Annotated[Book, Depends(get_book_or_404)]
ReviewById = Annotated[Review, Depends(get_review_or_404)]
OwnedReview = Annotated[Review, Depends(require_review_owner)]


async def get_review_update(
    request: Request,
    review: Annotated[Review, Depends(require_review_owner)],
) -> ReviewCreate:
    """
    Parse the PUT /reviews body once ownership is settled.

    A declared body parameter would be decoded by FastAPI before any
    dependency runs, letting a non-author see 400 for malformed JSON
    instead of 403.

    Raises:
        ValidationFailed: 400 listing every violation, including
            undecodable JSON
    """
    try:
        return ReviewCreate.model_validate_json(await request.body())
    except ValidationError as e:
        raise ValidationFailed(format_validation_errors(e.errors())) from None


ReviewUpdate = Annotated[ReviewCreate, Depends(get_review_update)]
