"""
Pydantic Schemas Package

Request/response models, kept separate from the SQLAlchemy models so the
API controls exactly what is exposed (no password hashes, no provider ids).

Schema Naming Convention:
- XxxCreate: request body for create (and full replace on PUT)
- XxxResponse: what the API returns
- XxxMinimal / XxxSummary: small embedded representations
"""

from catalog.schemas.base import CamelModel, MessageResponse
from catalog.schemas.book import (
    BookCreate,
    BookMinimal,
    BookResponse,
    DeletedBookResponse,
)
from catalog.schemas.review import (
    DeletedReviewResponse,
    ReviewCreate,
    ReviewMinimal,
    ReviewResponse,
)
from catalog.schemas.user import (
    AuthResponse,
    AuthStatusResponse,
    LoginRequest,
    RegisterRequest,
    UserResponse,
    UserSummary,
)

__all__ = [
    "CamelModel",
    "MessageResponse",
    # Book schemas
    "BookCreate",
    "BookMinimal",
    "BookResponse",
    "DeletedBookResponse",
    # Review schemas
    "ReviewCreate",
    "ReviewMinimal",
    "ReviewResponse",
    "DeletedReviewResponse",
    # User/auth schemas
    "RegisterRequest",
    "LoginRequest",
    "UserResponse",
    "UserSummary",
    "AuthResponse",
    "AuthStatusResponse",
]
