"""
SQLAlchemy Models Package

Model Relationships:
- Book -> Review: One-to-Many (deleting a book deletes its reviews)
- User -> Review: One-to-Many (the user is the review's author)
- User -> UserSession: One-to-Many (database session backend)

Importing every model here registers it with Base.metadata, which is what
Alembic autogenerate and create_all() look at.
"""

from catalog.models.user import User, UserRole
from catalog.models.book import Book
from catalog.models.review import Review
from catalog.models.session import UserSession

__all__ = [
    "User",
    "UserRole",
    "Book",
    "Review",
    "UserSession",
]
