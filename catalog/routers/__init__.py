"""
API Routers Package

Router Structure:
- auth.py: /auth/* local registration, login, logout, session status
- oauth.py: /auth/{provider}/* built at startup for configured providers
- books.py: /books/* endpoints
- reviews.py: /reviews/* endpoints

Each router is imported and registered in main.py.
"""

from catalog.routers.auth import router as auth_router
from catalog.routers.books import router as books_router
from catalog.routers.oauth import create_oauth_router
from catalog.routers.reviews import router as reviews_router

__all__ = [
    "auth_router",
    "books_router",
    "reviews_router",
    "create_oauth_router",
]
