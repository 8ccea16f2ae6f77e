"""
Database Configuration Module

SQLAlchemy 2.0 engine, session factory and declarative base.

Session Management Pattern
==========================
One session per request:
1. Request arrives -> create a new session
2. Use it for every store operation in that request
3. Handlers commit explicitly; failures roll back
4. Close the session when the request ends

Handlers are plain (sync) functions; FastAPI runs them in its threadpool so
a slow query never blocks the event loop serving other requests.
"""

from collections.abc import Generator

from sqlalchemy import create_engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from catalog.config import get_settings

settings = get_settings()


def _engine_options(url: str) -> dict:
    """Pool options only apply to server databases, not SQLite."""
    if url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}}
    return {
        "pool_size": settings.db_pool_size,
        "max_overflow": settings.db_max_overflow,
        "pool_pre_ping": True,  # Verify connections are alive before using
    }


engine = create_engine(
    settings.database_url,
    echo=settings.debug,  # Log SQL in debug mode
    **_engine_options(settings.database_url),
)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)


class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy models.

    Alembic reads Base.metadata to discover tables for migrations.
    """
    pass


def get_db() -> Generator[Session, None, None]:
    """
    Database session dependency for FastAPI.

    Yields a session for the duration of the request and always closes it,
    even when the handler raised.

    Usage in Routes:
        @router.get("/books")
        def list_books(db: DbSession):
            ...
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def create_tables() -> None:
    """
    Create all database tables.

    For development and tests only; production schema changes go through
    Alembic migrations.
    """
    Base.metadata.create_all(bind=engine)
