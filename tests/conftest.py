"""
pytest Fixtures for Book Catalog API Tests

Shared fixtures for every test module.

For database tests, we use:
- session scope for the engine (tables created once)
- function scope for sessions; each test runs inside a transaction that is
  rolled back afterwards, so tests never see each other's rows

Handlers commit; the test session is configured to turn those commits into
SAVEPOINT releases so the outer transaction can still be rolled back.
"""

# =============================================================================
# TEST ENVIRONMENT SETUP
# =============================================================================
# IMPORTANT: Set environment variables BEFORE importing the app
# This disables rate limiting, sets a test session secret and keeps the
# process-wide engine off PostgreSQL
import os

os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["SESSION_SECRET"] = "test-session-secret-for-unit-tests-at-least-32-chars"
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["SESSION_BACKEND"] = "database"
os.environ["ENVIRONMENT"] = "development"
for _name in ("GOOGLE_CLIENT_ID", "GOOGLE_CLIENT_SECRET", "GITHUB_CLIENT_ID", "GITHUB_CLIENT_SECRET"):
    os.environ.pop(_name, None)

from collections.abc import Callable, Generator
from datetime import timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from catalog.database import Base, get_db
from catalog.main import app
from catalog.models import Book, Review, User
from catalog.services.security import hash_password
from catalog.services.sessions import DatabaseSessionStore

SESSION_COOKIE = "session_id"
SAMPLE_PASSWORD = "SecurePass123"

# =============================================================================
# DATABASE FIXTURES
# =============================================================================
# SQLite in-memory: no external database needed. Some PostgreSQL features
# (e.g. enforced ON DELETE CASCADE) are covered by ORM cascades instead.


@pytest.fixture(scope="session")
def engine():
    """
    SQLite in-memory engine shared by the whole test run.

    StaticPool keeps the single connection alive; without it the in-memory
    database would disappear between connections.
    """
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # pysqlite defers BEGIN on its own, which breaks SAVEPOINT; let
    # SQLAlchemy emit BEGIN itself
    @event.listens_for(engine, "connect")
    def _disable_pysqlite_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")

    Base.metadata.create_all(bind=engine)

    yield engine

    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def db_session(engine) -> Generator[Session, None, None]:
    """
    Fresh database session for each test, rolled back afterwards.

    join_transaction_mode="create_savepoint" makes session.commit() and
    session.rollback() act on a SAVEPOINT, so a handler that rolls back
    after an IntegrityError does not discard the test's fixtures.
    """
    connection = engine.connect()
    transaction = connection.begin()

    TestSessionLocal = sessionmaker(
        autocommit=False,
        autoflush=False,
        bind=connection,
        join_transaction_mode="create_savepoint",
    )
    session = TestSessionLocal()

    yield session

    session.close()
    transaction.rollback()
    connection.close()


@pytest.fixture(scope="function")
def client(db_session: Session) -> Generator[TestClient, None, None]:
    """
    Test client bound to the test database.

    get_db is overridden so every request uses db_session.
    """

    def override_get_db():
        try:
            yield db_session
        finally:
            pass  # Session cleanup handled by db_session fixture

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


# =============================================================================
# SESSION HELPERS
# =============================================================================


@pytest.fixture
def session_store(db_session: Session) -> DatabaseSessionStore:
    return DatabaseSessionStore(db_session, timedelta(hours=24))


@pytest.fixture
def login_as(client: TestClient, session_store: DatabaseSessionStore) -> Callable[[User], str]:
    """
    Sign the test client in as a user without going through /auth/login.

    Returns a function that creates a session for the user, replaces the
    client's cookies with it, and returns the raw token.
    """

    def _login(user: User) -> str:
        token = session_store.create(user.id)
        client.cookies.clear()
        client.cookies.set(SESSION_COOKIE, token)
        return token

    return _login


@pytest.fixture
def auth_client(client: TestClient, login_as, sample_user: User) -> TestClient:
    """Test client signed in as sample_user."""
    login_as(sample_user)
    return client


# =============================================================================
# SAMPLE DATA FIXTURES
# =============================================================================


@pytest.fixture
def sample_user(db_session: Session) -> User:
    """Local account with password SAMPLE_PASSWORD."""
    user = User(
        email="testuser@example.com",
        display_name="Test User",
        hashed_password=hash_password(SAMPLE_PASSWORD),
    )
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


@pytest.fixture
def second_user(db_session: Session) -> User:
    """Create a second user for testing ownership scenarios."""
    user = User(
        email="seconduser@example.com",
        display_name="Second User",
        hashed_password=hash_password("SecurePass456"),
    )
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


@pytest.fixture
def oauth_only_user(db_session: Session) -> User:
    """User who only ever signed in with GitHub."""
    user = User(
        email="octocat@example.com",
        display_name="Octo Cat",
        github_id="583231",
    )
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


@pytest.fixture
def sample_book(db_session: Session) -> Book:
    book = Book(
        title="1984",
        author="George Orwell",
        published_year=1949,
        genre="Dystopian",
        isbn="9780451524935",
        summary="A dystopian novel set in a totalitarian society.",
    )
    db_session.add(book)
    db_session.commit()
    db_session.refresh(book)
    return book


@pytest.fixture
def second_book(db_session: Session) -> Book:
    book = Book(
        title="Pride and Prejudice",
        author="Jane Austen",
        published_year=1813,
        genre="Romance",
        isbn="9780141439518",
        rating=4.4,
        summary="Elizabeth Bennet and Mr. Darcy misjudge each other.",
    )
    db_session.add(book)
    db_session.commit()
    db_session.refresh(book)
    return book


@pytest.fixture
def sample_review(
    db_session: Session,
    sample_book: Book,
    sample_user: User,
) -> Review:
    """Review of sample_book written by sample_user."""
    review = Review(
        book_id=sample_book.id,
        user_id=sample_user.id,
        rating=4,
        title="Great book!",
        content="I really enjoyed reading this book.",
    )
    db_session.add(review)
    db_session.commit()
    db_session.refresh(review)
    return review


@pytest.fixture
def book_payload() -> dict:
    """Valid camelCase body for POST/PUT /books."""
    return {
        "title": "Dune",
        "author": "Herbert",
        "publishedYear": 1965,
        "genre": "Sci-Fi",
        "isbn": "978-0-441-17271-9",
        "summary": "A desert planet saga of politics and prophecy.",
    }
