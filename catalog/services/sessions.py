"""
Session Service

Server-side login sessions behind an opaque cookie.

Pieces:
=======
1. SessionStore: maps a token to a user id for a bounded lifetime.
   - DatabaseSessionStore: rows in the sessions table (default)
   - RedisSessionStore: keys with a TTL, for deployments with several
     API processes behind a load balancer
2. SessionManager: one per request. Opened with the request's cookie and
   the configured store; restores the signed-in user, and sets or clears the
   cookie on login/logout.

Restoring a session never fails a request. An unknown, expired or garbled
token, a session for a deleted or inactive user, or a store outage all
resolve to "anonymous" and are logged.
"""

import logging
import uuid
from datetime import UTC, datetime, timedelta
from typing import Protocol

import redis
from fastapi import Response
from redis.exceptions import RedisError
from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from catalog.config import Settings, get_settings
from catalog.models import User, UserSession
from catalog.services.security import digest_session_token, generate_session_token

logger = logging.getLogger(__name__)

REDIS_KEY_PREFIX = "session:"


class SessionStore(Protocol):
    def create(self, user_id: uuid.UUID) -> str:
        """Start a session for user_id and return the new token."""
        ...

    def resolve(self, token: str) -> uuid.UUID | None:
        """User id behind a live session, or None."""
        ...

    def revoke(self, token: str) -> None:
        """End the session. Unknown tokens are ignored."""
        ...


def _as_utc(value: datetime) -> datetime:
    # SQLite hands timezone-aware columns back as naive UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


class DatabaseSessionStore:
    """
    Sessions table backend.

    Bound to the request's database session, so it is built per request by
    catalog.dependencies.get_session_store.
    """

    def __init__(self, db: Session, ttl: timedelta) -> None:
        self.db = db
        self.ttl = ttl

    def create(self, user_id: uuid.UUID) -> str:
        token = generate_session_token()
        self.db.add(
            UserSession(
                token_digest=digest_session_token(token),
                user_id=user_id,
                expires_at=datetime.now(UTC) + self.ttl,
            )
        )
        self.db.commit()
        return token

    def resolve(self, token: str) -> uuid.UUID | None:
        digest = digest_session_token(token)
        try:
            stmt = select(UserSession).where(UserSession.token_digest == digest)
            record = self.db.execute(stmt).scalar_one_or_none()
            if record is None:
                return None

            if _as_utc(record.expires_at) <= datetime.now(UTC):
                logger.info(f"Expired session for user {record.user_id} removed")
                self.db.delete(record)
                self.db.commit()
                return None

            return record.user_id
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.warning(f"Session lookup failed, treating request as anonymous: {e}")
            return None

    def revoke(self, token: str) -> None:
        digest = digest_session_token(token)
        self.db.execute(delete(UserSession).where(UserSession.token_digest == digest))
        self.db.commit()

    def purge_expired(self) -> int:
        """Delete every expired session. Returns how many were removed."""
        result = self.db.execute(
            delete(UserSession).where(UserSession.expires_at <= datetime.now(UTC))
        )
        self.db.commit()
        return result.rowcount or 0


class RedisSessionStore:
    """
    Redis backend.

    Keys are "session:<digest>" holding the user id, with the session
    lifetime as TTL, so Redis expires sessions on its own.
    """

    def __init__(self, client: redis.Redis, ttl: timedelta) -> None:
        self.client = client
        self.ttl = ttl

    @staticmethod
    def _key(token: str) -> str:
        return f"{REDIS_KEY_PREFIX}{digest_session_token(token)}"

    def create(self, user_id: uuid.UUID) -> str:
        token = generate_session_token()
        self.client.set(self._key(token), str(user_id), ex=int(self.ttl.total_seconds()))
        return token

    def resolve(self, token: str) -> uuid.UUID | None:
        try:
            value = self.client.get(self._key(token))
        except RedisError as e:
            logger.warning(f"Redis session lookup failed, treating request as anonymous: {e}")
            return None

        if value is None:
            return None

        if isinstance(value, bytes):
            value = value.decode()
        try:
            return uuid.UUID(value)
        except ValueError:
            logger.warning("Discarding session with a corrupt user id")
            return None

    def revoke(self, token: str) -> None:
        try:
            self.client.delete(self._key(token))
        except RedisError as e:
            logger.warning(f"Failed to delete Redis session: {e}")


def create_redis_session_store(settings: Settings) -> RedisSessionStore:
    """Build the Redis backend at startup."""
    client = redis.from_url(
        settings.redis_url,
        decode_responses=True,  # Return strings instead of bytes
        socket_connect_timeout=5,
        socket_timeout=5,
    )
    logger.info("Using Redis session store")
    return RedisSessionStore(client, timedelta(hours=settings.session_ttl_hours))


class SessionManager:
    """
    Per-request view of the login session.

    Usage in routes:
        @router.post("/login")
        def login(response: Response, sessions: Sessions, db: DbSession):
            user = resolve_local(db, ...)
            sessions.login(response, user)
    """

    def __init__(
        self,
        store: SessionStore,
        token: str | None,
        settings: Settings | None = None,
    ) -> None:
        self.store = store
        self.token = token or None
        self.settings = settings or get_settings()
        self._user: User | None = None
        self._restored = False

    def current_user(self, db: Session) -> User | None:
        """
        Restore the signed-in user, or None for an anonymous request.

        The lookup runs once per request; later calls reuse the result.
        """
        if self._restored:
            return self._user
        self._restored = True

        if not self.token:
            return None

        user_id = self.store.resolve(self.token)
        if user_id is None:
            logger.debug("Session cookie did not resolve to a live session")
            return None

        try:
            user = db.get(User, user_id)
        except SQLAlchemyError as e:
            db.rollback()
            logger.warning(f"User lookup for session failed, treating request as anonymous: {e}")
            return None

        if user is None:
            logger.warning(f"Session points at missing user {user_id}")
            return None
        if not user.is_active:
            logger.warning(f"Session for inactive user {user.email} ignored")
            return None

        self._user = user
        return user

    def login(self, response: Response, user: User) -> None:
        """Bind user to a fresh session and set the cookie on response."""
        if self.token:
            # Never reuse a token that existed before authentication
            self.store.revoke(self.token)

        self.token = self.store.create(user.id)
        self._user = user
        self._restored = True

        response.set_cookie(
            key=self.settings.session_cookie_name,
            value=self.token,
            max_age=self.settings.session_ttl_seconds,
            httponly=True,  # Not accessible via JavaScript
            secure=self.settings.is_production,  # HTTPS only in production
            samesite="lax",
        )

    def logout(self, response: Response) -> None:
        """Revoke the session (if any) and clear the cookie."""
        if self.token:
            self.store.revoke(self.token)

        self.token = None
        self._user = None
        self._restored = True

        response.delete_cookie(
            key=self.settings.session_cookie_name,
            httponly=True,
            secure=self.settings.is_production,
            samesite="lax",
        )
