"""
Tests for the Session Service

Tests cover:
- DatabaseSessionStore: create / resolve / revoke / expiry / purge
- RedisSessionStore against a mocked Redis client
- SessionManager: anonymous fallbacks, login and logout cookies
"""

import uuid
from datetime import UTC, datetime, timedelta
from unittest.mock import MagicMock

from fastapi import Response
from redis.exceptions import ConnectionError as RedisConnectionError
from sqlalchemy import select
from sqlalchemy.orm import Session

from catalog.config import get_settings
from catalog.models import User, UserSession
from catalog.services.security import digest_session_token
from catalog.services.sessions import (
    DatabaseSessionStore,
    RedisSessionStore,
    SessionManager,
)

TTL = timedelta(hours=24)


class TestDatabaseSessionStore:
    def test_create_and_resolve(self, db_session: Session, sample_user: User):
        store = DatabaseSessionStore(db_session, TTL)

        token = store.create(sample_user.id)

        assert store.resolve(token) == sample_user.id

    def test_only_digest_is_stored(self, db_session: Session, sample_user: User):
        store = DatabaseSessionStore(db_session, TTL)

        token = store.create(sample_user.id)

        record = db_session.execute(select(UserSession)).scalar_one()
        assert record.token_digest == digest_session_token(token)
        assert record.token_digest != token

    def test_unknown_token(self, db_session: Session):
        store = DatabaseSessionStore(db_session, TTL)

        assert store.resolve("unknown-token") is None

    def test_revoke(self, db_session: Session, sample_user: User):
        store = DatabaseSessionStore(db_session, TTL)
        token = store.create(sample_user.id)

        store.revoke(token)

        assert store.resolve(token) is None

    def test_revoke_unknown_token_is_ignored(self, db_session: Session):
        DatabaseSessionStore(db_session, TTL).revoke("never-issued")

    def test_expired_session_resolves_to_none_and_is_removed(
        self, db_session: Session, sample_user: User
    ):
        store = DatabaseSessionStore(db_session, TTL)
        token = store.create(sample_user.id)
        record = db_session.execute(select(UserSession)).scalar_one()
        record.expires_at = datetime.now(UTC) - timedelta(minutes=1)
        db_session.commit()

        assert store.resolve(token) is None
        assert db_session.execute(select(UserSession)).scalar_one_or_none() is None

    def test_purge_expired(self, db_session: Session, sample_user: User):
        store = DatabaseSessionStore(db_session, TTL)
        live = store.create(sample_user.id)
        stale = store.create(sample_user.id)
        record = db_session.execute(
            select(UserSession).where(UserSession.token_digest == digest_session_token(stale))
        ).scalar_one()
        record.expires_at = datetime.now(UTC) - timedelta(hours=1)
        db_session.commit()

        assert store.purge_expired() == 1
        assert store.resolve(live) == sample_user.id


class TestRedisSessionStore:
    def test_create_sets_key_with_ttl(self):
        client = MagicMock()
        store = RedisSessionStore(client, TTL)
        user_id = uuid.uuid4()

        token = store.create(user_id)

        client.set.assert_called_once_with(
            f"session:{digest_session_token(token)}",
            str(user_id),
            ex=int(TTL.total_seconds()),
        )

    def test_resolve(self):
        user_id = uuid.uuid4()
        client = MagicMock()
        client.get.return_value = str(user_id)

        assert RedisSessionStore(client, TTL).resolve("token") == user_id

    def test_resolve_missing_key(self):
        client = MagicMock()
        client.get.return_value = None

        assert RedisSessionStore(client, TTL).resolve("token") is None

    def test_resolve_corrupt_value(self):
        client = MagicMock()
        client.get.return_value = "not-a-uuid"

        assert RedisSessionStore(client, TTL).resolve("token") is None

    def test_redis_outage_degrades_to_anonymous(self):
        client = MagicMock()
        client.get.side_effect = RedisConnectionError("Connection refused")

        assert RedisSessionStore(client, TTL).resolve("token") is None

    def test_revoke_deletes_key(self):
        client = MagicMock()

        RedisSessionStore(client, TTL).revoke("token")

        client.delete.assert_called_once_with(f"session:{digest_session_token('token')}")


class TestSessionManager:
    def test_no_cookie_is_anonymous(self, db_session: Session):
        store = MagicMock()
        manager = SessionManager(store, None)

        assert manager.current_user(db_session) is None
        store.resolve.assert_not_called()

    def test_restores_user(self, db_session: Session, sample_user: User):
        store = DatabaseSessionStore(db_session, TTL)
        token = store.create(sample_user.id)

        manager = SessionManager(store, token)

        assert manager.current_user(db_session).id == sample_user.id

    def test_lookup_runs_once(self, db_session: Session, sample_user: User):
        store = MagicMock()
        store.resolve.return_value = sample_user.id
        manager = SessionManager(store, "token")

        manager.current_user(db_session)
        manager.current_user(db_session)

        store.resolve.assert_called_once_with("token")

    def test_session_for_deleted_user(self, db_session: Session):
        store = MagicMock()
        store.resolve.return_value = uuid.uuid4()

        assert SessionManager(store, "token").current_user(db_session) is None

    def test_session_for_inactive_user(self, db_session: Session, sample_user: User):
        sample_user.is_active = False
        db_session.commit()
        store = MagicMock()
        store.resolve.return_value = sample_user.id

        assert SessionManager(store, "token").current_user(db_session) is None

    def test_login_sets_cookie_and_revokes_old_token(self, sample_user: User):
        store = MagicMock()
        store.create.return_value = "new-token"
        manager = SessionManager(store, "old-token")
        response = Response()

        manager.login(response, sample_user)

        store.revoke.assert_called_once_with("old-token")
        store.create.assert_called_once_with(sample_user.id)
        set_cookie = response.headers["set-cookie"]
        assert set_cookie.startswith(f"{get_settings().session_cookie_name}=new-token")
        assert "HttpOnly" in set_cookie
        assert f"Max-Age={24 * 60 * 60}" in set_cookie

    def test_login_secure_cookie_in_production(self, sample_user: User):
        settings = get_settings().model_copy(update={"environment": "production"})
        store = MagicMock()
        store.create.return_value = "new-token"
        response = Response()

        SessionManager(store, None, settings).login(response, sample_user)

        assert "Secure" in response.headers["set-cookie"]

    def test_logout_revokes_and_clears_cookie(self):
        store = MagicMock()
        manager = SessionManager(store, "token")
        response = Response()

        manager.logout(response)

        store.revoke.assert_called_once_with("token")
        assert "Max-Age=0" in response.headers["set-cookie"]
