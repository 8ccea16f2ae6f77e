"""
Tests for OAuth Social Login

Tests cover:
- Routes only exist for configured providers
- Login redirect (authorization URL, state cookie)
- Google / GitHub callbacks: new user, account linking, private GitHub email
- Idempotent repeated callbacks
- State mismatch, provider errors, failed token exchange

External provider calls are mocked by patching httpx.AsyncClient, so no
real HTTP requests are made.
"""

from collections.abc import Generator
from unittest.mock import MagicMock, patch
from urllib.parse import parse_qs, urlparse

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from catalog.config import Settings
from catalog.database import get_db
from catalog.main import create_app
from catalog.models import User
from catalog.services.oauth import GitHubProvider, GoogleProvider, build_oauth_providers
from tests.conftest import SESSION_COOKIE


def create_mock_response(status_code: int, json_data=None, text: str = ""):
    """Create a mock httpx response."""
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = json_data
    response.text = text
    return response


def create_mock_async_client(post_response, get_responses):
    """
    Mocked httpx.AsyncClient usable as an async context manager.

    Args:
        post_response: Response to return for POST requests
        get_responses: Single response or list of responses for GET requests
    """
    mock_client = MagicMock()

    async def async_enter():
        return mock_client

    async def async_exit(*args):
        pass

    mock_client.__aenter__ = MagicMock(side_effect=async_enter)
    mock_client.__aexit__ = MagicMock(side_effect=async_exit)

    async def mock_post(*args, **kwargs):
        return post_response

    mock_client.post = MagicMock(side_effect=mock_post)

    if isinstance(get_responses, list):
        responses_iter = iter(get_responses)

        async def mock_get(*args, **kwargs):
            return next(responses_iter)

        mock_client.get = MagicMock(side_effect=mock_get)
    else:
        async def mock_get_single(*args, **kwargs):
            return get_responses

        mock_client.get = MagicMock(side_effect=mock_get_single)

    return mock_client


def google_exchange(**user_overrides):
    user_data = {
        "id": "google-123456",
        "email": "googleuser@gmail.com",
        "name": "Google User",
        "picture": "https://example.com/avatar.jpg",
        "verified_email": True,
    }
    user_data.update(user_overrides)
    return create_mock_async_client(
        create_mock_response(200, {"access_token": "mock-google-access-token"}),
        create_mock_response(200, user_data),
    )


def github_user(**overrides) -> dict:
    data = {
        "id": 789012,
        "login": "githubuser",
        "email": "githubuser@github.com",
        "name": "GitHub User",
        "avatar_url": "https://avatars.githubusercontent.com/u/789012",
    }
    data.update(overrides)
    return data


def github_exchange(user_data: dict, emails: list | None = None):
    get_responses = [create_mock_response(200, user_data)]
    if emails is not None:
        get_responses.append(create_mock_response(200, emails))
    return create_mock_async_client(
        create_mock_response(200, {"access_token": "mock-github-access-token"}),
        get_responses,
    )


def start_login(client: TestClient, provider: str) -> str:
    """Hit the login route and return the state sent to the provider."""
    response = client.get(f"/auth/{provider}", follow_redirects=False)
    assert response.status_code == 302
    return parse_qs(urlparse(response.headers["location"]).query)["state"][0]


def finish_login(client: TestClient, provider: str, mock_client, code: str = "mock-auth-code"):
    state = start_login(client, provider)
    with patch("catalog.services.oauth.httpx.AsyncClient", return_value=mock_client):
        return client.get(
            f"/auth/{provider}/callback",
            params={"code": code, "state": state},
            follow_redirects=False,
        )


def count_users(db: Session) -> int:
    return db.execute(select(func.count()).select_from(User)).scalar_one()


@pytest.fixture
def oauth_settings() -> Settings:
    return Settings(
        google_client_id="test-google-client-id",
        google_client_secret="test-google-client-secret",
        github_client_id="test-github-client-id",
        github_client_secret="test-github-client-secret",
        base_url="http://testserver",
        oauth_success_redirect="/welcome",
    )


@pytest.fixture
def oauth_client(db_session: Session, oauth_settings: Settings) -> Generator[TestClient, None, None]:
    """Test client for an app with both providers configured."""
    oauth_app = create_app(oauth_settings)

    def override_get_db():
        yield db_session

    oauth_app.dependency_overrides[get_db] = override_get_db

    with TestClient(oauth_app) as test_client:
        yield test_client


class TestProviderConfiguration:
    def test_unconfigured_providers_have_no_routes(self, client: TestClient):
        assert client.get("/auth/google", follow_redirects=False).status_code == 404
        assert client.get("/auth/github/callback").status_code == 404

    def test_only_complete_credentials_enable_a_provider(self):
        settings = Settings(google_client_id="id-only", github_client_id="id", github_client_secret="s")

        assert settings.enabled_oauth_providers == ["github"]
        providers = build_oauth_providers(settings)
        assert list(providers) == ["github"]
        assert isinstance(providers["github"], GitHubProvider)

    def test_callback_url_built_from_base_url(self, oauth_settings: Settings):
        providers = build_oauth_providers(oauth_settings)

        assert isinstance(providers["google"], GoogleProvider)
        assert providers["google"].redirect_uri == "http://testserver/auth/google/callback"
        assert providers["github"].redirect_uri == "http://testserver/auth/github/callback"


class TestOAuthLogin:
    def test_google_login_redirects_with_state(self, oauth_client: TestClient):
        response = oauth_client.get("/auth/google", follow_redirects=False)

        assert response.status_code == 302
        location = urlparse(response.headers["location"])
        params = parse_qs(location.query)
        assert location.netloc == "accounts.google.com"
        assert params["client_id"] == ["test-google-client-id"]
        assert params["redirect_uri"] == ["http://testserver/auth/google/callback"]
        assert params["response_type"] == ["code"]
        assert params["state"][0] == response.cookies["oauth_state"]

    def test_github_login_redirects(self, oauth_client: TestClient):
        response = oauth_client.get("/auth/github", follow_redirects=False)

        assert response.status_code == 302
        location = urlparse(response.headers["location"])
        params = parse_qs(location.query)
        assert location.netloc == "github.com"
        assert params["scope"] == ["user:email"]
        assert "response_type" not in params


class TestGoogleOAuthCallback:
    def test_creates_user_and_signs_in(self, oauth_client: TestClient, db_session: Session):
        response = finish_login(oauth_client, "google", google_exchange())

        assert response.status_code == 302
        assert response.headers["location"] == "/welcome"
        assert SESSION_COOKIE in response.cookies

        me = oauth_client.get("/auth/me")
        assert me.status_code == 200
        assert me.json()["user"]["email"] == "googleuser@gmail.com"
        assert me.json()["user"]["avatarUrl"] == "https://example.com/avatar.jpg"

        user = db_session.execute(
            select(User).where(User.email == "googleuser@gmail.com")
        ).scalar_one()
        assert user.google_id == "google-123456"
        assert user.hashed_password is None

    def test_repeated_callback_same_user(self, oauth_client: TestClient, db_session: Session):
        first = finish_login(oauth_client, "google", google_exchange())
        first_id = oauth_client.get("/auth/me").json()["user"]["id"]
        second = finish_login(oauth_client, "google", google_exchange())
        second_id = oauth_client.get("/auth/me").json()["user"]["id"]

        assert first.status_code == second.status_code == 302
        assert first_id == second_id
        assert count_users(db_session) == 1

    def test_links_existing_account(
        self, oauth_client: TestClient, db_session: Session, sample_user: User
    ):
        response = finish_login(oauth_client, "google", google_exchange(email=sample_user.email))

        assert response.status_code == 302
        db_session.refresh(sample_user)
        assert sample_user.google_id == "google-123456"
        assert count_users(db_session) == 1

    def test_state_mismatch_rejected(self, oauth_client: TestClient, db_session: Session):
        start_login(oauth_client, "google")

        with patch("catalog.services.oauth.httpx.AsyncClient") as mock_cls:
            response = oauth_client.get(
                "/auth/google/callback",
                params={"code": "mock-auth-code", "state": "forged"},
                follow_redirects=False,
            )

        assert response.status_code == 400
        assert response.json() == {"error": "OAuth Error", "detail": "Invalid OAuth state"}
        mock_cls.assert_not_called()
        assert count_users(db_session) == 0

    def test_missing_state_cookie_rejected(self, oauth_client: TestClient):
        response = oauth_client.get(
            "/auth/google/callback",
            params={"code": "mock-auth-code", "state": "anything"},
            follow_redirects=False,
        )

        assert response.status_code == 400

    def test_missing_code(self, oauth_client: TestClient):
        state = start_login(oauth_client, "google")

        response = oauth_client.get("/auth/google/callback", params={"state": state})

        assert response.status_code == 400
        assert "code" in response.json()["detail"].lower()

    def test_provider_error(self, oauth_client: TestClient):
        response = oauth_client.get(
            "/auth/google/callback",
            params={"error": "access_denied"},
        )

        assert response.status_code == 400
        assert "access_denied" in response.json()["detail"]

    def test_token_exchange_fails(self, oauth_client: TestClient, db_session: Session):
        mock_client = create_mock_async_client(create_mock_response(400, None, "Invalid code"), None)

        response = finish_login(oauth_client, "google", mock_client, code="invalid-code")

        assert response.status_code == 400
        assert response.json()["detail"] == "Failed to exchange code for token"
        assert count_users(db_session) == 0


class TestGitHubOAuthCallback:
    def test_creates_user(self, oauth_client: TestClient, db_session: Session):
        response = finish_login(oauth_client, "github", github_exchange(github_user()))

        assert response.status_code == 302
        user = db_session.execute(
            select(User).where(User.email == "githubuser@github.com")
        ).scalar_one()
        assert user.github_id == "789012"
        assert user.display_name == "GitHub User"

    def test_fetches_private_email(self, oauth_client: TestClient, db_session: Session):
        emails = [
            {"email": "secondary@example.com", "primary": False, "verified": True},
            {"email": "private@github.com", "primary": True, "verified": True},
        ]

        response = finish_login(
            oauth_client, "github", github_exchange(github_user(email=None), emails)
        )

        assert response.status_code == 302
        user = db_session.execute(select(User).where(User.github_id == "789012")).scalar_one()
        assert user.email == "private@github.com"

    def test_no_verified_email(self, oauth_client: TestClient, db_session: Session):
        emails = [{"email": "unverified@example.com", "primary": True, "verified": False}]

        response = finish_login(
            oauth_client, "github", github_exchange(github_user(email=None), emails)
        )

        assert response.status_code == 400
        assert response.json()["detail"] == "Could not get email from GitHub"
        assert count_users(db_session) == 0

    def test_display_name_falls_back_to_login(self, oauth_client: TestClient, db_session: Session):
        finish_login(oauth_client, "github", github_exchange(github_user(name=None)))

        user = db_session.execute(select(User).where(User.github_id == "789012")).scalar_one()
        assert user.display_name == "githubuser"

    def test_error_in_token_response(self, oauth_client: TestClient):
        mock_client = create_mock_async_client(
            create_mock_response(200, {
                "error": "bad_verification_code",
                "error_description": "The code passed is incorrect or expired.",
            }),
            None,
        )

        response = finish_login(oauth_client, "github", mock_client, code="expired-code")

        assert response.status_code == 400
        assert response.json()["detail"] == "The code passed is incorrect or expired."

    def test_conflicting_github_account(
        self, oauth_client: TestClient, oauth_only_user: User
    ):
        response = finish_login(
            oauth_client,
            "github",
            github_exchange(github_user(id=111, email=oauth_only_user.email)),
        )

        assert response.status_code == 400
        assert response.json()["error"] == "Duplicate Error"
