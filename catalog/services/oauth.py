"""
OAuth Service

Authorization-code login with external providers (Google, GitHub).

Each provider is a small class that knows:
1. How to build the authorization URL the browser is redirected to
2. How to exchange the callback code for an access token
3. How to fetch the user's profile and normalize it into OAuthProfile

build_oauth_providers() runs once in create_app() and returns only the
providers whose credentials are configured; the auth router registers
routes for exactly those.
"""

import logging
from dataclasses import dataclass
from urllib.parse import urlencode

import httpx

from catalog.config import Settings
from catalog.errors import OAuthFailed

logger = logging.getLogger(__name__)

HTTP_TIMEOUT = 10.0


@dataclass
class OAuthProfile:
    """
    Normalized user data from an OAuth provider.

    Different providers return data in different shapes; the identity
    resolver only ever sees this one.
    """

    provider: str  # 'google' or 'github'
    provider_user_id: str
    email: str
    display_name: str
    avatar_url: str | None = None


class OAuthProvider:
    """Base class for an authorization-code provider."""

    name: str = ""
    authorize_endpoint: str = ""
    token_endpoint: str = ""
    scope: str = ""

    def __init__(self, client_id: str, client_secret: str, redirect_uri: str) -> None:
        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_uri = redirect_uri

    def authorization_params(self, state: str) -> dict[str, str]:
        return {
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "response_type": "code",
            "scope": self.scope,
            "state": state,
        }

    def authorization_url(self, state: str) -> str:
        """URL to send the browser to; state comes back on the callback."""
        return f"{self.authorize_endpoint}?{urlencode(self.authorization_params(state))}"

    async def fetch_profile(self, code: str) -> OAuthProfile:
        """
        Exchange the callback code and return the user's profile.

        Raises:
            OAuthFailed: If the provider rejects the code or the profile
                lacks an email address
        """
        async with httpx.AsyncClient(timeout=HTTP_TIMEOUT) as client:
            access_token = await self._exchange_code(client, code)
            profile = await self._fetch_profile(client, access_token)

        logger.info(f"{self.name} OAuth successful for: {profile.email}")
        return profile

    async def _exchange_code(self, client: httpx.AsyncClient, code: str) -> str:
        token_response = await client.post(
            self.token_endpoint,
            data={
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "code": code,
                "grant_type": "authorization_code",
                "redirect_uri": self.redirect_uri,
            },
            headers={"Accept": "application/json"},
        )

        if token_response.status_code != 200:
            logger.error(f"{self.name} token exchange failed: {token_response.text}")
            raise OAuthFailed("Failed to exchange code for token")

        token_data = token_response.json()
        if "error" in token_data or "access_token" not in token_data:
            logger.error(f"{self.name} OAuth error: {token_data}")
            raise OAuthFailed(token_data.get("error_description", "OAuth failed"))

        return token_data["access_token"]

    async def _fetch_profile(self, client: httpx.AsyncClient, access_token: str) -> OAuthProfile:
        raise NotImplementedError


class GoogleProvider(OAuthProvider):
    name = "google"
    authorize_endpoint = "https://accounts.google.com/o/oauth2/v2/auth"
    token_endpoint = "https://oauth2.googleapis.com/token"
    userinfo_endpoint = "https://www.googleapis.com/oauth2/v2/userinfo"
    scope = "openid email profile"

    async def _fetch_profile(self, client: httpx.AsyncClient, access_token: str) -> OAuthProfile:
        user_response = await client.get(
            self.userinfo_endpoint,
            headers={"Authorization": f"Bearer {access_token}"},
        )

        if user_response.status_code != 200:
            logger.error(f"Google user info failed: {user_response.text}")
            raise OAuthFailed("Failed to fetch user info")

        user_data = user_response.json()
        email = user_data.get("email")
        if not email:
            raise OAuthFailed("Could not get email from Google")

        return OAuthProfile(
            provider=self.name,
            provider_user_id=str(user_data["id"]),
            email=email,
            display_name=user_data.get("name") or email.split("@")[0],
            avatar_url=user_data.get("picture"),
        )


class GitHubProvider(OAuthProvider):
    name = "github"
    authorize_endpoint = "https://github.com/login/oauth/authorize"
    token_endpoint = "https://github.com/login/oauth/access_token"
    api_base = "https://api.github.com"
    scope = "user:email"

    def authorization_params(self, state: str) -> dict[str, str]:
        params = super().authorization_params(state)
        # GitHub does not take response_type
        params.pop("response_type")
        return params

    async def _fetch_profile(self, client: httpx.AsyncClient, access_token: str) -> OAuthProfile:
        headers = {
            "Authorization": f"Bearer {access_token}",
            "Accept": "application/vnd.github.v3+json",
        }

        user_response = await client.get(f"{self.api_base}/user", headers=headers)
        if user_response.status_code != 200:
            logger.error(f"GitHub user info failed: {user_response.text}")
            raise OAuthFailed("Failed to fetch user info")

        user_data = user_response.json()

        # GitHub email might be private, fetch from emails endpoint
        email = user_data.get("email")
        if not email:
            emails_response = await client.get(f"{self.api_base}/user/emails", headers=headers)
            if emails_response.status_code == 200:
                email = _pick_github_email(emails_response.json())

        if not email:
            raise OAuthFailed("Could not get email from GitHub")

        return OAuthProfile(
            provider=self.name,
            provider_user_id=str(user_data["id"]),
            email=email,
            display_name=user_data.get("name") or user_data.get("login") or email.split("@")[0],
            avatar_url=user_data.get("avatar_url"),
        )


def _pick_github_email(emails: list[dict]) -> str | None:
    """Primary verified address, else the first verified one."""
    for e in emails:
        if e.get("primary") and e.get("verified"):
            return e["email"]
    for e in emails:
        if e.get("verified"):
            return e["email"]
    return None


PROVIDER_CLASSES: dict[str, type[OAuthProvider]] = {
    "google": GoogleProvider,
    "github": GitHubProvider,
}


def build_oauth_providers(settings: Settings) -> dict[str, OAuthProvider]:
    """
    Instantiate the providers enabled in settings.

    Returns:
        Provider name -> provider, in settings.enabled_oauth_providers order
    """
    providers: dict[str, OAuthProvider] = {}
    for name in settings.enabled_oauth_providers:
        providers[name] = PROVIDER_CLASSES[name](
            client_id=getattr(settings, f"{name}_client_id"),
            client_secret=getattr(settings, f"{name}_client_secret"),
            redirect_uri=settings.oauth_callback_url(name),
        )
        logger.info(f"{name} OAuth enabled")
    return providers
