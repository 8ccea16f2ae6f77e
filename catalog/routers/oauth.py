"""
OAuth Router

Social login routes, built per provider:
- GET /auth/{provider} - redirect to the provider's consent page
- GET /auth/{provider}/callback - finish the login, set the session cookie,
  redirect to OAUTH_SUCCESS_REDIRECT

create_oauth_router() is called from create_app() with the providers
enabled in settings. A provider without credentials gets no routes at all,
so /auth/google is a plain 404 when Google is not configured.

The login route stores a random state in a short-lived cookie and sends
the same value to the provider; the callback only proceeds when both match.
"""

import logging
import secrets

from fastapi import APIRouter, Request, status
from fastapi.responses import RedirectResponse

from catalog.config import Settings
from catalog.dependencies import DbSession, Sessions
from catalog.errors import OAuthFailed
from catalog.services.identity import resolve_oauth
from catalog.services.oauth import OAuthProvider
from catalog.services.security import generate_oauth_state

logger = logging.getLogger(__name__)

STATE_COOKIE_NAME = "oauth_state"
STATE_COOKIE_MAX_AGE = 10 * 60  # Seconds the user has to complete consent

DISPLAY_NAMES = {"google": "Google", "github": "GitHub"}


def _add_provider_routes(router: APIRouter, provider: OAuthProvider, settings: Settings) -> None:
    label = DISPLAY_NAMES.get(provider.name, provider.name)

    async def oauth_login(request: Request) -> RedirectResponse:
        state = generate_oauth_state()
        response = RedirectResponse(
            url=provider.authorization_url(state),
            status_code=status.HTTP_302_FOUND,
        )
        response.set_cookie(
            key=STATE_COOKIE_NAME,
            value=state,
            max_age=STATE_COOKIE_MAX_AGE,
            httponly=True,
            secure=settings.is_production,
            samesite="lax",  # Sent on the top-level redirect back from the provider
        )
        return response

    async def oauth_callback(
        request: Request,
        db: DbSession,
        sessions: Sessions,
        code: str | None = None,
        state: str | None = None,
        error: str | None = None,
    ) -> RedirectResponse:
        if error:
            logger.warning(f"{label} OAuth returned error: {error}")
            raise OAuthFailed(f"OAuth error: {error}")

        expected_state = request.cookies.get(STATE_COOKIE_NAME)
        if not state or not expected_state or not secrets.compare_digest(state, expected_state):
            logger.warning(f"{label} OAuth callback with missing or mismatched state")
            raise OAuthFailed("Invalid OAuth state")

        if not code:
            raise OAuthFailed("Authorization code required")

        profile = await provider.fetch_profile(code)
        user = resolve_oauth(db, profile)

        response = RedirectResponse(
            url=settings.oauth_success_redirect,
            status_code=status.HTTP_302_FOUND,
        )
        sessions.login(response, user)
        response.delete_cookie(STATE_COOKIE_NAME)

        logger.info(f"{label} OAuth login: {user.email}")
        return response

    router.add_api_route(
        f"/{provider.name}",
        oauth_login,
        methods=["GET"],
        name=f"{provider.name}_login",
        summary=f"Login with {label}",
        description=f"Redirect to the {label} consent page.",
        responses={302: {"description": f"Redirect to {label} OAuth"}},
        response_class=RedirectResponse,
    )
    router.add_api_route(
        f"/{provider.name}/callback",
        oauth_callback,
        methods=["GET"],
        name=f"{provider.name}_callback",
        summary=f"{label} OAuth callback",
        description=f"""
        Handle the {label} redirect after the user authorizes.

        1. Checks the state parameter against the oauth_state cookie
        2. Exchanges the authorization code and fetches the profile
        3. Finds, links or creates the user
        4. Sets the session cookie and redirects
        """,
        responses={
            302: {"description": "Signed in, redirect to the application"},
            400: {"description": "Provider error, bad state or missing code"},
        },
        response_class=RedirectResponse,
    )


def create_oauth_router(providers: dict[str, OAuthProvider], settings: Settings) -> APIRouter:
    """Router with login and callback routes for each configured provider."""
    router = APIRouter(prefix="/auth", tags=["Authentication"])
    for provider in providers.values():
        _add_provider_routes(router, provider, settings)
    return router
