"""
Authentication Router

Handles local authentication endpoints:
- Registration (email/password, signs the new user in)
- Login (email/password -> session cookie)
- Logout (revokes the session, clears the cookie)
- Current user / session status

OAuth routes live in catalog.routers.oauth and are only mounted for the
providers configured at startup.

Security:
=========
- Passwords are hashed with bcrypt before storage
- Plain text passwords are never logged or stored
- The session cookie is httpOnly, SameSite=Lax, and Secure in production
- Register and login are rate limited per client IP
"""

import logging

from fastapi import APIRouter, Request, Response, status
from fastapi.responses import JSONResponse

from catalog.config import get_settings
from catalog.dependencies import DbSession, OptionalUser, Sessions
from catalog.models import User
from catalog.schemas import (
    AuthResponse,
    AuthStatusResponse,
    LoginRequest,
    MessageResponse,
    RegisterRequest,
    UserResponse,
)
from catalog.services.identity import register_local, resolve_local
from catalog.services.rate_limiter import limiter

logger = logging.getLogger(__name__)
settings = get_settings()

router = APIRouter(
    prefix="/auth",
    tags=["Authentication"],
    responses={
        400: {"description": "Validation error or email already registered"},
        401: {"description": "Unauthorized"},
    },
)


def _status_response(user: User | None) -> AuthStatusResponse | JSONResponse:
    if user is None:
        return JSONResponse(
            status_code=status.HTTP_401_UNAUTHORIZED,
            content={"authenticated": False, "detail": "Not authenticated"},
        )
    return AuthStatusResponse(user=UserResponse.model_validate(user))


# -------------------------------------------------------------------------
# Registration Endpoint
# -------------------------------------------------------------------------
@router.post(
    "/register",
    response_model=AuthResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a new user",
    description="""
    Create a new account with email and password and sign in.

    **Requirements:**
    - Valid, unused email address
    - Password of at least 6 characters
    - Non-empty display name

    The response sets the session cookie.
    """,
)
@limiter.limit(settings.rate_limit_auth)
def register(
    request: Request,
    response: Response,
    user_data: RegisterRequest,
    db: DbSession,
    sessions: Sessions,
) -> AuthResponse:
    user = register_local(db, user_data.email, user_data.password, user_data.display_name)
    sessions.login(response, user)

    return AuthResponse(
        message="Registration successful",
        user=UserResponse.model_validate(user),
    )


# -------------------------------------------------------------------------
# Login Endpoint
# -------------------------------------------------------------------------
@router.post(
    "/login",
    response_model=AuthResponse,
    summary="Login with email and password",
    description="""
    Authenticate with email and password.

    On success a fresh session is created and its token is set as an
    httpOnly cookie; any session the client held before is revoked.
    Unknown email and wrong password get the same 401 response.
    """,
)
@limiter.limit(settings.rate_limit_auth)
def login(
    request: Request,
    response: Response,
    credentials: LoginRequest,
    db: DbSession,
    sessions: Sessions,
) -> AuthResponse:
    user = resolve_local(db, credentials.email, credentials.password)
    sessions.login(response, user)

    return AuthResponse(
        message="Login successful",
        user=UserResponse.model_validate(user),
    )


# -------------------------------------------------------------------------
# Logout Endpoint
# -------------------------------------------------------------------------
@router.get(
    "/logout",
    response_model=MessageResponse,
    summary="Logout",
    description="End the current session and clear the cookie. Safe to call when signed out.",
)
def logout(response: Response, sessions: Sessions, user: OptionalUser) -> MessageResponse:
    if user is not None:
        logger.info(f"User logged out: {user.email}")
    sessions.logout(response)
    return MessageResponse(message="Logged out successfully")


# -------------------------------------------------------------------------
# Session Status Endpoints
# -------------------------------------------------------------------------
@router.get(
    "/me",
    response_model=AuthStatusResponse,
    summary="Get current user",
    responses={401: {"description": "Not authenticated"}},
)
def get_me(user: OptionalUser):
    return _status_response(user)


@router.get(
    "/status",
    response_model=AuthStatusResponse,
    summary="Session status",
    responses={401: {"description": "Not authenticated"}},
)
def get_status(user: OptionalUser):
    return _status_response(user)
