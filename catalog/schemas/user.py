"""
User Pydantic Schemas

Schemas:
- RegisterRequest: local registration (email, password, displayName)
- LoginRequest: local login (email, password)
- UserResponse: what the API returns about a user (never the hash)
- UserSummary: minimal author info embedded in reviews
- AuthResponse / AuthStatusResponse: auth endpoint envelopes
"""

import uuid
from datetime import datetime

from pydantic import EmailStr, Field, field_validator

from catalog.schemas.base import CamelModel


class RegisterRequest(CamelModel):
    """
    Schema for user registration.

    Example request body:
    {
        "email": "ada@example.com",
        "password": "secret123",
        "displayName": "Ada"
    }
    """

    email: EmailStr = Field(
        ...,
        description="User's email address",
        examples=["ada@example.com"],
    )

    password: str = Field(
        ...,
        min_length=6,
        max_length=72,  # bcrypt only looks at the first 72 bytes
        description="Password (at least 6 characters)",
        examples=["secret123"],
    )

    display_name: str = Field(
        ...,
        min_length=1,
        max_length=255,
        description="Name shown next to the user's reviews",
        examples=["Ada Lovelace"],
    )

    @field_validator("display_name")
    @classmethod
    def display_name_must_not_be_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Display name cannot be empty or whitespace")
        return v.strip()


class LoginRequest(CamelModel):
    """Schema for email/password login."""

    email: EmailStr = Field(..., description="Registered email address")
    password: str = Field(..., min_length=1, description="Account password")


class UserResponse(CamelModel):
    """
    Schema for user responses.

    SECURITY: Never includes the password hash or provider ids.
    """

    id: uuid.UUID = Field(..., description="Unique user identifier")
    email: EmailStr = Field(..., description="User's email address")
    display_name: str = Field(..., description="User's display name")
    avatar_url: str | None = Field(default=None, description="URL to avatar image")
    role: str = Field(..., description="user or admin")
    last_login_at: datetime | None = Field(default=None, description="Last sign-in")
    created_at: datetime = Field(..., description="When the user registered")


class UserSummary(CamelModel):
    """Author info embedded in review responses."""

    id: uuid.UUID
    display_name: str


class AuthResponse(CamelModel):
    """Returned by register and login."""

    message: str
    user: UserResponse


class AuthStatusResponse(CamelModel):
    """Returned by /auth/me and /auth/status for a signed-in user."""

    authenticated: bool = True
    user: UserResponse
