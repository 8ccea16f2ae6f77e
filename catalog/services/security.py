"""
Security Service

Password hashing and session token primitives.

Security Features:
==================
1. Password hashing with bcrypt (passlib)
2. Constant-time password verification
3. Random session tokens; only a keyed digest is ever stored

Usage:
    from catalog.services.security import hash_password, verify_password

    hashed = hash_password("secret123")
    is_valid = verify_password("secret123", hashed)
"""

import hashlib
import hmac
import secrets

from passlib.context import CryptContext

from catalog.config import get_settings

settings = get_settings()

# CryptContext handles password hashing with bcrypt
# - deprecated="auto": hashes made with older schemes are flagged for upgrade
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# 32 random bytes, URL-safe base64 (43 characters)
SESSION_TOKEN_BYTES = 32


def hash_password(password: str) -> str:
    """
    Hash a plain text password using bcrypt.

    Example:
        >>> hashed = hash_password("secret123")
        >>> hashed.startswith("$2b$")
        True
    """
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Verify a plain password against a bcrypt hash.

    Uses constant-time comparison to prevent timing attacks.
    """
    return pwd_context.verify(plain_password, hashed_password)


def dummy_verify() -> None:
    """
    Spend the time of one hash verification without a real hash.

    Called when a login names an unknown email so the response takes as
    long as a wrong password would.
    """
    pwd_context.dummy_verify()


def generate_session_token() -> str:
    """Opaque token handed to the client in the session cookie."""
    return secrets.token_urlsafe(SESSION_TOKEN_BYTES)


def digest_session_token(token: str) -> str:
    """
    Keyed SHA-256 digest of a session token (64 hex characters).

    Keyed with SESSION_SECRET, so a leaked sessions table cannot be
    replayed against a server with a different secret.
    """
    return hmac.new(
        settings.session_secret.encode(),
        token.encode(),
        hashlib.sha256,
    ).hexdigest()


def generate_oauth_state() -> str:
    """Random value tying an OAuth callback to the browser that started it."""
    return secrets.token_urlsafe(16)
