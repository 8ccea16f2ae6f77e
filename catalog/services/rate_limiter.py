"""
Rate Limiting Service

IP-based rate limiting with slowapi, applied to the credential endpoints
(register, login) to slow down password guessing and spam registrations.

Storage is memory:// by default; point RATE_LIMIT_STORAGE_URI at Redis
when several API processes share the limit.
"""

import logging

from fastapi import Request
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.responses import JSONResponse

from catalog.config import get_settings

logger = logging.getLogger(__name__)
settings = get_settings()


def get_client_ip(request: Request) -> str:
    """
    Get client IP address for rate limiting.

    Handles common proxy headers to get the real client IP.
    Falls back to direct connection IP if no proxy headers.
    """
    # X-Forwarded-For can contain multiple IPs; first is the client
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()

    # nginx
    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip.strip()

    return get_remote_address(request)


def create_limiter() -> Limiter:
    limiter = Limiter(
        key_func=get_client_ip,
        storage_uri=settings.rate_limit_storage_uri,
        strategy="fixed-window",
        enabled=settings.rate_limit_enabled,
    )

    logger.info(
        f"Rate limiter initialized - enabled: {settings.rate_limit_enabled}, "
        f"auth: {settings.rate_limit_auth}"
    )

    return limiter


limiter = create_limiter()


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """
    Answer 429 in the same shape as every other error.

    Retry-After is one minute, the window of the default auth limit.
    """
    limit_detail = str(exc.detail)

    response = JSONResponse(
        status_code=429,
        content={
            "error": "Rate Limit Exceeded",
            "detail": f"Too many requests ({limit_detail}). Please slow down.",
        },
    )
    response.headers["Retry-After"] = str(60)
    response.headers["X-RateLimit-Limit"] = limit_detail

    logger.warning(f"Rate limit exceeded for {get_client_ip(request)}: {limit_detail}")

    return response
