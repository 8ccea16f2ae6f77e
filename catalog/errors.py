"""
Error Taxonomy

Every failure a handler or service can report to a client is one of the
classes below. Services raise them; the exception handlers registered in
catalog.main turn them into JSON responses:

    {"error": "<label>", "detail": "<message>"}

ValidationFailed additionally carries a "details" list with one entry per
violated field. Anything that is not a CatalogError is an unexpected failure
and is answered with a generic 500 by the process-wide handler.
"""

from typing import Any

from fastapi import status


class CatalogError(Exception):
    """Base class for errors that map onto a client-facing status code."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    error: str = "Server Error"

    def __init__(self, detail: str) -> None:
        self.detail = detail
        super().__init__(detail)

    def to_body(self) -> dict[str, Any]:
        return {"error": self.error, "detail": self.detail}


class ValidationFailed(CatalogError):
    """Request payload violated the schema. All violations are listed."""

    status_code = status.HTTP_400_BAD_REQUEST
    error = "Validation Error"

    def __init__(self, details: list[str]) -> None:
        self.details = details
        super().__init__("; ".join(details) if details else "Invalid request")

    def to_body(self) -> dict[str, Any]:
        body = super().to_body()
        body["details"] = self.details
        return body


class DuplicateError(CatalogError):
    """A unique constraint (email, ISBN, one review per book) was violated."""

    status_code = status.HTTP_400_BAD_REQUEST
    error = "Duplicate Error"


class MalformedIdentifier(CatalogError):
    """The path id is not a well-formed identifier."""

    status_code = status.HTTP_400_BAD_REQUEST
    error = "Invalid Identifier"

    def __init__(self, resource: str, raw_id: str) -> None:
        self.raw_id = raw_id
        super().__init__(f"Invalid {resource} ID format: {raw_id!r}")


class NotFound(CatalogError):
    status_code = status.HTTP_404_NOT_FOUND
    error = "Not Found"

    def __init__(self, resource: str) -> None:
        super().__init__(f"{resource} not found")


class Unauthenticated(CatalogError):
    status_code = status.HTTP_401_UNAUTHORIZED
    error = "Unauthorized"

    def __init__(self, detail: str = "Not authenticated") -> None:
        super().__init__(detail)


class InvalidCredentials(Unauthenticated):
    """
    Login failed.

    Raised for an unknown email, an account without a password and a wrong
    password alike, so the response does not reveal which check failed.
    """

    def __init__(self) -> None:
        super().__init__("Invalid email or password")


class Forbidden(CatalogError):
    """Authenticated, but not allowed to touch this resource."""

    status_code = status.HTTP_403_FORBIDDEN
    error = "Forbidden"


class OAuthFailed(CatalogError):
    """The provider refused the login or returned something unusable."""

    status_code = status.HTTP_400_BAD_REQUEST
    error = "OAuth Error"


LOCATION_PREFIXES = ("body", "query", "path")


def format_validation_errors(errors: list[dict]) -> list[str]:
    """
    One "field: message" line per violation.

    Works on both FastAPI's RequestValidationError.errors() and pydantic's
    ValidationError.errors(). Locations use the wire (camelCase) names; the
    leading "body"/"query"/"path" segment is dropped, as is the character
    offset FastAPI appends to "body" for undecodable JSON.
    """
    details = []
    for err in errors:
        loc = list(err.get("loc", ()))
        if loc and loc[0] in LOCATION_PREFIXES:
            prefix = loc.pop(0)
            if prefix == "body" and loc and isinstance(loc[0], int):
                loc.pop(0)
        field = ".".join(str(part) for part in loc) or "body"
        message = err.get("msg", "Invalid value").removeprefix("Value error, ")
        details.append(f"{field}: {message}")
    return details
