"""Identity-provider exceptions for error handling.

Every exception carries a human-readable ``message``, the original ``cause``
(if any) and the HTTP status the API layer answers with.
"""
from __future__ import annotations

from typing import Optional


class IdentityError(Exception):
    """Base exception for all identity operations."""

    http_status = 500

    def __init__(self, message: str = "", cause: Optional[BaseException] = None):
        self.message = message or self.__class__.__doc__ or ""
        self.cause = cause
        super().__init__(self.message)

    def wrap(self, message: str) -> "IdentityError":
        """Return an error of the same kind with a fixed message and this error as cause."""
        return type(self)(message, cause=self)

    @property
    def kind(self) -> str:
        return type(self).__name__


class InitializationError(IdentityError):
    """Identity provider initialization failed."""


class IdentityResolutionError(IdentityError):
    """ID token is invalid, expired, malformed or revoked."""

    http_status = 401


class InvalidCredentialsError(IdentityError):
    """Email or password rejected."""

    http_status = 401


class ValidationError(IdentityError):
    """Input rejected (bad email, weak password, unknown field)."""

    http_status = 400


class UserNotFoundError(IdentityError):
    """User lookup failed - no account matches."""

    http_status = 404


class UserAlreadyExistsError(IdentityError):
    """User creation failed - email already in use."""

    http_status = 409


class IdentityTransportError(IdentityError):
    """Identity provider unreachable or failed to answer."""

    http_status = 502


class IdentityAPIError(IdentityTransportError):
    """Unmapped HTTP error from the identity provider.

    Attributes:
        status_code: HTTP status code returned upstream
        endpoint: API endpoint that failed
    """

    def __init__(self, status_code: int, message: str, endpoint: str, cause: Optional[BaseException] = None):
        self.status_code = status_code
        self.endpoint = endpoint
        super().__init__(f"[{status_code}] {endpoint}: {message}", cause=cause)

    def wrap(self, message: str) -> IdentityError:
        return IdentityTransportError(message, cause=self)


# IdP error codes (first token of error.message) mapped to our taxonomy.
ERROR_CODES: dict[str, type[IdentityError]] = {
    "EMAIL_EXISTS": UserAlreadyExistsError,
    "DUPLICATE_EMAIL": UserAlreadyExistsError,
    "DUPLICATE_LOCAL_ID": UserAlreadyExistsError,
    "EMAIL_NOT_FOUND": UserNotFoundError,
    "USER_NOT_FOUND": UserNotFoundError,
    "INVALID_PASSWORD": InvalidCredentialsError,
    "INVALID_LOGIN_CREDENTIALS": InvalidCredentialsError,
    "USER_DISABLED": InvalidCredentialsError,
    "WEAK_PASSWORD": ValidationError,
    "INVALID_EMAIL": ValidationError,
    "MISSING_EMAIL": ValidationError,
    "MISSING_PASSWORD": ValidationError,
    "INVALID_DISPLAY_NAME": ValidationError,
    "TOKEN_EXPIRED": IdentityResolutionError,
    "INVALID_ID_TOKEN": IdentityResolutionError,
    "INVALID_REFRESH_TOKEN": IdentityResolutionError,
    "INVALID_GRANT_TYPE": IdentityResolutionError,
    "MISSING_REFRESH_TOKEN": IdentityResolutionError,
}


def error_code(message: str) -> str:
    """Extract the leading error code from an IdP message ("WEAK_PASSWORD : ...")."""
    return (message or "").split(":", 1)[0].strip().upper()


def from_idp_error(status_code: int, message: str, endpoint: str) -> IdentityError:
    """Build the matching exception for an IdP error payload."""
    exc_class = ERROR_CODES.get(error_code(message))
    if exc_class is None:
        return IdentityAPIError(status_code, message, endpoint)
    return exc_class(message)
