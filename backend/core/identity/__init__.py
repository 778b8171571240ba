"""Identity provider client library.

This package provides a modular, testable interface to the identity
provider's admin and client APIs.

Architecture:
- credentials.py: Service-account loading and signed token assertions
- client.py: HTTP client with admin authentication and auto-refresh
- users.py: User lifecycle operations (create, lookup, update, delete, revoke)
- sessions.py: Sign-in, token refresh and password-reset mail
- tokens.py: ID token verification against the published JWKS
- attributes.py: Closed set of attribute updates
- exceptions.py: Typed exceptions for error handling

Usage:
    from backend.core.identity import IdentityClient, ServiceAccountCredentials, UserService

    creds = ServiceAccountCredentials.from_file("environment/credentials.json")
    client = IdentityClient(project_id="demo", api_key="key", credentials=creds)
    client.authenticate()

    user = UserService(client).get_user_by_email("alice@example.com")
"""
from .client import (
    IdentityClient,
    REQUEST_TIMEOUT,
    DEFAULT_IDENTITY_TOOLKIT_URL,
    DEFAULT_SECURE_TOKEN_URL,
)
from .credentials import ServiceAccountCredentials
from .exceptions import (
    IdentityError,
    IdentityAPIError,
    IdentityTransportError,
    IdentityResolutionError,
    InitializationError,
    InvalidCredentialsError,
    UserAlreadyExistsError,
    UserNotFoundError,
    ValidationError,
)
from .sessions import Session, SessionService
from .tokens import TokenVerifier, VerifiedToken, DEFAULT_JWKS_URL
from .users import UserRecord, UserService

__all__ = [
    # Client
    "IdentityClient",
    "ServiceAccountCredentials",
    "REQUEST_TIMEOUT",
    "DEFAULT_IDENTITY_TOOLKIT_URL",
    "DEFAULT_SECURE_TOKEN_URL",
    "DEFAULT_JWKS_URL",

    # Exceptions
    "IdentityError",
    "IdentityAPIError",
    "IdentityTransportError",
    "IdentityResolutionError",
    "InitializationError",
    "InvalidCredentialsError",
    "UserAlreadyExistsError",
    "UserNotFoundError",
    "ValidationError",

    # Services
    "UserService",
    "SessionService",
    "TokenVerifier",

    # Records
    "Session",
    "UserRecord",
    "VerifiedToken",
]
