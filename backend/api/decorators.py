"""
Flask decorators for bearer ID token extraction.

The token is only extracted here; verification happens in the auth facade,
which resolves it against the identity provider.
"""

import logging
from functools import wraps

from flask import request, g, current_app

from backend.core.identity import IdentityResolutionError

logger = logging.getLogger(__name__)


def get_auth_facade():
    """Return the facade the application factory installed."""
    return current_app.extensions["auth_facade"]


def bearer_token() -> str:
    """
    Extract the bearer token from the Authorization header.

    Raises:
        IdentityResolutionError: Header missing, not Bearer, or empty
    """
    auth_header = request.headers.get("Authorization", "")
    if not auth_header:
        logger.warning("Request missing Authorization header | path=%s", request.path)
        raise IdentityResolutionError("Authorization header is required")

    scheme, _, token = auth_header.partition(" ")
    if scheme.lower() != "bearer":
        logger.warning("Request with invalid Authorization format | path=%s", request.path)
        raise IdentityResolutionError("Authorization header must use the Bearer scheme")

    token = token.strip()
    if not token:
        logger.warning("Request with empty Bearer token | path=%s", request.path)
        raise IdentityResolutionError("Bearer token is empty")
    return token


def require_id_token(func):
    """
    Decorator requiring a bearer ID token; stores it in ``g.id_token``.

    Usage:
        @bp.route("/me")
        @require_id_token
        def me():
            uid = get_auth_facade().resolve_identity(g.id_token)
    """
    @wraps(func)
    def wrapper(*args, **kwargs):
        g.id_token = bearer_token()
        return func(*args, **kwargs)

    return wrapper
