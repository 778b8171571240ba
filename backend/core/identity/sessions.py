"""Identity provider session operations (sign-in, refresh, password reset)."""
from __future__ import annotations
import logging
from typing import NamedTuple

from .client import IdentityClient

logger = logging.getLogger(__name__)


class Session(NamedTuple):
    """Token pair issued on sign-in; unpacks as ``(id_token, refresh_token)``."""

    id_token: str
    refresh_token: str
    uid: str = ""
    expires_in: int = 0


class SessionService:
    """Service for user sessions on the identity provider client API."""

    def __init__(self, client: IdentityClient):
        """Initialize session service.

        Args:
            client: Identity client (API key is enough for these calls)
        """
        self.client = client

    def sign_in_with_password(self, email: str, password: str) -> Session:
        """Verify credentials and open a session.

        Returns:
            Session holding the ID token and refresh token
        """
        resp = self.client.client_post(
            "accounts:signInWithPassword",
            json={"email": email, "password": password, "returnSecureToken": True},
        )
        body = resp.json()
        return Session(
            id_token=body["idToken"],
            refresh_token=body["refreshToken"],
            uid=body.get("localId", ""),
            expires_in=int(body.get("expiresIn", 0) or 0),
        )

    def refresh(self, refresh_token: str) -> Session:
        """Exchange a refresh token for a fresh ID token.

        Fails once the refresh token has been revoked.
        """
        resp = self.client.token_post({"grant_type": "refresh_token", "refresh_token": refresh_token})
        body = resp.json()
        return Session(
            id_token=body["id_token"],
            refresh_token=body.get("refresh_token", refresh_token),
            uid=body.get("user_id", ""),
            expires_in=int(body.get("expires_in", 0) or 0),
        )

    def send_password_reset_email(self, email: str) -> None:
        """Ask the identity provider to mail a password-reset link."""
        self.client.client_post("accounts:sendOobCode", json={"requestType": "PASSWORD_RESET", "email": email})
        logger.info("Password reset email dispatched")
