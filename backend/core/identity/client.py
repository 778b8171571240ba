"""Low-level HTTP client for the identity provider.

Handles admin authentication, token management, and HTTP operations against
the Identity Toolkit (admin + client) and Secure Token APIs.
"""
from __future__ import annotations
import logging
from datetime import datetime, timedelta
from typing import Optional, Dict, Any

import requests

from .credentials import ServiceAccountCredentials
from .exceptions import (
    IdentityError,
    IdentityTransportError,
    InitializationError,
    from_idp_error,
)

REQUEST_TIMEOUT = 10
DEFAULT_IDENTITY_TOOLKIT_URL = "https://identitytoolkit.googleapis.com"
DEFAULT_SECURE_TOKEN_URL = "https://securetoken.googleapis.com"

logger = logging.getLogger(__name__)


class IdentityClient:
    """HTTP client for the identity provider with automatic admin token management.

    Features:
    - Admin access token via service-account JWT bearer grant, refreshed before expiry
    - Client (API key) calls for sign-in, token refresh and out-of-band mail
    - Centralized error mapping to the identity exception taxonomy

    Usage:
        client = IdentityClient(project_id="demo", api_key="key", credentials=creds)
        client.authenticate()
        resp = client.admin_post("accounts:lookup", json={"localId": ["uid"]})
    """

    def __init__(
        self,
        project_id: str,
        api_key: str,
        credentials: Optional[ServiceAccountCredentials] = None,
        identity_toolkit_url: str = DEFAULT_IDENTITY_TOOLKIT_URL,
        secure_token_url: str = DEFAULT_SECURE_TOKEN_URL,
    ):
        self.project_id = project_id
        self.api_key = api_key
        self.credentials = credentials
        self.identity_toolkit_url = identity_toolkit_url.rstrip("/")
        self.secure_token_url = secure_token_url.rstrip("/")
        self._token: Optional[str] = None
        self._token_expires_at: Optional[datetime] = None

    def authenticate(self) -> str:
        """Exchange the service-account assertion for an admin access token.

        Returns:
            Access token

        Raises:
            InitializationError: If no credentials are configured, the
                assertion cannot be signed or the token endpoint refuses it
            IdentityTransportError: If the token endpoint is unreachable
        """
        if self.credentials is None:
            raise InitializationError("No service account credentials configured")

        assertion = self.credentials.signed_assertion()
        data = {
            "grant_type": "urn:ietf:params:oauth:grant-type:jwt-bearer",
            "assertion": assertion,
        }
        try:
            resp = requests.post(self.credentials.token_uri, data=data, timeout=REQUEST_TIMEOUT)
        except requests.RequestException as exc:
            raise IdentityTransportError(f"Token endpoint unreachable: {exc}", cause=exc) from exc
        if resp.status_code != 200:
            raise InitializationError(f"[{resp.status_code}] {self.credentials.token_uri}: {resp.text}")

        payload = resp.json()
        self._token = payload["access_token"]
        expires_in = int(payload.get("expires_in", 3600))
        self._token_expires_at = datetime.now() + timedelta(seconds=expires_in)
        return self._token

    def _ensure_authenticated(self) -> None:
        """Ensure we have a valid admin token, refreshing if necessary."""
        # Refresh if token missing, expired or expiring soon (within 60 seconds)
        if (
            not self._token
            or not self._token_expires_at
            or datetime.now() >= self._token_expires_at - timedelta(seconds=60)
        ):
            self.authenticate()

    # ─────────────────────────────────────────────────────────────────────
    # URL helpers
    # ─────────────────────────────────────────────────────────────────────
    def admin_url(self, action: str) -> str:
        """Project-scoped admin endpoint, e.g. ``accounts:lookup``."""
        return f"{self.identity_toolkit_url}/v1/projects/{self.project_id}/{action}"

    def client_url(self, action: str) -> str:
        """API-key endpoint, e.g. ``accounts:signInWithPassword``."""
        return f"{self.identity_toolkit_url}/v1/{action}"

    # ─────────────────────────────────────────────────────────────────────
    # HTTP operations
    # ─────────────────────────────────────────────────────────────────────
    def admin_post(self, action: str, json: Optional[Dict[str, Any]] = None) -> requests.Response:
        """Execute an authenticated admin POST.

        Args:
            action: Admin action path (e.g. "accounts", "accounts:update")
            json: JSON payload

        Returns:
            Response object

        Raises:
            IdentityError: On HTTP or transport error
        """
        self._ensure_authenticated()
        url = self.admin_url(action)
        headers = {"Authorization": f"Bearer {self._token}"}
        return self._send(url, json=json, headers=headers)

    def client_post(self, action: str, json: Optional[Dict[str, Any]] = None) -> requests.Response:
        """Execute an API-key POST on the Identity Toolkit client API."""
        return self._send(self.client_url(action), json=json, params={"key": self.api_key})

    def token_post(self, data: Dict[str, Any]) -> requests.Response:
        """Execute an API-key form POST on the Secure Token API."""
        url = f"{self.secure_token_url}/v1/token"
        return self._send(url, data=data, params={"key": self.api_key})

    def _send(self, url: str, **kwargs) -> requests.Response:
        try:
            resp = requests.post(url, timeout=REQUEST_TIMEOUT, **kwargs)
        except requests.RequestException as exc:
            logger.error("Identity provider request failed: %s (%s)", url, exc)
            raise IdentityTransportError(f"Identity provider unreachable: {exc}", cause=exc) from exc
        self._handle_error(resp, url)
        return resp

    def _handle_error(self, resp: requests.Response, url: str) -> None:
        """Centralized error handling for HTTP responses.

        Raises:
            IdentityError: Mapped from the IdP error code when the status indicates error
        """
        if resp.status_code < 400:
            return
        raise self._error_from_response(resp, url)

    @staticmethod
    def _error_from_response(resp: requests.Response, url: str) -> IdentityError:
        message = resp.text
        try:
            body = resp.json()
        except ValueError:
            body = None
        if isinstance(body, dict):
            error = body.get("error")
            if isinstance(error, dict):
                message = error.get("message") or message
            elif isinstance(error, str):
                # Secure Token API sometimes answers {"error": "invalid_grant", ...}
                message = body.get("error_description") or error
        return from_idp_error(resp.status_code, message, url)
