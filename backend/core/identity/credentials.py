"""Service-account credentials for the identity provider admin API."""
from __future__ import annotations
import json
import time
from dataclasses import dataclass
from pathlib import Path

import jwt

from .exceptions import InitializationError

DEFAULT_TOKEN_URI = "https://oauth2.googleapis.com/token"
ADMIN_SCOPES = (
    "https://www.googleapis.com/auth/identitytoolkit",
    "https://www.googleapis.com/auth/cloud-platform",
)
ASSERTION_LIFETIME = 3600

_REQUIRED_FIELDS = ("client_email", "private_key")


@dataclass(frozen=True)
class ServiceAccountCredentials:
    """Credential certificate used to sign admin access-token requests."""

    client_email: str
    private_key: str
    project_id: str = ""
    private_key_id: str = ""
    token_uri: str = DEFAULT_TOKEN_URI

    @classmethod
    def from_info(cls, info: dict) -> "ServiceAccountCredentials":
        """Build credentials from a parsed service-account JSON document.

        Raises:
            InitializationError: If the document is not a service account key
        """
        if not isinstance(info, dict):
            raise InitializationError("Service account credentials must be a JSON object")
        if info.get("type", "service_account") != "service_account":
            raise InitializationError(f"Unsupported credential type: {info.get('type')}")
        missing = [name for name in _REQUIRED_FIELDS if not info.get(name)]
        if missing:
            raise InitializationError(f"Service account credentials missing fields: {', '.join(missing)}")
        return cls(
            client_email=info["client_email"],
            private_key=info["private_key"],
            project_id=info.get("project_id", ""),
            private_key_id=info.get("private_key_id", ""),
            token_uri=info.get("token_uri") or DEFAULT_TOKEN_URI,
        )

    @classmethod
    def from_file(cls, path: str | Path) -> "ServiceAccountCredentials":
        """Load credentials from a service-account JSON file."""
        path = Path(path)
        try:
            info = json.loads(path.read_text(encoding="utf-8"))
        except FileNotFoundError as exc:
            raise InitializationError(f"Service account file not found: {path}", cause=exc) from exc
        except (OSError, json.JSONDecodeError) as exc:
            raise InitializationError(f"Service account file unreadable: {path}", cause=exc) from exc
        return cls.from_info(info)

    def signed_assertion(self, now: int | None = None) -> str:
        """Create the RS256-signed JWT used in the jwt-bearer grant."""
        issued_at = int(now if now is not None else time.time())
        payload = {
            "iss": self.client_email,
            "sub": self.client_email,
            "aud": self.token_uri,
            "scope": " ".join(ADMIN_SCOPES),
            "iat": issued_at,
            "exp": issued_at + ASSERTION_LIFETIME,
        }
        headers = {"kid": self.private_key_id} if self.private_key_id else None
        try:
            return jwt.encode(payload, self.private_key, algorithm="RS256", headers=headers)
        except (ValueError, TypeError, jwt.PyJWTError) as exc:
            raise InitializationError("Service account private key is invalid", cause=exc) from exc
