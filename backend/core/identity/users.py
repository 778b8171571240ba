"""Identity provider user management operations."""
from __future__ import annotations
import logging
import time
from dataclasses import dataclass
from typing import Optional

from .client import IdentityClient
from .exceptions import UserNotFoundError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UserRecord:
    """User representation returned by the identity provider."""

    uid: str
    email: str = ""
    display_name: str = ""
    email_verified: bool = False
    disabled: bool = False
    valid_since: int = 0

    @classmethod
    def from_api(cls, data: dict) -> "UserRecord":
        return cls(
            uid=data["localId"],
            email=data.get("email", ""),
            display_name=data.get("displayName", ""),
            email_verified=bool(data.get("emailVerified", False)),
            disabled=bool(data.get("disabled", False)),
            valid_since=int(data.get("validSince", 0) or 0),
        )


class UserService:
    """Service for managing identity provider users."""

    def __init__(self, client: IdentityClient):
        """Initialize user service.

        Args:
            client: Identity client with admin credentials
        """
        self.client = client

    def create_user(self, email: str, password: str, display_name: str = "") -> str:
        """Create a new user.

        Returns:
            IdP-assigned uid
        """
        payload = {"email": email, "password": password}
        if display_name:
            payload["displayName"] = display_name
        resp = self.client.admin_post("accounts", json=payload)
        uid = resp.json()["localId"]
        logger.info("User created (uid=%s)", uid)
        return uid

    def _lookup(self, payload: dict) -> Optional[UserRecord]:
        resp = self.client.admin_post("accounts:lookup", json=payload)
        users = resp.json().get("users") or []
        if not users:
            return None
        return UserRecord.from_api(users[0])

    def get_user(self, uid: str) -> UserRecord:
        """Return the user with the given uid.

        Raises:
            UserNotFoundError: If no user has this uid
        """
        user = self._lookup({"localId": [uid]})
        if user is None:
            raise UserNotFoundError(f"No user with uid {uid}")
        return user

    def get_user_by_email(self, email: str) -> UserRecord:
        """Return the user registered under an email address.

        Raises:
            UserNotFoundError: If no user has this email
        """
        user = self._lookup({"email": [email]})
        if user is None:
            raise UserNotFoundError(f"No user with email {email}")
        return user

    def update_user(self, uid: str, **fields) -> UserRecord:
        """Update profile fields of a user.

        Args:
            uid: User ID
            **fields: API field names (email, password, displayName, validSince)

        Returns:
            Updated user representation
        """
        payload = {"localId": uid, **fields}
        self.client.admin_post("accounts:update", json=payload)
        logger.info("Updated %s for uid=%s", ", ".join(sorted(fields)), uid)
        return self.get_user(uid)

    def delete_user(self, uid: str) -> None:
        """Delete a user."""
        self.client.admin_post("accounts:delete", json={"localId": uid})
        logger.info("User deleted (uid=%s)", uid)

    def revoke_refresh_tokens(self, uid: str) -> int:
        """Revoke every refresh token of a user.

        Tokens issued before the returned timestamp are no longer valid, so
        this ends all sessions of the identity, not only the current one.

        Returns:
            The new ``validSince`` value (epoch seconds)
        """
        valid_since = int(time.time())
        self.client.admin_post("accounts:update", json={"localId": uid, "validSince": str(valid_since)})
        logger.info("Revoked refresh tokens for uid=%s", uid)
        return valid_since
