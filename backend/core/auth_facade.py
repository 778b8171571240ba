"""Authentication facade over the identity provider.

Translates the backend's identity intents into identity provider calls:

    HTTP routes (/auth/*) ──┐
                            ├──> AuthFacade ──> backend.core.identity ──> IdP
    identity_admin CLI ─────┘

Every operation logs failures where they happen and re-raises an error of
the same kind with a fixed message, keeping the provider error as ``cause``.
Mutating operations resolve the caller's ID token to a uid first; a
caller-supplied uid is never trusted.
"""
from __future__ import annotations
import logging
from typing import Callable, Optional

from backend.core import audit
from backend.core.identity import (
    IdentityClient,
    ServiceAccountCredentials,
    SessionService,
    TokenVerifier,
    UserService,
)
from backend.core.identity.attributes import (
    AttributeUpdate,
    DisplayNameUpdate,
    EmailUpdate,
    PasswordUpdate,
    attribute_update,
)
from backend.core.identity.exceptions import (
    IdentityError,
    IdentityResolutionError,
    InitializationError,
    UserNotFoundError,
    ValidationError,
)
from backend.core.identity.sessions import Session
from backend.core.validators import validate_email, validate_name, validate_password

logger = logging.getLogger(__name__)


class AuthFacade:
    """Process-wide handle for identity operations.

    Built once at startup by ``initialize_identity`` and passed to whoever
    needs it (the Flask app keeps it in ``app.extensions``).
    """

    def __init__(
        self,
        users: UserService,
        sessions: SessionService,
        verifier: TokenVerifier,
        operator: str = "api",
    ):
        self.users = users
        self.sessions = sessions
        self.verifier = verifier
        self.operator = operator

    def _audit(self, event_type, subject: str, success: bool = True, **details) -> None:
        audit.safe_log_identity_event(
            event_type, subject, operator=self.operator, details=details, success=success
        )

    # ─────────────────────────────────────────────────────────────────────
    # Account lifecycle
    # ─────────────────────────────────────────────────────────────────────
    def create_user(self, first_name: str, last_name: str, email: str, password: str) -> str:
        """Create an identity whose display name is "first last".

        Returns:
            The IdP-assigned uid

        Raises:
            ValidationError: Bad name, email or password
            UserAlreadyExistsError: Email already in use
        """
        try:
            display_name = f"{validate_name(first_name, 'First name')} {validate_name(last_name, 'Last name')}"
            email = validate_email(email)
            validate_password(password)
        except ValueError as exc:
            logger.warning("Error creating new user: %s", exc)
            self._audit("user_created", email or "", success=False, error=ValidationError.__name__)
            raise ValidationError(f"Error creating new user: {exc}", cause=exc) from exc

        try:
            uid = self.users.create_user(email, password, display_name=display_name)
        except IdentityError as exc:
            logger.error("Error creating new user: %s", exc)
            self._audit("user_created", email, success=False, error=exc.kind)
            raise exc.wrap("Error creating new user") from exc

        logger.info("Successfully created new user: %s", uid)
        self._audit("user_created", uid, email=email)
        return uid

    def delete_user(self, id_token: str) -> None:
        """Delete the identity the ID token belongs to."""
        try:
            uid = self.resolve_identity(id_token)
            self.users.delete_user(uid)
        except IdentityError as exc:
            logger.error("User deletion failed: %s", exc)
            raise exc.wrap("Failed to delete user") from exc

        logger.info("User deleted successfully")
        self._audit("user_deleted", uid)

    # ─────────────────────────────────────────────────────────────────────
    # Identity resolution
    # ─────────────────────────────────────────────────────────────────────
    def resolve_identity(self, id_token: str) -> str:
        """Resolve an ID token to the uid of a live identity.

        The token must verify against the provider's keys, its identity
        must still exist and it must not predate a refresh-token revocation.

        Raises:
            IdentityResolutionError: Token invalid, expired, malformed or revoked,
                or the identity no longer exists
        """
        try:
            verified = self.verifier.verify(id_token)
            user = self.users.get_user(verified.uid)
        except UserNotFoundError as exc:
            logger.warning("Error getting user UID: identity no longer exists")
            raise IdentityResolutionError("Error getting user UID", cause=exc) from exc
        except IdentityError as exc:
            logger.warning("Error getting user UID: %s", exc)
            raise exc.wrap("Error getting user UID") from exc

        if user.disabled:
            logger.warning("Error getting user UID: identity %s is disabled", user.uid)
            raise IdentityResolutionError("Error getting user UID: identity disabled")
        if user.valid_since and verified.auth_time < user.valid_since:
            logger.warning("Error getting user UID: token for %s has been revoked", user.uid)
            raise IdentityResolutionError("Error getting user UID: token revoked")
        return user.uid

    # ─────────────────────────────────────────────────────────────────────
    # Attribute updates
    # ─────────────────────────────────────────────────────────────────────
    def update_attribute(self, id_token: str, update: AttributeUpdate) -> None:
        """Apply one attribute update to the caller's identity.

        Resolution failure aborts the update before anything is written.
        """
        if not isinstance(update, (EmailUpdate, PasswordUpdate, DisplayNameUpdate)):
            logger.warning("Error updating user: unsupported update %s", type(update).__name__)
            raise ValidationError(f"Unsupported attribute update: {type(update).__name__}")
        fields = update.api_fields()

        try:
            uid = self.resolve_identity(id_token)
            user = self.users.update_user(uid, **fields)
        except IdentityError as exc:
            logger.error("Error updating %s for user: %s", update.field, exc)
            raise exc.wrap(f"Error updating {update.field} for user") from exc

        logger.info("Successfully updated %s for user %s", update.field, user.uid)
        self._audit(update.event, user.uid)

    def _build_and_update(self, id_token: str, field: str, build: Callable[[], AttributeUpdate]) -> None:
        try:
            update = build()
        except ValidationError as exc:
            logger.warning("Error updating %s for user: %s", field, exc)
            raise exc.wrap(f"Error updating {field} for user") from exc
        self.update_attribute(id_token, update)

    def update_named_attribute(self, id_token: str, field: str, value: str) -> None:
        """Update a field given by its wire name (email, password, displayName)."""
        self._build_and_update(id_token, field, lambda: attribute_update(field, value))

    def update_user_email(self, id_token: str, new_email: str) -> None:
        self._build_and_update(id_token, EmailUpdate.field, lambda: EmailUpdate(new_email))

    def update_user_password(self, id_token: str, new_password: str) -> None:
        self._build_and_update(id_token, PasswordUpdate.field, lambda: PasswordUpdate(new_password))

    def update_user_display_name(self, id_token: str, new_display_name: str) -> None:
        self._build_and_update(id_token, DisplayNameUpdate.field, lambda: DisplayNameUpdate(new_display_name))

    # ─────────────────────────────────────────────────────────────────────
    # Sessions
    # ─────────────────────────────────────────────────────────────────────
    def log_in(self, email: str, password: str) -> Session:
        """Sign in with email and password.

        Returns:
            Session, unpackable as ``(id_token, refresh_token)``

        Raises:
            UserNotFoundError: No account for this email
            InvalidCredentialsError: Wrong password
        """
        try:
            self.users.get_user_by_email(email)
            session = self.sessions.sign_in_with_password(email, password)
        except IdentityError as exc:
            logger.warning("Login failed: %s", exc)
            raise exc.wrap("Login failed: Incorrect password or email") from exc
        return session

    def refresh_session(self, refresh_token: str) -> Session:
        """Trade a refresh token for a new ID token; fails once revoked."""
        if not refresh_token:
            raise IdentityResolutionError("Failed to refresh session: refresh token is missing")
        try:
            return self.sessions.refresh(refresh_token)
        except UserNotFoundError as exc:
            logger.warning("Session refresh failed: identity no longer exists")
            raise IdentityResolutionError("Failed to refresh session", cause=exc) from exc
        except IdentityError as exc:
            logger.warning("Session refresh failed: %s", exc)
            raise exc.wrap("Failed to refresh session") from exc

    def log_out(self, id_token: str) -> bool:
        """Revoke every refresh token of the caller's identity.

        This ends all sessions of the identity, not just the current one.
        """
        try:
            uid = self.resolve_identity(id_token)
            self.users.revoke_refresh_tokens(uid)
        except IdentityError as exc:
            logger.error("Logout failed: %s", exc)
            raise exc.wrap("Failed to log out user") from exc

        logger.info("User logged out successfully")
        self._audit("logout", uid)
        return True

    def send_password_reset(self, email: str) -> None:
        """Have the identity provider mail a password-reset link.

        Raises:
            UserNotFoundError: No account for this email
        """
        try:
            self.users.get_user_by_email(email)
            self.sessions.send_password_reset_email(email)
        except IdentityError as exc:
            logger.error("Error resetting password: %s", exc)
            raise exc.wrap("Error resetting password") from exc

        logger.info("Password reset email sent successfully.")
        self._audit("password_reset_requested", email)


def initialize_identity(cfg, credentials: Optional[ServiceAccountCredentials] = None) -> AuthFacade:
    """Build the identity handle from configuration and authenticate the admin client.

    Args:
        cfg: AppConfig
        credentials: Pre-loaded service account (defaults to ``cfg.service_account_file``)

    Raises:
        InitializationError: Credentials missing/invalid or identity provider unreachable
    """
    logger.info("Initializing identity provider admin client...")
    try:
        if credentials is None:
            credentials = ServiceAccountCredentials.from_file(cfg.service_account_file)
        client = IdentityClient(
            project_id=cfg.project_id or credentials.project_id,
            api_key=cfg.api_key,
            credentials=credentials,
            identity_toolkit_url=cfg.identity_toolkit_url,
            secure_token_url=cfg.secure_token_url,
        )
        client.authenticate()
    except InitializationError as exc:
        logger.error("Error initializing identity provider: %s", exc)
        raise
    except IdentityError as exc:
        logger.error("Error initializing identity provider: %s", exc)
        raise InitializationError("Identity provider initialization failed", cause=exc) from exc
    logger.info("Identity provider admin client initialized successfully.")

    return AuthFacade(
        users=UserService(client),
        sessions=SessionService(client),
        verifier=TokenVerifier(client.project_id, jwks_url=cfg.id_token_jwks_url),
    )
