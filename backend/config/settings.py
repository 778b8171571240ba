"""Settings loader with environment variable and Docker secrets integration."""
from __future__ import annotations
import os
from dataclasses import dataclass
from pathlib import Path

from backend.core.identity import (
    DEFAULT_IDENTITY_TOOLKIT_URL,
    DEFAULT_JWKS_URL,
    DEFAULT_SECURE_TOKEN_URL,
)

DEFAULT_SERVICE_ACCOUNT_FILE = "environment/credentials.json"
DEFAULT_PORT = 3001


def _load_secret_from_file(secret_name: str, env_var: str | None = None) -> str | None:
    """
    Load secret from /run/secrets (Docker secrets pattern).

    Priority:
    1. /run/secrets/{secret_name} (Docker secrets mount)
    2. Environment variable (fallback)

    Args:
        secret_name: Name of the secret file in /run/secrets
        env_var: Optional environment variable name to check as fallback

    Returns:
        Secret value or None if not found
    """
    secret_file = Path("/run/secrets") / secret_name

    # Priority 1: Read from /run/secrets
    if secret_file.exists() and secret_file.is_file():
        try:
            secret_value = secret_file.read_text().strip()
            if secret_value:
                print(f"[settings] ✓ Loaded {secret_name} from /run/secrets")
                return secret_value
        except OSError as e:
            print(f"[settings] ✗ Failed to read /run/secrets/{secret_name}: {e}")

    # Priority 2: Fallback to environment variable
    if env_var:
        secret_value = os.getenv(env_var)
        if secret_value:
            return secret_value

    return None


def _require(var_name: str, value: str | None) -> str:
    if not value:
        raise RuntimeError(f"Environment variable {var_name} is required.")
    return value


@dataclass
class AppConfig:
    """Application configuration container."""
    # Identity provider client configuration
    api_key: str
    project_id: str
    auth_domain: str = ""
    storage_bucket: str = ""
    messaging_sender_id: str = ""
    app_id: str = ""
    measurement_id: str = ""

    # Identity provider admin credentials
    service_account_file: str = DEFAULT_SERVICE_ACCOUNT_FILE

    # Identity provider endpoints
    identity_toolkit_url: str = DEFAULT_IDENTITY_TOOLKIT_URL
    secure_token_url: str = DEFAULT_SECURE_TOKEN_URL
    id_token_jwks_url: str = DEFAULT_JWKS_URL

    # HTTP server
    port: int = DEFAULT_PORT
    log_level: str = "INFO"

    # MongoDB
    mongo_uri: str = "mongodb://localhost:27017"
    mongo_db_name: str = "reservations"

    # Audit
    audit_log_signing_key: str = ""

    @property
    def client_config(self) -> dict[str, str]:
        """Client SDK configuration as the identity provider expects it."""
        return {
            "apiKey": self.api_key,
            "authDomain": self.auth_domain,
            "projectId": self.project_id,
            "storageBucket": self.storage_bucket,
            "messagingSenderId": self.messaging_sender_id,
            "appId": self.app_id,
            "measurementId": self.measurement_id,
        }


def _service_account_path() -> str:
    """Locate the service-account credential file.

    Priority: /run/secrets/service_account_credentials > SERVICE_ACCOUNT_FILE
    > GOOGLE_APPLICATION_CREDENTIALS > environment/credentials.json
    """
    secret_file = Path("/run/secrets") / "service_account_credentials"
    if secret_file.exists() and secret_file.is_file():
        return str(secret_file)
    return (
        os.environ.get("SERVICE_ACCOUNT_FILE")
        or os.environ.get("GOOGLE_APPLICATION_CREDENTIALS")
        or DEFAULT_SERVICE_ACCOUNT_FILE
    )


def load_settings() -> AppConfig:
    """Load application settings from environment and /run/secrets."""
    api_key = _require("API_KEY", _load_secret_from_file("api_key", "API_KEY"))
    project_id = _require("PROJECT_ID", os.environ.get("PROJECT_ID"))

    audit_log_signing_key = _load_secret_from_file("audit_log_signing_key", "AUDIT_LOG_SIGNING_KEY")
    if audit_log_signing_key:
        os.environ["AUDIT_LOG_SIGNING_KEY"] = audit_log_signing_key
    else:
        print("[settings] WARNING: AUDIT_LOG_SIGNING_KEY not set; audit events will be unsigned")

    port_str = os.environ.get("PORT", str(DEFAULT_PORT))
    try:
        port = int(port_str)
    except ValueError:
        raise RuntimeError(f"PORT must be an integer, got {port_str!r}")

    mongo_uri = _load_secret_from_file("mongo_uri", "MONGO_URI") or "mongodb://localhost:27017"

    cfg = AppConfig(
        api_key=api_key,
        project_id=project_id,
        auth_domain=os.environ.get("AUTH_DOMAIN", f"{project_id}.firebaseapp.com"),
        storage_bucket=os.environ.get("STORAGE_BUCKET", ""),
        messaging_sender_id=os.environ.get("MESSAGING_SENDER_ID", ""),
        app_id=os.environ.get("APP_ID", ""),
        measurement_id=os.environ.get("MEASUREMENT_ID", ""),
        service_account_file=_service_account_path(),
        identity_toolkit_url=os.environ.get("IDENTITY_TOOLKIT_URL", DEFAULT_IDENTITY_TOOLKIT_URL),
        secure_token_url=os.environ.get("SECURE_TOKEN_URL", DEFAULT_SECURE_TOKEN_URL),
        id_token_jwks_url=os.environ.get("ID_TOKEN_JWKS_URL", DEFAULT_JWKS_URL),
        port=port,
        log_level=os.environ.get("LOG_LEVEL", "INFO").upper(),
        mongo_uri=mongo_uri,
        mongo_db_name=os.environ.get("MONGO_DB_NAME", "reservations"),
        audit_log_signing_key=audit_log_signing_key or "",
    )

    print(f"[settings] project={cfg.project_id}; port={cfg.port}; credentials={cfg.service_account_file}")
    return cfg
