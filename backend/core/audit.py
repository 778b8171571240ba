"""Audit logging utilities for identity operations."""

from __future__ import annotations
import datetime
import hashlib
import hmac
import json
import logging
import os
from pathlib import Path
from typing import Any, Literal

AUDIT_LOG_DIR = Path(os.environ.get("AUDIT_LOG_DIR", ".runtime/audit"))
AUDIT_LOG_FILE = AUDIT_LOG_DIR / "identity-events.jsonl"

logger = logging.getLogger(__name__)

EventType = Literal[
    "user_created", "user_deleted",
    "email_updated", "password_updated", "display_name_updated",
    "password_reset_requested", "logout", "sessions_revoked",
]


def _get_signing_key() -> bytes:
    """Get the audit signing key from environment (read lazily so tests and secrets loaders can set it)."""
    key = os.environ.get("AUDIT_LOG_SIGNING_KEY", "").strip()
    return key.encode("utf-8")


def _ensure_audit_dir() -> None:
    """Create audit directory with restricted permissions."""
    AUDIT_LOG_DIR.mkdir(parents=True, exist_ok=True)
    AUDIT_LOG_DIR.chmod(0o700)


def _sign_event(event: dict[str, Any]) -> str:
    """Generate HMAC-SHA256 signature for audit event."""
    signing_key = _get_signing_key()
    if not signing_key:
        return ""
    # Canonical JSON representation for signing
    canonical = json.dumps(event, sort_keys=True, separators=(",", ":"))
    return hmac.new(signing_key, canonical.encode("utf-8"), hashlib.sha256).hexdigest()


def log_identity_event(
    event_type: EventType,
    subject: str,
    *,
    operator: str = "api",
    details: dict[str, Any] | None = None,
    success: bool = True,
) -> None:
    """Log an identity event to the audit trail with timestamp and signature.

    Args:
        event_type: Type of identity operation (user_created, logout, etc.)
        subject: Affected identity (uid, or email when no uid is known)
        operator: Who performed the operation (api, cli, ...)
        details: Additional context (never passwords or tokens)
        success: Whether the operation succeeded
    """
    _ensure_audit_dir()

    event = {
        "timestamp": datetime.datetime.now(datetime.timezone.utc).isoformat(),
        "event_type": event_type,
        "subject": subject,
        "operator": operator,
        "success": success,
        "details": details or {},
    }

    signature = _sign_event(event)
    if signature:
        event["signature"] = signature

    # Append to JSONL file (one JSON object per line)
    with AUDIT_LOG_FILE.open("a", encoding="utf-8") as f:
        f.write(json.dumps(event, ensure_ascii=False) + "\n")

    AUDIT_LOG_FILE.chmod(0o600)


def safe_log_identity_event(
    event_type: EventType,
    subject: str,
    *,
    operator: str = "api",
    details: dict[str, Any] | None = None,
    success: bool = True,
) -> bool:
    """Log an identity event, reporting audit failures instead of raising them.

    Returns:
        True if event was logged successfully, False if logging failed
    """
    try:
        log_identity_event(event_type, subject, operator=operator, details=details, success=success)
        return True
    except OSError as e:
        logger.warning("Failed to log %s event for %s: %s", event_type, subject, e)
        return False


def verify_audit_log() -> tuple[int, int]:
    """Verify all signatures in the audit log.

    Returns:
        Tuple of (total_events, valid_signatures)
    """
    if not AUDIT_LOG_FILE.exists():
        return 0, 0

    total = 0
    valid = 0

    with AUDIT_LOG_FILE.open("r", encoding="utf-8") as f:
        for line in f:
            if not line.strip():
                continue
            total += 1
            try:
                event = json.loads(line)
                stored_sig = event.pop("signature", "")
                if not stored_sig:
                    continue
                computed_sig = _sign_event(event)
                if hmac.compare_digest(stored_sig, computed_sig):
                    valid += 1
            except (json.JSONDecodeError, KeyError):
                continue

    return total, valid
