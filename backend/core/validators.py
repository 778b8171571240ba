"""Input validation helpers for identity data."""
from __future__ import annotations

PASSWORD_MIN_LENGTH = 6
PASSWORD_MAX_LENGTH = 4096
EMAIL_MAX_LENGTH = 254
NAME_MAX_LENGTH = 128


def validate_email(email: str) -> str:
    """Validate email address.

    Args:
        email: Email address to validate

    Returns:
        Normalized email address

    Raises:
        ValueError: If email is invalid
    """
    if not isinstance(email, str):
        raise ValueError("Invalid email format")
    email = email.strip().lower()
    if not email or "@" not in email or any(char.isspace() for char in email):
        raise ValueError("Invalid email format")

    local, domain = email.rsplit("@", 1)
    if not local or not domain or "." not in domain:
        raise ValueError("Invalid email format")
    if domain.startswith(".") or domain.endswith("."):
        raise ValueError("Invalid email format")
    if len(email) > EMAIL_MAX_LENGTH:
        raise ValueError("Email exceeds maximum length")

    return email


def validate_password(password: str) -> str:
    """Validate a new password against the provider's minimum policy.

    Raises:
        ValueError: If password is too short or too long
    """
    if not isinstance(password, str) or len(password) < PASSWORD_MIN_LENGTH:
        raise ValueError(f"Password must be at least {PASSWORD_MIN_LENGTH} characters")
    if len(password) > PASSWORD_MAX_LENGTH:
        raise ValueError("Password exceeds maximum length")
    return password


def validate_name(name: str, field: str) -> str:
    """Validate first/last/display name fields.

    Args:
        name: Name to validate
        field: Field name for error messages (e.g., "First name")

    Returns:
        Trimmed name

    Raises:
        ValueError: If name is invalid
    """
    if not isinstance(name, str):
        raise ValueError(f"{field} is required")
    name = name.strip()
    if not name:
        raise ValueError(f"{field} is required")
    if len(name) > NAME_MAX_LENGTH:
        raise ValueError(f"{field} exceeds maximum length")

    # Prevent injection attacks
    if any(char in name for char in "<>\"`;&|$"):
        raise ValueError(f"{field} contains invalid characters")

    return name
