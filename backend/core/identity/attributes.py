"""Attribute updates accepted for an identity.

Each permitted field is its own type that validates its payload on
construction; ``attribute_update`` maps wire field names onto them.
"""
from __future__ import annotations
from dataclasses import dataclass
from typing import Union

from backend.core.validators import validate_email, validate_name, validate_password

from .exceptions import ValidationError


@dataclass(frozen=True)
class EmailUpdate:
    value: str

    field = "email"
    event = "email_updated"

    def __post_init__(self):
        try:
            object.__setattr__(self, "value", validate_email(self.value))
        except ValueError as exc:
            raise ValidationError(str(exc), cause=exc) from exc

    def api_fields(self) -> dict:
        return {"email": self.value}


@dataclass(frozen=True)
class PasswordUpdate:
    value: str

    field = "password"
    event = "password_updated"

    def __post_init__(self):
        try:
            validate_password(self.value)
        except ValueError as exc:
            raise ValidationError(str(exc), cause=exc) from exc

    def __repr__(self) -> str:
        return "PasswordUpdate(value='***')"

    def api_fields(self) -> dict:
        return {"password": self.value}


@dataclass(frozen=True)
class DisplayNameUpdate:
    value: str

    field = "displayName"
    event = "display_name_updated"

    def __post_init__(self):
        try:
            object.__setattr__(self, "value", validate_name(self.value, "Display name"))
        except ValueError as exc:
            raise ValidationError(str(exc), cause=exc) from exc

    def api_fields(self) -> dict:
        return {"displayName": self.value}


AttributeUpdate = Union[EmailUpdate, PasswordUpdate, DisplayNameUpdate]

UPDATABLE_FIELDS: dict[str, type] = {
    EmailUpdate.field: EmailUpdate,
    PasswordUpdate.field: PasswordUpdate,
    DisplayNameUpdate.field: DisplayNameUpdate,
}


def attribute_update(field: str, value: str) -> AttributeUpdate:
    """Build the update for a named field.

    Raises:
        ValidationError: If the field is not one of email, password, displayName
            or the value fails that field's validation
    """
    update_class = UPDATABLE_FIELDS.get(field)
    if update_class is None:
        allowed = ", ".join(sorted(UPDATABLE_FIELDS))
        raise ValidationError(f"Field '{field}' cannot be updated (allowed: {allowed})")
    return update_class(value)
