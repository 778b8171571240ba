"""Attribute updates: permitted fields, validation on construction, wire mapping."""
import pytest

from backend.core.identity import ValidationError
from backend.core.identity.attributes import (
    UPDATABLE_FIELDS,
    DisplayNameUpdate,
    EmailUpdate,
    PasswordUpdate,
    attribute_update,
)


class TestAttributeUpdate:
    @pytest.mark.parametrize(
        "field, value, update_class, api_fields",
        [
            ("email", "New@Example.com", EmailUpdate, {"email": "new@example.com"}),
            ("password", "s3cret-pass", PasswordUpdate, {"password": "s3cret-pass"}),
            ("displayName", "  Alice Martin ", DisplayNameUpdate, {"displayName": "Alice Martin"}),
        ],
    )
    def test_permitted_fields(self, field, value, update_class, api_fields):
        update = attribute_update(field, value)

        assert isinstance(update, update_class)
        assert update.field == field
        assert update.api_fields() == api_fields

    @pytest.mark.parametrize("field", ["uid", "disabled", "emailVerified", "display_name", "EMAIL", ""])
    def test_unknown_field_rejected(self, field):
        with pytest.raises(ValidationError, match="cannot be updated"):
            attribute_update(field, "value")

    def test_allowed_fields_listed_in_error(self):
        with pytest.raises(ValidationError) as exc_info:
            attribute_update("phoneNumber", "+33100000000")
        assert "displayName, email, password" in exc_info.value.message

    def test_exactly_three_fields(self):
        assert set(UPDATABLE_FIELDS) == {"email", "password", "displayName"}


class TestValidationOnConstruction:
    def test_bad_email(self):
        with pytest.raises(ValidationError, match="Invalid email format") as exc_info:
            EmailUpdate("not-an-email")
        assert isinstance(exc_info.value.cause, ValueError)

    def test_short_password(self):
        with pytest.raises(ValidationError, match="at least 6"):
            PasswordUpdate("abc")

    @pytest.mark.parametrize("name", ["", "   ", "<script>", "x" * 129])
    def test_bad_display_name(self, name):
        with pytest.raises(ValidationError):
            DisplayNameUpdate(name)

    def test_password_repr_is_masked(self):
        assert "hunter22" not in repr(PasswordUpdate("hunter22"))

    def test_updates_are_immutable(self):
        update = EmailUpdate("a@example.com")
        with pytest.raises(AttributeError):
            update.value = "b@example.com"
