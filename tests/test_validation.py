"""
authgate - Input Validator Tests
"""

import pytest

from authgate.core.errors import ValidationError
from authgate.core.validation import (
    check_email,
    check_password_strength,
    check_username,
    validate_admin_input,
    validate_login_input,
    validate_register_input,
    validate_role_input,
)


# =============================================================================
# Field Checks
# =============================================================================

class TestUsername:

    @pytest.mark.parametrize("value", ["alice_01", "ABCDEF", "a" * 30])
    def test_valid(self, value):
        assert check_username(value) == {}

    @pytest.mark.parametrize("value", [None, "", "   "])
    def test_empty(self, value):
        assert check_username(value) == {"username": "Username must not be empty"}

    def test_too_short(self):
        assert "at least 6" in check_username("abc")["username"]

    def test_too_long(self):
        assert "at most 30" in check_username("a" * 31)["username"]

    @pytest.mark.parametrize("value", ["alice-01", "alice 01", "alice.01", "ålice_01"])
    def test_charset(self, value):
        assert "letters, digits and underscores" in check_username(value)["username"]


class TestEmail:

    def test_valid(self):
        assert check_email("a@b.com") == {}

    @pytest.mark.parametrize("value", ["plain", "a@b", "@b.com"])
    def test_format(self, value):
        assert check_email(value) == {"email": "Email must be a valid email address"}

    def test_too_long(self):
        value = "a" * 250 + "@b.com"
        assert "at most 255" in check_email(value)["email"]


class TestPasswordStrength:

    def test_valid(self):
        assert check_password_strength("Str0ng!Pass") == {}

    def test_too_short(self):
        assert "at least 8" in check_password_strength("S0!a")["password"]

    def test_over_bcrypt_limit(self):
        assert "72 bytes" in check_password_strength("Aa1!" + "é" * 40)["password"]

    @pytest.mark.parametrize(
        "value, missing",
        [
            ("STR0NG!PASS", "a lowercase letter"),
            ("str0ng!pass", "an uppercase letter"),
            ("Strong!Pass", "a digit"),
            ("Str0ngPass1", "a symbol"),
        ],
    )
    def test_character_classes(self, value, missing):
        assert missing in check_password_strength(value)["password"]


# =============================================================================
# Aggregates
# =============================================================================

class TestRegister:

    def test_valid(self):
        result = validate_register_input("alice_01", "Str0ng!Pass", "Str0ng!Pass", "a@b.com")
        assert result.valid
        assert result.errors == {}

    def test_reports_every_field(self):
        result = validate_register_input("ab", "weak", "different", "nope")
        assert not result.valid
        assert set(result.errors) == {"username", "password", "confirmPassword", "email"}

    def test_all_missing(self):
        result = validate_register_input(None, None, None, None)
        assert result.errors == {
            "username": "Username must not be empty",
            "password": "Password must not be empty",
            "confirmPassword": "Confirmed password must not be empty",
            "email": "Email must not be empty",
        }

    def test_mismatch(self):
        result = validate_register_input("alice_01", "Str0ng!Pass", "Str0ng!Pasz", "a@b.com")
        assert result.errors == {"confirmPassword": "Passwords must match"}

    def test_raise_for_errors(self):
        result = validate_register_input(None, "Str0ng!Pass", "Str0ng!Pass", "a@b.com")
        with pytest.raises(ValidationError) as exc_info:
            result.raise_for_errors("User register input error")
        assert exc_info.value.status_code == 422
        assert exc_info.value.errors == {"username": "Username must not be empty"}


class TestLogin:

    def test_only_presence_is_checked(self):
        assert validate_login_input("x", "y").valid

    def test_blank(self):
        assert set(validate_login_input(" ", None).errors) == {"username", "password"}


def test_admin_input_checks_shape_and_strength():
    assert validate_admin_input("new_admin", "Adm1n!pass").valid
    assert set(validate_admin_input("x", "weak").errors) == {"username", "password"}


def test_role_input():
    assert validate_role_input("editor").valid
    assert validate_role_input("").errors == {"name": "Name must not be empty"}
    assert "name" in validate_role_input("Not A Role").errors
