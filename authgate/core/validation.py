"""
Input Validation for authgate.

Stateless field checks over submitted strings. Each check returns a
field-keyed error dict (empty when the value is fine) instead of raising,
and the aggregate validators run every field check independently, so a
caller sees every problem in one response.

Wire field names are used as error keys ("confirmPassword", not
"confirm_password").
"""

import re
from dataclasses import dataclass, field
from typing import Optional

from authgate.core.constants import (
    BCRYPT_MAX_PASSWORD_BYTES,
    EMAIL_MAX_LENGTH,
    PASSWORD_MIN_LENGTH,
    ROLE_NAME_MAX_LENGTH,
    USERNAME_MAX_LENGTH,
    USERNAME_MIN_LENGTH,
)
from authgate.core.errors import ValidationError


# Email pattern (basic validation, not comprehensive)
EMAIL_PATTERN = re.compile(r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$')

USERNAME_PATTERN = re.compile(r'^[A-Za-z0-9_]+$')
ROLE_NAME_PATTERN = re.compile(r'^[a-z][a-z0-9_]*$')

PASSWORD_CLASSES = (
    (re.compile(r'[a-z]'), "a lowercase letter"),
    (re.compile(r'[A-Z]'), "an uppercase letter"),
    (re.compile(r'[0-9]'), "a digit"),
    (re.compile(r'[^A-Za-z0-9]'), "a symbol"),
)


@dataclass
class ValidationResult:
    """Aggregated field errors."""
    errors: dict[str, str] = field(default_factory=dict)

    @property
    def valid(self) -> bool:
        return not self.errors

    def raise_for_errors(self, message: str) -> None:
        """Raise ValidationError carrying every field error, if there are any."""
        if self.errors:
            raise ValidationError(message, errors=dict(self.errors))


def _collect(*checks: dict[str, str]) -> ValidationResult:
    errors: dict[str, str] = {}
    for check in checks:
        for key, message in check.items():
            errors.setdefault(key, message)
    return ValidationResult(errors=errors)


# =============================================================================
# Field Checks
# =============================================================================

def check_not_empty(value: Optional[str], key: str, label: str) -> dict[str, str]:
    """Non-empty after trimming."""
    if value is None or not value.strip():
        return {key: f"{label} must not be empty"}
    return {}


def check_username(
    value: Optional[str],
    key: str = "username",
    min_length: int = USERNAME_MIN_LENGTH,
    max_length: int = USERNAME_MAX_LENGTH,
) -> dict[str, str]:
    empty = check_not_empty(value, key, "Username")
    if empty:
        return empty
    value = value.strip()
    if len(value) < min_length:
        return {key: f"Username must be at least {min_length} characters long"}
    if len(value) > max_length:
        return {key: f"Username must be at most {max_length} characters long"}
    if not USERNAME_PATTERN.match(value):
        return {key: "Username may only contain letters, digits and underscores"}
    return {}


def check_email(value: Optional[str], key: str = "email", max_length: int = EMAIL_MAX_LENGTH) -> dict[str, str]:
    empty = check_not_empty(value, key, "Email")
    if empty:
        return empty
    value = value.strip()
    if len(value) > max_length:
        return {key: f"Email must be at most {max_length} characters long"}
    if not EMAIL_PATTERN.match(value):
        return {key: "Email must be a valid email address"}
    return {}


def check_password_strength(value: Optional[str], key: str = "password") -> dict[str, str]:
    """
    Minimum length, bcrypt's byte limit, and one character from each of the
    lowercase / uppercase / digit / symbol classes.
    """
    empty = check_not_empty(value, key, "Password")
    if empty:
        return empty
    if len(value) < PASSWORD_MIN_LENGTH:
        return {key: f"Password must be at least {PASSWORD_MIN_LENGTH} characters long"}
    if len(value.encode("utf-8")) > BCRYPT_MAX_PASSWORD_BYTES:
        return {key: f"Password must be at most {BCRYPT_MAX_PASSWORD_BYTES} bytes long"}
    missing = [name for pattern, name in PASSWORD_CLASSES if not pattern.search(value)]
    if missing:
        return {key: "Password must contain " + ", ".join(missing)}
    return {}


def check_passwords_match(
    password: Optional[str],
    confirm_password: Optional[str],
    key: str = "confirmPassword",
) -> dict[str, str]:
    empty = check_not_empty(confirm_password, key, "Confirmed password")
    if empty:
        return empty
    # Only compared once both are present; an empty password is reported on its own field.
    if password and password != confirm_password:
        return {key: "Passwords must match"}
    return {}


def check_role_name(value: Optional[str], key: str = "name") -> dict[str, str]:
    empty = check_not_empty(value, key, "Name")
    if empty:
        return empty
    value = value.strip()
    if len(value) > ROLE_NAME_MAX_LENGTH:
        return {key: f"Name must be at most {ROLE_NAME_MAX_LENGTH} characters long"}
    if not ROLE_NAME_PATTERN.match(value):
        return {key: "Name must start with a lowercase letter and contain only lowercase letters, digits and underscores"}
    return {}


# =============================================================================
# Aggregate Validators
# =============================================================================

def validate_register_input(
    username: Optional[str],
    password: Optional[str],
    confirm_password: Optional[str],
    email: Optional[str],
) -> ValidationResult:
    return _collect(
        check_username(username),
        check_password_strength(password),
        check_passwords_match(password, confirm_password),
        check_email(email),
    )


def validate_login_input(username: Optional[str], password: Optional[str]) -> ValidationResult:
    """Login only checks presence; shape rules would leak which accounts can exist."""
    return _collect(
        check_not_empty(username, "username", "Username"),
        check_not_empty(password, "password", "Password"),
    )


def validate_admin_input(username: Optional[str], password: Optional[str]) -> ValidationResult:
    """Admin create / update."""
    return _collect(
        check_username(username),
        check_password_strength(password),
    )


def validate_role_input(name: Optional[str]) -> ValidationResult:
    return _collect(check_role_name(name))
