"""Input validation and sanitisation for request payloads."""

import re
from dataclasses import dataclass, field
from typing import Any, Optional

USERNAME_RE = re.compile(r"^[a-zA-Z0-9_]{3,30}$")
EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
SPECIAL_CHARS_RE = re.compile(r"[!@#$%^&*()_+\-=\[\]{}|;:,.<>?]")
STATUS_VALUE_RE = re.compile(r"^[a-z0-9]+(?:-[a-z0-9]+)*$")
HTML_TAG_RE = re.compile(r"<[^>]*>")

MIN_PASSWORD_LENGTH = 12
MAX_TITLE_LENGTH = 200
MAX_DESCRIPTION_LENGTH = 2000
MAX_COLUMN_NAME_LENGTH = 50
MAX_STATUS_VALUE_LENGTH = 50


@dataclass
class ValidationResult:
    errors: list[str] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.errors

    @property
    def message(self) -> str:
        return "; ".join(self.errors)


def validate_username(username: Any) -> ValidationResult:
    result = ValidationResult()
    if not isinstance(username, str) or not username:
        result.errors.append("Username is required")
        return result

    if len(username) < 3:
        result.errors.append("Username must be at least 3 characters")
    if len(username) > 30:
        result.errors.append("Username must be at most 30 characters")
    if not USERNAME_RE.match(username):
        result.errors.append("Username can only contain letters, numbers, and underscores")
    return result


def validate_email(email: Any) -> ValidationResult:
    result = ValidationResult()
    if not isinstance(email, str) or not email:
        result.errors.append("Email is required")
        return result

    if not EMAIL_RE.match(email):
        result.errors.append("Invalid email format")
    return result


def validate_password(password: Any) -> ValidationResult:
    result = ValidationResult()
    if not isinstance(password, str) or not password:
        result.errors.append("Password is required")
        return result

    if len(password) < MIN_PASSWORD_LENGTH:
        result.errors.append(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    if not re.search(r"[A-Z]", password):
        result.errors.append("Password must contain at least one uppercase letter")
    if not re.search(r"[a-z]", password):
        result.errors.append("Password must contain at least one lowercase letter")
    if not re.search(r"[0-9]", password):
        result.errors.append("Password must contain at least one number")
    if not SPECIAL_CHARS_RE.search(password):
        result.errors.append("Password must contain at least one special character")
    return result


def classify_registration(username: Any, email: Any, password: Any) -> Optional[tuple[str, str]]:
    """
    Validate a registration payload.

    Returns None when valid, otherwise ``(code, message)`` naming the first
    field that failed.
    """
    checks = [
        ("INVALID_USERNAME", validate_username(username)),
        ("INVALID_EMAIL", validate_email(email)),
        ("WEAK_PASSWORD", validate_password(password)),
    ]
    for code, result in checks:
        if not result.valid:
            return code, result.message
    return None


def is_login_input_valid(email: Any, password: Any) -> bool:
    return (
        isinstance(email, str) and bool(email)
        and isinstance(password, str) and bool(password)
    )


def strip_html_tags(value: str) -> str:
    return HTML_TAG_RE.sub("", value)


class InvalidInput(ValueError):
    """A task or column field failed validation."""


def sanitize_title(title: Any) -> str:
    if not isinstance(title, str) or not title.strip():
        raise InvalidInput("Title is required")
    cleaned = strip_html_tags(title.strip())
    if len(cleaned) > MAX_TITLE_LENGTH:
        raise InvalidInput(f"Title must be {MAX_TITLE_LENGTH} characters or less")
    return cleaned


def sanitize_description(description: Any) -> Optional[str]:
    if description is None or description == "":
        return None
    if not isinstance(description, str):
        raise InvalidInput("Description must be a string")
    cleaned = strip_html_tags(description.strip())
    if len(cleaned) > MAX_DESCRIPTION_LENGTH:
        raise InvalidInput(
            f"Description must be {MAX_DESCRIPTION_LENGTH} characters or less"
        )
    return cleaned or None


def sanitize_column_name(name: Any) -> str:
    if not isinstance(name, str) or not name.strip():
        raise InvalidInput("Column name is required")
    cleaned = strip_html_tags(name.strip())
    if len(cleaned) > MAX_COLUMN_NAME_LENGTH:
        raise InvalidInput(
            f"Column name must be {MAX_COLUMN_NAME_LENGTH} characters or less"
        )
    return cleaned


def sanitize_status_value(value: Any) -> str:
    if not isinstance(value, str) or not value.strip():
        raise InvalidInput("Status value is required")
    cleaned = value.strip().lower()
    if len(cleaned) > MAX_STATUS_VALUE_LENGTH:
        raise InvalidInput(
            f"Status value must be {MAX_STATUS_VALUE_LENGTH} characters or less"
        )
    if not STATUS_VALUE_RE.match(cleaned):
        raise InvalidInput(
            "Status value must be kebab-case (lowercase letters, numbers, hyphens)"
        )
    return cleaned
