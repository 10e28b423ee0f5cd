"""
Pulseo - Input Validation Tests
"""

import pytest

from pulseo.services.validation import (
    InvalidInput,
    classify_registration,
    is_login_input_valid,
    sanitize_column_name,
    sanitize_description,
    sanitize_status_value,
    sanitize_title,
    validate_password,
)
from tests.conftest import STRONG_PASSWORD


class TestRegistrationRules:
    """Tests for registration payload classification."""

    def test_valid_payload(self):
        assert classify_registration("alice", "alice@x.com", STRONG_PASSWORD) is None

    @pytest.mark.parametrize("username", ["ab", "a" * 31, "bad name", "bad-name", None, 42])
    def test_invalid_username(self, username):
        code, _ = classify_registration(username, "alice@x.com", STRONG_PASSWORD)
        assert code == "INVALID_USERNAME"

    @pytest.mark.parametrize("email", ["", "alice", "alice@x", "a b@x.com", None])
    def test_invalid_email(self, email):
        code, _ = classify_registration("alice", email, STRONG_PASSWORD)
        assert code == "INVALID_EMAIL"

    @pytest.mark.parametrize(
        "password",
        ["Sh0rt!", "alllowercase1!", "ALLUPPERCASE1!", "NoDigitsHere!!", "NoSpecials123A"],
    )
    def test_weak_password(self, password):
        code, _ = classify_registration("alice", "alice@x.com", password)
        assert code == "WEAK_PASSWORD"

    def test_username_checked_before_email(self):
        code, _ = classify_registration("x", "nope", "weak")
        assert code == "INVALID_USERNAME"

    def test_password_messages_are_joined(self):
        result = validate_password("short")
        assert not result.valid
        assert "; " in result.message
        assert "at least 12 characters" in result.message


class TestLoginInput:
    def test_strings_required(self):
        assert is_login_input_valid("alice@x.com", "pw")
        assert not is_login_input_valid("", "pw")
        assert not is_login_input_valid("alice@x.com", None)
        assert not is_login_input_valid(["alice@x.com"], "pw")


class TestSanitizers:
    """Tests for task and column field sanitisation."""

    def test_title_strips_html(self):
        assert sanitize_title("  <b>Ship</b> it  ") == "Ship it"

    def test_title_required(self):
        with pytest.raises(InvalidInput):
            sanitize_title("   ")

    def test_title_length_limit(self):
        assert sanitize_title("x" * 200) == "x" * 200
        with pytest.raises(InvalidInput):
            sanitize_title("x" * 201)

    def test_empty_description_becomes_none(self):
        assert sanitize_description("") is None
        assert sanitize_description(None) is None
        assert sanitize_description("<p></p>") is None

    def test_description_length_limit(self):
        with pytest.raises(InvalidInput):
            sanitize_description("x" * 2001)

    def test_column_name_limit(self):
        with pytest.raises(InvalidInput):
            sanitize_column_name("x" * 51)

    def test_status_value_is_lowercased(self):
        assert sanitize_status_value("In-Review") == "in-review"

    @pytest.mark.parametrize("value", ["in review", "in_review", "-todo", "todo-", ""])
    def test_status_value_must_be_kebab_case(self, value):
        with pytest.raises(InvalidInput):
            sanitize_status_value(value)
