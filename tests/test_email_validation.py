"""Tests for email validation on user input."""

from __future__ import annotations

import pytest

from src.db.schemas import UserCreate, _validate_email, parse_input
from src.errors import ValidationError


class TestValidateEmail:
    """Unit tests for the _validate_email helper."""

    @pytest.mark.parametrize(
        "email",
        [
            "alice@example.com",
            "bob.jones@blog.co.uk",
            "jane+tag@gmail.com",
            "user@sub.domain.org",
            "UPPER@CASE.COM",
            "digits123@test456.io",
        ],
    )
    def test_accepts_valid_emails(self, email: str):
        assert _validate_email(email) is None

    @pytest.mark.parametrize(
        "email",
        [
            "",
            "   ",
            "not-an-email",
            "missing@",
            "@no-local.com",
            "spaces in@email.com",
            "double@@at.com",
            "no-tld@localhost",
            "user@.leading-dot.com",
        ],
    )
    def test_rejects_invalid_emails(self, email: str):
        result = _validate_email(email)
        assert result is not None
        assert "does not look like a valid email" in result or "No email" in result


class TestUserCreateEmail:
    def test_malformed_email_raises_validation_error(self):
        with pytest.raises(ValidationError, match="email"):
            parse_input(UserCreate, {"name": "Bob", "email": "bob-at-example"})

    def test_surrounding_whitespace_is_stripped(self):
        user = parse_input(UserCreate, {"name": "Bob", "email": "  bob@example.com "})
        assert user.email == "bob@example.com"

    def test_email_longer_than_255_rejected(self):
        email = "a" * 250 + "@example.com"
        with pytest.raises(ValidationError):
            parse_input(UserCreate, {"name": "Bob", "email": email})
