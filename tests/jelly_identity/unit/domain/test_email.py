"""Unit tests for the Email value object."""

import pytest

from jelly_identity.domain.account import Email, InvalidEmailError


class TestEmail:
    def test_normalizes_case_and_whitespace(self):
        assert Email("  Ada@Example.COM ").value == "ada@example.com"

    def test_equal_after_normalization(self):
        assert Email("ADA@example.com") == Email("ada@EXAMPLE.com")

    def test_domain(self):
        assert Email("ada@example.com").domain == "example.com"

    @pytest.mark.parametrize(
        "value",
        ["", "   ", "ada", "ada@", "@example.com", "ada@example", "a b@example.com"],
    )
    def test_invalid_values_rejected(self, value):
        with pytest.raises(InvalidEmailError):
            Email(value)

    def test_too_long_rejected(self):
        with pytest.raises(InvalidEmailError, match="too long"):
            Email("a" * 250 + "@example.com")
