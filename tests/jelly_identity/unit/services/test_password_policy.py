"""Unit tests for PasswordStrengthChecker and PasswordPolicy."""

import pytest

from jelly_identity.exceptions import PASSWORD_FIELD, WeakPasswordError
from jelly_identity.services import (
    MIXED_CLASSES,
    PasswordPolicy,
    PasswordScore,
    PasswordStrengthChecker,
    split_inputs,
)
from tests.shared.fixtures.factories import STRONG_PASSWORD
from tests.shared.fixtures.settings import build_settings


class TestSplitInputs:
    def test_splits_name_and_email_into_long_words(self):
        assert split_inputs(["Jeffry A Bezos", "jbezos@amazon.com"]) == [
            "jeffry",
            "bezos",
            "jbezos",
            "amazon",
        ]

    def test_drops_duplicates_and_short_words(self):
        assert split_inputs(["Ada Ada", "ada@ex.io", "LOVELACE"]) == ["lovelace"]


class TestPasswordStrengthChecker:
    def setup_method(self):
        self.checker = PasswordStrengthChecker()

    def test_strong_password_has_no_errors(self):
        assert self.checker.check(STRONG_PASSWORD) == []

    def test_empty_password_is_required(self):
        assert self.checker.check("") == ["Password is required"]

    def test_short_password_reports_length(self):
        errors = self.checker.check("Ab-1")

        assert "Password must be at least 8 characters" in errors

    def test_too_long_password_stops_early(self):
        errors = self.checker.check("a" * 256)

        assert errors == ["Password cannot exceed 255 characters"]

    def test_pattern_violation_message(self):
        errors = self.checker.check("Tangerine Velvet Orbit 9371")

        assert (
            "Password can only contain uppercase, lowercase, numbers, and hyphens."
            in errors
        )

    def test_common_password_is_too_easy_to_guess(self):
        errors = self.checker.check("password")

        assert any(e.startswith("Password is too easy to guess") for e in errors)

    def test_password_built_from_user_inputs_scores_lower(self):
        inputs = ["Bartholomew Quincyfield", "bartholomew@quincyfield.org"]
        own = self.checker.score("Bartholomew-Quincyfield", inputs)
        unrelated = self.checker.score("Bartholomew-Quincyfield")

        assert own.score < unrelated.score

    def test_ensure_acceptable_raises_weak_password_error(self):
        with pytest.raises(WeakPasswordError) as exc_info:
            self.checker.ensure_acceptable("password")

        assert PASSWORD_FIELD in exc_info.value.field_errors

    def test_disabled_rules_accept_anything_non_empty(self):
        checker = PasswordStrengthChecker(
            PasswordPolicy(min_length=None, max_length=None, pattern=None, min_score=None),
        )

        assert checker.check("a") == []

    def test_mixed_classes_pattern(self):
        checker = PasswordStrengthChecker(PasswordPolicy(pattern=MIXED_CLASSES, min_score=None))

        assert checker.check("Abcdef-1") == []
        assert len(checker.check("abcdefgh")) == 1


class TestPasswordPolicyFromSettings:
    def test_reads_pattern_and_score(self):
        settings = build_settings(password_pattern="none", password_min_score=1)

        policy = PasswordPolicy.from_settings(settings)

        assert policy.pattern is None
        assert policy.min_score == PasswordScore.VERY_GUESSABLE

    def test_defaults(self):
        policy = PasswordPolicy.from_settings(build_settings())

        assert policy.min_score == PasswordScore.SAFELY_UNGUESSABLE
        assert policy.pattern is not None
