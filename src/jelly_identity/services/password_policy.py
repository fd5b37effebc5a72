"""Password strength rules and zxcvbn scoring.

A policy combines a length range, an optional character pattern and a
minimum zxcvbn score. Scoring is seeded with words taken from the user's
own name and email so passwords built from them score low.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import IntEnum
from typing import TYPE_CHECKING

from zxcvbn import zxcvbn

from jelly_identity.exceptions import PASSWORD_FIELD, WeakPasswordError

if TYPE_CHECKING:
    from jelly_config.settings import Settings

logger = logging.getLogger(__name__)

# Only this prefix of a candidate is scored
SCORED_PREFIX_LENGTH = 72


class PasswordScore(IntEnum):
    """zxcvbn crack-time classes."""

    TOO_GUESSABLE = 0  # guesses < 10^3
    VERY_GUESSABLE = 1  # guesses < 10^6
    SOMEWHAT_GUESSABLE = 2  # guesses < 10^8
    SAFELY_UNGUESSABLE = 3  # guesses < 10^10
    VERY_UNGUESSABLE = 4  # guesses >= 10^10


@dataclass(frozen=True)
class PasswordPattern:
    """A regex new passwords must match, and the message shown if not."""

    pattern: str
    message: str
    _compiled: re.Pattern[str] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "_compiled", re.compile(self.pattern))

    def matches(self, password: str) -> bool:
        return self._compiled.match(password) is not None


ALPHANUMERIC_HYPHEN = PasswordPattern(
    r"^[-a-zA-Z0-9]+$",
    "can only contain uppercase, lowercase, numbers, and hyphens.",
)

MIXED_CLASSES = PasswordPattern(
    r"^(?=.*[a-z])(?=.*[A-Z])(?=.*[0-9])(?=.*[-_.@#$%^&*!?])[-_.@#$%^&*!?a-zA-Z0-9]+$",
    "must contain at least one each of uppercase, lowercase, number, "
    "and symbol from this set: -_@#$%^&*!?.",
)

PATTERNS: dict[str, PasswordPattern | None] = {
    "alphanumeric_hyphen": ALPHANUMERIC_HYPHEN,
    "mixed_classes": MIXED_CLASSES,
    "none": None,
}


@dataclass(frozen=True)
class StrengthResult:
    score: PasswordScore
    warning: str = ""
    suggestions: tuple[str, ...] = ()


@dataclass(frozen=True)
class PasswordPolicy:
    """Rules for new passwords. ``None`` disables a rule."""

    min_length: int | None = 8
    max_length: int | None = 255
    pattern: PasswordPattern | None = ALPHANUMERIC_HYPHEN
    min_score: PasswordScore | None = PasswordScore.SAFELY_UNGUESSABLE

    @classmethod
    def from_settings(cls, settings: Settings) -> PasswordPolicy:
        return cls(
            pattern=PATTERNS[settings.password_pattern],
            min_score=PasswordScore(settings.password_min_score),
        )


def split_inputs(inputs: Iterable[str]) -> list[str]:
    """Extract distinct lowercase words longer than three characters.

    >>> split_inputs(["Jeffry A Bezos", "jbezos@amazon.com"])
    ['jeffry', 'bezos', 'jbezos', 'amazon']
    """
    seen: set[str] = set()
    words: list[str] = []
    for value in inputs:
        for word in re.split(r"\W", value):
            if len(word) <= 3:
                continue
            lowered = word.lower()
            if lowered not in seen:
                seen.add(lowered)
                words.append(lowered)
    return words


class PasswordStrengthChecker:
    """Validates candidate passwords against a PasswordPolicy.

    Never logs or stores the candidate itself.
    """

    def __init__(self, policy: PasswordPolicy | None = None):
        self._policy = policy or PasswordPolicy()

    @property
    def policy(self) -> PasswordPolicy:
        return self._policy

    def score(self, password: str, user_inputs: Iterable[str] = ()) -> StrengthResult:
        """Estimate how hard ``password`` is to guess.

        Parameters
        ----------
        password
            Candidate password
        user_inputs
            Raw personal strings (name, email); split into words first
        """
        if not password:
            return StrengthResult(score=PasswordScore.TOO_GUESSABLE)

        result = zxcvbn(
            password[:SCORED_PREFIX_LENGTH],
            user_inputs=split_inputs(user_inputs),
        )
        feedback = result.get("feedback") or {}
        return StrengthResult(
            score=PasswordScore(int(result["score"])),
            warning=feedback.get("warning") or "",
            suggestions=tuple(feedback.get("suggestions") or ()),
        )

    def check(self, password: str, user_inputs: Iterable[str] = ()) -> list[str]:
        """Return user-facing problems with ``password``; empty when acceptable."""
        if not password:
            return ["Password is required"]

        policy = self._policy
        errors: list[str] = []

        if policy.min_length is not None and len(password) < policy.min_length:
            errors.append(f"Password must be at least {policy.min_length} characters")
        if policy.max_length is not None and len(password) > policy.max_length:
            errors.append(f"Password cannot exceed {policy.max_length} characters")
            return errors

        if policy.pattern is not None and not policy.pattern.matches(password):
            errors.append(f"Password {policy.pattern.message}")

        if policy.min_score is not None:
            strength = self.score(password, user_inputs)
            if strength.score < policy.min_score:
                logger.debug("Rejected password with score %d", strength.score)
                message = "Password is too easy to guess"
                if strength.warning:
                    message = f"{message}: {strength.warning}"
                errors.append(message)
                errors.extend(strength.suggestions)

        return errors

    def ensure_acceptable(
        self,
        password: str,
        user_inputs: Iterable[str] = (),
        field_name: str = PASSWORD_FIELD,
    ) -> None:
        """Raise WeakPasswordError listing every problem found."""
        errors = self.check(password, user_inputs)
        if errors:
            raise WeakPasswordError(errors, field=field_name)
