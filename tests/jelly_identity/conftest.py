"""
Pytest configuration for jelly_identity tests.

Fixtures for accounts, passwords and the identity services.
"""

import pytest

from jelly_identity.domain.account import Account
from jelly_identity.services import (
    PasswordHashingService,
    PasswordPolicy,
    PasswordStrengthChecker,
)
from tests.shared.fixtures.factories import STRONG_PASSWORD


@pytest.fixture
def password_service() -> PasswordHashingService:
    """Low iteration count for fast tests."""
    return PasswordHashingService(iterations=1000)


@pytest.fixture
def strength_checker() -> PasswordStrengthChecker:
    return PasswordStrengthChecker(PasswordPolicy())


@pytest.fixture
def account(password_service) -> Account:
    return Account.create(
        name="Ada Lovelace",
        email="ada@example.com",
        password_digest=password_service.hash(STRONG_PASSWORD),
    )
