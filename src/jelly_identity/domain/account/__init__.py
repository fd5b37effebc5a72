"""Account domain: local accounts and their linked OAuth identities.

This domain handles:
- Account aggregate (credentials, verification and activity flags)
- Identity entity (provider links, unique per provider and username)
- Email value object (normalized, case-insensitive)
"""

from jelly_identity.domain.account.aggregates import Account
from jelly_identity.domain.account.entities import Identity, ProviderIdentity
from jelly_identity.domain.account.exceptions import InvalidEmailError, InvalidNameError
from jelly_identity.domain.account.repositories import AccountRepository
from jelly_identity.domain.account.value_objects import Email

__all__ = [
    "Account",
    "AccountRepository",
    "Email",
    "Identity",
    "InvalidEmailError",
    "InvalidNameError",
    "ProviderIdentity",
]
