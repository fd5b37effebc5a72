"""Value objects for the account domain."""

from jelly_identity.domain.account.value_objects.email import Email

__all__ = ["Email"]
