"""Sign in, sign up or link an account from a verified provider identity."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING
from uuid import UUID

from jelly.domain.shared.exceptions import ValidationError
from jelly_identity.domain.account import Account
from jelly_identity.exceptions import (
    CredentialError,
    IdentityConflictError,
    InvalidSessionError,
)

if TYPE_CHECKING:
    from jelly_identity.domain.account import AccountRepository, ProviderIdentity

logger = logging.getLogger(__name__)


class OAuthLoginService:
    """Resolves a provider identity against the account store.

    ============  ==========  =============================================
    linked?       signed in?  outcome
    ============  ==========  =============================================
    yes           no          log in as the linked account
    no            no          register an OAuth account and link
    yes           yes         same account: refresh identity; other: error
    no            yes         link to the signed-in account
    ============  ==========  =============================================
    """

    def __init__(self, account_repository: AccountRepository):
        self._account_repo = account_repository

    async def login(
        self,
        identity: ProviderIdentity,
        current_account_id: UUID | None = None,
    ) -> Account:
        linked = await self._account_repo.find_by_identity(
            identity.provider,
            identity.username,
        )

        if linked is not None and current_account_id is None:
            account = linked
        elif linked is None and current_account_id is None:
            account = await self._register(identity)
        elif linked is not None:
            if linked.id != current_account_id:
                logger.warning(
                    "%s identity already linked to another account", identity.provider
                )
                raise IdentityConflictError(identity.provider)
            account = linked
        else:
            account = await self._current_account(current_account_id)

        if not account.is_active:
            raise CredentialError()

        await self._account_repo.link_identity(
            account_id=account.id,
            provider=identity.provider,
            username=identity.username,
            name=identity.name,
            refresh_token=identity.refresh_token,
        )
        account.record_login()
        await self._account_repo.save(account)
        return account

    async def _register(self, identity: ProviderIdentity) -> Account:
        if not identity.email:
            raise ValidationError(
                f"{identity.provider} did not share an email address. "
                "Sign up with email first, then connect this account.",
                field_errors={"identity": ["No email address was provided"]},
            )
        account = Account.create_oauth(
            name=identity.name.strip() or identity.username,
            email=identity.email,
            email_verified=True,
        )
        account = await self._account_repo.add(account)
        logger.info("Registered account %s via %s", account.id, identity.provider)
        return account

    async def _current_account(self, account_id: UUID | None) -> Account:
        account = None
        if account_id is not None:
            account = await self._account_repo.find_by_id(account_id)
        if account is None:
            raise InvalidSessionError()
        return account
