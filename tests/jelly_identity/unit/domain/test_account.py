"""Unit tests for the Account aggregate."""

import pytest

from jelly_identity.domain.account import Account, InvalidNameError


class TestAccountCreation:
    def test_create_is_unverified_and_active(self):
        account = Account.create("Ada Lovelace", "Ada@Example.com", "digest")

        assert account.email == "ada@example.com"
        assert account.is_active is True
        assert account.is_admin is False
        assert account.has_verified_email is False
        assert account.last_login is None
        assert account.has_password is True

    def test_create_oauth_has_no_password_and_records_login(self):
        account = Account.create_oauth("Octo Cat", "octo@example.com", email_verified=True)

        assert account.password_digest is None
        assert account.has_password is False
        assert account.has_verified_email is True
        assert account.last_login is not None

    def test_name_is_trimmed(self):
        account = Account.create("  Ada  ", "ada@example.com", "digest")

        assert account.name == "Ada"

    @pytest.mark.parametrize("name", ["", "   ", "x" * 256])
    def test_invalid_name_rejected(self, name):
        with pytest.raises(InvalidNameError):
            Account.create(name, "ada@example.com", "digest")


class TestAccountMutations:
    def test_mark_email_verified_touches_updated_at(self):
        account = Account.create("Ada", "ada@example.com", "digest")
        before = account.updated_at

        account.mark_email_verified()

        assert account.has_verified_email is True
        assert account.updated_at >= before

    def test_deactivate_and_activate(self):
        account = Account.create("Ada", "ada@example.com", "digest")

        account.deactivate()
        assert account.is_active is False

        account.activate()
        assert account.is_active is True

    def test_change_password_digest(self):
        account = Account.create("Ada", "ada@example.com", "old")

        account.change_password_digest("new")

        assert account.password_digest == "new"

    def test_user_inputs(self):
        account = Account.create("Ada Lovelace", "ada@example.com", "digest")

        assert account.user_inputs() == ["Ada Lovelace", "ada@example.com"]

    def test_equality_by_id(self):
        account = Account.create("Ada", "ada@example.com", "digest")
        same = Account.reconstitute(
            id=account.id,
            name="Other",
            email="other@example.com",
            password_digest=None,
            is_active=True,
            is_admin=False,
            has_verified_email=False,
            last_login=None,
            created_at=account.created_at,
            updated_at=account.updated_at,
        )

        assert account == same
        assert hash(account) == hash(same)
