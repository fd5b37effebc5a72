"""Unit tests for SessionService."""

from datetime import timedelta
from uuid import uuid4

import jwt
import pytest

from jelly_identity.exceptions import InvalidSessionError
from jelly_identity.schemas import SessionUser
from jelly_identity.services import SessionService

SECRET = "unit-test-secret-key-that-is-long-enough-for-hs256"  # NOQA: S105


class TestSessionService:
    def setup_method(self):
        self.service = SessionService(secret_key=SECRET, expire_hours=2)
        self.user = SessionUser(id=uuid4(), name="Ada", is_admin=True)

    def test_round_trip(self):
        token = self.service.create_session(self.user)

        payload = self.service.read_session(token)

        assert payload.user == self.user
        assert payload.is_expired() is False
        assert payload.expires_at - payload.issued_at == timedelta(hours=2)

    def test_max_age_seconds(self):
        assert self.service.max_age_seconds == 7200

    def test_expired_session_rejected(self):
        token = self.service.create_session(self.user, expires_delta=timedelta(seconds=-1))

        with pytest.raises(InvalidSessionError, match="expired"):
            self.service.read_session(token)

    def test_tampered_session_rejected(self):
        token = self.service.create_session(self.user)

        with pytest.raises(InvalidSessionError):
            self.service.read_session(token[:-2] + "xx")

    def test_other_secret_rejected(self):
        other = SessionService(secret_key="another-secret-key-entirely-different-value")
        token = other.create_session(self.user)

        with pytest.raises(InvalidSessionError):
            self.service.read_session(token)

    def test_non_session_token_rejected(self):
        token = jwt.encode(
            {"sub": str(self.user.id), "type": "access", "iat": 0, "exp": 4102444800},
            SECRET,
            algorithm="HS256",
        )

        with pytest.raises(InvalidSessionError):
            self.service.read_session(token)

    def test_empty_secret_rejected(self):
        with pytest.raises(ValueError, match="secret"):
            SessionService(secret_key="")
