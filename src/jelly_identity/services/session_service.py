"""Session cookie service.

Signs the signed-in user into an HS256 JWT stored in an HttpOnly cookie.
"""

from datetime import datetime, timedelta, timezone
from uuid import UUID

import jwt

from jelly_identity.exceptions import InvalidSessionError
from jelly_identity.schemas import SessionPayload, SessionUser

SESSION_TOKEN_TYPE = "session"


class SessionService:
    """Service for session cookie creation and verification.

    Examples
    --------
    >>> service = SessionService(secret_key="your-secret-key")
    >>> cookie = service.create_session(SessionUser(id=account_id, name="Ada"))
    >>> payload = service.read_session(cookie)
    >>> print(payload.user.name)
    """

    DEFAULT_EXPIRE_HOURS = 24 * 14
    ALGORITHM = "HS256"

    def __init__(
        self,
        secret_key: str,
        expire_hours: int = DEFAULT_EXPIRE_HOURS,
    ):
        """Initialize the session service.

        Parameters
        ----------
        secret_key
            Secret key for signing cookies. Must be kept secure.
        expire_hours
            Hours until a session expires (default 14 days)
        """
        if not secret_key:
            msg = "Session secret key cannot be empty"
            raise ValueError(msg)

        self._secret_key = secret_key
        self._expire = timedelta(hours=expire_hours)

    @property
    def max_age_seconds(self) -> int:
        return int(self._expire.total_seconds())

    def create_session(
        self,
        user: SessionUser,
        expires_delta: timedelta | None = None,
    ) -> str:
        """Create a signed session value for ``user``."""
        now = datetime.now(tz=timezone.utc)
        payload = {
            "sub": str(user.id),
            "name": user.name,
            "admin": user.is_admin,
            "type": SESSION_TOKEN_TYPE,
            "iat": now,
            "exp": now + (expires_delta or self._expire),
        }
        return jwt.encode(payload, self._secret_key, algorithm=self.ALGORITHM)

    def read_session(self, token: str) -> SessionPayload:
        """Verify and decode a session value.

        Raises
        ------
        InvalidSessionError
            If the value is tampered with, expired or malformed
        """
        try:
            payload = jwt.decode(
                token,
                self._secret_key,
                algorithms=[self.ALGORITHM],
                options={"require": ["exp", "iat", "sub"]},
            )
            if payload.get("type") != SESSION_TOKEN_TYPE:
                raise InvalidSessionError("Not a session token")

            return SessionPayload(
                user=SessionUser(
                    id=UUID(payload["sub"]),
                    name=str(payload.get("name", "")),
                    is_admin=bool(payload.get("admin", False)),
                ),
                issued_at=datetime.fromtimestamp(payload["iat"], tz=timezone.utc),
                expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
            )
        except jwt.ExpiredSignatureError as e:
            raise InvalidSessionError("Session has expired") from e
        except jwt.InvalidTokenError as e:
            raise InvalidSessionError() from e
        except (KeyError, ValueError) as e:
            raise InvalidSessionError() from e
