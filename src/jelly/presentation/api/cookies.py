"""Session cookie helpers shared by the account and OAuth routers."""

from fastapi import Response

from jelly_config.settings import Settings
from jelly_identity.domain.account import Account
from jelly_identity.schemas import SessionUser
from jelly_identity.services import SessionService


def set_session_cookie(
    response: Response,
    account: Account,
    session_service: SessionService,
    settings: Settings,
) -> None:
    """Sign ``account`` in by setting the session cookie.

    The cookie is HttpOnly; Secure and SameSite come from settings.
    """
    token = session_service.create_session(
        SessionUser(id=account.id, name=account.name, is_admin=account.is_admin),
    )
    response.set_cookie(
        key=settings.session_cookie_name,
        value=token,
        httponly=True,
        secure=settings.api_cookie_secure,
        samesite=settings.api_cookie_samesite,
        max_age=session_service.max_age_seconds,
        path="/",
        domain=settings.session_cookie_domain,
    )


def clear_session_cookie(response: Response, settings: Settings) -> None:
    response.delete_cookie(
        key=settings.session_cookie_name,
        path="/",
        domain=settings.session_cookie_domain,
    )
