"""OAuth router: redirect to a provider and handle its callback."""

import logging

from fastapi import APIRouter, status
from fastapi.responses import RedirectResponse

from jelly.presentation.api.cookies import set_session_cookie
from jelly.presentation.api.dependencies import (
    DBSession,
    OAuthLoginServiceDep,
    OAuthStateManagerDep,
    OptionalSessionUser,
    SessionServiceDep,
    SettingsDep,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get(
    "/{provider}/login",
    status_code=status.HTTP_307_TEMPORARY_REDIRECT,
    summary="Start signing in with a provider",
    responses={404: {"description": "Provider not configured"}},
)
async def oauth_login(
    provider: str,
    states: OAuthStateManagerDep,
    session: DBSession,
    email: str | None = None,
) -> RedirectResponse:
    """Redirect to the provider's consent page.

    ``email`` is passed to providers that accept a login hint.
    """
    authorization = await states.begin(provider, login_hint=email or None)
    await session.commit()
    return RedirectResponse(
        authorization.authorize_url,
        status_code=status.HTTP_307_TEMPORARY_REDIRECT,
    )


@router.get(
    "/{provider}/callback",
    status_code=status.HTTP_303_SEE_OTHER,
    summary="Finish signing in with a provider",
    responses={
        400: {"description": "State mismatch or login cancelled"},
        409: {"description": "Identity or email belongs to another account"},
        502: {"description": "Provider unavailable"},
    },
)
async def oauth_callback(  # noqa: PLR0913
    provider: str,
    states: OAuthStateManagerDep,
    logins: OAuthLoginServiceDep,
    current_user: OptionalSessionUser,
    session: DBSession,
    session_service: SessionServiceDep,
    settings: SettingsDep,
    state: str | None = None,
    code: str | None = None,
) -> RedirectResponse:
    identity = await states.complete(provider, state, code)
    account = await logins.login(
        identity,
        current_account_id=current_user.id if current_user else None,
    )
    await session.commit()

    logger.info("Account %s signed in via %s", account.id, identity.provider)
    response = RedirectResponse(
        f"{settings.public_domain}/dashboard",
        status_code=status.HTTP_303_SEE_OTHER,
    )
    set_session_cookie(response, account, session_service, settings)
    return response
