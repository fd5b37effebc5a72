"""Account router: registration, login, email verification and password reset."""

import logging

from fastapi import APIRouter, Response, status

from jelly.presentation.api.cookies import clear_session_cookie, set_session_cookie
from jelly.presentation.api.dependencies import (
    AccountServiceDep,
    CurrentSessionUser,
    DBSession,
    RepoFactory,
    SessionServiceDep,
    SettingsDep,
)
from jelly.presentation.api.schemas import (
    AcceptedResponse,
    AccountResponse,
    EmailRequest,
    LoginRequest,
    RegisterRequest,
    ResetPasswordRequest,
    ResetTokenResponse,
)
from jelly_identity.application.forms import (
    EmailForm,
    LoginForm,
    NewAccountForm,
    ResetPasswordForm,
)
from jelly_identity.exceptions import InvalidSessionError

logger = logging.getLogger(__name__)

router = APIRouter()

REGISTERED_DETAIL = "Check your email to verify your account"
VERIFICATION_SENT_DETAIL = "If an unverified account exists, a new link is on its way"
RESET_SENT_DETAIL = "If an account exists for this email, a reset link is on its way"


@router.post(
    "/register",
    status_code=status.HTTP_202_ACCEPTED,
    summary="Register a new account",
    responses={
        202: {"description": "Verification email queued"},
        400: {"description": "Invalid input or weak password"},
    },
)
async def register(
    request: RegisterRequest,
    accounts: AccountServiceDep,
    session: DBSession,
) -> AcceptedResponse:
    """
    Register with name, email and password.

    The response is the same whether or not the email was already
    registered; the existing owner gets an email instead.
    """
    await accounts.register(
        NewAccountForm(name=request.name, email=request.email, password=request.password),
    )
    await session.commit()
    return AcceptedResponse(detail=REGISTERED_DETAIL)


@router.post(
    "/login",
    summary="Sign in with email and password",
    responses={
        200: {"description": "Signed in, session cookie set"},
        401: {"description": "Invalid email or password"},
    },
)
async def login(
    request: LoginRequest,
    response: Response,
    accounts: AccountServiceDep,
    session: DBSession,
    session_service: SessionServiceDep,
    settings: SettingsDep,
) -> AccountResponse:
    account = await accounts.authenticate(
        LoginForm(email=request.email, password=request.password),
    )
    await session.commit()

    set_session_cookie(response, account, session_service, settings)
    return AccountResponse.model_validate(account)


@router.post("/logout", summary="Sign out")
async def logout(response: Response, settings: SettingsDep) -> AcceptedResponse:
    clear_session_cookie(response, settings)
    return AcceptedResponse(detail="Signed out")


@router.get(
    "/me",
    summary="Get the signed-in account",
    responses={401: {"description": "Not signed in"}},
)
async def me(user: CurrentSessionUser, factory: RepoFactory) -> AccountResponse:
    account = await factory.account_repository().find_by_id(user.id)
    if account is None or not account.is_active:
        raise InvalidSessionError()
    return AccountResponse.model_validate(account)


@router.post(
    "/verify/resend",
    status_code=status.HTTP_202_ACCEPTED,
    summary="Send a new verification email",
)
async def resend_verification(
    request: EmailRequest,
    accounts: AccountServiceDep,
    session: DBSession,
) -> AcceptedResponse:
    await accounts.request_verification(EmailForm(email=request.email))
    await session.commit()
    return AcceptedResponse(detail=VERIFICATION_SENT_DETAIL)


@router.post(
    "/verify/{token}",
    summary="Verify an email address",
    responses={
        200: {"description": "Email verified, session cookie set"},
        400: {"description": "Link unknown, expired or already used"},
    },
)
async def verify(
    token: str,
    response: Response,
    accounts: AccountServiceDep,
    session: DBSession,
    session_service: SessionServiceDep,
    settings: SettingsDep,
) -> AccountResponse:
    account = await accounts.verify_email(token)
    await session.commit()

    set_session_cookie(response, account, session_service, settings)
    return AccountResponse.model_validate(account)


@router.post(
    "/reset",
    status_code=status.HTTP_202_ACCEPTED,
    summary="Request a password reset email",
)
async def request_reset(
    request: EmailRequest,
    accounts: AccountServiceDep,
    session: DBSession,
) -> AcceptedResponse:
    await accounts.request_password_reset(EmailForm(email=request.email))
    await session.commit()
    return AcceptedResponse(detail=RESET_SENT_DETAIL)


@router.get(
    "/reset/{token}",
    summary="Check a password reset link",
    responses={400: {"description": "Link unknown, expired or already used"}},
)
async def check_reset(token: str, accounts: AccountServiceDep) -> ResetTokenResponse:
    account = await accounts.check_reset_token(token)
    return ResetTokenResponse(valid=True, name=account.name)


@router.post(
    "/reset/{token}",
    summary="Choose a new password",
    responses={
        200: {"description": "Password changed, session cookie set"},
        400: {"description": "Invalid password or link"},
    },
)
async def reset_password(  # noqa: PLR0913
    token: str,
    request: ResetPasswordRequest,
    response: Response,
    accounts: AccountServiceDep,
    session: DBSession,
    session_service: SessionServiceDep,
    settings: SettingsDep,
) -> AccountResponse:
    account = await accounts.reset_password(
        token,
        ResetPasswordForm(
            password=request.password,
            password_confirm=request.password_confirm,
        ),
    )
    await session.commit()

    logger.info("Password reset via link for account %s", account.id)
    set_session_cookie(response, account, session_service, settings)
    return AccountResponse.model_validate(account)
