"""FastAPI dependency injection for the jelly API.

Provides dependencies for:
- Database sessions
- The signed-in user from the session cookie
- Service instances
"""

import logging
from datetime import timedelta
from typing import Annotated, AsyncGenerator

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from jelly.infrastructure.persistence.sqlalchemy.repositories import (
    SQLAlchemyRepositoryFactory,
)
from jelly.presentation.api.config import get_api_settings, oauth_redirect_base
from jelly_config.settings import Settings
from jelly_identity.application.services import (
    AccountService,
    OAuthLoginService,
    OAuthStateManager,
)
from jelly_identity.exceptions import InvalidSessionError
from jelly_identity.infrastructure.oauth import (
    OAuthProviderClient,
    OAuthProviderRegistry,
)
from jelly_identity.schemas import SessionUser
from jelly_identity.services import (
    PasswordHashingService,
    PasswordPolicy,
    PasswordStrengthChecker,
    SessionService,
)

logger = logging.getLogger(__name__)

SettingsDep = Annotated[Settings, Depends(get_api_settings)]


# -----------------------------------------------------------------------------
# Database Session
# -----------------------------------------------------------------------------


def get_session_maker(request: Request) -> async_sessionmaker[AsyncSession]:
    """Session maker bound to the engine created with the app."""
    return request.app.state.session_maker


async def get_db_session(
    session_maker: Annotated[async_sessionmaker[AsyncSession], Depends(get_session_maker)],
) -> AsyncGenerator[AsyncSession, None]:
    """
    Database session dependency.

    One session per request. Routers commit on success; anything left
    uncommitted, including after an error, is rolled back on close.

    Yields
    ------
    AsyncSession for database operations
    """
    async with session_maker() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


# Type alias for injected session
DBSession = Annotated[AsyncSession, Depends(get_db_session)]


def get_repository_factory(session: DBSession) -> SQLAlchemyRepositoryFactory:
    return SQLAlchemyRepositoryFactory(session)


RepoFactory = Annotated[SQLAlchemyRepositoryFactory, Depends(get_repository_factory)]


# -----------------------------------------------------------------------------
# Identity Services
# -----------------------------------------------------------------------------


def get_password_service(settings: SettingsDep) -> PasswordHashingService:
    """Get password hashing service."""
    return PasswordHashingService(iterations=settings.password_hash_iterations)


def get_strength_checker(settings: SettingsDep) -> PasswordStrengthChecker:
    return PasswordStrengthChecker(PasswordPolicy.from_settings(settings))


def get_session_service(settings: SettingsDep) -> SessionService:
    """Get session cookie service configured with API settings."""
    return SessionService(
        secret_key=settings.secret_key.get_secret_value(),
        expire_hours=settings.session_expire_hours,
    )


SessionServiceDep = Annotated[SessionService, Depends(get_session_service)]


def get_account_service(
    factory: RepoFactory,
    password_service: Annotated[PasswordHashingService, Depends(get_password_service)],
    strength_checker: Annotated[PasswordStrengthChecker, Depends(get_strength_checker)],
) -> AccountService:
    """
    Get account service with all dependencies.

    This service orchestrates registration, login, verification and reset.
    """
    return AccountService(
        account_repository=factory.account_repository(),
        token_service=factory.token_service(),
        job_queue=factory.job_queue(),
        password_service=password_service,
        strength_checker=strength_checker,
    )


AccountServiceDep = Annotated[AccountService, Depends(get_account_service)]


def get_oauth_client(settings: SettingsDep) -> OAuthProviderClient:
    return OAuthProviderClient(timeout=settings.oauth_http_timeout)


def get_oauth_state_manager(
    factory: RepoFactory,
    settings: SettingsDep,
    client: Annotated[OAuthProviderClient, Depends(get_oauth_client)],
) -> OAuthStateManager:
    return OAuthStateManager(
        state_repository=factory.oauth_state_repository(),
        providers=OAuthProviderRegistry.from_settings(settings),
        client=client,
        redirect_base_url=oauth_redirect_base(settings),
        state_ttl=timedelta(minutes=settings.oauth_state_ttl_minutes),
    )


OAuthStateManagerDep = Annotated[OAuthStateManager, Depends(get_oauth_state_manager)]


def get_oauth_login_service(factory: RepoFactory) -> OAuthLoginService:
    return OAuthLoginService(factory.account_repository())


OAuthLoginServiceDep = Annotated[OAuthLoginService, Depends(get_oauth_login_service)]


# -----------------------------------------------------------------------------
# Current Session
# -----------------------------------------------------------------------------


def get_session_user_optional(
    request: Request,
    settings: SettingsDep,
    session_service: SessionServiceDep,
) -> SessionUser | None:
    """
    Optional authentication dependency.

    Returns the signed-in user if a valid session cookie is present, None
    otherwise. Tampered or expired cookies count as signed out.
    """
    token = request.cookies.get(settings.session_cookie_name)
    if not token:
        return None

    try:
        return session_service.read_session(token).user
    except InvalidSessionError as e:
        logger.info("Ignoring invalid session cookie: %s", e)
        return None


OptionalSessionUser = Annotated[SessionUser | None, Depends(get_session_user_optional)]


def get_session_user(user: OptionalSessionUser) -> SessionUser:
    """
    Require a signed-in user.

    Raises
    ------
    InvalidSessionError
        401 if the session cookie is missing, invalid or expired
    """
    if user is None:
        raise InvalidSessionError()
    return user


CurrentSessionUser = Annotated[SessionUser, Depends(get_session_user)]
