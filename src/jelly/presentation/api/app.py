"""FastAPI application factory.

Each app owns its engine and session maker on ``app.state``. Routes live
under /api/v1; /health stays unversioned.

Run with ``uvicorn --factory jelly.presentation.api.app:create_app``.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import APIRouter, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

from jelly.infrastructure.persistence.sqlalchemy.init_db import (
    create_tables,
    describe_database_url,
)
from jelly.presentation.api.config import API_V1_PREFIX, API_VERSION
from jelly.presentation.api.exception_handlers import setup_exception_handlers
from jelly.presentation.api.routers import accounts_router, oauth_router
from jelly_config import configure_logging
from jelly_config.settings import Settings, get_settings

logger = logging.getLogger(__name__)

OPENAPI_TAGS = [
    {
        "name": "Accounts",
        "description": """Email and password accounts.

**Flows:**
- Register, then verify the email through the emailed link
- Sign in and out (HttpOnly session cookie)
- Reset a forgotten password through an emailed link

Emails are sent by the background worker, never inline.
""",
    },
    {
        "name": "OAuth",
        "description": """Sign in with an external provider.

Supported providers: Google, GitHub, Twitter, Facebook (when configured).
A provider identity signs in the account it is linked to, creates an
account when unknown, or is linked to the signed-in account.
""",
    },
    {
        "name": "Health",
        "description": "Service health monitoring endpoints.",
    },
]


def create_engine(settings: Settings) -> AsyncEngine:
    """Create the shared async engine for ``settings.database_url``."""
    url = settings.database_url
    if url.startswith("sqlite"):
        # aiosqlite connections are bound to the loop that opened them
        return create_async_engine(url, echo=False, poolclass=NullPool)
    return create_async_engine(url, echo=False, pool_pre_ping=True)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    settings: Settings = app.state.settings
    engine: AsyncEngine = app.state.engine

    logger.info("Starting %s API v%s...", settings.app_name, API_VERSION)
    logger.info("Database: %s", describe_database_url(settings.database_url))
    try:
        await create_tables(engine)
    except OSError:
        logger.critical("Could not connect to the database.")
        raise SystemExit(1) from None
    yield

    logger.info("Shutting down %s API...", settings.app_name)
    await engine.dispose()
    logger.info("Database connections closed")


def create_v1_router() -> APIRouter:
    v1_router = APIRouter()
    v1_router.include_router(accounts_router, prefix="/accounts", tags=["Accounts"])
    v1_router.include_router(oauth_router, prefix="/oauth", tags=["OAuth"])
    return v1_router


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Parameters
    ----------
    settings
        Optional settings override for testing.

    Returns
    -------
    Configured FastAPI application instance.
    """
    if settings is None:
        settings = get_settings()

    configure_logging(settings.log_level)

    app = FastAPI(
        title=f"{settings.app_name} API",
        description="Accounts, sign-in and email flows.",
        version=API_VERSION,
        docs_url="/docs" if settings.api_debug else None,
        redoc_url="/redoc" if settings.api_debug else None,
        openapi_url="/openapi.json" if settings.api_debug else None,
        lifespan=lifespan,
        openapi_tags=OPENAPI_TAGS,
    )

    engine = create_engine(settings)
    app.state.settings = settings
    app.state.engine = engine
    app.state.session_maker = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    setup_exception_handlers(app)

    app.include_router(create_v1_router(), prefix=API_V1_PREFIX)

    @app.get("/health", tags=["Health"])
    async def health_check() -> dict:
        return {
            "status": "healthy",
            "version": API_VERSION,
            "api_versions": ["v1"],
        }

    return app
