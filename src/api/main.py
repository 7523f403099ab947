"""FastAPI application initialization and configuration module.

It handles:
- Application lifecycle management (startup/shutdown)
- Assembly of the request pipeline from its stage list
- Exception handler registration
- Route group mounting
- OpenTelemetry instrumentation
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from loguru import logger
from sqlalchemy.exc import SQLAlchemyError

from src.api.auth import UserLoader, load_user
from src.api.middleware.error_handler import register_exception_handlers
from src.api.pipeline import build_stages, install_stages
from src.api.routes import admin, auth, contact, default, health
from src.api.templating import create_templates
from src.api.utils.responses import ORJSONResponse
from src.core.config import Settings, get_settings
from src.core.logging import setup_logging
from src.core.observability import instrument_app, setup_tracing
from src.infrastructure.database.session import (
    check_database_connection,
    close_database,
)
from src.infrastructure.rate_limit import MemoryRateLimitStore, RateLimitStore
from src.infrastructure.sessions import (
    DatabaseSessionStore,
    MemorySessionStore,
    SessionStore,
)
from src.services.mail import Mailer, SmtpMailer


@asynccontextmanager
async def lifespan(app_instance: FastAPI) -> AsyncGenerator[None]:
    """Manage application lifespan events.

    A database that is unreachable at startup is logged and startup
    continues; pages that do not need the database keep working.
    """
    is_healthy, error_msg = await check_database_connection()

    if is_healthy:
        logger.info("Database connection successful")
        try:
            await app_instance.state.session_store.purge_expired()
        except SQLAlchemyError as e:
            logger.warning("Could not purge expired sessions: {}", e)
    else:
        logger.error("Database connection failed during startup: {}", error_msg)

    logger.info(
        "Application startup complete - {} v{}",
        app_instance.title,
        app_instance.version,
    )

    yield

    logger.info("Application shutdown initiated")
    await close_database()
    logger.info("Application shutdown complete")


def create_session_store(settings: Settings) -> SessionStore:
    """Build the session store selected by configuration."""
    ttl = settings.session_config.store_ttl_seconds
    if settings.session_config.backend == "memory":
        return MemorySessionStore(ttl)
    return DatabaseSessionStore(ttl)


def create_app(
    settings: Settings | None = None,
    *,
    mailer: Mailer | None = None,
    session_store: SessionStore | None = None,
    rate_limit_store: RateLimitStore | None = None,
    user_loader: UserLoader = load_user,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Optional settings instance. If not provided, will use get_settings().
        mailer: Contact mailer, defaults to SMTP delivery.
        session_store: Session storage, defaults to the configured backend.
        rate_limit_store: Admin rate limit counters, defaults to in-memory.
        user_loader: Resolves session user ids to principals.

    Returns:
        FastAPI: Configured FastAPI application instance.
    """
    if settings is None:
        settings = get_settings()

    setup_logging(settings)
    setup_tracing(settings)

    application = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        debug=settings.debug,
        docs_url=settings.docs_url,
        redoc_url=settings.redoc_url,
        openapi_url=settings.openapi_url,
        default_response_class=ORJSONResponse,
        lifespan=lifespan,
    )

    if mailer is None:
        mailer = SmtpMailer(settings.mail_config)
    if session_store is None:
        session_store = create_session_store(settings)
    if rate_limit_store is None:
        rate_limit_store = MemoryRateLimitStore()

    application.state.settings = settings
    application.state.mailer = mailer
    application.state.session_store = session_store
    application.state.rate_limit_store = rate_limit_store

    register_exception_handlers(application)

    install_stages(
        application,
        build_stages(
            settings,
            templates=create_templates(settings.templates_dir),
            session_store=application.state.session_store,
            rate_limit_store=application.state.rate_limit_store,
            user_loader=user_loader,
        ),
    )

    # Route order matters: the default group owns "/"
    application.include_router(default.router)
    application.include_router(contact.router)
    application.include_router(admin.router, prefix="/admin")
    application.include_router(auth.router, prefix="/auth")
    application.include_router(health.router)

    instrument_app(application, settings)

    return application


app = create_app()
