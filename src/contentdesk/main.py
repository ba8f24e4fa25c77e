"""FastAPI application factory."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from redis.exceptions import RedisError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from contentdesk.api import get_api_router
from contentdesk.config import settings
from contentdesk.core.auth import RequestIdMiddleware, SessionContextMiddleware, TenantGate
from contentdesk.core.cache import close_redis_pool
from contentdesk.core.constants import SESSION_HEADER
from contentdesk.core.database import async_session_factory
from contentdesk.core.errors import register_exception_handlers
from contentdesk.core.feed import ChangeFeed, create_change_feed
from contentdesk.core.jobs import close_arq_pool, init_arq_pool
from contentdesk.core.logging import RequestLoggingMiddleware, configure_logging
from contentdesk.integrations.captioning import CaptionGenerator
from contentdesk.integrations.scheduling import SchedulingClient
from contentdesk.modules.records.publisher import AutoPublisher
from contentdesk.modules.records.store import RecordStore
from contentdesk.modules.sessions.registry import SessionRegistry
from contentdesk.modules.tenants.services import TenantDirectory


configure_logging()

logger = structlog.get_logger()


def init_services(
    app: FastAPI,
    session_factory: async_sessionmaker[AsyncSession] | None = None,
    feed: ChangeFeed | None = None,
    scheduler: SchedulingClient | None = None,
    captioner: CaptionGenerator | None = None,
) -> SessionRegistry:
    """Build the shared store, collaborators and session registry.

    Everything lands on ``app.state``; arguments replace the defaults.
    """
    session_factory = session_factory or async_session_factory
    feed = feed or create_change_feed()
    scheduler = scheduler or SchedulingClient()
    captioner = captioner or CaptionGenerator()

    store = RecordStore(session_factory, feed)
    tenants = TenantDirectory(session_factory)
    registry = SessionRegistry(
        gate=TenantGate(session_factory),
        store=store,
        tenants=tenants,
        publisher=AutoPublisher(store, tenants, scheduler),
        captioner=captioner,
    )

    app.state.feed = feed
    app.state.store = store
    app.state.scheduler = scheduler
    app.state.sessions = registry
    return registry


async def close_services(app: FastAPI) -> None:
    """End every session and release the change feed."""
    registry: SessionRegistry | None = getattr(app.state, "sessions", None)
    if registry is not None:
        await registry.close_all()
    feed: ChangeFeed | None = getattr(app.state, "feed", None)
    if feed is not None:
        await feed.close()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler.

    Handles startup and shutdown events.
    """
    logger.info(
        "application_startup",
        app_name=settings.app_name,
        environment=settings.environment,
        change_feed=settings.change_feed_backend,
    )

    if not hasattr(app.state, "sessions"):
        init_services(app)
    app.state.sessions.start_sweeping()

    try:
        await init_arq_pool()
        logger.info("arq_pool_initialized")
    except (OSError, RedisError) as e:
        logger.warning("arq_pool_init_failed", error=str(e))

    yield

    logger.info("application_shutdown")

    await close_services(app)
    logger.info("sessions_released")

    await close_arq_pool()
    logger.info("arq_pool_closed")

    await close_redis_pool()
    logger.info("redis_pool_closed")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        Configured FastAPI application instance.
    """
    app = FastAPI(
        title=settings.app_name,
        description="Multi-client social content approval desk",
        version="0.1.0",
        debug=settings.debug,
        lifespan=lifespan,
        docs_url="/docs" if not settings.is_production else None,
        redoc_url="/redoc" if not settings.is_production else None,
        openapi_url="/openapi.json" if not settings.is_production else None,
    )

    cors_origins = settings.cors_origins
    if settings.is_development and not cors_origins:
        cors_origins = ["http://localhost:3000", "http://localhost:5173"]

    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "X-Request-ID", SESSION_HEADER],
    )

    # Middleware added last runs first
    app.add_middleware(SessionContextMiddleware)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIdMiddleware)

    register_exception_handlers(app)

    app.include_router(get_api_router())

    return app
