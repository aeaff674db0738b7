"""FastAPI application factory."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles

from domugrauds.config import Settings, configure_structlog, get_settings
from domugrauds.dependencies import Services, build_services
from domugrauds.error_handlers import register_exception_handlers
from domugrauds.middleware.correlation_id import CorrelationIdMiddleware
from domugrauds.middleware.logging import LoggingMiddleware
from domugrauds.middleware.rate_limit import RateLimitMiddleware
from domugrauds.routers import (
    admin,
    auth,
    groups,
    health,
    notifications,
    realtime,
    threads,
    topics,
    uploads,
    users,
)

logger = structlog.get_logger(__name__)


def create_app(settings: Settings | None = None, services: Services | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = settings or get_settings()
    configure_structlog(settings)
    services = services or build_services(settings)

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        logger.info("app_started", environment=settings.app.environment)
        try:
            yield
        finally:
            await services.database.dispose()
            await services.redis.aclose()
            logger.info("app_stopped")

    app = FastAPI(title=settings.app.service, lifespan=lifespan)
    app.state.settings = settings
    app.state.services = services
    register_exception_handlers(app, environment=settings.app.environment)

    if settings.rate_limit.enabled:
        app.add_middleware(
            RateLimitMiddleware,
            redis_client=services.redis,
            default_requests_per_minute=settings.rate_limit.default_requests_per_minute,
            login_requests_per_minute=settings.rate_limit.login_requests_per_minute,
            register_requests_per_minute=settings.rate_limit.register_requests_per_minute,
        )
    app.add_middleware(LoggingMiddleware)
    app.add_middleware(CorrelationIdMiddleware)

    app.include_router(auth.router)
    app.include_router(users.router)
    app.include_router(threads.router)
    app.include_router(notifications.router)
    app.include_router(topics.router)
    app.include_router(groups.router)
    app.include_router(admin.router)
    app.include_router(uploads.router)
    app.include_router(realtime.router)
    app.include_router(health.router)
    app.mount(
        "/uploads",
        StaticFiles(directory=settings.uploads.directory, check_dir=False),
        name="uploads",
    )
    return app
