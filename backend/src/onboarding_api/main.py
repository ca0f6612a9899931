"""FastAPI application entry point."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from onboarding_api.config import Settings, get_settings
from onboarding_api.exceptions import OnboardingAPIError
from onboarding_api.middleware import AuditMiddleware, SecurityHeadersMiddleware
from onboarding_api.middleware.error_handler import (
    domain_exception_handler,
    generic_exception_handler,
    http_exception_handler,
    sqlalchemy_exception_handler,
    validation_exception_handler,
)
from onboarding_api.routers import (
    active_directory,
    audit,
    auth,
    exchange,
    exports,
    hires,
    hris_sync,
    microsoft_graph,
    settings,
    users,
    whatsapp,
)
from onboarding_api.security.rate_limit import limiter
from onboarding_api.tasks.scheduler import start_scheduler, stop_scheduler

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"

# Graph comes before the generic settings router so /settings/microsoft-graph/*
# is not captured by /settings/{concern}
ROUTERS = (
    (auth.router, "/auth", "Authentication"),
    (users.router, "/users", "Users"),
    (hires.router, "/hires", "Hires"),
    (microsoft_graph.router, "/settings/microsoft-graph", "Microsoft Graph"),
    (settings.router, "/settings", "Settings"),
    (active_directory.router, "/active-directory", "Active Directory"),
    (hris_sync.router, "/hris-sync", "HRIS Sync"),
    (exchange.router, "/exchange", "Exchange Online"),
    (whatsapp.router, "/whatsapp", "WhatsApp"),
    (exports.router, "/exports", "Exports"),
    (audit.router, "/audit", "Audit"),
)

RATE_LIMIT_RETRY_AFTER = 60


def configure_logging(config: Settings) -> None:
    """Root logging configuration from LOG_LEVEL."""
    logging.basicConfig(
        level=config.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Start the scheduler; release it, the Redis cache and the database pool on shutdown."""
    from onboarding_api.database import engine
    from onboarding_api.services.cache_service import get_cache_service

    logger.info("%s starting", app.title)
    scheduler_enabled = get_settings().scheduler_enabled
    if scheduler_enabled:
        await start_scheduler()
    yield
    if scheduler_enabled:
        await stop_scheduler()
    await (await get_cache_service()).close()
    await engine.dispose()
    logger.info("%s stopped", app.title)


async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """429 as problem details, with Retry-After."""
    logger.warning("Rate limit exceeded on %s: %s", request.url.path, exc.detail)
    return JSONResponse(
        status_code=429,
        content={
            "type": "https://datatracker.ietf.org/doc/html/rfc6585#section-4",
            "title": "Too many requests",
            "status": 429,
            "detail": "Rate limit exceeded",
            "instance": request.url.path,
        },
        headers={
            "Content-Type": "application/problem+json",
            "Retry-After": str(RATE_LIMIT_RETRY_AFTER),
        },
    )


def allowed_origins(config: Settings) -> list[str]:
    """Explicit http(s) origins from CORS_ORIGINS.

    Raises:
        ValueError: If a wildcard is configured, since credentials are allowed
    """
    if "*" in config.cors_origins_list:
        raise ValueError("CORS_ORIGINS cannot contain '*' while credentials are allowed")
    return [origin for origin in config.cors_origins_list if origin.startswith(("http://", "https://"))]


def create_app(config: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    config = config or get_settings()
    configure_logging(config)

    app = FastAPI(
        title=config.app_name,
        version="0.1.0",
        description="HR onboarding administration API",
        lifespan=lifespan,
        docs_url="/docs" if config.debug else None,
        redoc_url="/redoc" if config.debug else None,
    )

    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
    app.add_exception_handler(OnboardingAPIError, domain_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(SQLAlchemyError, sqlalchemy_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)

    # Last added runs first: CORS, then audit, then security headers
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(AuditMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins(config),
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", "X-Requested-With"],
    )

    for router, prefix, tag in ROUTERS:
        app.include_router(router, prefix=f"{API_PREFIX}{prefix}", tags=[tag])

    @app.get("/health")
    async def health_check() -> dict[str, str]:
        return {"status": "healthy"}

    return app


app = create_app()
