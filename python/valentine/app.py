"""FastAPI application creation and configuration.

This module creates and configures the FastAPI application instance.
It registers exception handlers, CORS and request-id middleware, and routes.
Logging is configured from LOG_FORMAT and LOG_LEVEL when the app is created.

Middleware Ordering (Critical):
- Middleware runs in reverse order of registration
- RequestIDMiddleware is added LAST so it runs FIRST (outermost)

Accept-flow Lifecycle:
- A shared httpx.AsyncClient is created at startup for email delivery
- The storage client, rasterizer and notification service are wired into
  AcceptFlowDependencies and an AcceptFlowRegistry stored in app.state
- On shutdown, running accept pipelines are drained before the HTTP client
  and the browser are closed
"""

from contextlib import asynccontextmanager
from functools import partial

import httpx
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.orm import Session, sessionmaker
from starlette.exceptions import HTTPException as StarletteHTTPException

from valentine.api.routes import create_api_router
from valentine.config import get_settings
from valentine.db.session import get_session_factory
from valentine.errors import ApiError
from valentine.logging import configure_logging, get_logger
from valentine.middleware.request_id import RequestIDMiddleware
from valentine.responses import (
    api_error_handler,
    http_exception_handler,
    reject_malformed_json,
    unhandled_exception_handler,
    validation_exception_handler,
)
from valentine.services.accept_flow import (
    AcceptFlowDependencies,
    AcceptFlowRegistry,
    flow_for_page_view,
)
from valentine.services.acceptance import AcceptanceRecorder
from valentine.services.celebration import ConfettiCelebration
from valentine.services.notifications import NotificationService, ResendEmailClient
from valentine.services.rasterize import PlaywrightRasterizer, Rasterizer
from valentine.storage import StorageClientBase, get_storage_client

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifecycle resources."""
    settings = get_settings()
    overrides = app.state.overrides

    session_factory = overrides.get("session_factory") or get_session_factory()
    app.state.session_factory = session_factory

    app.state.httpx_client = httpx.AsyncClient(
        timeout=httpx.Timeout(30.0, connect=10.0),
        limits=httpx.Limits(max_connections=20, max_keepalive_connections=5),
    )

    email_client = overrides.get("email_client")
    if email_client is None and settings.resend_api_key:
        email_client = ResendEmailClient(
            app.state.httpx_client, settings.resend_api_key, settings.notify_from_address
        )
    app.state.notification_service = NotificationService(session_factory, email_client)

    storage = overrides.get("storage_client") or get_storage_client()

    rasterizer = overrides.get("rasterizer")
    owns_rasterizer = False
    if rasterizer is None and settings.enable_screenshots:
        rasterizer = PlaywrightRasterizer()
        owns_rasterizer = True

    deps = AcceptFlowDependencies(
        recorder=AcceptanceRecorder(session_factory),
        notifier=app.state.notification_service,
        storage=storage,
        rasterizer=rasterizer,
        celebration_factory=partial(ConfettiCelebration, settings.celebration_duration_s),
        settle_delay_s=settings.accept_settle_delay_s,
        capture_scale=settings.capture_scale,
    )
    app.state.accept_flows = AcceptFlowRegistry(
        partial(flow_for_page_view, deps=deps), max_size=settings.accept_flow_cache_size
    )

    logger.info(
        "accept_flow_initialized",
        storage=type(storage).__name__,
        rasterizer=type(rasterizer).__name__ if rasterizer else None,
        email_enabled=email_client is not None,
    )

    yield

    # Shutdown: finish in-flight pipelines before closing their clients
    await app.state.accept_flows.drain()
    await app.state.httpx_client.aclose()
    if owns_rasterizer:
        await rasterizer.close()  # type: ignore[union-attr]
    logger.info("accept_flow_shutdown")


def create_app(
    *,
    session_factory: sessionmaker[Session] | None = None,
    storage_client: StorageClientBase | None = None,
    rasterizer: Rasterizer | None = None,
    email_client: ResendEmailClient | None = None,
    log_requests: bool = True,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        session_factory: Session factory override (tests).
        storage_client: Storage client override; default from settings.
        rasterizer: Rasterizer override; default PlaywrightRasterizer when
            ENABLE_SCREENSHOTS is true.
        email_client: Email client override; default Resend when
            RESEND_API_KEY is set.
        log_requests: Whether to log access entries for each request.

    Returns:
        Configured FastAPI application instance.
    """
    settings = get_settings()
    configure_logging(json_format=settings.log_format == "json", level=settings.log_level)

    app = FastAPI(
        title="Valentine API",
        description="Backend API for shareable Valentine pages",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.state.overrides = {
        "session_factory": session_factory,
        "storage_client": storage_client,
        "rasterizer": rasterizer,
        "email_client": email_client,
    }

    app.add_exception_handler(ApiError, api_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    app.middleware("http")(reject_malformed_json)

    app.include_router(create_api_router())

    cors_origins = settings.cors_origin_list
    if cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=cors_origins,
            allow_methods=["GET", "POST", "OPTIONS"],
            allow_headers=["content-type", "x-request-id"],
            expose_headers=["x-request-id"],
        )

    # Added last so it runs first
    app.add_middleware(RequestIDMiddleware, log_requests=log_requests)

    return app
