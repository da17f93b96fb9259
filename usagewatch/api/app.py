"""FastAPI application entry point."""

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_client import make_asgi_app

from usagewatch.api.routes import notifications, usage
from usagewatch.core.config import get_settings
from usagewatch.core.errors import MissingConfigurationError, UsageFetchError
from usagewatch.core.logging import get_logger, setup_logging
from usagewatch.feed.client import UsageFeedClient
from usagewatch.notification.dispatcher import WebhookDispatcher
from usagewatch.orchestrator.poller import PollingOrchestrator

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan manager."""
    settings = get_settings()

    # Startup
    setup_logging(settings)
    logger.info("Starting application", app_name=settings.app_name, version=settings.app_version)

    feed_client = UsageFeedClient(settings)
    dispatcher = WebhookDispatcher(settings=settings)
    orchestrator = PollingOrchestrator(feed_client, dispatcher, settings=settings)

    app.state.feed_client = feed_client
    app.state.orchestrator = orchestrator

    if not dispatcher.enabled:
        logger.warning("Webhook URL not configured, notifications will not be delivered")
    if orchestrator.feature_id:
        await orchestrator.start()
    else:
        logger.info("No feature configured, poller idle until a feature is selected")

    yield

    # Shutdown
    logger.info("Shutting down application")
    await orchestrator.stop()
    await feed_client.close()
    await dispatcher.close()
    logger.info("HTTP clients closed")


def create_app() -> FastAPI:
    """Create and configure FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Feature usage monitoring with threshold webhooks",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include routers
    app.include_router(usage.router, prefix="/api/v1")
    app.include_router(notifications.router, prefix="/api/v1")
    app.mount("/metrics", make_asgi_app())

    # Error response handlers
    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
        detail = exc.detail
        content = {
            "code": exc.status_code,
            "message": detail if isinstance(detail, str) else "HTTP error",
            "data": None if isinstance(detail, str) else detail,
        }
        return JSONResponse(status_code=exc.status_code, content=content)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request,
        exc: RequestValidationError,
    ) -> JSONResponse:
        return JSONResponse(
            status_code=422,
            content={
                "code": 422,
                "message": "Validation error",
                "data": exc.errors(),
            },
        )

    @app.exception_handler(MissingConfigurationError)
    async def missing_configuration_handler(
        request: Request,
        exc: MissingConfigurationError,
    ) -> JSONResponse:
        return JSONResponse(
            status_code=400,
            content={"code": 400, "message": str(exc), "data": {"setting": exc.setting}},
        )

    @app.exception_handler(UsageFetchError)
    async def usage_fetch_error_handler(request: Request, exc: UsageFetchError) -> JSONResponse:
        logger.warning("Usage feed error", path=request.url.path, error=str(exc))
        return JSONResponse(
            status_code=502,
            content={
                "code": 502,
                "message": "Failed to fetch feature usage data",
                "data": {"detail": str(exc), "status_code": exc.status_code},
            },
        )

    # Global exception handler
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error(
            "Unhandled exception",
            exc_info=exc,
            path=request.url.path,
            method=request.method,
        )
        return JSONResponse(
            status_code=500,
            content={
                "code": 500,
                "message": "Internal server error",
                "data": str(exc) if settings.debug else None,
            },
        )

    # Health check endpoint
    @app.get("/health")
    async def health_check() -> dict:
        """Health check endpoint."""
        return {"status": "ok", "version": settings.app_version}

    return app


# Application instance for uvicorn
app = create_app()
