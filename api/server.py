"""FastAPI server for the ERP Sync Portal.

Main entry point for the API server.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from api.middleware import UNHANDLED_ERROR_MESSAGE, BearerAuthMiddleware, error_response
from api.routes import health, status, sync
from core.config import Settings, load_settings
from core.errors import PortalError
from core.observability.logging import configure_logging, get_logger
from core.queue.factory import create_queue_store
from core.queue.status import StatusService
from core.queue.store import QueueStore
from core.queue.submission import SubmissionService

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Open the queue store and build the services around it."""
    settings: Settings = app.state.settings
    store: QueueStore = app.state.store

    # Startup
    await store.open()
    app.state.submission_service = SubmissionService(store, settings.store_timeout_seconds)
    app.state.status_service = StatusService(store, settings.store_timeout_seconds)
    if settings.uses_default_token:
        logger.warning("PORTAL_API_TOKEN is not set; using the default token")
    logger.info(f"Sync portal starting up (queue: {store.path})")

    try:
        yield
    finally:
        # Shutdown
        await store.close()
        logger.info("Sync portal shut down")


async def portal_error_handler(request: Request, exc: PortalError) -> JSONResponse:
    return error_response(exc)


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Last resort for errors raised outside BearerAuthMiddleware."""
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse({"error": UNHANDLED_ERROR_MESSAGE}, status_code=500)


def create_app(settings: Optional[Settings] = None, store: Optional[QueueStore] = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Runtime settings (defaults to the environment)
        store: Queue store to use instead of the one DATABASE_URL names
    """
    settings = settings or load_settings()
    settings.validate()
    configure_logging(settings.log_level, json_format=settings.log_json, force=True)

    app = FastAPI(
        title="ERP Sync Portal",
        description="Accepts ERP sync requests onto a shared work queue and reports their status",
        version="1.0.0",
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )
    app.state.settings = settings
    app.state.store = store or create_queue_store(settings)

    app.add_middleware(BearerAuthMiddleware, token=settings.api_token)

    app.add_exception_handler(PortalError, portal_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    app.include_router(health.router, tags=["Health"])
    app.include_router(sync.router, tags=["Sync"])
    app.include_router(status.router, tags=["Status"])

    return app


def main():
    """Run the portal with uvicorn on the configured host and port."""
    import uvicorn

    settings = load_settings()
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
