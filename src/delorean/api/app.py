"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from delorean.api.legacy import router as legacy_router
from delorean.api.schemas import AUDIO_ROUTE, UPLOADS_ROUTE
from delorean.api.tunnels import router as tunnels_router
from delorean.api.uploads import router as uploads_router
from delorean.app_logging import configure_logging
from delorean.config import parse_allowed_origins
from delorean.containers import AppContainer
from delorean.domain.errors import DeloreanError


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging()
    logger = logging.getLogger(__name__)
    settings = container.settings
    allowed_origins = parse_allowed_origins(settings.client_origin)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        logger.info(
            "Accepting client connections",
            extra={"origins": allowed_origins},
        )
        yield
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container
    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(DeloreanError)
    async def handle_domain_error(request: Request, exc: DeloreanError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error(
                "Request failed",
                extra={"path": request.url.path, "error": exc.message},
            )
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(settings.environment, exc, exc.message),
        )

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error", extra={"path": request.url.path})
        return JSONResponse(
            status_code=500,
            content=_error_body(settings.environment, exc, "Internal server error"),
        )

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    app.include_router(uploads_router)
    app.include_router(tunnels_router)
    app.include_router(legacy_router)
    app.mount(
        UPLOADS_ROUTE,
        StaticFiles(directory=settings.upload_dir, check_dir=False),
        name="uploads",
    )
    app.mount(
        AUDIO_ROUTE,
        StaticFiles(directory=settings.audio_dir, check_dir=False),
        name="audio",
    )
    return app


def _error_body(environment: str, exc: Exception, message: str) -> dict[str, str]:
    """Return an error payload with local debug info."""
    body = {"error": message}
    if environment == "local":
        body["debug"] = f"{type(exc).__name__}: {exc}".strip()
    return body
