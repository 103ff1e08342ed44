"""Developer portal backend FastAPI application entry point."""

from __future__ import annotations

import uuid
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from devportal import __version__
from devportal.api.dependencies import get_gateway
from devportal.config import get_settings
from devportal.errors import PortalError
from devportal.services.catalog import NoopCatalogRefresher, init_catalog_sync
from devportal.services.http import http_client_manager

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    # Startup
    logger.info("devportal.startup", version=__version__)
    settings = get_settings()
    gateway = get_gateway()

    await http_client_manager.startup()

    refresher, scheduler = await init_catalog_sync(
        settings, gateway, http_client_manager.client
    )
    app.state.catalog_refresher = refresher

    yield

    # Shutdown
    logger.info("devportal.shutdown")

    if scheduler is not None:
        await scheduler.stop()
    app.state.catalog_refresher = NoopCatalogRefresher()

    await gateway.close()
    await http_client_manager.shutdown()


def _format_validation_error(exc: RequestValidationError) -> str:
    parts = []
    for error in exc.errors():
        # Drop the leading "body"/"query"/"path" segment
        loc = ".".join(str(p) for p in error.get("loc", ())[1:])
        parts.append(f"{loc}: {error.get('msg')}" if loc else str(error.get("msg")))
    return "invalid request: " + "; ".join(parts)


def create_app() -> FastAPI:
    """Create and configure FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Kuadrant Developer Portal",
        description="API product publishing and API key access management",
        version=__version__,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.server.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Request ID middleware
    @app.middleware("http")
    async def request_id_middleware(request: Request, call_next):
        """Add request ID to all requests."""
        request_id = request.headers.get("X-Request-Id") or str(uuid.uuid4())
        request.state.request_id = request_id
        response = await call_next(request)
        response.headers["X-Request-Id"] = request_id
        return response

    # Error handlers
    @app.exception_handler(PortalError)
    async def portal_error_handler(request: Request, exc: PortalError):
        """Map portal errors to their status with the uniform body."""
        request_id = getattr(request.state, "request_id", None)
        log = logger.warning if exc.status_code >= 500 else logger.info
        log(
            "request.failed",
            request_id=request_id,
            path=request.url.path,
            code=exc.code,
            status=exc.status_code,
            error=exc.message,
        )
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=400,
            content={"error": _format_validation_error(exc)},
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        request_id = getattr(request.state, "request_id", None)
        logger.exception(
            "request.unhandled_error",
            request_id=request_id,
            path=request.url.path,
            error=str(exc),
        )
        return JSONResponse(status_code=500, content={"error": "internal server error"})

    # Health check
    @app.get("/health")
    async def health() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "ok"}

    from devportal.api.routes import router as api_router

    app.include_router(api_router)

    return app


# Create default app instance
app = create_app()


def run() -> None:
    """Console entry point."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "devportal.main:app",
        host=settings.server.host,
        port=settings.server.port,
    )


if __name__ == "__main__":
    run()
