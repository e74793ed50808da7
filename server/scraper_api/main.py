"""Shujia scraper API - FastAPI application entry point."""

import logging
import time
from contextlib import asynccontextmanager
from typing import Optional

import httpx
import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import __version__
from .config import Settings, get_settings
from .context import ScraperContext
from .errors import HttpError, ProviderUnavailableError, ScraperError, UnsupportedOperationError
from .logging_config import configure_logging
from .routers import health_router, manga_router

logger = logging.getLogger(__name__)


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": message})


def install_error_handlers(app: FastAPI) -> None:
    """Translate service errors into generic JSON responses."""

    @app.exception_handler(StarletteHTTPException)
    async def http_exception(request: Request, exc: StarletteHTTPException):
        message = "Not found" if exc.status_code == 404 else str(exc.detail)
        return _error(exc.status_code, message)

    @app.exception_handler(ProviderUnavailableError)
    async def provider_unavailable(request: Request, exc: ProviderUnavailableError):
        return _error(404, str(exc))

    @app.exception_handler(UnsupportedOperationError)
    async def unsupported_operation(request: Request, exc: UnsupportedOperationError):
        return _error(400, str(exc))

    @app.exception_handler(HttpError)
    async def upstream_http_error(request: Request, exc: HttpError):
        if exc.is_not_found:
            return _error(404, "Not found")
        logger.error("Upstream failure on %s %s: %s (%s)", request.method, request.url.path, exc, exc.url)
        return _error(502, "Upstream service unavailable")

    @app.exception_handler(ScraperError)
    async def scraper_error(request: Request, exc: ScraperError):
        logger.error("Request %s %s failed: %s", request.method, request.url.path, exc)
        return _error(502, "Upstream service unavailable")


def create_app(settings: Optional[Settings] = None, client: Optional[httpx.AsyncClient] = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        context = ScraperContext.build(settings, client=client)
        app.state.context = context
        context.start()
        try:
            yield
        finally:
            await context.close()

    app = FastAPI(
        title="Shujia Scraper API",
        description="Cached, rate-limited access to manga catalogs",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.cors_origin],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000
        logger.info("%s %s -> %d (%.0fms)", request.method, request.url.path, response.status_code, elapsed_ms)
        return response

    install_error_handlers(app)

    app.include_router(health_router)
    app.include_router(manga_router)

    return app


def run():
    """Run the server."""
    settings = get_settings()
    configure_logging(settings.log_level)
    logger.info("Shujia scraper API running at http://localhost:%d", settings.port)
    uvicorn.run(
        "scraper_api.main:create_app",
        factory=True,
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )


if __name__ == "__main__":
    run()
