"""Main entry point for the threadhub application."""

from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware

from threadhub.api.v1 import auth_router, posts_router, profiles_router
from threadhub.core.context import AppContext, build_context
from threadhub.core.errors import register_exception_handlers
from threadhub.core.logging import configure_logging
from threadhub.core.settings import get_settings
from threadhub.db.session import create_tables

logger = logging.getLogger(__name__)


def create_app(context: AppContext | None = None) -> FastAPI:
    """Build the FastAPI application around ``context``.

    Without an explicit context one is built from environment settings.
    """
    context = context or build_context(get_settings())
    settings = context.settings
    configure_logging(settings.log_level)

    app = FastAPI(
        title="threadhub API",
        description="Threaded social feed: accounts, follows, posts, replies and reposts",
        version=settings.app_version,
        debug=settings.debug,
    )
    app.state.context = context

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
    )

    # Add GZip middleware for compression
    app.add_middleware(GZipMiddleware)

    register_exception_handlers(app)

    # Include API routers
    app.include_router(auth_router, prefix="/api/v1")
    app.include_router(profiles_router, prefix="/api/v1")
    app.include_router(posts_router, prefix="/api/v1")

    @app.on_event("startup")
    async def on_startup() -> None:
        if settings.auto_create_tables:
            create_tables(context.engine)
        logger.info("%s %s started (%s)", settings.app_name, settings.app_version, settings.environment)

    @app.on_event("shutdown")
    async def on_shutdown() -> None:
        context.close()

    @app.get("/health")
    async def health_check() -> dict[str, str]:
        """Health check endpoint to verify the service is running."""
        return {"status": "ok"}

    @app.get("/")
    async def root() -> dict[str, str]:
        """Root endpoint with basic information about the API."""
        return {
            "name": settings.app_name,
            "version": settings.app_version,
            "docs": "/docs",
            "redoc": "/redoc",
        }

    return app


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("threadhub.main:create_app", factory=True, host="0.0.0.0", port=8000)
