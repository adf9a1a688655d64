"""FastAPI application setup."""

import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ..app import Application
from .handlers import register_exception_handlers
from .middleware import WriteTrackingMiddleware
from .routes import items, telemetry


# Global application instance
_app: Application | None = None


def get_app() -> Application:
    """Get the global application instance."""
    global _app
    if not _app:
        _app = Application()
    return _app


def create_fastapi_app(application: Application | None = None) -> FastAPI:
    """Create and configure FastAPI application."""
    application = application or get_app()

    @asynccontextmanager
    async def lifespan(fastapi_app: FastAPI):
        """Manage application lifespan."""
        await application.start()
        yield
        await application.stop()

    fastapi_app = FastAPI(
        title="apitrail",
        description="Write-request tracking and error reporting API",
        version="0.1.0",
        lifespan=lifespan,
    )
    fastapi_app.state.application = application

    # Enable CORS
    origins = os.getenv("CORS_ORIGINS", "http://localhost:5173,http://localhost:3000")
    fastapi_app.add_middleware(
        CORSMiddleware,
        allow_origins=[origin.strip() for origin in origins.split(",") if origin.strip()],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    fastapi_app.add_middleware(WriteTrackingMiddleware)
    register_exception_handlers(fastapi_app)

    # Include routers
    fastapi_app.include_router(items.create_items_router(application))
    fastapi_app.include_router(telemetry.create_telemetry_router(application))

    return fastapi_app
