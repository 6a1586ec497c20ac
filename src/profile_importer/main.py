"""FastAPI application factory.

Creates the FastAPI app with lifespan management and exception handlers.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from profile_importer import __version__
from profile_importer.core.background import task_runner
from profile_importer.core.config import get_settings
from profile_importer.core.database import dispose_engine, init_engine
from profile_importer.core.logging import setup_logging


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    """Init the engine on startup; drain background imports and dispose on shutdown."""
    settings = get_settings()
    setup_logging(settings.log_level, log_dir=settings.log_dir)
    init_engine(settings.database_url, echo=False)

    yield

    # Let in-flight imports finish before the engine goes away
    await task_runner.wait_all()
    await dispose_engine()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        Configured FastAPI application instance.
    """
    settings = get_settings()

    app = FastAPI(
        title="Profile Importer",
        description="Bulk import of user profiles from CSV with duplicate detection and reports",
        version=__version__,
        lifespan=lifespan,
    )

    # FeedFormatError and UnicodeDecodeError are ValueErrors
    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError) -> JSONResponse:
        return JSONResponse(
            status_code=400,
            content={"detail": str(exc)},
        )

    from profile_importer.api.router import create_router

    app.include_router(create_router(settings))

    return app
