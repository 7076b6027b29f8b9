"""
Main entrypoint for the Composition Catalog API.

``create_app`` configures logging, mounts the versioned routers and
registers the startup hook that applies database migrations.  The
module‑level ``app`` can be served directly::

    uvicorn composition_catalog_api.app.main:app --reload
"""

from fastapi import FastAPI

from .core.config import settings
from .core.logging_config import setup_logging
from .api.v1.router import router as v1_router
from .core.db import init_db


def create_app() -> FastAPI:
    """Create and configure a FastAPI application."""
    # Logging first so that everything below can log.
    setup_logging(settings.log_level, settings.log_file or None)

    app = FastAPI(title=settings.project_name, version=settings.api_version, debug=settings.debug)
    app.include_router(v1_router, prefix="/api/v1")

    @app.on_event("startup")
    async def startup_event() -> None:
        # Creates the database file if needed and applies pending migrations.
        init_db()

    return app


app = create_app()
