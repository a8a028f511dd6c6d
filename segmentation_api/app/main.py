"""
Main entrypoint for the User Segmentation API.

This module assembles the FastAPI application, sets up logging and
includes versioned routers.  The ``create_app`` function builds and
configures the app, which is then instantiated at module import time
as ``app``, e.g.::

    uvicorn segmentation_api.app.main:app

At startup the lifespan handler builds the ``SegmentationEngine``
(which verifies the database schema and refuses to start on a
mismatch) and starts the tidy sweeper; at shutdown the sweeper is
stopped.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI

from .api.v1.router import router as v1_router
from .core.config import Settings, settings as default_settings
from .core.db import Database
from .core.logging_config import setup_logging
from .engine import SegmentationEngine


logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Create and configure a FastAPI application.

    Parameters
    ----------
    settings : Optional[Settings]
        Settings to use instead of the ones read from the environment.

    Returns
    -------
    FastAPI
        A configured FastAPI application instance.
    """
    settings = settings or default_settings
    setup_logging(settings.log_level, settings.log_file)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        db = Database.from_url(settings.database_url)
        # SchemaError propagates and aborts startup.
        engine = SegmentationEngine(db, create_tables=settings.create_tables)
        sweeper = engine.create_sweeper(settings.tidy_interval_seconds)
        app.state.engine = engine
        app.state.sweeper = sweeper
        sweeper.start()
        logger.info("Segmentation engine ready on %s", db.path)
        try:
            yield
        finally:
            sweeper.stop(timeout=settings.tidy_interval_seconds)
            app.state.engine = None

    app = FastAPI(
        title=settings.project_name,
        version=settings.api_version,
        debug=settings.debug,
        lifespan=lifespan,
    )
    app.include_router(v1_router, prefix="/api/v1")
    return app


# Create the application instance at import time so that tools such as
# uvicorn can discover it without calling create_app manually.
app = create_app()
