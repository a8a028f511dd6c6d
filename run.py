"""Entry point for the User Segmentation API.

Starts the FastAPI application with Uvicorn.  Host, port and every
other setting are read from environment variables, see
``segmentation_api/app/core/config.py``.

Usage:
    python run.py
"""
import logging

from uvicorn import Config, Server

from segmentation_api.app.core.config import settings
from segmentation_api.app.main import app


def main() -> None:
    """Serve the API until interrupted."""
    config = Config(app=app, host=settings.host, port=settings.port, reload=False, log_level=settings.log_level.lower())
    server = Server(config)
    server.run()


if __name__ == "__main__":
    try:
        main()
    except (KeyboardInterrupt, SystemExit):
        logging.getLogger(__name__).info("Shutting down")
