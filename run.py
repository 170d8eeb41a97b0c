"""Entry point for the UConnect API server.

This script launches the FastAPI application with Uvicorn.  It is
intended to be executed from the project root, for example inside a
container where you only specify a single Python file to run.

Configuration such as SECRET_KEY, DATABASE_URL, SMTP and Cloudinary
credentials is read from environment variables (see
``uconnect_api/app/core/config.py``).

Usage:
    python run.py
"""
import asyncio

from uvicorn import Config, Server

from uconnect_api.app.core.config import settings


async def run_api() -> None:
    """Serve the API on ``settings.host``:``settings.port``."""
    config = Config(
        app="uconnect_api.app.main:app",
        host=settings.host,
        port=settings.port,
        reload=False,
        log_level=settings.log_level.lower(),
    )
    server = Server(config)
    await server.serve()


if __name__ == "__main__":
    try:
        asyncio.run(run_api())
    except (KeyboardInterrupt, SystemExit):
        pass
