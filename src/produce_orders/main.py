"""Produce Order Service - Main Entry Point."""

import os

from produce_orders.config.settings import settings
from produce_orders.server.app import create_app

# Create FastAPI application
app = create_app()


def run() -> None:
    import uvicorn

    reload = os.getenv("RELOAD", "false").lower() == "true"

    # timeout_graceful_shutdown is uvicorn's outer bound; the app itself
    # waits for pending notification tasks without a timeout
    uvicorn.run(
        "produce_orders.main:app",
        host=settings.host,
        port=settings.port,
        reload=reload,
        log_level=settings.log_level.lower(),
        timeout_graceful_shutdown=60,
        timeout_keep_alive=5,
        access_log=False,  # structured logging instead
    )


if __name__ == "__main__":
    run()
