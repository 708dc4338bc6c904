"""
Main entry point for the Hue gateway

Builds the FastAPI app from app.py for uvicorn to run.

@.architecture
Incoming: none --- {entry point for uvicorn server}
Processing: create_app(), run() --- {2 jobs: config_loading, server_startup}
Outgoing: uvicorn server, Network (HTTP) --- {FastAPI application instance, HTTP/SSE server}
"""

import os

from app import create_app
from config.settings import get_settings

# Create app instance
app = create_app()


def run() -> None:
    import uvicorn

    settings = get_settings()

    reload = os.getenv("HUE_GATEWAY_RELOAD", "false").lower() == "true"
    log_level = (settings.monitoring.log_level or "info").lower()

    uvicorn.run(
        "main:app",
        host=settings.server.bind_host,
        port=settings.server.bind_port,
        reload=reload,
        log_level=log_level,
        log_config=None,
    )


if __name__ == "__main__":
    run()
