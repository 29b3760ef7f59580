"""
Main HTTP server for UI Watch APIs.

Serves the change detector endpoints.
"""

import logging

import uvicorn
from fastapi import FastAPI

from uiwatch import __version__
from uiwatch.core.config import get_config

from .change_api import router as change_router

logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title="UI Watch API",
    description="Structural change detection for monitored web pages",
    version=__version__,
)

# Include routers
app.include_router(change_router)


@app.get("/")
async def root():
    """Root endpoint with API information."""
    return {
        "name": "UI Watch API",
        "version": __version__,
        "endpoints": {
            "surfaces": "/surfaces",
            "docs": "/docs",
        },
    }


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}


def main():
    """Main entry point for HTTP server."""
    config = get_config()
    logging.basicConfig(
        level=config.log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    logger.info("=" * 60)
    logger.info("UI Watch - API Server")
    logger.info("=" * 60)
    logger.info(f"Host: {config.api.host}")
    logger.info(f"Port: {config.api.port}")
    logger.info("=" * 60)
    logger.info(f"API Documentation: http://{config.api.host}:{config.api.port}/docs")
    logger.info("=" * 60)

    uvicorn.run(
        "uiwatch.ui.http_server:app",
        host=config.api.host,
        port=config.api.port,
        reload=config.api.reload,
    )


if __name__ == "__main__":
    main()
