"""Main entry point for the Chatdesk application."""

from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware

from chatdesk import __version__
from chatdesk.api import (
    admin_router,
    auth_router,
    chat_router,
    system_router,
    tickets_router,
    users_router,
)
from chatdesk.core.settings import Settings, settings
from chatdesk.services.realtime import close_realtime_broker

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

# Configure logger for this module
logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title=f"{settings.app_name} API",
    description="Accounts, support tickets and chat",
    version=__version__,
)

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

# Include API routers
app.include_router(auth_router, prefix="/api")
app.include_router(users_router, prefix="/api")
app.include_router(chat_router, prefix="/api")
app.include_router(tickets_router, prefix="/api")
app.include_router(admin_router, prefix="/api")
app.include_router(system_router, prefix="/api")


def check_configuration(config: Settings) -> list[str]:
    """Report missing external settings.

    Returns:
        The missing environment variable names

    Raises:
        RuntimeError: If any are missing and ``STRICT_CONFIG`` is enabled
    """
    missing = config.missing_required()
    if missing and config.strict_config:
        raise RuntimeError(f"Missing required configuration: {', '.join(missing)}")
    for name in missing:
        logger.warning("%s is not set; the features that need it will fail", name)
    if not config.chat_encryption_key:
        logger.warning("CHAT_ENCRYPTION_KEY is not set; chat messages are stored as plaintext")
    return missing


@app.on_event("startup")
async def on_startup() -> None:
    check_configuration(settings)


@app.on_event("shutdown")
async def on_shutdown() -> None:
    await close_realtime_broker()


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint to verify the service is running."""
    return {"status": "ok"}


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint with basic information about the API."""
    return {
        "name": f"{settings.app_name} API",
        "version": __version__,
        "description": "Accounts, support tickets and chat",
        "docs": "/docs",
        "redoc": "/redoc",
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("chatdesk.main:app", host="0.0.0.0", port=8000, reload=settings.debug)
