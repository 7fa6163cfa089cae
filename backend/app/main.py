"""Vault Backend Application.

This is the main entry point for the Vault backend service. Vault is a
small multi-tenant file store: each signed-in user uploads, lists, previews,
downloads and deletes files in a private directory of their own.

Modules:
    - auth: email + password accounts, JWT sessions (the access gate)
    - files: per-identity blob storage
    - audit: DuckDB-based storage audit trail
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from app.auth.router import router as auth_router
from app.config import get_config
from app.files.router import router as files_router
from app.files.service import FileStorageService

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)

# multipart logs every parsed part at DEBUG.
for _noisy in (
    "multipart",
    "python_multipart",
):
    logging.getLogger(_noisy).setLevel(logging.WARNING)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager for startup/shutdown events."""
    # Startup
    config = get_config()

    # Apply configured log level to root logger so that
    # `logging.level: "debug"` in vault.settings.yaml activates DEBUG output.
    configured_level = getattr(logging, config.logging.level.upper(), None)
    if configured_level is not None:
        logging.getLogger().setLevel(configured_level)
        logger.info("Root logger level set to %s", config.logging.level.upper())

    # Fail fast if the storage root cannot be created.
    service = FileStorageService.get_instance()
    logger.info(
        "Server running on http://%s:%s (storage root %s)",
        config.server.host,
        config.server.port,
        service.root,
    )

    yield  # Application runs here

    # Shutdown
    logger.info("Application shutdown complete")


# Create FastAPI application with metadata
app = FastAPI(
    title="Vault API",
    description="Per-user isolated file storage",
    version="0.1.0",
    lifespan=lifespan,
)

# Register all routers
app.include_router(auth_router)
app.include_router(files_router)


@app.get("/health")
async def health() -> dict:
    """Health check endpoint.

    Returns:
        dict: Status object indicating the server is running.
    """
    return {"status": "ok"}


# Entry point for development: python -m app.main
if __name__ == "__main__":
    import uvicorn

    server = get_config().server
    uvicorn.run(
        "app.main:app",
        host=server.host,
        port=server.port,
        log_level=server.log_level,
    )
