import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from image_vault import __version__
from image_vault.api.deps import get_rules, get_settings
from image_vault.core.errors import (
    ConfigurationError,
    ImageVaultError,
    MutationError,
    NotFoundError,
    ValidationError,
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup/shutdown."""
    settings = get_settings()

    # Load rules on startup (fail-fast)
    try:
        get_rules(settings)
    except (OSError, ValueError):
        logger.critical("Rules load failed from %s", settings.rules_path, exc_info=True)
        raise
    logger.info(
        "Rules loaded from %s (store backend: %s)", settings.rules_path, settings.store_backend
    )

    yield


app = FastAPI(
    title="Image Vault API",
    version=__version__,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)


def status_for(error: ImageVaultError) -> int:
    """HTTP status of an image_vault error."""
    if isinstance(error, ValidationError):
        return 400
    if isinstance(error, NotFoundError):
        return 404
    if isinstance(error, MutationError) and error.collision:
        return 409
    if isinstance(error, ConfigurationError):
        return 500
    return 502


@app.exception_handler(ImageVaultError)
async def image_vault_error_handler(request: Request, exc: ImageVaultError) -> JSONResponse:
    status_code = status_for(exc)
    if status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(
        status_code=status_code,
        content={"error": exc.code, "message": exc.message, "context": exc.context},
    )


# --- Routers ---
from image_vault.api.routes import images  # noqa: E402

app.include_router(images.router, prefix="/api/images", tags=["Images"])


@app.get("/health")
def health_check() -> dict[str, Any]:
    """Health check endpoint."""
    return {"status": "ok", "service": "image-vault"}
