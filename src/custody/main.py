"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from custody.config.settings import get_settings
from custody.config.logging_config import setup_logging
from custody.repositories.sqlalchemy.database import init_db
from custody.api.routers import wallet_router, staking_router
from custody.app_context import get_app_context
from custody.core.exceptions import AppError

logger = logging.getLogger(__name__)

# Error code -> HTTP status; unknown codes are client errors
ERROR_STATUS: dict[str, int] = {
    "VALIDATION_ERROR": 400,
    "INVALID_AMOUNT": 400,
    "NOT_FOUND": 404,
    "INSUFFICIENT_FUNDS": 409,
    "CONFLICT": 409,
    "GATEWAY_FAILURE": 502,
    "GATEWAY_UNAVAILABLE": 503,
    "INTEGRITY_ERROR": 500,
    "CORRUPT_CIPHERTEXT": 500,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    # Startup
    setup_logging()
    init_db()
    ctx = get_app_context()
    ctx.provision_treasury()

    runner = None
    if ctx.settings.workers_enabled:
        runner = ctx.create_worker_runner()
        runner.start()
    yield
    # Shutdown
    if runner is not None:
        runner.shutdown()


settings = get_settings()

app = FastAPI(
    title=settings.app_name,
    description="Custodial token wallet with staking",
    version=settings.app_version,
    lifespan=lifespan,
)

# Include routers
app.include_router(wallet_router)
app.include_router(staking_router)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Global handler for application errors."""
    status_code = ERROR_STATUS.get(exc.code, 400)
    if status_code >= 500:
        logger.error(f"{exc.code} on {request.method} {request.url.path}: {exc.message}")
    content = {"error": exc.code, "message": exc.message}
    transaction_id = getattr(exc, "transaction_id", None)
    if transaction_id:
        content["transaction_id"] = transaction_id
    return JSONResponse(status_code=status_code, content=content)


@app.get("/health")
def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "healthy"}


@app.get("/")
def root() -> dict[str, str]:
    """Root endpoint with API info."""
    return {
        "app": settings.app_name,
        "version": settings.app_version,
        "docs": "/docs",
    }
