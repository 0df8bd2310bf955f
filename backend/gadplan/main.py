"""
GAD Plan API - FastAPI backend for the Gender and Development planning workflow
"""

import logging
import os
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.gzip import GZipMiddleware

# Load environment variables from .env file
load_dotenv()

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

from gadplan import __version__
from gadplan.database import engine
from gadplan.errors import (
    AuthorizationError,
    ConflictError,
    InvalidTransition,
    RecordNotFound,
    StoreError,
    ValidationFailed,
    WorkflowError,
)
from gadplan.routers import accounts, analytics, exports, health, proposals, reviews
from gadplan.security import setup_security


# Lifecycle management
@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifecycle - startup and shutdown"""
    logger.info("GAD Plan API started")
    yield
    if engine is not None:
        await engine.dispose()
    logger.info("GAD Plan API shutdown complete")


# Initialize FastAPI app
app = FastAPI(
    title="GAD Plan API",
    description="Gender and Development PPA proposal and approval workflow",
    version=__version__,
    lifespan=lifespan,
)

# =============================================================================
# CORS Configuration
# =============================================================================
# Production accepts HTTPS origins only; development allows localhost.

ENVIRONMENT = os.getenv("ENVIRONMENT", "development").lower()

if ENVIRONMENT == "production":
    default_origins = "https://gadplan.vercel.app"
    ALLOWED_ORIGINS_RAW = os.getenv("ALLOWED_ORIGINS", default_origins).split(",")

    ALLOWED_ORIGINS = []
    for origin in ALLOWED_ORIGINS_RAW:
        origin = origin.strip()
        if not origin:
            continue
        if not origin.startswith("https://"):
            logger.warning("Rejecting non-HTTPS origin in production: %s", origin)
            continue
        if "localhost" in origin or "127.0.0.1" in origin:
            logger.warning("Rejecting localhost origin in production: %s", origin)
            continue
        ALLOWED_ORIGINS.append(origin)

    if not ALLOWED_ORIGINS:
        ALLOWED_ORIGINS = [default_origins]
        logger.warning("No valid origins configured, using default production origin")
else:
    default_origins = "http://localhost:3000,http://localhost:5173,http://localhost:5174"
    ALLOWED_ORIGINS_RAW = os.getenv("ALLOWED_ORIGINS", default_origins).split(",")
    ALLOWED_ORIGINS = [origin.strip() for origin in ALLOWED_ORIGINS_RAW if origin.strip()]

if not ALLOWED_ORIGINS:
    raise ValueError("CORS configuration error: No valid allowed origins configured")

logger.info("CORS environment: %s, allowed origins: %s", ENVIRONMENT, ALLOWED_ORIGINS)

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type", "X-Requested-With"],
)
app.add_middleware(GZipMiddleware, minimum_size=500)
setup_security(app)

# =============================================================================
# Workflow error translation
# =============================================================================

_STATUS_BY_ERROR = (
    (ValidationFailed, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (AuthorizationError, status.HTTP_403_FORBIDDEN),
    (InvalidTransition, status.HTTP_409_CONFLICT),
    (ConflictError, status.HTTP_409_CONFLICT),
    (RecordNotFound, status.HTTP_404_NOT_FOUND),
    (StoreError, status.HTTP_503_SERVICE_UNAVAILABLE),
)


def status_for(exc: WorkflowError) -> int:
    for error_cls, code in _STATUS_BY_ERROR:
        if isinstance(exc, error_cls):
            return code
    return status.HTTP_400_BAD_REQUEST


@app.exception_handler(WorkflowError)
async def workflow_error_handler(request: Request, exc: WorkflowError):
    """Return ``{"error": kind, "detail": message}`` for engine failures."""
    if isinstance(exc, StoreError):
        # Details may carry driver internals; they stay in the server log
        logger.error("Store failure on %s %s: %s", request.method, request.url.path, exc)
        detail = "The record store is unavailable. Please try again or contact support."
    else:
        logger.warning("%s on %s %s: %s", exc.kind, request.method, request.url.path, exc)
        detail = str(exc)
    return JSONResponse(
        status_code=status_for(exc),
        content={"error": exc.kind, "detail": detail},
    )


# =============================================================================
# Routers
# =============================================================================

app.include_router(health.router)
app.include_router(proposals.router)
app.include_router(reviews.router)
app.include_router(analytics.router)
app.include_router(exports.router)
app.include_router(accounts.router)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
