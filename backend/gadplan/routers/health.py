"""Health-check router."""

import logging
import os
from datetime import datetime, timezone

from fastapi import APIRouter

from gadplan import __version__
from gadplan.deps import STORE_BACKEND, supabase
from gadplan.database import engine

logger = logging.getLogger(__name__)
router = APIRouter(tags=["health"])


@router.get("/")
async def root():
    """Health check"""
    return {"status": "ok", "message": "GAD Plan API is running"}


@router.get("/api/v1/health")
async def health_check():
    """Report the configured record store and whether it is reachable by config."""
    configured = {
        "sqlalchemy": engine is not None,
        "supabase": supabase is not None,
    }
    store_ready = configured.get(STORE_BACKEND, False)
    return {
        "status": "healthy" if store_ready else "degraded",
        "version": __version__,
        "environment": os.getenv("ENVIRONMENT", "development"),
        "store_backend": STORE_BACKEND,
        "store_configured": store_ready,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
