"""Shared dependencies for all GAD plan API routers.

Centralises the Supabase client singleton, record store selection, the
authenticated actor dependency and small utility helpers so that every
router module can ``from gadplan.deps import ...`` without pulling in
``main``.
"""

import logging
import os
from typing import Any, Dict, Optional

from dotenv import load_dotenv
from fastapi import Depends, HTTPException, status
from supabase import Client, create_client

from gadplan.auth import get_token_claims
from gadplan.database import get_session_factory
from gadplan.errors import AuthorizationError
from gadplan.lifecycle import Actor
from gadplan.services.lifecycle_service import ProposalLifecycleService
from gadplan.stores.base import ProposalStore
from gadplan.stores.sqlalchemy_store import SqlAlchemyProposalStore
from gadplan.stores.supabase_store import SupabaseProposalStore

load_dotenv()

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Supabase client (singleton)
# ---------------------------------------------------------------------------
_supabase_url = os.getenv("SUPABASE_URL")
_supabase_service_key = os.getenv("SUPABASE_SERVICE_KEY")

# Guard missing env vars so the SQLAlchemy backend can run without Supabase
supabase: Optional[Client] = None
if _supabase_url and _supabase_service_key:
    supabase = create_client(_supabase_url, _supabase_service_key)

STORE_BACKEND = os.getenv("GAD_STORE_BACKEND", "sqlalchemy").lower()
STORE_BACKENDS = ("sqlalchemy", "supabase")

_store: Optional[ProposalStore] = None


# ---------------------------------------------------------------------------
# Small utility helpers
# ---------------------------------------------------------------------------


def _safe_error(operation: str, e: Exception) -> str:
    """Log the full exception but return a safe message without internal details.

    This prevents leaking stack traces, file paths, or database internals
    to API consumers while preserving full diagnostics in server logs.
    """
    logger.exception("Error during %s", operation)
    return f"{operation} failed. Please try again or contact support."


# ---------------------------------------------------------------------------
# Record store
# ---------------------------------------------------------------------------


def build_store(backend: str = STORE_BACKEND) -> ProposalStore:
    """Create the record store named by ``GAD_STORE_BACKEND``.

    Raises:
        RuntimeError: The backend is unknown or not configured.
    """
    if backend == "supabase":
        if supabase is None:
            raise RuntimeError(
                "SUPABASE_URL and SUPABASE_SERVICE_KEY must be set for the supabase store"
            )
        return SupabaseProposalStore(supabase)
    if backend == "sqlalchemy":
        return SqlAlchemyProposalStore(get_session_factory())
    raise RuntimeError(
        f"Unknown GAD_STORE_BACKEND '{backend}'. Must be one of: {', '.join(STORE_BACKENDS)}"
    )


def get_store() -> ProposalStore:
    """FastAPI dependency returning the process-wide record store."""
    global _store
    if _store is None:
        try:
            _store = build_store()
        except RuntimeError as e:
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail=_safe_error("connecting to the record store", e),
            ) from e
    return _store


def get_lifecycle_service(
    store: ProposalStore = Depends(get_store),
) -> ProposalLifecycleService:
    return ProposalLifecycleService(store)


# ---------------------------------------------------------------------------
# Authentication dependency
# ---------------------------------------------------------------------------


async def get_current_actor(
    claims: Dict[str, Any] = Depends(get_token_claims),
    store: ProposalStore = Depends(get_store),
) -> Actor:
    """Resolve the bearer token's subject into an :class:`Actor`.

    The profile row supplies office name, role and approval state; a token
    whose subject has no profile is rejected.
    """
    user_id = claims["sub"]
    account = await store.get_profile(user_id)
    if account is None:
        logger.warning("Profile not found for authenticated user_id: %s", user_id)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User profile not found",
        )
    try:
        return Actor.from_profile(account.model_dump())
    except AuthorizationError as e:
        logger.warning("Rejected profile %s: %s", user_id, e)
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=e.message,
        ) from e
