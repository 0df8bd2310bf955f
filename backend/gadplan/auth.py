"""Bearer token verification for Supabase Auth access tokens.

Tokens are issued by the hosted identity provider and signed with the
project's JWT secret (HS256). This module only verifies them; sign-in,
sign-up and refresh stay with the provider.
"""

import logging
import os
from datetime import datetime, timedelta, timezone
from typing import Any

from dotenv import load_dotenv
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

load_dotenv()

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# JWT configuration
# ---------------------------------------------------------------------------
JWT_SECRET = os.getenv("SUPABASE_JWT_SECRET", "gadplan-dev-secret-change-in-production")
JWT_ALGORITHM = "HS256"
JWT_AUDIENCE = "authenticated"
JWT_EXPIRY_HOURS = 1

security = HTTPBearer(auto_error=False)


def create_access_token(user_id: str, email: str = "", secret: str | None = None) -> str:
    """Sign a token shaped like the ones Supabase Auth issues.

    Used by local tooling and tests; production tokens come from the provider.
    """
    now = datetime.now(timezone.utc)
    payload = {
        "sub": user_id,
        "email": email,
        "aud": JWT_AUDIENCE,
        "role": "authenticated",
        "exp": now + timedelta(hours=JWT_EXPIRY_HOURS),
        "iat": now,
    }
    return jwt.encode(payload, secret or JWT_SECRET, algorithm=JWT_ALGORITHM)


def decode_access_token(token: str, secret: str | None = None) -> dict[str, Any]:
    """Verify signature, expiry and audience and return the claims.

    Raises:
        HTTPException: 401 when the token is invalid, expired or has no subject.
    """
    try:
        payload = jwt.decode(
            token,
            secret or JWT_SECRET,
            algorithms=[JWT_ALGORITHM],
            audience=JWT_AUDIENCE,
        )
    except JWTError as exc:
        logger.warning("JWT validation failed: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        ) from exc

    if not payload.get("sub"):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token payload",
        )
    return payload


async def get_token_claims(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> dict[str, Any]:
    """FastAPI dependency: extract and verify the Bearer JWT."""
    if credentials is None or not credentials.credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return decode_access_token(credentials.credentials)
