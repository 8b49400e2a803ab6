"""
Supabase JWT Authentication Module.

History, tracking, insights and analytics routes require a verified user
(`require_auth`). Search and suggestion routes accept anonymous callers
but attribute activity to the user when a valid token is present
(`optional_auth`).

Usage:
    from core.auth import require_auth, SupabaseUser

    @router.get("/history")
    def history(user: SupabaseUser = Depends(require_auth)):
        user_id = user.id  # Verified user ID from JWT
"""

from dataclasses import dataclass
from typing import Optional

import jwt
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from config.settings import Settings, get_settings
from core.logging import get_logger

logger = get_logger(__name__)


# Security scheme for OpenAPI docs
security = HTTPBearer(
    scheme_name="Supabase JWT",
    description="JWT token from Supabase Auth. Get it after login via Supabase client.",
    auto_error=False,
)


@dataclass
class SupabaseUser:
    """
    Authenticated user from Supabase JWT.

    Attributes:
        id: User's UUID (from 'sub' claim)
        email: User's email address
        role: Postgres role (usually 'authenticated')
        session_id: Current session UUID
        is_anonymous: True if anonymous auth
    """
    id: str
    email: Optional[str] = None
    role: str = "authenticated"
    session_id: Optional[str] = None
    is_anonymous: bool = False


def _settings_for(request: Request) -> Settings:
    # create_app stores the settings it was built with on app.state
    return getattr(request.app.state, "settings", None) or get_settings()


def verify_jwt(token: str, secret: str) -> dict:
    """
    Verify and decode a Supabase JWT token.

    Raises:
        HTTPException: If token is invalid, expired, or malformed
    """
    if not secret:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication is not configured",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        return jwt.decode(
            token,
            secret,
            algorithms=["HS256"],
            audience="authenticated",
            options={
                "verify_exp": True,
                "verify_aud": True,
                "require": ["sub", "exp", "aud"],
            }
        )
    except jwt.ExpiredSignatureError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token has expired",
            headers={"WWW-Authenticate": "Bearer"},
        )
    except jwt.InvalidAudienceError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token audience",
            headers={"WWW-Authenticate": "Bearer"},
        )
    except jwt.InvalidTokenError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Invalid token: {str(e)}",
            headers={"WWW-Authenticate": "Bearer"},
        )


def extract_user(payload: dict) -> SupabaseUser:
    """Extract SupabaseUser from verified JWT payload."""
    return SupabaseUser(
        id=payload["sub"],
        email=payload.get("email"),
        role=payload.get("role", "authenticated"),
        session_id=payload.get("session_id"),
        is_anonymous=payload.get("is_anonymous", False),
    )


def optional_auth(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> Optional[SupabaseUser]:
    """
    FastAPI dependency returning the caller if a valid token is present.

    Missing or invalid tokens resolve to an anonymous caller (None);
    public search must never fail because of a stale token.
    """
    if not credentials or not credentials.credentials:
        return None

    try:
        payload = verify_jwt(credentials.credentials, _settings_for(request).supabase_jwt_secret)
    except HTTPException as e:
        logger.debug("Ignoring invalid token on public route", reason=e.detail)
        return None
    return extract_user(payload)


def require_auth(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> SupabaseUser:
    """
    FastAPI dependency that requires authentication.

    Raises 401 if no valid token is provided.
    """
    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authorization header required",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not credentials.credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token required",
            headers={"WWW-Authenticate": "Bearer"},
        )

    payload = verify_jwt(credentials.credentials, _settings_for(request).supabase_jwt_secret)
    return extract_user(payload)
