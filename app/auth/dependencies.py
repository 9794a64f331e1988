# =============================================================================
# app/auth/dependencies.py - FastAPI Auth Dependencies
# =============================================================================
# Provides dependency injection for authentication.
#
# The TokenVerifier built at startup lives on app.state.services; these
# dependencies pull the bearer token from the request and hand it over.
#
# Usage:
#   from app.auth import get_current_user, AuthUser
#
#   @router.get("/protected")
#   async def protected(user: AuthUser = Depends(get_current_user)):
#       return {"user_id": user.id}
# =============================================================================

import logging
from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.auth.models import AuthUser
from app.auth.verifier import AuthenticationError, TokenVerifier

logger = logging.getLogger(__name__)

# HTTP Bearer token extractors
security = HTTPBearer(auto_error=False)


def get_token_verifier(request: Request) -> TokenVerifier:
    """Get the verifier built at startup."""
    return request.app.state.services.verifier


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    verifier: TokenVerifier = Depends(get_token_verifier),
) -> AuthUser:
    """
    Extract and validate user from Supabase JWT token.

    Args:
        credentials: Bearer token from Authorization header
        verifier: Token verifier

    Returns:
        AuthUser: The authenticated user

    Raises:
        HTTPException: 401 if token is missing, invalid or expired
    """
    token = credentials.credentials if credentials else None

    try:
        return verifier.verify(token)
    except AuthenticationError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=e.message,
            headers={"WWW-Authenticate": "Bearer"},
        ) from e


async def get_current_user_optional(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    verifier: TokenVerifier = Depends(get_token_verifier),
) -> Optional[AuthUser]:
    """
    Optionally get the current user from JWT token.

    Returns None if no token is provided or it does not verify. Used by the
    public gallery endpoints.
    """
    if credentials is None:
        return None

    try:
        return verifier.verify(credentials.credentials)
    except AuthenticationError as e:
        logger.debug(f"Ignoring unverifiable token on optional auth: {e.reason.value}")
        return None
