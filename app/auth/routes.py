# =============================================================================
# app/auth/routes.py - Authentication Routes
# =============================================================================
# API endpoints for authentication-related operations.
#
# Note: Actual signup/login is handled by Supabase Auth client-side.
# These routes are for getting user info after authentication.
# =============================================================================

import logging

from fastapi import APIRouter, Depends

from app.auth.dependencies import get_current_user
from app.auth.models import AuthUser, UserResponse
from app.dependencies import SupabaseDep
from core.services.bowl_service import creator_display_name
from lib.supabase_client import SupabaseClientError

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/me", response_model=UserResponse)
async def get_current_user_info(
    supabase: SupabaseDep,
    user: AuthUser = Depends(get_current_user),
) -> UserResponse:
    """
    Get the current authenticated user's profile.

    Returns:
        UserResponse: id, email, full_name and the name shown on their bowls

    Raises:
        401: If not authenticated
    """
    profile = None
    try:
        profile = supabase.fetch_profile(user.id)
    except SupabaseClientError as e:
        logger.warning(f"Could not fetch user profile: {e}")

    if profile:
        return UserResponse(
            id=user.id,
            email=profile.get("email") or user.email,
            full_name=profile.get("full_name"),
            display_name=creator_display_name(profile),
        )

    # User exists in auth but the profile trigger hasn't run yet
    return UserResponse(
        id=user.id,
        email=user.email,
        display_name=user.email or "Unknown",
    )


@router.get("/verify")
async def verify_token(
    user: AuthUser = Depends(get_current_user)
) -> dict:
    """
    Verify that the current token is valid.

    Useful for checking if a stored token is still valid.

    Returns:
        dict: Confirmation with user_id

    Raises:
        401: If token is invalid or expired
    """
    return {
        "valid": True,
        "user_id": str(user.id),
        "email": user.email
    }
