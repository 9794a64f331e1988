# =============================================================================
# app/auth/verifier.py - Supabase JWT Verification
# =============================================================================
# Verifies access tokens issued by Supabase Auth.
#
# Supports both:
# - ES256/RS256 (Supabase JWT signing keys) via the project's JWKS
# - HS256 (legacy Supabase JWT secret)
#
# The JWKS document is cached on the verifier instance, which is built once
# at startup. Failures carry an AuthFailureReason instead of free text.
# =============================================================================

import logging
import time
from enum import Enum
from typing import Any
from uuid import UUID

import httpx
from jose import ExpiredSignatureError, JWTError, jwt

from app.auth.models import AuthUser
from app.config import Settings

logger = logging.getLogger(__name__)

AUDIENCE = "authenticated"


class AuthFailureReason(str, Enum):
    """Why a request could not be authenticated."""
    MISSING_TOKEN = "missing_token"
    EXPIRED = "expired"
    INVALID = "invalid"
    MISSING_SUBJECT = "missing_subject"
    MALFORMED_SUBJECT = "malformed_subject"


AUTH_FAILURE_MESSAGES: dict[AuthFailureReason, str] = {
    AuthFailureReason.MISSING_TOKEN: "Not authenticated",
    AuthFailureReason.EXPIRED: "Token has expired",
    AuthFailureReason.INVALID: "Invalid token",
    AuthFailureReason.MISSING_SUBJECT: "Invalid token: missing user ID",
    AuthFailureReason.MALFORMED_SUBJECT: "Invalid token: malformed user ID",
}


class AuthenticationError(Exception):
    """Raised when a token cannot be verified."""

    def __init__(self, reason: AuthFailureReason, detail: str | None = None):
        self.reason = reason
        self.detail = detail
        super().__init__(AUTH_FAILURE_MESSAGES[reason])

    @property
    def message(self) -> str:
        return AUTH_FAILURE_MESSAGES[self.reason]


class TokenVerifier:
    """
    Verifies Supabase access tokens and extracts the user.

    Example:
        verifier = TokenVerifier.from_settings(settings)
        user = verifier.verify(token)  # AuthUser
    """

    def __init__(
        self,
        jwt_secret: str,
        jwks_url: str,
        jwks_cache_ttl: int = 3600,
        http_get=httpx.get,
    ):
        self.jwt_secret = jwt_secret
        self.jwks_url = jwks_url
        self.jwks_cache_ttl = jwks_cache_ttl
        self._http_get = http_get
        self._jwks_cache: dict[str, Any] = {}
        self._jwks_cache_time: float = 0.0

    @classmethod
    def from_settings(cls, settings: Settings) -> "TokenVerifier":
        return cls(
            jwt_secret=settings.SUPABASE_JWT_SECRET,
            jwks_url=settings.jwks_url,
            jwks_cache_ttl=settings.JWKS_CACHE_TTL,
        )

    # -------------------------------------------------------------------------
    # Keys
    # -------------------------------------------------------------------------

    def _fetch_jwks(self) -> dict[str, Any]:
        """Fetch JWKS from Supabase, reusing the cached copy within the TTL."""
        now = time.time()

        if self._jwks_cache and (now - self._jwks_cache_time) < self.jwks_cache_ttl:
            return self._jwks_cache

        try:
            response = self._http_get(self.jwks_url, timeout=10)
            response.raise_for_status()
            self._jwks_cache = response.json()
            self._jwks_cache_time = now
            logger.debug(f"Fetched JWKS from {self.jwks_url}")
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"Failed to fetch JWKS: {e}")
            # An expired cache is still better than no keys
            if not self._jwks_cache:
                return {"keys": []}

        return self._jwks_cache

    def _get_signing_key(self, token: str) -> tuple[Any, str]:
        """
        Get the key and algorithm to verify a token with.

        Returns:
            Tuple of (key, algorithm)
        """
        try:
            header = jwt.get_unverified_header(token)
        except JWTError:
            return self.jwt_secret, "HS256"

        alg = header.get("alg", "HS256")
        kid = header.get("kid")

        if alg == "HS256":
            return self.jwt_secret, "HS256"

        if kid:
            for key in self._fetch_jwks().get("keys", []):
                if key.get("kid") == kid:
                    return key, alg

        logger.warning(f"Could not find key for alg={alg}, kid={kid}, falling back to HS256")
        return self.jwt_secret, "HS256"

    # -------------------------------------------------------------------------
    # Verification
    # -------------------------------------------------------------------------

    def verify(self, token: str | None) -> AuthUser:
        """
        Verify a token and return the user it was issued to.

        Args:
            token: Raw bearer token

        Returns:
            AuthUser with id and email

        Raises:
            AuthenticationError: With the reason verification failed
        """
        if not token:
            raise AuthenticationError(AuthFailureReason.MISSING_TOKEN)

        signing_key, algorithm = self._get_signing_key(token)

        try:
            payload = jwt.decode(token, signing_key, algorithms=[algorithm], audience=AUDIENCE)
        except ExpiredSignatureError as e:
            logger.warning("JWT token has expired")
            raise AuthenticationError(AuthFailureReason.EXPIRED) from e
        except JWTError as e:
            logger.warning(f"JWT validation failed: {e}")
            raise AuthenticationError(AuthFailureReason.INVALID, str(e)) from e

        user_id = payload.get("sub")
        if not user_id:
            logger.warning("JWT token missing 'sub' claim")
            raise AuthenticationError(AuthFailureReason.MISSING_SUBJECT)

        try:
            user_uuid = UUID(str(user_id))
        except ValueError as e:
            logger.warning(f"Invalid UUID in token: {user_id}")
            raise AuthenticationError(AuthFailureReason.MALFORMED_SUBJECT) from e

        logger.debug(f"Authenticated user: {user_uuid}")
        return AuthUser(id=user_uuid, email=payload.get("email"))
