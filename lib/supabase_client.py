# =============================================================================
# lib/supabase_client.py - Supabase Client Wrapper
# =============================================================================
# This module provides a typed wrapper for Supabase database operations.
# One SupabaseClient is built at application startup and handed to every
# service that needs it, so tests can construct one around a fake client.
#
# It provides specialized methods for:
# - Bowls, finishes and image rows
# - Creator profiles
# - The orphaned blob ledger used for storage reconciliation
#
# Usage:
#   from lib.supabase_client import SupabaseClient
#   supabase = SupabaseClient.from_settings(settings)
#   bowl = supabase.fetch_bowl(bowl_id)
# =============================================================================

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any
from uuid import UUID

from supabase import Client, create_client

from lib.utils import normalize_uuid

# Set up logging for this module
logger = logging.getLogger(__name__)

# Table names
BOWLS_TABLE = "bowls"
FINISHES_TABLE = "bowl_finishes"
IMAGES_TABLE = "bowl_images"
PROFILES_TABLE = "profiles"
ORPHANED_BLOBS_TABLE = "orphaned_blobs"

# Columns searched by the gallery search box
SEARCH_COLUMNS = ("wood_type", "wood_source", "comments")

# Characters with meaning inside a PostgREST or=() filter
_FILTER_RESERVED = str.maketrans({c: " " for c in ",()%*\\\""})


class SupabaseClientError(Exception):
    """
    Error during Supabase operations.

    Errors should tell HOW to fix, not just WHAT failed.
    """

    def __init__(
        self,
        message: str,
        code: str = "SUPABASE_ERROR",
        suggestion: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.code = code
        self.message = message
        self.suggestion = suggestion
        self.details = details or {}

    def __str__(self) -> str:
        result = f"[{self.code}] {self.message}"
        if self.suggestion:
            result += f" Suggestion: {self.suggestion}"
        return result


def sanitize_search_term(term: str | None) -> str:
    """
    Make a user search term safe to embed in an or=() filter.

    Reserved filter characters become spaces and whitespace is collapsed.

    Example:
        sanitize_search_term("  maple, (spalted) ")  # "maple spalted"
    """
    if not term:
        return ""
    return " ".join(term.translate(_FILTER_RESERVED).split())


def utc_now_iso() -> str:
    """Current UTC time as an ISO 8601 string for timestamp columns."""
    return datetime.now(timezone.utc).isoformat()


class SupabaseClient:
    """
    Typed wrapper for Supabase database operations.

    Wraps one supabase-py Client. Uses the service_role key, which bypasses
    Row Level Security, so every method that touches a user's data takes the
    owner into account explicitly.

    Example:
        supabase = SupabaseClient.from_settings(settings)
        rows, total = supabase.fetch_bowls(search="maple", offset=0, limit=20)
    """

    def __init__(self, client: Client):
        self._client = client

    @classmethod
    def from_settings(cls, settings) -> SupabaseClient:
        """
        Create the wrapper from application settings.

        Raises:
            SupabaseClientError: If client creation fails
        """
        try:
            client = create_client(settings.SUPABASE_URL, settings.SUPABASE_SERVICE_KEY)
            logger.info("Supabase client initialized successfully")
        except Exception as e:
            raise SupabaseClientError(
                message=f"Failed to create Supabase client: {e}",
                code="CLIENT_INIT_FAILED",
                suggestion="Check SUPABASE_URL and SUPABASE_SERVICE_KEY in your .env file"
            ) from e
        return cls(client)

    @property
    def client(self) -> Client:
        """The underlying supabase-py client."""
        return self._client

    def table(self, name: str):
        """Start a query on a table."""
        return self._client.table(name)

    def bucket(self, name: str):
        """Storage file API for one bucket."""
        return self._client.storage.from_(name)

    @property
    def storage(self):
        """Storage API (bucket management)."""
        return self._client.storage

    # -------------------------------------------------------------------------
    # Bowls
    # -------------------------------------------------------------------------

    def fetch_bowl(self, bowl_id: str | UUID) -> dict[str, Any] | None:
        """
        Fetch a bowl by ID.

        Args:
            bowl_id: The bowl UUID

        Returns:
            Bowl dict with all fields, or None if not found

        Raises:
            SupabaseClientError: If query fails
        """
        bowl_id_str = normalize_uuid(bowl_id)

        try:
            response = (
                self.table(BOWLS_TABLE)
                .select("*")
                .eq("id", bowl_id_str)
                .limit(1)
                .execute()
            )
        except Exception as e:
            raise SupabaseClientError(
                message=f"Failed to fetch bowl: {e}",
                code="FETCH_BOWL_FAILED",
                suggestion="Check that the bowls table is accessible",
                details={"bowl_id": bowl_id_str}
            ) from e

        rows = response.data or []
        return rows[0] if rows else None

    def fetch_bowls(
        self,
        search: str | None = None,
        owner_id: str | UUID | None = None,
        offset: int = 0,
        limit: int = 20,
    ) -> tuple[list[dict[str, Any]], int]:
        """
        Fetch a page of bowls, newest date_made first.

        Args:
            search: Case-insensitive substring matched against wood type,
                wood source and comments
            owner_id: Only return bowls created by this user
            offset: Index of the first row
            limit: Maximum rows to return

        Returns:
            Tuple of (rows, total matching rows)

        Raises:
            SupabaseClientError: If query fails
        """
        term = sanitize_search_term(search)

        try:
            query = self.table(BOWLS_TABLE).select("*", count="exact")

            if owner_id:
                query = query.eq("user_id", normalize_uuid(owner_id))

            if term:
                query = query.or_(",".join(f"{col}.ilike.%{term}%" for col in SEARCH_COLUMNS))

            response = (
                query
                .order("date_made", desc=True)
                .range(offset, offset + limit - 1)
                .execute()
            )
        except Exception as e:
            raise SupabaseClientError(
                message=f"Failed to fetch bowls: {e}",
                code="FETCH_BOWLS_FAILED",
                details={"search": term, "offset": offset, "limit": limit}
            ) from e

        rows = response.data or []
        total = response.count if response.count is not None else len(rows)
        logger.debug(f"Fetched {len(rows)} of {total} bowls (search={term!r})")
        return rows, total

    def insert_bowl(self, data: dict[str, Any]) -> dict[str, Any]:
        """
        Insert a bowl row.

        Returns:
            Inserted bowl dict with generated id and timestamps

        Raises:
            SupabaseClientError: If insert fails
        """
        return self._insert_one(BOWLS_TABLE, data, "INSERT_BOWL_FAILED")

    def update_bowl(self, bowl_id: str | UUID, data: dict[str, Any]) -> dict[str, Any] | None:
        """
        Update a bowl row and refresh updated_at.

        Returns:
            Updated bowl dict, or None if no row matched
        """
        bowl_id_str = normalize_uuid(bowl_id)
        payload = {**data, "updated_at": utc_now_iso()}

        try:
            response = (
                self.table(BOWLS_TABLE)
                .update(payload)
                .eq("id", bowl_id_str)
                .execute()
            )
        except Exception as e:
            raise SupabaseClientError(
                message=f"Failed to update bowl: {e}",
                code="UPDATE_BOWL_FAILED",
                details={"bowl_id": bowl_id_str, "fields": sorted(data)}
            ) from e

        rows = response.data or []
        return rows[0] if rows else None

    def delete_bowl(self, bowl_id: str | UUID) -> None:
        """Delete a bowl row. Finishes and image rows cascade."""
        bowl_id_str = normalize_uuid(bowl_id)
        try:
            self.table(BOWLS_TABLE).delete().eq("id", bowl_id_str).execute()
        except Exception as e:
            raise SupabaseClientError(
                message=f"Failed to delete bowl: {e}",
                code="DELETE_BOWL_FAILED",
                details={"bowl_id": bowl_id_str}
            ) from e

    # -------------------------------------------------------------------------
    # Finishes
    # -------------------------------------------------------------------------

    def fetch_finishes(self, bowl_ids: list[str | UUID]) -> dict[str, list[str]]:
        """
        Fetch finish names for several bowls in one query.

        Returns:
            Mapping of bowl_id -> finish names in the order they were
            entered. Bowls without finishes are present with an empty list.
        """
        ids = [normalize_uuid(b) for b in bowl_ids]
        result: dict[str, list[str]] = {bowl_id: [] for bowl_id in ids}
        if not ids:
            return result

        try:
            response = (
                self.table(FINISHES_TABLE)
                .select("bowl_id, finish_name, display_order")
                .in_("bowl_id", ids)
                .order("display_order")
                .execute()
            )
        except Exception as e:
            raise SupabaseClientError(
                message=f"Failed to fetch finishes: {e}",
                code="FETCH_FINISHES_FAILED",
                details={"bowl_ids": ids}
            ) from e

        for row in response.data or []:
            result.setdefault(str(row["bowl_id"]), []).append(row["finish_name"])
        return result

    def replace_finishes(self, bowl_id: str | UUID, finishes: list[str]) -> None:
        """
        Replace a bowl's finishes: delete all, then insert the given names.

        Raises:
            SupabaseClientError: If either step fails
        """
        bowl_id_str = normalize_uuid(bowl_id)

        try:
            self.table(FINISHES_TABLE).delete().eq("bowl_id", bowl_id_str).execute()
        except Exception as e:
            raise SupabaseClientError(
                message=f"Failed to clear finishes: {e}",
                code="DELETE_FINISHES_FAILED",
                details={"bowl_id": bowl_id_str}
            ) from e

        self.insert_finishes(bowl_id_str, finishes)

    def insert_finishes(self, bowl_id: str | UUID, finishes: list[str]) -> None:
        """
        Insert finish rows for a bowl, numbered in the given order.

        Does nothing for an empty list.
        """
        if not finishes:
            return

        bowl_id_str = normalize_uuid(bowl_id)
        rows = [
            {"bowl_id": bowl_id_str, "finish_name": name, "display_order": index}
            for index, name in enumerate(finishes)
        ]

        try:
            self.table(FINISHES_TABLE).insert(rows).execute()
        except Exception as e:
            raise SupabaseClientError(
                message=f"Failed to save finishes: {e}",
                code="INSERT_FINISHES_FAILED",
                details={"bowl_id": bowl_id_str, "finishes": finishes}
            ) from e

    # -------------------------------------------------------------------------
    # Images
    # -------------------------------------------------------------------------

    def fetch_images(self, bowl_ids: list[str | UUID]) -> list[dict[str, Any]]:
        """
        Fetch image rows for one or more bowls, ordered by display_order.

        Raises:
            SupabaseClientError: If query fails
        """
        ids = [normalize_uuid(b) for b in bowl_ids]
        if not ids:
            return []

        try:
            response = (
                self.table(IMAGES_TABLE)
                .select("*")
                .in_("bowl_id", ids)
                .order("display_order")
                .execute()
            )
        except Exception as e:
            raise SupabaseClientError(
                message=f"Failed to fetch images: {e}",
                code="FETCH_IMAGES_FAILED",
                details={"bowl_ids": ids}
            ) from e

        return response.data or []

    def insert_image(self, data: dict[str, Any]) -> dict[str, Any]:
        """
        Insert one bowl_images row.

        Raises:
            SupabaseClientError: If insert fails
        """
        return self._insert_one(IMAGES_TABLE, data, "INSERT_IMAGE_FAILED")

    def update_image_order(self, image_id: str | UUID, display_order: int) -> None:
        """Set display_order on one image row."""
        image_id_str = normalize_uuid(image_id)
        try:
            (
                self.table(IMAGES_TABLE)
                .update({"display_order": display_order})
                .eq("id", image_id_str)
                .execute()
            )
        except Exception as e:
            raise SupabaseClientError(
                message=f"Failed to update image order: {e}",
                code="UPDATE_IMAGE_ORDER_FAILED",
                details={"image_id": image_id_str, "display_order": display_order}
            ) from e

    def delete_image(self, image_id: str | UUID) -> None:
        """Delete one bowl_images row."""
        image_id_str = normalize_uuid(image_id)
        try:
            self.table(IMAGES_TABLE).delete().eq("id", image_id_str).execute()
        except Exception as e:
            raise SupabaseClientError(
                message=f"Failed to delete image: {e}",
                code="DELETE_IMAGE_FAILED",
                details={"image_id": image_id_str}
            ) from e

    # -------------------------------------------------------------------------
    # Profiles
    # -------------------------------------------------------------------------

    def fetch_profile(self, user_id: str | UUID) -> dict[str, Any] | None:
        """
        Fetch a user's profile row.

        Returns:
            Profile dict (id, email, full_name), or None if not found
        """
        user_id_str = normalize_uuid(user_id)

        try:
            response = (
                self.table(PROFILES_TABLE)
                .select("id, email, full_name")
                .eq("id", user_id_str)
                .limit(1)
                .execute()
            )
        except Exception as e:
            raise SupabaseClientError(
                message=f"Failed to fetch profile: {e}",
                code="FETCH_PROFILE_FAILED",
                details={"user_id": user_id_str}
            ) from e

        rows = response.data or []
        return rows[0] if rows else None

    # -------------------------------------------------------------------------
    # Orphaned Blob Ledger
    # -------------------------------------------------------------------------

    def record_orphaned_blobs(
        self,
        paths: list[str],
        reason: str,
        bowl_id: str | UUID | None = None,
    ) -> None:
        """
        Record storage paths that no row points at, for later purging.

        Raises:
            SupabaseClientError: If insert fails
        """
        if not paths:
            return

        rows = [
            {
                "path": path,
                "reason": reason,
                "bowl_id": normalize_uuid(bowl_id) if bowl_id else None,
            }
            for path in paths
        ]

        try:
            self.table(ORPHANED_BLOBS_TABLE).insert(rows).execute()
        except Exception as e:
            raise SupabaseClientError(
                message=f"Failed to record orphaned blobs: {e}",
                code="RECORD_ORPHANS_FAILED",
                details={"paths": paths, "reason": reason}
            ) from e

    def fetch_orphaned_blobs(self, limit: int = 100) -> list[dict[str, Any]]:
        """Oldest recorded orphaned blobs first."""
        try:
            response = (
                self.table(ORPHANED_BLOBS_TABLE)
                .select("id, path")
                .order("created_at")
                .limit(limit)
                .execute()
            )
        except Exception as e:
            raise SupabaseClientError(
                message=f"Failed to fetch orphaned blobs: {e}",
                code="FETCH_ORPHANS_FAILED",
            ) from e
        return response.data or []

    def delete_orphaned_blobs(self, ids: list[str | int]) -> None:
        """Remove entries from the orphaned blob ledger."""
        if not ids:
            return
        try:
            self.table(ORPHANED_BLOBS_TABLE).delete().in_("id", list(ids)).execute()
        except Exception as e:
            raise SupabaseClientError(
                message=f"Failed to clear orphaned blob records: {e}",
                code="DELETE_ORPHANS_FAILED",
                details={"ids": list(ids)}
            ) from e

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _insert_one(self, table: str, data: dict[str, Any], code: str) -> dict[str, Any]:
        try:
            response = self.table(table).insert(data).execute()
        except Exception as e:
            raise SupabaseClientError(
                message=f"Failed to insert into {table}: {e}",
                code=code,
                details={"table": table}
            ) from e

        if response.data:
            return response.data[0]
        raise SupabaseClientError(
            message="Insert returned no data",
            code="INSERT_NO_DATA",
            details={"table": table}
        )
