# =============================================================================
# core/services/bowl_service.py - Bowl Business Logic
# =============================================================================
# Handles bowl CRUD and the gallery:
# - create: bowl row, finishes, then every photo through the image pipeline
# - get: bowl with finishes, ordered images and creator name
# - list: newest-first gallery with case-insensitive search and pagination
# - update: fields plus wholesale finish replacement
# - delete: every stored blob in batches of 100, then the row (cascade)
#
# Only the creator may edit or delete a bowl. To anyone else the bowl
# simply does not exist.
# =============================================================================

import asyncio
import logging
from typing import Any
from uuid import UUID

from app.exceptions import BowlNotFoundError, BowlSaveError
from core.models.bowl import (
    BowlCreate,
    BowlDetail,
    BowlList,
    BowlSubmissionResponse,
    BowlSummary,
    BowlUpdate,
)
from core.models.image import BowlImageRecord, BowlImageResponse
from core.models.pipeline import CandidateFile
from core.services.storage_service import StorageService
from image_pipeline.engine import ImagePipeline
from lib.supabase_client import SupabaseClient, SupabaseClientError
from lib.utils import normalize_uuid

logger = logging.getLogger(__name__)


def creator_display_name(profile: dict[str, Any] | None) -> str:
    """
    Name shown as a bowl's creator.

    Uses the profile's full_name, then its email, then "Unknown".
    """
    if not profile:
        return "Unknown"
    return profile.get("full_name") or profile.get("email") or "Unknown"


class BowlService:
    """
    Service for bowl management operations.

    Provides a clean interface between API routes and the database, storage
    and image pipeline. Built once at startup.
    """

    def __init__(
        self,
        supabase: SupabaseClient,
        storage: StorageService,
        pipeline: ImagePipeline,
    ):
        self.supabase = supabase
        self.storage = storage
        self.pipeline = pipeline

    # -------------------------------------------------------------------------
    # Ownership
    # -------------------------------------------------------------------------

    def get_owned_bowl(self, bowl_id: str | UUID, user_id: str | UUID) -> dict[str, Any]:
        """
        Fetch a bowl row the user created.

        Raises:
            BowlNotFoundError: If the bowl doesn't exist or belongs to someone else
        """
        bowl_id_str = normalize_uuid(bowl_id)
        bowl = self.supabase.fetch_bowl(bowl_id_str)

        if not bowl or str(bowl.get("user_id")) != normalize_uuid(user_id):
            raise BowlNotFoundError(bowl_id_str)

        return bowl

    # -------------------------------------------------------------------------
    # Create
    # -------------------------------------------------------------------------

    async def create_bowl(
        self,
        user_id: str | UUID,
        data: BowlCreate,
        files: list[CandidateFile],
    ) -> BowlSubmissionResponse:
        """
        Record a new bowl with its finishes and photos.

        The bowl is saved first. Finish and photo failures do not undo it:
        finish failures become warnings and photo failures are reported per
        photo in the batch result.

        Args:
            user_id: The creator
            data: Bowl fields and finishes
            files: Photos in the order the user selected them

        Returns:
            BowlSubmissionResponse with the saved bowl and photo outcomes

        Raises:
            BowlSaveError: If the bowl row itself cannot be written
        """
        row = {
            "wood_type": data.wood_type,
            "wood_source": data.wood_source,
            "date_made": data.date_made.isoformat(),
            "comments": data.comments,
            "user_id": normalize_uuid(user_id),
        }

        try:
            bowl = await asyncio.to_thread(self.supabase.insert_bowl, row)
        except SupabaseClientError as e:
            logger.error(f"Failed to create bowl for user {user_id}: {e}")
            raise BowlSaveError("create", e.message) from e

        bowl_id = str(bowl["id"])
        logger.info(f"Created bowl: {bowl_id} for user: {user_id}")

        warnings: list[str] = []
        try:
            await asyncio.to_thread(self.supabase.insert_finishes, bowl_id, data.finishes)
        except SupabaseClientError as e:
            logger.warning(f"Bowl {bowl_id} saved without finishes: {e}")
            warnings.append(f"Finishes could not be saved: {e.message}")

        batch = await self.pipeline.process_batch(files, bowl_id, start_position=0)
        if batch.failed_count and batch.uploaded_count:
            await asyncio.to_thread(self.close_order_gaps, bowl_id)

        detail = await asyncio.to_thread(self.get_bowl, bowl_id)
        return BowlSubmissionResponse(
            bowl=detail,
            images=batch,
            notification=batch.notification("Bowl", "added"),
            warnings=warnings,
        )

    # -------------------------------------------------------------------------
    # Image order
    # -------------------------------------------------------------------------

    def apply_image_order(
        self,
        ordered: list[BowlImageRecord],
    ) -> tuple[list[BowlImageRecord], list[str]]:
        """
        Write display_order = index for each image, one update per row.

        Returns:
            (images with the order they now have, IDs whose update failed)
        """
        failed: list[str] = []
        result: list[BowlImageRecord] = []

        for index, image in enumerate(ordered):
            try:
                self.supabase.update_image_order(image.id, index)
            except SupabaseClientError as e:
                logger.error(f"Failed to set display_order={index} on image {image.id}: {e}")
                failed.append(str(image.id))
                result.append(image)
                continue
            result.append(image.model_copy(update={"display_order": index}))

        return result, failed

    def close_order_gaps(self, bowl_id: str | UUID) -> None:
        """
        Renumber a bowl's images to 0..n-1 keeping their relative order.

        Photos fail independently of their position, so a batch can leave
        gaps. Best effort: failures are logged and the bowl keeps whatever
        order could be written.
        """
        bowl_id_str = normalize_uuid(bowl_id)
        try:
            rows = self.supabase.fetch_images([bowl_id_str])
        except SupabaseClientError as e:
            logger.error(f"Could not check image order for bowl {bowl_id_str}: {e}")
            return

        images = sorted(
            (BowlImageRecord.model_validate(row) for row in rows),
            key=lambda r: r.display_order,
        )
        if [img.display_order for img in images] == list(range(len(images))):
            return

        _, failed = self.apply_image_order(images)
        if failed:
            logger.error(f"Image order on bowl {bowl_id_str} still has gaps; failed: {failed}")
        else:
            logger.info(f"Renumbered {len(images)} image(s) on bowl {bowl_id_str}")

    # -------------------------------------------------------------------------
    # Read
    # -------------------------------------------------------------------------

    def get_bowl(self, bowl_id: str | UUID) -> BowlDetail:
        """
        Get a bowl with finishes, images (by display_order) and creator.

        Raises:
            BowlNotFoundError: If the bowl doesn't exist
        """
        bowl_id_str = normalize_uuid(bowl_id)
        bowl = self.supabase.fetch_bowl(bowl_id_str)
        if not bowl:
            raise BowlNotFoundError(bowl_id_str)

        finishes = self.supabase.fetch_finishes([bowl_id_str]).get(bowl_id_str, [])
        images = [
            BowlImageResponse.from_record(BowlImageRecord.model_validate(row))
            for row in self.supabase.fetch_images([bowl_id_str])
        ]

        created_by = "Unknown"
        if bowl.get("user_id"):
            try:
                created_by = creator_display_name(self.supabase.fetch_profile(bowl["user_id"]))
            except SupabaseClientError as e:
                logger.warning(f"Could not fetch creator profile for bowl {bowl_id_str}: {e}")

        return BowlDetail(
            **bowl,
            finishes=finishes,
            images=images,
            created_by=created_by,
        )

    def list_bowls(
        self,
        search: str | None = None,
        page: int = 1,
        page_size: int = 20,
        owner_id: str | UUID | None = None,
    ) -> BowlList:
        """
        Get one page of the gallery.

        Args:
            search: Case-insensitive text matched against wood type, wood
                source and comments
            page: 1-based page number
            page_size: Bowls per page
            owner_id: Only bowls created by this user

        Returns:
            BowlList ordered by date_made, newest first
        """
        offset = (page - 1) * page_size
        rows, total = self.supabase.fetch_bowls(
            search=search, owner_id=owner_id, offset=offset, limit=page_size
        )

        bowl_ids = [str(row["id"]) for row in rows]
        finishes = self.supabase.fetch_finishes(bowl_ids)

        images_by_bowl: dict[str, list[BowlImageRecord]] = {bowl_id: [] for bowl_id in bowl_ids}
        for image_row in self.supabase.fetch_images(bowl_ids):
            record = BowlImageRecord.model_validate(image_row)
            images_by_bowl.setdefault(str(record.bowl_id), []).append(record)

        summaries = []
        for row in rows:
            bowl_id = str(row["id"])
            images = sorted(images_by_bowl.get(bowl_id, []), key=lambda r: r.display_order)
            summaries.append(
                BowlSummary(
                    **row,
                    finishes=finishes.get(bowl_id, []),
                    primary_image=images[0].urls() if images else None,
                    image_count=len(images),
                )
            )

        return BowlList(
            bowls=summaries,
            total=total,
            page=page,
            page_size=page_size,
            search=search or None,
        )

    # -------------------------------------------------------------------------
    # Update
    # -------------------------------------------------------------------------

    def update_bowl(
        self,
        bowl_id: str | UUID,
        user_id: str | UUID,
        data: BowlUpdate,
    ) -> BowlDetail:
        """
        Update a bowl's fields and, if given, replace its finishes.

        updated_at is refreshed on every call.

        Raises:
            BowlNotFoundError: If the user doesn't own the bowl
            BowlSaveError: If the update fails
        """
        bowl = self.get_owned_bowl(bowl_id, user_id)
        bowl_id_str = str(bowl["id"])

        try:
            self.supabase.update_bowl(bowl_id_str, data.bowl_fields())
            if data.finishes is not None:
                self.supabase.replace_finishes(bowl_id_str, data.finishes)
        except SupabaseClientError as e:
            logger.error(f"Failed to update bowl {bowl_id_str}: {e}")
            raise BowlSaveError("update", e.message) from e

        logger.info(f"Updated bowl: {bowl_id_str}")
        return self.get_bowl(bowl_id_str)

    # -------------------------------------------------------------------------
    # Delete
    # -------------------------------------------------------------------------

    def delete_bowl(self, bowl_id: str | UUID, user_id: str | UUID) -> dict[str, Any]:
        """
        Delete a bowl and every stored image blob.

        Blobs are removed in batches of 100. A failed batch is logged and
        recorded as orphaned; the bowl is still deleted.

        Returns:
            Dict with removed/failed blob counts

        Raises:
            BowlNotFoundError: If the user doesn't own the bowl
            BowlSaveError: If the bowl row cannot be deleted
        """
        bowl = self.get_owned_bowl(bowl_id, user_id)
        bowl_id_str = str(bowl["id"])

        paths: list[str] = []
        for image_row in self.supabase.fetch_images([bowl_id_str]):
            paths.extend(BowlImageRecord.model_validate(image_row).storage_paths())
        paths = list(dict.fromkeys(paths))

        failed = self.storage.remove_many(paths)
        if failed:
            self.storage.report_orphans(failed, reason="bowl_delete_failed", owner_id=bowl_id_str)

        try:
            self.supabase.delete_bowl(bowl_id_str)
        except SupabaseClientError as e:
            logger.error(f"Failed to delete bowl {bowl_id_str}: {e}")
            raise BowlSaveError("delete", e.message) from e

        logger.info(f"Deleted bowl: {bowl_id_str} ({len(paths) - len(failed)} blobs removed)")
        return {
            "bowl_id": bowl_id_str,
            "deleted": True,
            "blobs_removed": len(paths) - len(failed),
            "blobs_orphaned": len(failed),
        }
