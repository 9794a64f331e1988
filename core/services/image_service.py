# =============================================================================
# core/services/image_service.py - Bowl Image Business Logic
# =============================================================================
# Handles the photos of an existing bowl:
# - list: image rows by display_order
# - add: more photos through the pipeline, placed after the current ones
# - delete: one image's blobs, then its row; the rest are renumbered
# - reorder: rewrite display_order from a full permutation of image IDs
#
# display_order 0 is the bowl's primary (gallery) image.
# =============================================================================

import asyncio
import logging
from uuid import UUID

from app.exceptions import (
    BowlNotFoundError,
    ImageNotFoundError,
    ImageReorderError,
    InvalidImageOrderError,
)
from core.models.bowl import ImageUploadResponse
from core.models.image import BowlImageRecord
from core.models.pipeline import CandidateFile
from core.services.bowl_service import BowlService
from core.services.storage_service import StorageService
from image_pipeline.engine import ImagePipeline
from lib.supabase_client import SupabaseClient
from lib.utils import normalize_uuid

logger = logging.getLogger(__name__)


class ImageService:
    """
    Service for managing the images of one bowl at a time.

    Ownership is checked through BowlService, so a user who does not own
    the bowl gets BowlNotFoundError.
    """

    def __init__(
        self,
        supabase: SupabaseClient,
        storage: StorageService,
        pipeline: ImagePipeline,
        bowls: BowlService,
    ):
        self.supabase = supabase
        self.storage = storage
        self.pipeline = pipeline
        self.bowls = bowls

    def list_images(self, bowl_id: str | UUID) -> list[BowlImageRecord]:
        """
        Images of a bowl, lowest display_order first. Public; no owner check.

        Raises:
            BowlNotFoundError: If the bowl doesn't exist
        """
        bowl_id_str = normalize_uuid(bowl_id)
        if not self.supabase.fetch_bowl(bowl_id_str):
            raise BowlNotFoundError(bowl_id_str)
        return self._image_records(bowl_id_str)

    def _image_records(self, bowl_id: str) -> list[BowlImageRecord]:
        rows = self.supabase.fetch_images([bowl_id])
        records = [BowlImageRecord.model_validate(row) for row in rows]
        return sorted(records, key=lambda r: r.display_order)

    async def add_images(
        self,
        bowl_id: str | UUID,
        user_id: str | UUID,
        files: list[CandidateFile],
    ) -> ImageUploadResponse:
        """
        Add photos to an existing bowl.

        New photos are placed after the bowl's current images in the order
        they were selected. Gaps left by photos that failed are closed
        afterwards, so display_order stays 0..n-1.

        Raises:
            BowlNotFoundError: If the user doesn't own the bowl
        """
        bowl = await asyncio.to_thread(self.bowls.get_owned_bowl, bowl_id, user_id)
        bowl_id_str = str(bowl["id"])

        existing = await asyncio.to_thread(self._image_records, bowl_id_str)
        start = max((img.display_order for img in existing), default=-1) + 1
        batch = await self.pipeline.process_batch(files, bowl_id_str, start_position=start)
        if batch.uploaded_count:
            await asyncio.to_thread(self.bowls.close_order_gaps, bowl_id_str)

        return ImageUploadResponse(
            bowl_id=bowl_id_str,
            images=batch,
            notification=batch.notification("Bowl", "updated"),
        )

    def delete_image(
        self,
        bowl_id: str | UUID,
        image_id: str | UUID,
        user_id: str | UUID,
    ) -> list[BowlImageRecord]:
        """
        Delete one image: its blobs first, then its row.

        The remaining images are renumbered 0..n-1 keeping their order.
        Blobs that cannot be removed are recorded as orphaned; the row is
        still deleted.

        Returns:
            The remaining images in display order

        Raises:
            BowlNotFoundError: If the user doesn't own the bowl
            ImageNotFoundError: If the image isn't on this bowl
        """
        bowl = self.bowls.get_owned_bowl(bowl_id, user_id)
        bowl_id_str = str(bowl["id"])
        image_id_str = normalize_uuid(image_id)

        images = self._image_records(bowl_id_str)
        target = next((img for img in images if str(img.id) == image_id_str), None)
        if target is None:
            raise ImageNotFoundError(image_id_str, bowl_id_str)

        failed = self.storage.remove_many(target.storage_paths())
        if failed:
            self.storage.report_orphans(failed, reason="image_delete_failed", owner_id=bowl_id_str)

        self.supabase.delete_image(image_id_str)
        logger.info(f"Deleted image {image_id_str} from bowl {bowl_id_str}")

        remaining = [img for img in images if str(img.id) != image_id_str]
        return self._apply_order(bowl_id_str, remaining, raise_on_failure=False)

    def reorder_images(
        self,
        bowl_id: str | UUID,
        user_id: str | UUID,
        image_ids: list[str | UUID],
    ) -> list[BowlImageRecord]:
        """
        Set display_order from a list of image IDs.

        The list must name every image of the bowl exactly once. Each row is
        updated independently; updates that succeed are kept even if others
        fail.

        Returns:
            Images in their new order

        Raises:
            BowlNotFoundError: If the user doesn't own the bowl
            InvalidImageOrderError: If the list is not a permutation of the
                bowl's image IDs
            ImageReorderError: If one or more updates failed
        """
        bowl = self.bowls.get_owned_bowl(bowl_id, user_id)
        bowl_id_str = str(bowl["id"])

        images = self._image_records(bowl_id_str)
        by_id = {str(img.id): img for img in images}
        requested = [normalize_uuid(i) for i in image_ids]

        duplicates = sorted({i for i in requested if requested.count(i) > 1})
        missing = sorted(set(by_id) - set(requested))
        unexpected = sorted(set(requested) - set(by_id))
        if duplicates or missing or unexpected:
            raise InvalidImageOrderError(bowl_id_str, missing, unexpected, duplicates)

        ordered = [by_id[i] for i in requested]
        return self._apply_order(bowl_id_str, ordered, raise_on_failure=True)

    def _apply_order(
        self,
        bowl_id: str,
        ordered: list[BowlImageRecord],
        raise_on_failure: bool,
    ) -> list[BowlImageRecord]:
        """Write display_order = index for each image, one update per row."""
        result, failed = self.bowls.apply_image_order(ordered)

        if failed and raise_on_failure:
            raise ImageReorderError(bowl_id, failed)

        logger.info(f"Applied display order for {len(ordered)} image(s) on bowl {bowl_id}")
        return result
