# =============================================================================
# image_pipeline/linker.py - Linker (Stage 4)
# =============================================================================
# Writes the bowl_images row that ties an uploaded photo to its bowl.
#
# The row holds all four URL/path pairs, the legacy image_url/storage_path
# pair (set to the medium variant), the source byte size, the source
# dimensions and display_order.
#
# If the row cannot be written the four blobs have no owner. With rollback
# enabled they are removed in one call; whatever is left is logged and
# recorded in the orphaned blob ledger.
# =============================================================================

import logging
from typing import Any

from app.exceptions import ImageLinkError, StorageDeleteError
from core.models.image import VARIANT_SPECS, BowlImageRecord, UploadedImageSet
from core.models.pipeline import ProcessedImageSet
from core.services.storage_service import StorageService
from lib.supabase_client import SupabaseClient, SupabaseClientError
from lib.utils import normalize_uuid

logger = logging.getLogger(__name__)


def build_image_row(
    uploaded: UploadedImageSet,
    bowl_id,
    processed: ProcessedImageSet,
    position: int,
) -> dict[str, Any]:
    """
    Build the bowl_images insert payload for one photo.

    Example:
        {
            "bowl_id": "550e...",
            "thumbnail_url": "...", "thumbnail_path": "...",
            ...
            "image_url": <medium url>, "storage_path": <medium path>,
            "file_size": 2483120,
            "original_dimensions": {"width": 4032, "height": 3024},
            "display_order": 0
        }
    """
    row: dict[str, Any] = {"bowl_id": normalize_uuid(bowl_id)}

    for spec in VARIANT_SPECS:
        stored = uploaded.get(spec.variant)
        row[f"{spec.variant.value}_url"] = stored.url
        row[f"{spec.variant.value}_path"] = stored.path

    row["image_url"] = uploaded.medium.url
    row["storage_path"] = uploaded.medium.path
    row["file_size"] = processed.source_size
    row["original_dimensions"] = processed.source_dimensions.model_dump()
    row["display_order"] = position
    return row


class ImageLinker:
    """
    Stage 4: record an uploaded photo in the bowl_images table.

    Example:
        linker = ImageLinker(supabase, storage, rollback=True)
        record = linker.link(uploaded, bowl_id, processed, position=0)
    """

    def __init__(self, supabase: SupabaseClient, storage: StorageService, rollback: bool = True):
        self.supabase = supabase
        self.storage = storage
        self.rollback = rollback

    def link(
        self,
        uploaded: UploadedImageSet,
        bowl_id,
        processed: ProcessedImageSet,
        position: int,
        filename: str = "image",
    ) -> BowlImageRecord:
        """
        Insert the image row.

        Args:
            uploaded: Stored variants from the uploader
            bowl_id: Owning bowl
            processed: Processed set (source size and dimensions)
            position: display_order for this photo
            filename: Source filename, for errors and logs

        Returns:
            The inserted row

        Raises:
            ImageLinkError: If the row could not be written
        """
        row = build_image_row(uploaded, bowl_id, processed, position)

        try:
            inserted = self.supabase.insert_image(row)
        except SupabaseClientError as e:
            logger.error(f"Failed to save image row for {filename} on bowl {normalize_uuid(bowl_id)}: {e}")
            orphaned = self._handle_orphans(uploaded.all_paths(), bowl_id)
            raise ImageLinkError(
                filename=filename,
                error=e.message,
                orphaned_paths=orphaned,
                rolled_back=self.rollback and not orphaned,
            ) from e

        logger.info(f"Linked {filename} to bowl {normalize_uuid(bowl_id)} at position {position}")
        return BowlImageRecord.model_validate(inserted)

    def _handle_orphans(self, paths: list[str], bowl_id) -> list[str]:
        """Roll back (if enabled) and report whatever remains. Returns the orphaned paths."""
        orphaned = paths

        if self.rollback:
            try:
                self.storage.remove(paths)
                logger.warning(f"Rolled back {len(paths)} uploaded object(s): {paths}")
                orphaned = []
            except StorageDeleteError:
                orphaned = paths

        self.storage.report_orphans(orphaned, reason="link_failed", owner_id=bowl_id)
        return orphaned
