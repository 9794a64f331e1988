# =============================================================================
# image_pipeline/uploader.py - Uploader (Stage 3)
# =============================================================================
# Stores the four variants of one photo, in order thumbnail, medium, full,
# original, under a token shared by all four:
#
#   bowls/<bowl_id>/<variant>/<timestamp>-<random>.jpg
#
# On the first failed upload it stops, removes each variant already stored
# (one removal call per stored variant) and raises ImageUploadError. A removal
# that fails is logged and recorded as orphaned; it is not retried.
# =============================================================================

import logging
from collections.abc import Callable

from app.exceptions import ImageUploadError, StorageDeleteError, StorageUploadError
from core.models.image import ImageVariant, StoredVariant, UploadedImageSet
from core.models.pipeline import ProcessedImageSet
from core.services.storage_service import StorageService
from lib.utils import generate_upload_token, normalize_uuid

logger = logging.getLogger(__name__)


class ImageSetUploader:
    """
    Stage 3: upload every variant of a processed photo.

    Not idempotent: each call generates a new token, so re-running after a
    failure writes to new paths.

    Example:
        uploader = ImageSetUploader(storage)
        uploaded = uploader.upload(processed, bowl_id, filename="bowl.jpg")
        uploaded.medium.url
    """

    def __init__(
        self,
        storage: StorageService,
        token_factory: Callable[[], str] = generate_upload_token,
    ):
        self.storage = storage
        self.token_factory = token_factory

    def upload(self, processed: ProcessedImageSet, bowl_id, filename: str = "image") -> UploadedImageSet:
        """
        Upload the four variants of one photo.

        Args:
            processed: Encoded variants from the resizer
            bowl_id: Owning bowl; becomes the second path segment
            filename: Source filename, for errors and logs

        Returns:
            UploadedImageSet with URL and path of every variant

        Raises:
            ImageUploadError: If any variant fails; earlier variants have
                already been cleaned up
        """
        token = self.token_factory()
        stored: dict[str, StoredVariant] = {}
        written_paths: list[str] = []

        for encoded in processed.variants:
            path = self.storage.build_path(bowl_id, encoded.variant.value, token)
            try:
                self.storage.upload(path, encoded.data, encoded.content_type)
                written_paths.append(path)
                url = self.storage.get_public_url(path)
            except StorageUploadError as e:
                logger.warning(
                    f"Upload of {encoded.variant.value} variant failed for {filename} "
                    f"after {len(written_paths)} stored variant(s): {e.message}"
                )
                cleaned, orphaned = self._cleanup(written_paths, bowl_id)
                raise ImageUploadError(
                    filename=filename,
                    variant=encoded.variant.value,
                    error=e.details.get("error", e.message),
                    cleaned_up_paths=cleaned,
                    orphaned_paths=orphaned,
                ) from e

            stored[encoded.variant.value] = StoredVariant(url=url, path=path)

        missing = [v.value for v in ImageVariant if v.value not in stored]
        if missing:
            cleaned, orphaned = self._cleanup(written_paths, bowl_id)
            raise ImageUploadError(
                filename=filename,
                variant=missing[0],
                error="variant was not produced by the resizer",
                cleaned_up_paths=cleaned,
                orphaned_paths=orphaned,
            )

        logger.info(f"Uploaded 4 variants of {filename} for bowl {normalize_uuid(bowl_id)} ({token})")
        return UploadedImageSet(**stored)

    def _cleanup(self, paths: list[str], bowl_id) -> tuple[list[str], list[str]]:
        """Remove each path with its own call. Returns (removed, orphaned)."""
        removed: list[str] = []
        orphaned: list[str] = []

        for path in paths:
            try:
                self.storage.remove([path])
                removed.append(path)
            except StorageDeleteError:
                orphaned.append(path)

        if orphaned:
            self.storage.report_orphans(orphaned, reason="upload_cleanup_failed", owner_id=bowl_id)

        return removed, orphaned
