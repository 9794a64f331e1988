# =============================================================================
# core/services/storage_service.py - Supabase Storage Operations
# =============================================================================
# Handles image blob operations against the bowl images bucket:
# - Uploading one object (with the bucket's size limit enforced)
# - Resolving public URLs
# - Removing objects, one call or in batches of 100
# - Recording blobs that could not be removed, for the purge worker
# - Creating the bucket on first start
#
# Path layout: <prefix>/<bowl_id>/<variant>/<timestamp>-<random>.jpg
# =============================================================================

import logging

from app.config import Settings
from app.exceptions import StorageDeleteError, StorageObjectTooLargeError, StorageUploadError
from lib.supabase_client import SupabaseClient, SupabaseClientError
from lib.utils import chunked, normalize_uuid

logger = logging.getLogger(__name__)

# Maximum number of paths sent in one remove() call
REMOVE_BATCH_SIZE = 100


class StorageService:
    """
    Service for Supabase Storage operations on one bucket.

    Built once at startup with the shared SupabaseClient.

    Example:
        storage = StorageService(supabase, settings)
        path = storage.build_path(bowl_id, "thumbnail", token)
        storage.upload(path, jpeg_bytes)
        url = storage.get_public_url(path)
    """

    def __init__(self, supabase: SupabaseClient, settings: Settings):
        self.supabase = supabase
        self.bucket_name = settings.STORAGE_BUCKET
        self.path_prefix = settings.STORAGE_PATH_PREFIX.strip("/")
        self.max_file_size = settings.storage_max_file_size_bytes
        self.public = settings.STORAGE_PUBLIC_BUCKET
        self.allowed_types = settings.allowed_image_types_list

    # -------------------------------------------------------------------------
    # Paths & URLs
    # -------------------------------------------------------------------------

    def build_path(self, owner_id, folder: str, token: str, extension: str = "jpg") -> str:
        """
        Build an object path.

        Example:
            build_path("550e...", "medium", "1718000000000-k3j9x2")
            # "bowls/550e.../medium/1718000000000-k3j9x2.jpg"
        """
        return f"{self.path_prefix}/{normalize_uuid(owner_id)}/{folder}/{token}.{extension}"

    def get_public_url(self, path: str) -> str:
        """
        Get the public URL of an object.

        Raises:
            StorageUploadError: If the URL cannot be resolved
        """
        try:
            return self.supabase.bucket(self.bucket_name).get_public_url(path)
        except Exception as e:
            logger.error(f"Failed to get public URL for {path}: {e}")
            raise StorageUploadError(path, f"could not resolve public URL: {e}") from e

    # -------------------------------------------------------------------------
    # Upload
    # -------------------------------------------------------------------------

    def upload(self, path: str, content: bytes, content_type: str = "image/jpeg") -> str:
        """
        Upload bytes to a new object. Existing objects are never overwritten.

        Args:
            path: Object path inside the bucket
            content: Object bytes
            content_type: MIME type stored with the object

        Returns:
            The path that was written

        Raises:
            StorageObjectTooLargeError: If content exceeds the bucket limit
            StorageUploadError: If the upload fails
        """
        if len(content) > self.max_file_size:
            raise StorageObjectTooLargeError(path, len(content), self.max_file_size)

        try:
            self.supabase.bucket(self.bucket_name).upload(
                path=path,
                file=content,
                file_options={"content-type": content_type, "upsert": "false"},
            )
        except Exception as e:
            logger.error(f"Storage upload failed for {path}: {e}")
            raise StorageUploadError(path, str(e)) from e

        logger.debug(f"Uploaded {len(content)} bytes to storage: {path}")
        return path

    # -------------------------------------------------------------------------
    # Removal
    # -------------------------------------------------------------------------

    def remove(self, paths: list[str]) -> None:
        """
        Remove objects in a single call.

        Raises:
            StorageDeleteError: If the call fails
        """
        if not paths:
            return

        try:
            self.supabase.bucket(self.bucket_name).remove(paths)
        except Exception as e:
            logger.warning(f"Failed to remove {len(paths)} object(s) from storage: {e}")
            raise StorageDeleteError(paths, str(e)) from e

        logger.info(f"Removed {len(paths)} object(s) from storage")

    def remove_many(self, paths: list[str], batch_size: int = REMOVE_BATCH_SIZE) -> list[str]:
        """
        Remove any number of objects in batches.

        A failed batch is logged and skipped; the remaining batches are still
        attempted.

        Returns:
            Paths whose batch failed (empty when everything was removed)
        """
        unique_paths = list(dict.fromkeys(p for p in paths if p))
        failed: list[str] = []

        for batch in chunked(unique_paths, batch_size):
            try:
                self.remove(batch)
            except StorageDeleteError as e:
                logger.error(f"Batch removal failed, continuing: {e.message}")
                failed.extend(batch)

        return failed

    def report_orphans(self, paths: list[str], reason: str, owner_id=None) -> None:
        """
        Log blobs that no row points at and record them for the purge worker.

        Never raises: a failure to record is logged with the paths so they
        can still be found in the logs.
        """
        if not paths:
            return

        logger.error(f"Orphaned storage objects ({reason}): {paths}")
        try:
            self.supabase.record_orphaned_blobs(paths, reason=reason, bowl_id=owner_id)
        except SupabaseClientError as e:
            logger.error(f"Could not record orphaned objects {paths}: {e}")

    # -------------------------------------------------------------------------
    # Bucket Management
    # -------------------------------------------------------------------------

    def ensure_bucket(self) -> bool:
        """
        Create the bucket if it does not exist.

        Returns:
            True if the bucket was created, False if it already existed
        """
        storage = self.supabase.storage
        existing = {getattr(b, "name", None) or getattr(b, "id", None) for b in storage.list_buckets()}
        if self.bucket_name in existing:
            return False

        storage.create_bucket(
            self.bucket_name,
            options={
                "public": self.public,
                "file_size_limit": self.max_file_size,
                "allowed_mime_types": self.allowed_types,
            },
        )
        logger.info(f"Created storage bucket: {self.bucket_name}")
        return True

    def check_health(self) -> None:
        """Raise if the storage API is unreachable."""
        self.supabase.storage.list_buckets()
