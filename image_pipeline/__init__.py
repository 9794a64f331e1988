# =============================================================================
# image_pipeline/ - Multi-Resolution Image Pipeline
# =============================================================================
# Every photo attached to a bowl goes through four stages:
#
#   Validator -> Resizer -> Uploader -> Linker
#
# - validator.py: type/size rules, no side effects
# - resizer.py: four JPEG variants (thumbnail, medium, full, original)
# - uploader.py: stores the variants, cleans up after a partial failure
# - linker.py: writes the bowl_images row, reports orphaned blobs
# - engine.py: per-photo state machine and bounded-concurrency batches
#
# Usage:
#   from image_pipeline import build_pipeline
#   pipeline = build_pipeline(settings, supabase, storage)
#   result = await pipeline.process_batch(files, bowl_id)
# =============================================================================

from app.config import Settings
from core.services.storage_service import StorageService
from lib.supabase_client import SupabaseClient

from .engine import ImagePipeline
from .linker import ImageLinker, build_image_row
from .resizer import ImageResizer
from .uploader import ImageSetUploader
from .validator import ImageValidator, normalize_content_type


def build_pipeline(
    settings: Settings,
    supabase: SupabaseClient,
    storage: StorageService,
) -> ImagePipeline:
    """
    Assemble the pipeline from settings and shared clients.

    Returns:
        ImagePipeline ready for process_file / process_batch
    """
    return ImagePipeline(
        validator=ImageValidator.from_settings(settings),
        resizer=ImageResizer(),
        uploader=ImageSetUploader(storage),
        linker=ImageLinker(supabase, storage, rollback=settings.LINK_FAILURE_ROLLBACK),
        concurrency=settings.IMAGE_PIPELINE_CONCURRENCY,
    )


__all__ = [
    "ImagePipeline",
    "ImageLinker",
    "ImageResizer",
    "ImageSetUploader",
    "ImageValidator",
    "build_image_row",
    "build_pipeline",
    "normalize_content_type",
]
