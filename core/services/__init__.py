# =============================================================================
# core/services/__init__.py - Service Layer Exports
# =============================================================================

from .storage_service import StorageService
from .bowl_service import BowlService
from .image_service import ImageService

__all__ = [
    "StorageService",
    "BowlService",
    "ImageService",
]
