# =============================================================================
# image_pipeline/validator.py - Validator (Stage 1)
# =============================================================================
# Rejects photos that must never reach storage:
# - anything whose MIME type is not image/*
# - empty files
# - files over the per-photo size limit (10MB by default)
# - image types outside the allow-list (JPEG, PNG, WebP, GIF)
#
# Validation trusts the declared size and type, never touches the network
# and never decodes pixels.
#
# Pipeline: Validator -> Resizer -> Uploader -> Linker
# =============================================================================

import logging

from app.config import Settings
from app.exceptions import EmptyImageError, ImageTooLargeError, UnsupportedImageTypeError
from core.models.pipeline import CandidateFile

logger = logging.getLogger(__name__)


def normalize_content_type(content_type: str | None) -> str:
    """
    Lowercase a MIME type and drop any parameters.

    Example:
        normalize_content_type("Image/JPEG; q=0.9")  # "image/jpeg"
    """
    if not content_type:
        return ""
    return content_type.split(";", 1)[0].strip().lower()


class ImageValidator:
    """
    Stage 1: decide whether a selected photo may enter the pipeline.

    Example:
        validator = ImageValidator(max_size_mb=10, allowed_types=["image/jpeg"])
        validator.validate(candidate)  # raises ImageValidationError on rejection
    """

    def __init__(self, max_size_mb: int, allowed_types: list[str]):
        self.max_size_mb = max_size_mb
        self.max_size_bytes = max_size_mb * 1024 * 1024
        self.allowed_types = [normalize_content_type(t) for t in allowed_types]

    @classmethod
    def from_settings(cls, settings: Settings) -> "ImageValidator":
        return cls(
            max_size_mb=settings.MAX_IMAGE_SIZE_MB,
            allowed_types=settings.allowed_image_types_list,
        )

    def validate(self, candidate: CandidateFile) -> CandidateFile:
        """
        Check a candidate against the type and size rules.

        Args:
            candidate: The selected photo

        Returns:
            The same candidate, when accepted

        Raises:
            UnsupportedImageTypeError: Not an image, or not an accepted format
            EmptyImageError: Declared size is zero
            ImageTooLargeError: Declared size exceeds the limit
        """
        content_type = normalize_content_type(candidate.content_type)

        if not content_type.startswith("image/"):
            raise UnsupportedImageTypeError(candidate.filename, content_type, self.allowed_types)

        if candidate.size == 0:
            raise EmptyImageError(candidate.filename)

        if candidate.size > self.max_size_bytes:
            raise ImageTooLargeError(candidate.filename, candidate.size, self.max_size_mb)

        if content_type not in self.allowed_types:
            raise UnsupportedImageTypeError(candidate.filename, content_type, self.allowed_types)

        logger.debug(f"Validated {candidate.filename} ({content_type}, {candidate.size} bytes)")
        return candidate
