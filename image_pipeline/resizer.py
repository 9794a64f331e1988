# =============================================================================
# image_pipeline/resizer.py - Resizer (Stage 2)
# =============================================================================
# Produces the four JPEG variants of a validated photo:
#
#   | Variant   | Max box   | Quality |
#   |-----------|-----------|---------|
#   | thumbnail | 150x150   | 0.80    |
#   | medium    | 400x400   | 0.85    |
#   | full      | 800x800   | 0.90    |
#   | original  | 1200x1200 | 0.95    |
#
# Every variant is fitted inside its box with the aspect ratio kept. Photos
# smaller than a box are re-encoded at their own size, never upscaled.
# =============================================================================

import logging

from PIL import Image

from app.exceptions import ImageProcessingError
from core.models.image import VARIANT_SPECS, ImageDimensions, VariantSpec
from core.models.pipeline import CandidateFile, EncodedVariant, ProcessedImageSet
from lib.imaging import ImageDecodeError, calculate_dimensions, decode_image, encode_jpeg

logger = logging.getLogger(__name__)


class ImageResizer:
    """
    Stage 2: decode a photo once and encode one JPEG per variant.

    CPU bound; the pipeline engine runs it in a worker thread.

    Example:
        resizer = ImageResizer()
        processed = resizer.resize(candidate)
        processed.get(ImageVariant.MEDIUM).width  # <= 400
    """

    def __init__(self, specs: tuple[VariantSpec, ...] = VARIANT_SPECS):
        self.specs = specs

    def resize(self, candidate: CandidateFile) -> ProcessedImageSet:
        """
        Build the processed image set for a photo.

        Args:
            candidate: A validated photo with its bytes

        Returns:
            ProcessedImageSet with one EncodedVariant per spec, in spec order

        Raises:
            ImageProcessingError: If the photo cannot be decoded or encoded
        """
        try:
            source = decode_image(candidate.data)
        except ImageDecodeError as e:
            logger.warning(f"Could not decode {candidate.filename}: {e}")
            raise ImageProcessingError(candidate.filename, str(e)) from e

        try:
            width, height = source.size
            variants = tuple(self._encode_variant(source, spec) for spec in self.specs)
        except ImageDecodeError as e:
            logger.warning(f"Could not encode {candidate.filename}: {e}")
            raise ImageProcessingError(candidate.filename, str(e)) from e
        finally:
            source.close()

        logger.debug(
            f"Resized {candidate.filename} ({width}x{height}) into "
            + ", ".join(f"{v.variant.value}={v.width}x{v.height}" for v in variants)
        )

        return ProcessedImageSet(
            variants=variants,
            source_dimensions=ImageDimensions(width=width, height=height),
            source_size=candidate.size,
        )

    @staticmethod
    def _encode_variant(source: Image.Image, spec: VariantSpec) -> EncodedVariant:
        width, height = calculate_dimensions(
            source.width, source.height, spec.max_width, spec.max_height
        )
        data = encode_jpeg(source, (width, height), spec.jpeg_quality)
        return EncodedVariant(variant=spec.variant, width=width, height=height, data=data)
