# =============================================================================
# core/models/image.py - Image Variant & Image Row Schemas
# =============================================================================
# These models define how one photo of a bowl is stored:
# - ImageVariant / VariantSpec: the four fixed resolutions and their quality
# - StoredVariant / UploadedImageSet: where each variant landed in storage
# - BowlImageRecord: one row of the bowl_images table
# - ImageUrls: best-available URL per variant for display
#
# Every photo is stored four times (thumbnail, medium, full, original).
# The legacy image_url/storage_path columns mirror the medium variant.
# =============================================================================

from datetime import datetime
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class ImageVariant(str, Enum):
    """
    The four stored resolutions of every photo.

    Declaration order is upload order.
    """
    THUMBNAIL = "thumbnail"
    MEDIUM = "medium"
    FULL = "full"
    ORIGINAL = "original"


class VariantSpec(BaseModel):
    """Bounding box and JPEG quality for one variant."""

    model_config = ConfigDict(frozen=True)

    variant: ImageVariant
    max_width: int = Field(..., gt=0)
    max_height: int = Field(..., gt=0)
    quality: float = Field(..., gt=0.0, le=1.0)

    @property
    def jpeg_quality(self) -> int:
        """Quality on Pillow's 1-95 integer scale."""
        return max(1, min(95, round(self.quality * 100)))


# Upload order: thumbnail, medium, full, original
VARIANT_SPECS: tuple[VariantSpec, ...] = (
    VariantSpec(variant=ImageVariant.THUMBNAIL, max_width=150, max_height=150, quality=0.80),
    VariantSpec(variant=ImageVariant.MEDIUM, max_width=400, max_height=400, quality=0.85),
    VariantSpec(variant=ImageVariant.FULL, max_width=800, max_height=800, quality=0.90),
    VariantSpec(variant=ImageVariant.ORIGINAL, max_width=1200, max_height=1200, quality=0.95),
)


def get_variant_spec(variant: ImageVariant) -> VariantSpec:
    """Look up the spec for a variant."""
    for spec in VARIANT_SPECS:
        if spec.variant == variant:
            return spec
    raise KeyError(variant)


class ImageDimensions(BaseModel):
    """Pixel size of a decoded image."""
    width: int = Field(..., ge=1)
    height: int = Field(..., ge=1)


# =============================================================================
# Storage Results
# =============================================================================

class StoredVariant(BaseModel):
    """Public URL and storage path of one uploaded variant."""

    model_config = ConfigDict(frozen=True)

    url: str
    path: str


class UploadedImageSet(BaseModel):
    """All four variants of one photo after a successful upload."""

    thumbnail: StoredVariant
    medium: StoredVariant
    full: StoredVariant
    original: StoredVariant

    def get(self, variant: ImageVariant) -> StoredVariant:
        """Return the stored variant for an ImageVariant."""
        return getattr(self, variant.value)

    def all_paths(self) -> list[str]:
        """Storage paths in upload order."""
        return [self.get(spec.variant).path for spec in VARIANT_SPECS]


# =============================================================================
# bowl_images Rows
# =============================================================================

class ImageUrls(BaseModel):
    """Best-available URL for each variant of one image."""
    thumbnail: str
    medium: str
    full: str
    original: str


def placeholder_url(size: int) -> str:
    """Square placeholder shown when an image has no usable URL."""
    return f"/placeholder.svg?height={size}&width={size}"


class BowlImageRecord(BaseModel):
    """
    One row of the bowl_images table.

    Rows written before the multi-resolution upgrade only carry the legacy
    image_url/storage_path pair, so every variant column is optional.

    Example:
        {
            "id": "aa0e8400-...",
            "bowl_id": "550e8400-...",
            "thumbnail_url": "https://.../bowls/550e.../thumbnail/1718000000000-k3j9x2.jpg",
            "display_order": 0,
            ...
        }
    """

    id: UUID
    bowl_id: UUID
    thumbnail_url: str | None = None
    thumbnail_path: str | None = None
    medium_url: str | None = None
    medium_path: str | None = None
    full_url: str | None = None
    full_path: str | None = None
    original_url: str | None = None
    original_path: str | None = None

    # Legacy single-resolution columns (populated with the medium variant)
    image_url: str | None = None
    storage_path: str | None = None

    file_size: int | None = Field(default=None, ge=0)
    original_dimensions: ImageDimensions | None = None
    display_order: int = Field(default=0, ge=0)
    created_at: datetime | None = None

    def urls(self) -> ImageUrls:
        """
        Resolve a displayable URL per variant.

        Falls back to the legacy image_url, then to a placeholder sized to
        the variant's bounding box.
        """
        resolved = {}
        for spec in VARIANT_SPECS:
            url = getattr(self, f"{spec.variant.value}_url") or self.image_url
            resolved[spec.variant.value] = url or placeholder_url(spec.max_width)
        return ImageUrls(**resolved)

    def storage_paths(self) -> list[str]:
        """Every non-empty storage path this row points at, without duplicates."""
        candidates = [
            self.thumbnail_path,
            self.medium_path,
            self.full_path,
            self.original_path,
            self.storage_path,
        ]
        paths: list[str] = []
        for path in candidates:
            if path and path not in paths:
                paths.append(path)
        return paths


class BowlImageResponse(BaseModel):
    """Image as returned by the API: row fields plus resolved URLs."""
    id: UUID
    bowl_id: UUID
    display_order: int
    urls: ImageUrls
    file_size: int | None = None
    original_dimensions: ImageDimensions | None = None
    created_at: datetime | None = None

    @classmethod
    def from_record(cls, record: BowlImageRecord) -> "BowlImageResponse":
        return cls(
            id=record.id,
            bowl_id=record.bowl_id,
            display_order=record.display_order,
            urls=record.urls(),
            file_size=record.file_size,
            original_dimensions=record.original_dimensions,
            created_at=record.created_at,
        )


# =============================================================================
# Reordering
# =============================================================================

class ImageReorderRequest(BaseModel):
    """
    New display order for a bowl's images.

    The first ID becomes the primary (gallery) image.
    """
    image_ids: list[UUID] = Field(
        ...,
        min_length=1,
        description="Every image ID of the bowl, in the desired order"
    )
