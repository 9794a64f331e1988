# =============================================================================
# core/models/ - Pydantic Data Models
# =============================================================================
# This package contains Pydantic schemas for data validation:
# - bowl.py: Bowl CRUD and gallery schemas
# - image.py: Image variants, stored image rows, reordering
# - pipeline.py: Image pipeline states, outcomes and batch results
#
# These models define the "contract" between API and clients.
# =============================================================================

# -----------------------------------------------------------------------------
# Bowl Models
# -----------------------------------------------------------------------------
from .bowl import (
    BowlCreate,
    BowlDetail,
    BowlList,
    BowlSubmissionResponse,
    BowlSummary,
    BowlUpdate,
    ImageUploadResponse,
    normalize_finishes,
)

# -----------------------------------------------------------------------------
# Image Models
# -----------------------------------------------------------------------------
from .image import (
    VARIANT_SPECS,
    BowlImageRecord,
    BowlImageResponse,
    ImageDimensions,
    ImageReorderRequest,
    ImageUrls,
    ImageVariant,
    StoredVariant,
    UploadedImageSet,
    VariantSpec,
    get_variant_spec,
    placeholder_url,
)

# -----------------------------------------------------------------------------
# Pipeline Models
# -----------------------------------------------------------------------------
from .pipeline import (
    BatchNotification,
    BatchResult,
    BatchStatus,
    CandidateFile,
    EncodedVariant,
    FailureReason,
    FileOutcome,
    FileStage,
    ProcessedImageSet,
)

# -----------------------------------------------------------------------------
# __all__ - Explicit public API
# -----------------------------------------------------------------------------
__all__ = [
    # Bowl
    "BowlCreate",
    "BowlDetail",
    "BowlList",
    "BowlSubmissionResponse",
    "BowlSummary",
    "BowlUpdate",
    "ImageUploadResponse",
    "normalize_finishes",
    # Image
    "VARIANT_SPECS",
    "BowlImageRecord",
    "BowlImageResponse",
    "ImageDimensions",
    "ImageReorderRequest",
    "ImageUrls",
    "ImageVariant",
    "StoredVariant",
    "UploadedImageSet",
    "VariantSpec",
    "get_variant_spec",
    "placeholder_url",
    # Pipeline
    "BatchNotification",
    "BatchResult",
    "BatchStatus",
    "CandidateFile",
    "EncodedVariant",
    "FailureReason",
    "FileOutcome",
    "FileStage",
    "ProcessedImageSet",
]
