# =============================================================================
# app/exceptions.py - Custom Exception Handlers
# =============================================================================
# Centralized exception handling for the API.
# Errors should tell HOW to fix, not just WHAT failed.
#
# Image pipeline errors carry a FailureReason so callers branch on a typed
# value instead of inspecting message text.
# =============================================================================

from typing import Any

from fastapi import Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from core.models.pipeline import FailureReason


class BowlTrackerException(Exception):
    """
    Base exception for the Bowl Tracker API.

    All custom exceptions inherit from this class.
    Provides structured error responses with actionable suggestions.
    """

    def __init__(
        self,
        message: str,
        code: str = "BOWL_TRACKER_ERROR",
        status_code: int = 500,
        suggestion: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code
        self.suggestion = suggestion
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to API response dict."""
        result = {
            "detail": self.message,
            "code": self.code,
        }
        if self.suggestion:
            result["suggestion"] = self.suggestion
        if self.details:
            result["details"] = self.details
        return result


# =============================================================================
# Bowl Exceptions
# =============================================================================

class BowlNotFoundError(BowlTrackerException):
    """Raised when a bowl ID doesn't exist or belongs to someone else."""

    def __init__(self, bowl_id: str):
        super().__init__(
            message=f"Bowl not found: {bowl_id}",
            code="BOWL_NOT_FOUND",
            status_code=404,
            suggestion="Check that the bowl_id is correct and that you created this bowl",
            details={"bowl_id": bowl_id}
        )


class BowlSaveError(BowlTrackerException):
    """Raised when the bowl row itself cannot be written."""

    def __init__(self, operation: str, error: str):
        super().__init__(
            message=f"Failed to {operation} bowl: {error}",
            code="BOWL_SAVE_FAILED",
            status_code=500,
            suggestion="Try again later or contact support if the issue persists",
            details={"operation": operation, "error": error}
        )


# =============================================================================
# Image Exceptions
# =============================================================================

class ImageNotFoundError(BowlTrackerException):
    """Raised when an image ID doesn't exist on the given bowl."""

    def __init__(self, image_id: str, bowl_id: str):
        super().__init__(
            message=f"Image not found: {image_id}",
            code="IMAGE_NOT_FOUND",
            status_code=404,
            suggestion="List the bowl's images to get valid image IDs",
            details={"image_id": image_id, "bowl_id": bowl_id}
        )


class InvalidImageOrderError(BowlTrackerException):
    """Raised when a reorder request is not a permutation of the bowl's images."""

    def __init__(self, bowl_id: str, missing: list[str], unexpected: list[str], duplicates: list[str]):
        super().__init__(
            message="Image order must list every image of the bowl exactly once",
            code="INVALID_IMAGE_ORDER",
            status_code=400,
            suggestion="Send all current image IDs of the bowl, each once, in the desired order",
            details={
                "bowl_id": bowl_id,
                "missing": missing,
                "unexpected": unexpected,
                "duplicates": duplicates,
            }
        )


class ImageReorderError(BowlTrackerException):
    """Raised when one or more display_order updates fail. Applied updates stay."""

    def __init__(self, bowl_id: str, failed_ids: list[str]):
        super().__init__(
            message="Failed to update image order",
            code="IMAGE_REORDER_FAILED",
            status_code=500,
            suggestion="Reload the bowl and submit the order again",
            details={"bowl_id": bowl_id, "failed_image_ids": failed_ids}
        )


# =============================================================================
# Storage Exceptions
# =============================================================================

class StorageUploadError(BowlTrackerException):
    """Raised when an object upload to storage fails."""

    def __init__(self, path: str, error: str):
        super().__init__(
            message=f"Failed to upload file to storage: {error}",
            code="STORAGE_UPLOAD_ERROR",
            status_code=502,
            suggestion="Try again later or contact support if the issue persists",
            details={"path": path, "error": error}
        )


class StorageObjectTooLargeError(StorageUploadError):
    """Raised when an object exceeds the bucket's per-file limit."""

    def __init__(self, path: str, size_bytes: int, max_bytes: int):
        super().__init__(path, f"object is {size_bytes} bytes, bucket limit is {max_bytes}")
        self.code = "STORAGE_OBJECT_TOO_LARGE"
        self.status_code = 413
        self.suggestion = "Upload a smaller image"
        self.details.update({"size_bytes": size_bytes, "max_bytes": max_bytes})


class StorageDeleteError(BowlTrackerException):
    """Raised when removing objects from storage fails."""

    def __init__(self, paths: list[str], error: str):
        super().__init__(
            message=f"Failed to delete files from storage: {error}",
            code="STORAGE_DELETE_ERROR",
            status_code=502,
            suggestion="The files were recorded as orphaned and will be purged later",
            details={"paths": paths, "error": error}
        )


# =============================================================================
# Image Pipeline Exceptions
# =============================================================================

class ImagePipelineError(BowlTrackerException):
    """
    Base for every failure of a single photo inside the image pipeline.

    Attributes:
        reason: Typed failure reason used by the pipeline engine
        filename: Name of the photo that failed
    """

    def __init__(
        self,
        message: str,
        reason: FailureReason,
        filename: str,
        code: str,
        status_code: int = 400,
        suggestion: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        details = {"filename": filename, "reason": reason.value, **(details or {})}
        super().__init__(message, code, status_code, suggestion, details)
        self.reason = reason
        self.filename = filename


class ImageValidationError(ImagePipelineError):
    """Raised by the validator. Nothing has been uploaded yet."""

    def __init__(
        self,
        message: str,
        reason: FailureReason,
        filename: str,
        constraint: dict[str, Any],
        suggestion: str | None = None,
    ):
        super().__init__(
            message=message,
            reason=reason,
            filename=filename,
            code="INVALID_IMAGE",
            status_code=400,
            suggestion=suggestion,
            details={"constraint": constraint},
        )
        self.constraint = constraint


class UnsupportedImageTypeError(ImageValidationError):
    """Raised when the declared MIME type is not an accepted photo format."""

    def __init__(self, filename: str, content_type: str, allowed: list[str]):
        message = (
            "File must be an image"
            if not content_type.startswith("image/")
            else "Supported formats: JPEG, PNG, WebP, GIF"
        )
        super().__init__(
            message=message,
            reason=FailureReason.UNSUPPORTED_TYPE,
            filename=filename,
            constraint={"content_type": content_type, "allowed_types": allowed},
            suggestion=f"Only these image types are supported: {', '.join(allowed)}",
        )


class ImageTooLargeError(ImageValidationError):
    """Raised when a photo exceeds the per-photo size limit."""

    def __init__(self, filename: str, size_bytes: int, max_mb: int):
        super().__init__(
            message=f"Image must be smaller than {max_mb}MB",
            reason=FailureReason.FILE_TOO_LARGE,
            filename=filename,
            constraint={"size_bytes": size_bytes, "max_mb": max_mb},
            suggestion=f"Upload a photo smaller than {max_mb}MB",
        )


class EmptyImageError(ImageValidationError):
    """Raised when a photo has no content."""

    def __init__(self, filename: str):
        super().__init__(
            message="File is empty",
            reason=FailureReason.EMPTY_FILE,
            filename=filename,
            constraint={"size_bytes": 0},
            suggestion="Select the photo again; the upload contained no data",
        )


class ImageProcessingError(ImagePipelineError):
    """Raised when a photo cannot be decoded or re-encoded."""

    def __init__(self, filename: str, error: str):
        super().__init__(
            message=f"Failed to process image: {error}",
            reason=FailureReason.DECODE_FAILED,
            filename=filename,
            code="IMAGE_PROCESSING_FAILED",
            status_code=422,
            suggestion="Check that the file is a valid, uncorrupted image",
            details={"error": error},
        )


class ImageUploadError(ImagePipelineError):
    """
    Raised when a variant upload fails.

    Every variant uploaded before the failure has had one removal attempt;
    paths whose removal also failed are listed in `orphaned_paths`.
    """

    def __init__(
        self,
        filename: str,
        variant: str,
        error: str,
        cleaned_up_paths: list[str] | None = None,
        orphaned_paths: list[str] | None = None,
    ):
        super().__init__(
            message=f"Failed to upload {variant} image: {error}",
            reason=FailureReason.UPLOAD_FAILED,
            filename=filename,
            code="IMAGE_UPLOAD_FAILED",
            status_code=502,
            suggestion="Try uploading the photo again",
            details={
                "variant": variant,
                "error": error,
                "cleaned_up_paths": cleaned_up_paths or [],
                "orphaned_paths": orphaned_paths or [],
            },
        )
        self.variant = variant
        self.cleaned_up_paths = cleaned_up_paths or []
        self.orphaned_paths = orphaned_paths or []


class ImageLinkError(ImagePipelineError):
    """
    Raised when every variant was uploaded but the image row could not be written.

    `orphaned_paths` lists blobs that remain in storage with no row pointing
    at them. It is empty when the rollback removed them all.
    """

    def __init__(
        self,
        filename: str,
        error: str,
        orphaned_paths: list[str],
        rolled_back: bool,
    ):
        super().__init__(
            message=f"Image uploaded but could not be saved: {error}",
            reason=FailureReason.LINK_FAILED,
            filename=filename,
            code="IMAGE_LINK_FAILED",
            status_code=500,
            suggestion="Try uploading the photo again",
            details={
                "error": error,
                "orphaned_paths": orphaned_paths,
                "rolled_back": rolled_back,
            },
        )
        self.orphaned_paths = orphaned_paths
        self.rolled_back = rolled_back


# =============================================================================
# Exception Handlers
# =============================================================================

async def bowl_tracker_exception_handler(
    request: Request,
    exc: BowlTrackerException
) -> JSONResponse:
    """
    Convert BowlTrackerException to JSON response.

    Returns structured error with:
    - detail: Human-readable message
    - code: Machine-readable error code
    - suggestion: How to fix (if available)
    - details: Additional context
    """
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict()
    )


async def validation_exception_handler(
    request: Request,
    exc: Exception
) -> JSONResponse:
    """
    Handle request validation errors.

    Converts validation errors to user-friendly messages.
    """
    errors = jsonable_encoder(exc.errors()) if hasattr(exc, "errors") else str(exc)
    return JSONResponse(
        status_code=422,
        content={
            "detail": "Validation error",
            "code": "VALIDATION_ERROR",
            "errors": errors,
        }
    )
