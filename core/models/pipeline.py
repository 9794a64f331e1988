# =============================================================================
# core/models/pipeline.py - Image Pipeline Schemas
# =============================================================================
# These models describe a photo's trip through the pipeline:
#
#   PENDING -> VALIDATED -> RESIZED -> UPLOADED -> LINKED
#
# with one terminal failure stage per step (REJECTED, RESIZE_FAILED,
# UPLOAD_FAILED, LINK_FAILED). There are no automatic retries.
#
# - CandidateFile: a selected photo before validation
# - ProcessedImageSet: the four encoded JPEG variants (in memory only)
# - FileOutcome: what happened to one photo
# - BatchResult: what happened to every photo of one submission
# =============================================================================

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, computed_field

from .image import BowlImageRecord, ImageDimensions, ImageVariant


class FailureReason(str, Enum):
    """
    Why a photo left the pipeline early.

    Callers branch on this value; error messages are for humans only.
    """
    UNSUPPORTED_TYPE = "unsupported_type"
    FILE_TOO_LARGE = "file_too_large"
    EMPTY_FILE = "empty_file"
    DECODE_FAILED = "decode_failed"
    UPLOAD_FAILED = "upload_failed"
    LINK_FAILED = "link_failed"
    UNEXPECTED_ERROR = "unexpected_error"


class FileStage(str, Enum):
    """Position of a photo in the pipeline state machine."""
    PENDING = "pending"
    VALIDATED = "validated"
    RESIZED = "resized"
    UPLOADED = "uploaded"
    LINKED = "linked"
    REJECTED = "rejected"
    RESIZE_FAILED = "resize_failed"
    UPLOAD_FAILED = "upload_failed"
    LINK_FAILED = "link_failed"


# Terminal failure stage for each failure reason
FAILURE_STAGES: dict[FailureReason, FileStage] = {
    FailureReason.UNSUPPORTED_TYPE: FileStage.REJECTED,
    FailureReason.FILE_TOO_LARGE: FileStage.REJECTED,
    FailureReason.EMPTY_FILE: FileStage.REJECTED,
    FailureReason.DECODE_FAILED: FileStage.RESIZE_FAILED,
    FailureReason.UPLOAD_FAILED: FileStage.UPLOAD_FAILED,
    FailureReason.LINK_FAILED: FileStage.LINK_FAILED,
}

# Terminal failure stage for an unexpected error, by the last stage reached
UNEXPECTED_FAILURE_STAGES: dict[FileStage, FileStage] = {
    FileStage.PENDING: FileStage.REJECTED,
    FileStage.VALIDATED: FileStage.RESIZE_FAILED,
    FileStage.RESIZED: FileStage.UPLOAD_FAILED,
    FileStage.UPLOADED: FileStage.LINK_FAILED,
}


# =============================================================================
# Pipeline Inputs
# =============================================================================

class CandidateFile(BaseModel):
    """
    A photo selected for upload, before any validation.

    `size` is the declared size; validation trusts it and never reads `data`.
    """

    model_config = ConfigDict(frozen=True)

    filename: str = Field(default="image")
    content_type: str = Field(default="")
    size: int = Field(..., ge=0)
    data: bytes = Field(default=b"", repr=False)

    @classmethod
    def from_bytes(cls, filename: str, content_type: str, data: bytes) -> "CandidateFile":
        """Build a candidate whose declared size is the payload length."""
        return cls(filename=filename, content_type=content_type, size=len(data), data=data)


class EncodedVariant(BaseModel):
    """One JPEG-encoded variant held in memory."""

    model_config = ConfigDict(frozen=True)

    variant: ImageVariant
    width: int
    height: int
    data: bytes = Field(..., repr=False)
    content_type: str = "image/jpeg"

    @property
    def size(self) -> int:
        return len(self.data)


class ProcessedImageSet(BaseModel):
    """All four encoded variants of one photo plus its source metadata."""

    model_config = ConfigDict(frozen=True)

    variants: tuple[EncodedVariant, ...]
    source_dimensions: ImageDimensions
    source_size: int = Field(..., ge=0)

    def get(self, variant: ImageVariant) -> EncodedVariant:
        for encoded in self.variants:
            if encoded.variant == variant:
                return encoded
        raise KeyError(variant)


# =============================================================================
# Pipeline Results
# =============================================================================

class FileOutcome(BaseModel):
    """Final state of one photo."""

    index: int = Field(..., ge=0, description="Position of the photo in the submitted list")
    filename: str
    stage: FileStage
    position: int = Field(..., ge=0, description="display_order the photo was assigned")
    image: BowlImageRecord | None = None
    reason: FailureReason | None = None
    message: str | None = None
    orphaned_paths: list[str] = Field(default_factory=list)

    @computed_field
    @property
    def succeeded(self) -> bool:
        return self.stage == FileStage.LINKED


class BatchStatus(str, Enum):
    """Overall result of one submission's photos."""
    EMPTY = "empty"
    SUCCESS = "success"
    PARTIAL = "partial"
    FAILED = "failed"


class BatchNotification(BaseModel):
    """Title and message shown to the user after a submission."""
    title: str
    message: str
    is_error: bool = False


class BatchResult(BaseModel):
    """
    Outcomes of every photo in one submission, in submission order.

    A failure of one photo never prevents the others from completing, so
    the batch can be partially successful.
    """

    outcomes: list[FileOutcome] = Field(default_factory=list)

    @computed_field
    @property
    def uploaded_count(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.succeeded)

    @computed_field
    @property
    def failed_count(self) -> int:
        return sum(1 for outcome in self.outcomes if not outcome.succeeded)

    @computed_field
    @property
    def status(self) -> BatchStatus:
        if not self.outcomes:
            return BatchStatus.EMPTY
        if self.failed_count == 0:
            return BatchStatus.SUCCESS
        if self.uploaded_count == 0:
            return BatchStatus.FAILED
        return BatchStatus.PARTIAL

    @property
    def images(self) -> list[BowlImageRecord]:
        """Linked image rows in submission order."""
        return [outcome.image for outcome in self.outcomes if outcome.image is not None]

    @computed_field
    @property
    def errors(self) -> list[str]:
        """One diagnostic line per failed photo."""
        return [
            f"Failed to upload image {outcome.index + 1} ({outcome.filename}): {outcome.message}"
            for outcome in self.outcomes
            if not outcome.succeeded
        ]

    def notification(self, subject: str = "Bowl", action: str = "saved") -> BatchNotification:
        """
        Build the user-facing summary.

        Args:
            subject: What the photos belong to (e.g. "Bowl")
            action: Past-tense verb for the bowl operation (e.g. "added", "updated")

        Returns:
            BatchNotification with a title and message
        """
        if self.status == BatchStatus.PARTIAL:
            return BatchNotification(
                title="Partial Success",
                message=(
                    f"{subject} {action}. {self.uploaded_count} image(s) uploaded, "
                    f"{self.failed_count} failed."
                ),
                is_error=True,
            )
        if self.status == BatchStatus.FAILED:
            return BatchNotification(
                title="Upload Issues",
                message=f"{subject} {action}, but {self.failed_count} image(s) failed to upload.",
                is_error=True,
            )
        return BatchNotification(
            title=f"{subject} {action.capitalize()}",
            message=f"Your {subject.lower()} has been successfully {action}.",
        )
