# =============================================================================
# core/models/bowl.py - Bowl Schemas
# =============================================================================
# These models define the API contract for bowl operations:
# - BowlCreate / BowlUpdate: input for recording and editing a bowl
# - BowlDetail: a bowl with its finishes, ordered images and creator
# - BowlSummary / BowlList: gallery entries with their primary thumbnail
# - BowlSubmissionResponse: result of a create/add-images request,
#   including per-photo outcomes
#
# A bowl owns its finishes and images; deleting it cascades to both.
# =============================================================================

from datetime import date, datetime
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from .image import BowlImageResponse, ImageUrls
from .pipeline import BatchNotification, BatchResult


def normalize_finishes(finishes: list[str] | None) -> list[str]:
    """
    Clean a list of finish names.

    Trims whitespace, drops empty names and removes duplicates while
    keeping first-seen order.

    Example:
        normalize_finishes([" Tung oil", "Danish oil", "Tung oil", ""])
        # -> ["Tung oil", "Danish oil"]
    """
    result: list[str] = []
    for name in finishes or []:
        cleaned = name.strip()
        if cleaned and cleaned not in result:
            result.append(cleaned)
    return result


class BowlCreate(BaseModel):
    """
    Schema for recording a new bowl.

    Example:
        {
            "wood_type": "Maple",
            "wood_source": "Backyard tree",
            "date_made": "2024-03-02",
            "finishes": ["Tung oil", "Danish oil"],
            "comments": "Spalted, first bowl on the new lathe"
        }
    """

    wood_type: str = Field(..., min_length=1, max_length=200)
    wood_source: str = Field(..., min_length=1, max_length=200)
    date_made: date
    comments: str | None = Field(default=None, max_length=5000)
    finishes: list[str] = Field(default_factory=list)

    @field_validator("wood_type", "wood_source", mode="before")
    @classmethod
    def strip_required_text(cls, value):
        return value.strip() if isinstance(value, str) else value

    @field_validator("comments", mode="before")
    @classmethod
    def blank_comments_to_none(cls, value):
        if isinstance(value, str):
            value = value.strip()
            return value or None
        return value

    @field_validator("finishes")
    @classmethod
    def clean_finishes(cls, value: list[str]) -> list[str]:
        return normalize_finishes(value)


class BowlUpdate(BaseModel):
    """
    Schema for editing a bowl.

    Omitted fields are left unchanged. When `finishes` is present the bowl's
    finishes are replaced with exactly that list.
    """

    wood_type: str | None = Field(default=None, min_length=1, max_length=200)
    wood_source: str | None = Field(default=None, min_length=1, max_length=200)
    date_made: date | None = None
    comments: str | None = Field(default=None, max_length=5000)
    finishes: list[str] | None = None

    @field_validator("wood_type", "wood_source", mode="before")
    @classmethod
    def strip_text(cls, value):
        return value.strip() if isinstance(value, str) else value

    @field_validator("finishes")
    @classmethod
    def clean_finishes(cls, value: list[str] | None) -> list[str] | None:
        return None if value is None else normalize_finishes(value)

    def bowl_fields(self) -> dict:
        """Columns of the bowls table that were provided, ready for update()."""
        data = self.model_dump(exclude_unset=True, exclude={"finishes"}, mode="json")
        # Required columns cannot be cleared, only comments can
        data = {k: v for k, v in data.items() if v is not None or k == "comments"}
        if "comments" in data and isinstance(data["comments"], str):
            data["comments"] = data["comments"].strip() or None
        return data


class BowlDetail(BaseModel):
    """A bowl with everything needed to render its page."""

    id: UUID
    user_id: UUID | None = None
    wood_type: str
    wood_source: str
    date_made: date
    comments: str | None = None
    finishes: list[str] = Field(default_factory=list)
    images: list[BowlImageResponse] = Field(default_factory=list)
    created_by: str = "Unknown"
    created_at: datetime | None = None
    updated_at: datetime | None = None


class BowlSummary(BaseModel):
    """Gallery entry for one bowl."""

    id: UUID
    wood_type: str
    wood_source: str
    date_made: date
    comments: str | None = None
    finishes: list[str] = Field(default_factory=list)
    primary_image: ImageUrls | None = None
    image_count: int = 0


class BowlList(BaseModel):
    """Paginated gallery, newest date_made first."""

    bowls: list[BowlSummary]
    total: int
    page: int
    page_size: int
    search: str | None = None


class BowlSubmissionResponse(BaseModel):
    """
    Result of saving a bowl together with its photos.

    The bowl itself is saved even when some or all photos fail; per-photo
    outcomes are in `images`. Non-fatal problems (e.g. finishes that could
    not be stored) are listed in `warnings`.
    """

    bowl: BowlDetail
    images: BatchResult
    notification: BatchNotification
    warnings: list[str] = Field(default_factory=list)


class ImageUploadResponse(BaseModel):
    """Result of adding photos to an existing bowl."""

    bowl_id: UUID
    images: BatchResult
    notification: BatchNotification
