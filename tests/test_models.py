# =============================================================================
# tests/test_models.py - Pydantic Model Tests
# =============================================================================
# Unit tests for the bowl, image and pipeline models:
# - Finish lists are cleaned (trimmed, de-duplicated, order kept)
# - Image rows resolve URLs with legacy and placeholder fallbacks
# - Batch results summarize partial success correctly
#
# Run with: pytest tests/test_models.py -v
# =============================================================================

import re
from datetime import date
from uuid import uuid4

import pytest
from pydantic import ValidationError

from core.models import (
    VARIANT_SPECS,
    BatchResult,
    BatchStatus,
    BowlCreate,
    BowlImageRecord,
    BowlUpdate,
    FailureReason,
    FileOutcome,
    FileStage,
    ImageReorderRequest,
    ImageVariant,
    normalize_finishes,
)
from lib.utils import chunked, generate_upload_token, round_half_up, to_base36


# =============================================================================
# Bowl Models
# =============================================================================

class TestNormalizeFinishes:
    """Tests for finish list cleaning."""

    def test_trims_and_deduplicates_keeping_order(self):
        result = normalize_finishes(["Tung oil", " Danish oil ", "Tung oil", ""])
        assert result == ["Tung oil", "Danish oil"]

    def test_none_is_empty(self):
        assert normalize_finishes(None) == []

    def test_whitespace_only_names_dropped(self):
        assert normalize_finishes(["   ", "\t"]) == []


class TestBowlCreate:
    """Tests for BowlCreate model."""

    def test_valid_bowl(self):
        bowl = BowlCreate(
            wood_type=" Maple ",
            wood_source="Backyard tree",
            date_made="2024-05-01",
            finishes=["Tung oil", "Danish oil", "Tung oil"],
        )

        assert bowl.wood_type == "Maple"
        assert bowl.date_made == date(2024, 5, 1)
        assert bowl.finishes == ["Tung oil", "Danish oil"]
        assert bowl.comments is None

    def test_blank_wood_type_rejected(self):
        with pytest.raises(ValidationError):
            BowlCreate(wood_type="   ", wood_source="Shop", date_made="2024-05-01")

    def test_missing_date_rejected(self):
        with pytest.raises(ValidationError):
            BowlCreate(wood_type="Oak", wood_source="Shop")

    def test_blank_comments_become_none(self):
        bowl = BowlCreate(wood_type="Oak", wood_source="Shop", date_made="2024-05-01", comments="  ")
        assert bowl.comments is None


class TestBowlUpdate:
    """Tests for BowlUpdate.bowl_fields()."""

    def test_only_provided_fields(self):
        update = BowlUpdate(wood_type="Cherry")
        assert update.bowl_fields() == {"wood_type": "Cherry"}

    def test_finishes_excluded_from_columns(self):
        update = BowlUpdate(finishes=["Wax"])
        assert update.bowl_fields() == {}
        assert update.finishes == ["Wax"]

    def test_comments_can_be_cleared(self):
        update = BowlUpdate(comments=None)
        assert update.bowl_fields() == {"comments": None}

    def test_required_columns_cannot_be_nulled(self):
        update = BowlUpdate(wood_type=None, date_made="2023-01-02")
        assert update.bowl_fields() == {"date_made": "2023-01-02"}


# =============================================================================
# Image Models
# =============================================================================

class TestVariantSpecs:
    """Tests for the fixed variant table."""

    def test_variants_in_upload_order(self):
        assert [s.variant for s in VARIANT_SPECS] == [
            ImageVariant.THUMBNAIL,
            ImageVariant.MEDIUM,
            ImageVariant.FULL,
            ImageVariant.ORIGINAL,
        ]

    def test_boxes_and_quality(self):
        assert [(s.max_width, s.max_height) for s in VARIANT_SPECS] == [
            (150, 150), (400, 400), (800, 800), (1200, 1200)
        ]
        assert [s.jpeg_quality for s in VARIANT_SPECS] == [80, 85, 90, 95]


class TestBowlImageRecord:
    """Tests for URL resolution on image rows."""

    def _record(self, **fields) -> BowlImageRecord:
        return BowlImageRecord(id=uuid4(), bowl_id=uuid4(), **fields)

    def test_variant_urls_used_when_present(self):
        record = self._record(
            thumbnail_url="t", medium_url="m", full_url="f", original_url="o", image_url="legacy"
        )
        urls = record.urls()
        assert (urls.thumbnail, urls.medium, urls.full, urls.original) == ("t", "m", "f", "o")

    def test_legacy_row_falls_back_to_image_url(self):
        record = self._record(image_url="https://cdn/legacy.jpg", storage_path="bowls/x/legacy.jpg")
        urls = record.urls()
        assert urls.thumbnail == "https://cdn/legacy.jpg"
        assert urls.original == "https://cdn/legacy.jpg"

    def test_placeholder_when_no_url(self):
        urls = self._record().urls()
        assert urls.thumbnail == "/placeholder.svg?height=150&width=150"
        assert urls.full == "/placeholder.svg?height=800&width=800"

    def test_storage_paths_deduplicated(self):
        record = self._record(
            thumbnail_path="a", medium_path="b", full_path="c", original_path="d", storage_path="b"
        )
        assert record.storage_paths() == ["a", "b", "c", "d"]

    def test_storage_paths_legacy_only(self):
        record = self._record(storage_path="bowls/x/old.jpg")
        assert record.storage_paths() == ["bowls/x/old.jpg"]


class TestImageReorderRequest:
    """Tests for ImageReorderRequest model."""

    def test_empty_list_rejected(self):
        with pytest.raises(ValidationError):
            ImageReorderRequest(image_ids=[])

    def test_invalid_uuid_rejected(self):
        with pytest.raises(ValidationError):
            ImageReorderRequest(image_ids=["not-a-uuid"])


# =============================================================================
# Pipeline Results
# =============================================================================

def _linked(index: int) -> FileOutcome:
    return FileOutcome(
        index=index,
        filename=f"photo{index}.jpg",
        stage=FileStage.LINKED,
        position=index,
        image=BowlImageRecord(id=uuid4(), bowl_id=uuid4(), display_order=index),
    )


def _failed(index: int, message: str = "Image must be smaller than 10MB") -> FileOutcome:
    return FileOutcome(
        index=index,
        filename=f"photo{index}.jpg",
        stage=FileStage.REJECTED,
        position=index,
        reason=FailureReason.FILE_TOO_LARGE,
        message=message,
    )


class TestBatchResult:
    """Tests for batch summaries."""

    def test_empty_batch(self):
        result = BatchResult()
        assert result.status == BatchStatus.EMPTY
        assert result.notification("Bowl", "added").title == "Bowl Added"

    def test_all_succeeded(self):
        result = BatchResult(outcomes=[_linked(0), _linked(1)])

        assert result.status == BatchStatus.SUCCESS
        assert result.uploaded_count == 2
        note = result.notification("Bowl", "added")
        assert note.title == "Bowl Added"
        assert note.message == "Your bowl has been successfully added."
        assert note.is_error is False

    def test_partial_success(self):
        result = BatchResult(outcomes=[_linked(0), _failed(1), _linked(2)])

        assert result.status == BatchStatus.PARTIAL
        note = result.notification("Bowl", "added")
        assert note.title == "Partial Success"
        assert note.message == "Bowl added. 2 image(s) uploaded, 1 failed."

    def test_all_failed(self):
        result = BatchResult(outcomes=[_failed(0), _failed(1)])

        assert result.status == BatchStatus.FAILED
        note = result.notification("Bowl", "updated")
        assert note.title == "Upload Issues"
        assert note.message == "Bowl updated, but 2 image(s) failed to upload."

    def test_errors_are_one_based(self):
        result = BatchResult(outcomes=[_linked(0), _failed(1)])
        assert result.errors == [
            "Failed to upload image 2 (photo1.jpg): Image must be smaller than 10MB"
        ]

    def test_images_in_submission_order(self):
        first, second = _linked(0), _linked(1)
        result = BatchResult(outcomes=[first, _failed(2), second])
        assert result.images == [first.image, second.image]

    def test_serializes_computed_fields(self):
        data = BatchResult(outcomes=[_linked(0), _failed(1)]).model_dump(mode="json")
        assert data["status"] == "partial"
        assert data["uploaded_count"] == 1
        assert data["outcomes"][1]["succeeded"] is False


# =============================================================================
# Utilities
# =============================================================================

class TestUtils:
    """Tests for lib.utils helpers."""

    def test_upload_token_format(self):
        token = generate_upload_token(now_ms=1718000000000)
        assert re.fullmatch(r"1718000000000-[0-9a-z]{8}", token)

    def test_upload_tokens_differ(self):
        assert generate_upload_token(now_ms=1) != generate_upload_token(now_ms=1)

    def test_to_base36(self):
        assert to_base36(0) == "0"
        assert to_base36(35) == "z"
        assert to_base36(36) == "10"

    def test_round_half_up(self):
        assert round_half_up(266.5) == 267
        assert round_half_up(84.375) == 84
        assert round_half_up(2.5) == 3

    def test_chunked(self):
        assert list(chunked(list(range(5)), 2)) == [[0, 1], [2, 3], [4]]
        assert list(chunked([], 100)) == []
