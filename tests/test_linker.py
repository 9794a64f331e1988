# =============================================================================
# tests/test_linker.py - Linker Stage Tests
# =============================================================================
# The image row records all four variants. When it cannot be written, the
# uploaded blobs are rolled back (if enabled) and whatever is left is
# recorded as orphaned.
# =============================================================================

import pytest

from app.exceptions import ImageLinkError
from core.models.image import ImageVariant
from core.models.pipeline import FailureReason
from image_pipeline.linker import ImageLinker, build_image_row
from image_pipeline.resizer import ImageResizer
from image_pipeline.uploader import ImageSetUploader
from tests.conftest import make_candidate

BOWL_ID = "550e8400-e29b-41d4-a716-446655440000"


@pytest.fixture
def processed():
    return ImageResizer().resize(make_candidate(width=1920, height=1080))


@pytest.fixture
def uploaded(storage, processed):
    return ImageSetUploader(storage).upload(processed, BOWL_ID, "bowl.jpg")


class TestBuildImageRow:
    """Tests for the bowl_images payload."""

    def test_row_has_every_variant_and_legacy_pair(self, uploaded, processed):
        row = build_image_row(uploaded, BOWL_ID, processed, position=3)

        for variant in ImageVariant:
            stored = uploaded.get(variant)
            assert row[f"{variant.value}_url"] == stored.url
            assert row[f"{variant.value}_path"] == stored.path
            assert stored.path.startswith(f"bowls/{BOWL_ID}/{variant.value}/")

        assert row["image_url"] == uploaded.medium.url
        assert row["storage_path"] == uploaded.medium.path
        assert row["file_size"] == processed.source_size
        assert row["original_dimensions"] == {"width": 1920, "height": 1080}
        assert row["display_order"] == 3
        assert row["bowl_id"] == BOWL_ID


class TestImageLinker:
    """Tests for ImageLinker.link()."""

    def test_inserts_row(self, supabase, storage, uploaded, processed, fake_supabase):
        record = ImageLinker(supabase, storage).link(uploaded, BOWL_ID, processed, position=0)

        rows = fake_supabase.rows("bowl_images")
        assert len(rows) == 1
        assert str(record.id) == rows[0]["id"]
        assert record.display_order == 0
        assert record.original_dimensions.width == 1920

    def test_failure_with_rollback_removes_all_four(self, supabase, storage, uploaded, processed, fake_supabase):
        fake_supabase.fail("bowl_images", "insert")

        with pytest.raises(ImageLinkError) as exc_info:
            ImageLinker(supabase, storage, rollback=True).link(uploaded, BOWL_ID, processed, 0, "bowl.jpg")

        assert fake_supabase.storage.remove_calls == [uploaded.all_paths()]
        assert fake_supabase.storage.objects == {}
        assert fake_supabase.rows("orphaned_blobs") == []

        error = exc_info.value
        assert error.reason == FailureReason.LINK_FAILED
        assert error.rolled_back is True
        assert error.orphaned_paths == []

    def test_failure_without_rollback_records_orphans(self, supabase, storage, uploaded, processed, fake_supabase):
        fake_supabase.fail("bowl_images", "insert")

        with pytest.raises(ImageLinkError) as exc_info:
            ImageLinker(supabase, storage, rollback=False).link(uploaded, BOWL_ID, processed, 0)

        assert fake_supabase.storage.remove_calls == []
        assert len(fake_supabase.storage.objects) == 4

        ledger = fake_supabase.rows("orphaned_blobs")
        assert sorted(row["path"] for row in ledger) == sorted(uploaded.all_paths())
        assert {row["reason"] for row in ledger} == {"link_failed"}
        assert exc_info.value.rolled_back is False
        assert exc_info.value.orphaned_paths == uploaded.all_paths()

    def test_failed_rollback_records_orphans(self, supabase, storage, uploaded, processed, fake_supabase):
        fake_supabase.fail("bowl_images", "insert")
        fake_supabase.storage.fail_next_removes(1)

        with pytest.raises(ImageLinkError) as exc_info:
            ImageLinker(supabase, storage, rollback=True).link(uploaded, BOWL_ID, processed, 0)

        assert len(fake_supabase.rows("orphaned_blobs")) == 4
        assert exc_info.value.rolled_back is False

    def test_ledger_failure_does_not_mask_link_error(self, supabase, storage, uploaded, processed, fake_supabase):
        fake_supabase.fail("bowl_images", "insert")
        fake_supabase.fail("orphaned_blobs", "insert")

        with pytest.raises(ImageLinkError):
            ImageLinker(supabase, storage, rollback=False).link(uploaded, BOWL_ID, processed, 0)
