# =============================================================================
# tests/test_validator.py - Validator Stage Tests
# =============================================================================
# The validator decides from declared type and size alone; it never reads
# the bytes.
# =============================================================================

import pytest

from app.exceptions import (
    EmptyImageError,
    ImageTooLargeError,
    ImageValidationError,
    UnsupportedImageTypeError,
)
from core.models.pipeline import CandidateFile, FailureReason
from image_pipeline.validator import ImageValidator, normalize_content_type

MB = 1024 * 1024
ALLOWED = ["image/jpeg", "image/jpg", "image/png", "image/webp", "image/gif"]


@pytest.fixture
def validator() -> ImageValidator:
    return ImageValidator(max_size_mb=10, allowed_types=ALLOWED)


def candidate(content_type: str = "image/jpeg", size: int = 1024, filename: str = "bowl.jpg") -> CandidateFile:
    return CandidateFile(filename=filename, content_type=content_type, size=size)


class TestImageValidator:
    """Tests for ImageValidator.validate()."""

    @pytest.mark.parametrize("content_type", ALLOWED)
    def test_accepts_supported_types(self, validator, content_type):
        accepted = candidate(content_type=content_type)
        assert validator.validate(accepted) is accepted

    def test_rejects_non_image(self, validator):
        with pytest.raises(UnsupportedImageTypeError) as exc_info:
            validator.validate(candidate(content_type="application/pdf", filename="notes.pdf"))

        error = exc_info.value
        assert error.reason == FailureReason.UNSUPPORTED_TYPE
        assert error.message == "File must be an image"
        assert error.filename == "notes.pdf"

    def test_rejects_unsupported_image_format(self, validator):
        with pytest.raises(UnsupportedImageTypeError) as exc_info:
            validator.validate(candidate(content_type="image/tiff"))

        assert exc_info.value.message == "Supported formats: JPEG, PNG, WebP, GIF"

    def test_rejects_missing_content_type(self, validator):
        with pytest.raises(UnsupportedImageTypeError):
            validator.validate(candidate(content_type=""))

    def test_exactly_at_limit_accepted(self, validator):
        validator.validate(candidate(size=10 * MB))

    def test_one_byte_over_limit_rejected(self, validator):
        with pytest.raises(ImageTooLargeError) as exc_info:
            validator.validate(candidate(size=10 * MB + 1))

        assert exc_info.value.reason == FailureReason.FILE_TOO_LARGE
        assert exc_info.value.message == "Image must be smaller than 10MB"

    def test_empty_file_rejected(self, validator):
        with pytest.raises(EmptyImageError) as exc_info:
            validator.validate(candidate(size=0))

        assert exc_info.value.reason == FailureReason.EMPTY_FILE

    def test_non_image_checked_before_size(self, validator):
        with pytest.raises(UnsupportedImageTypeError):
            validator.validate(candidate(content_type="video/mp4", size=50 * MB))

    def test_validation_errors_share_base_class(self, validator):
        with pytest.raises(ImageValidationError) as exc_info:
            validator.validate(candidate(size=11 * MB))

        assert exc_info.value.status_code == 400
        assert exc_info.value.code == "INVALID_IMAGE"

    def test_content_type_parameters_ignored(self, validator):
        validator.validate(candidate(content_type="Image/JPEG; charset=binary"))

    def test_from_settings(self, settings):
        built = ImageValidator.from_settings(settings)

        assert built.max_size_bytes == settings.MAX_IMAGE_SIZE_MB * MB
        assert "image/webp" in built.allowed_types


class TestNormalizeContentType:
    """Tests for MIME type normalization."""

    def test_lowercases_and_strips_parameters(self):
        assert normalize_content_type("IMAGE/PNG; q=1") == "image/png"

    def test_none(self):
        assert normalize_content_type(None) == ""
