# =============================================================================
# tests/ - Test Suite
# =============================================================================
# This package contains all tests for the Bowl Tracker API:
# - test_models.py: Pydantic model rules (finishes, URLs, batch summaries)
# - test_validator.py / test_resizer.py / test_uploader.py / test_linker.py:
#   the four image pipeline stages
# - test_pipeline.py: per-photo state machine and batches
# - test_bowl_service.py / test_image_service.py: business logic
# - test_auth.py: token verification
# - test_api.py: HTTP endpoints through the FastAPI TestClient
# - test_workers.py: orphaned blob purge
#
# Run tests with: pytest
# =============================================================================
