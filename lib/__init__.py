# =============================================================================
# lib/ - Standalone Utility Modules
# =============================================================================
# This package contains reusable utilities:
# - supabase_client.py: Typed Supabase wrapper for database operations
# - imaging.py: Pillow helpers (fit, decode, JPEG encode)
# - utils.py: Shared utilities (UUID normalization, upload tokens, chunking)
#
# These modules are self-contained and can be tested in isolation.
# =============================================================================

from lib.supabase_client import SupabaseClient, SupabaseClientError
from lib.imaging import ImageDecodeError, calculate_dimensions, decode_image, encode_jpeg
from lib.utils import chunked, generate_upload_token, normalize_uuid

__all__ = [
    # Supabase
    "SupabaseClient",
    "SupabaseClientError",
    # Imaging
    "ImageDecodeError",
    "calculate_dimensions",
    "decode_image",
    "encode_jpeg",
    # Utils
    "chunked",
    "generate_upload_token",
    "normalize_uuid",
]
