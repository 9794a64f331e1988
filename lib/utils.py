# =============================================================================
# lib/utils.py - Shared Utilities
# =============================================================================
# Common utilities used across the application.
# =============================================================================

import math
import secrets
import time
from collections.abc import Iterator, Sequence
from typing import TypeVar
from uuid import UUID

T = TypeVar("T")

_BASE36_ALPHABET = "0123456789abcdefghijklmnopqrstuvwxyz"


# =============================================================================
# UUID Utilities
# =============================================================================

def normalize_uuid(value: str | UUID) -> str:
    """
    Normalize a UUID to string format.

    Handles both string and UUID objects, ensuring consistent string output.

    Args:
        value: UUID as string or UUID object

    Returns:
        String representation of the UUID

    Example:
        bowl_id = normalize_uuid(uuid_obj)  # "550e8400-..."
        bowl_id = normalize_uuid("550e8400-...")  # "550e8400-..."
    """
    return str(value) if isinstance(value, UUID) else value


# =============================================================================
# Storage Naming
# =============================================================================

def to_base36(number: int) -> str:
    """Encode a non-negative integer in lowercase base 36."""
    if number < 0:
        raise ValueError("number must be non-negative")
    if number == 0:
        return "0"
    digits = []
    while number:
        number, remainder = divmod(number, 36)
        digits.append(_BASE36_ALPHABET[remainder])
    return "".join(reversed(digits))


def generate_upload_token(now_ms: int | None = None) -> str:
    """
    Build a collision-resistant file stem for one uploaded photo.

    Format: "<epoch-millis>-<random base36>". All variants of a photo share
    the same token so they can be matched up in storage.

    Example:
        generate_upload_token()  # "1718000000000-k3j9x2a"
    """
    timestamp = now_ms if now_ms is not None else int(time.time() * 1000)
    suffix = to_base36(secrets.randbits(40)).rjust(8, "0")
    return f"{timestamp}-{suffix}"


# =============================================================================
# Numbers & Sequences
# =============================================================================

def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for positives."""
    return int(math.floor(value + 0.5))


def chunked(items: Sequence[T], size: int) -> Iterator[list[T]]:
    """
    Split a sequence into lists of at most `size` items.

    Example:
        list(chunked([1, 2, 3, 4, 5], 2))  # [[1, 2], [3, 4], [5]]
    """
    if size < 1:
        raise ValueError("size must be at least 1")
    for start in range(0, len(items), size):
        yield list(items[start:start + size])
