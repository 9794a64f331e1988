# =============================================================================
# lib/imaging.py - Pillow Helpers
# =============================================================================
# Low-level image operations used by the resizer:
# - calculate_dimensions: fit a size inside a bounding box (never upscale)
# - decode_image: open bytes, apply EXIF orientation, load pixels
# - encode_jpeg: resize and re-encode as JPEG
#
# These functions are pure (bytes in, bytes out) and CPU bound. Callers in
# async code run them in a worker thread.
# =============================================================================

import io

from PIL import Image, ImageOps, UnidentifiedImageError

from lib.utils import round_half_up


class ImageDecodeError(Exception):
    """Raised when bytes cannot be decoded or encoded as an image."""


def calculate_dimensions(
    width: int,
    height: int,
    max_width: int,
    max_height: int,
) -> tuple[int, int]:
    """
    Fit width x height inside max_width x max_height, preserving aspect ratio.

    The width constraint is applied first, then the height constraint on the
    result. Images that already fit are returned unchanged, so nothing is
    ever upscaled. Both axes are rounded half-up and clamped to at least 1.

    Args:
        width: Source width in pixels
        height: Source height in pixels
        max_width: Bounding box width
        max_height: Bounding box height

    Returns:
        (width, height) of the fitted image

    Example:
        calculate_dimensions(2000, 3000, 400, 400)  # (267, 400)
        calculate_dimensions(100, 50, 400, 400)     # (100, 50)
    """
    new_width = float(width)
    new_height = float(height)

    if new_width > max_width:
        new_height = new_height * max_width / new_width
        new_width = float(max_width)

    if new_height > max_height:
        new_width = new_width * max_height / new_height
        new_height = float(max_height)

    return max(1, round_half_up(new_width)), max(1, round_half_up(new_height))


def decode_image(data: bytes) -> Image.Image:
    """
    Decode image bytes into a fully loaded Pillow image.

    EXIF orientation is applied so portrait phone photos stay upright.
    Animated formats yield their first frame. Images above Pillow's
    decompression bomb limit are refused rather than decoded.

    Raises:
        ImageDecodeError: If the bytes are not a readable image
    """
    try:
        with Image.open(io.BytesIO(data)) as img:
            img.load()
            return ImageOps.exif_transpose(img)
    except (
        UnidentifiedImageError,
        Image.DecompressionBombError,
        OSError,
        ValueError,
        SyntaxError,
    ) as e:
        raise ImageDecodeError(str(e) or e.__class__.__name__) from e


def to_rgb(img: Image.Image) -> Image.Image:
    """
    Convert an image to RGB for JPEG encoding.

    Transparent pixels are composited onto white.
    """
    if img.mode == "RGB":
        return img
    if img.mode in ("RGBA", "LA", "PA") or (img.mode == "P" and "transparency" in img.info):
        rgba = img.convert("RGBA")
        background = Image.new("RGB", rgba.size, (255, 255, 255))
        background.paste(rgba, mask=rgba.split()[-1])
        return background
    return img.convert("RGB")


def encode_jpeg(
    img: Image.Image,
    size: tuple[int, int],
    quality: int,
) -> bytes:
    """
    Resize an image (Lanczos) and encode it as JPEG.

    Args:
        img: Decoded source image
        size: Target (width, height)
        quality: JPEG quality, 1-95

    Returns:
        JPEG bytes

    Raises:
        ImageDecodeError: If encoding fails
    """
    try:
        rgb = to_rgb(img)
        resized = rgb if rgb.size == size else rgb.resize(size, Image.Resampling.LANCZOS)
        output = io.BytesIO()
        resized.save(output, format="JPEG", quality=quality, optimize=True)
        return output.getvalue()
    except (OSError, ValueError) as e:
        raise ImageDecodeError(f"JPEG encoding failed: {e}") from e
