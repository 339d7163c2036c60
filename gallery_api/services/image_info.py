"""
Best-effort image dimension probing with Pillow.
"""
import io
import logging
import mimetypes
from typing import Optional, Tuple

from PIL import Image, UnidentifiedImageError

logger = logging.getLogger("gallery.image")


def resolve_content_type(filename: Optional[str], content_type: Optional[str]) -> Optional[str]:
    """Client-supplied type, or a guess from the file name."""
    if content_type and content_type != "application/octet-stream":
        return content_type
    if filename:
        guessed, _ = mimetypes.guess_type(filename)
        if guessed:
            return guessed
    return content_type or None


def is_image_type(content_type: Optional[str]) -> bool:
    return bool(content_type) and content_type.lower().startswith("image/")


def read_dimensions(data: bytes) -> Optional[Tuple[int, int]]:
    """
    Read (width, height) from encoded image bytes.

    Only the header is parsed; the image is never fully decoded.
    Returns None when the bytes are not a readable image.
    """
    try:
        with Image.open(io.BytesIO(data)) as image:
            width, height = image.size
    except (UnidentifiedImageError, OSError, ValueError, Image.DecompressionBombError) as e:
        logger.warning(
            "Could not read image dimensions",
            extra={"event": "photo", "error_type": type(e).__name__},
        )
        return None
    return int(width), int(height)
