"""
image_normalizer.py – Shrink and re-encode bill photos before upload.

Phone photos of a bill are often 4000+ px wide and several MB.  The model
only needs the printed tables and the history chart to stay legible, so the
image is bounded to ``MAX_IMAGE_DIMENSION`` on its longer edge and
re-encoded as JPEG.

If Pillow cannot decode or re-encode the file, the original bytes are sent
unchanged: a larger request is better than a failed upload.
"""
from __future__ import annotations

import io
import logging
from pathlib import Path

from PIL import Image, ImageOps

from src.constants import (
    FALLBACK_MIME_TYPE,
    JPEG_QUALITY,
    MAX_IMAGE_DIMENSION,
    NORMALIZED_MIME_TYPE,
)
from src.io_utils import guess_mime_type, to_data_uri

log = logging.getLogger(__name__)


def scaled_size(width: int, height: int, max_dimension: int = MAX_IMAGE_DIMENSION) -> tuple[int, int]:
    """
    Return the target ``(width, height)`` for an image.

    Sizes within the bound are returned unchanged (no upscaling); otherwise
    both edges are scaled by the same ratio so the longer one equals
    *max_dimension*.
    """
    if width <= max_dimension and height <= max_dimension:
        return width, height
    ratio = min(max_dimension / width, max_dimension / height)
    return max(1, round(width * ratio)), max(1, round(height * ratio))


def _reencode(file_bytes: bytes, max_dimension: int, quality: int) -> bytes:
    with Image.open(io.BytesIO(file_bytes)) as img:
        img = ImageOps.exif_transpose(img)
        if img.mode != "RGB":
            img = img.convert("RGB")

        target = scaled_size(img.width, img.height, max_dimension)
        if target != img.size:
            img = img.resize(target, Image.Resampling.LANCZOS)

        buf = io.BytesIO()
        img.save(buf, format="JPEG", quality=quality)
        return buf.getvalue()


def normalize_image(
    file_bytes: bytes,
    mime_type: str | None = None,
    max_dimension: int = MAX_IMAGE_DIMENSION,
    quality: int = JPEG_QUALITY,
) -> str:
    """
    Convert an uploaded image into a size-bounded JPEG data URI.

    Parameters
    ----------
    file_bytes:
        Raw content of the selected file.
    mime_type:
        MIME type of *file_bytes*; only used for the fallback data URI.
    max_dimension:
        Bound on the longer edge, in pixels.
    quality:
        JPEG quality (1-95).

    Returns
    -------
    str
        ``data:image/jpeg;base64,...`` on success, or the untouched original
        as ``data:<mime_type>;base64,...`` when decoding/encoding fails.
    """
    try:
        encoded = _reencode(file_bytes, max_dimension, quality)
    except Exception as exc:  # noqa: BLE001
        # Pillow raises SyntaxError/EOFError, not only OSError, on broken chunks.
        log.warning("[normalize] could not re-encode image, sending original: %s", exc)
        return to_data_uri(file_bytes, mime_type or FALLBACK_MIME_TYPE)

    log.debug(
        "[normalize] %d bytes → %d bytes (max edge %d px, quality %d)",
        len(file_bytes), len(encoded), max_dimension, quality,
    )
    return to_data_uri(encoded, NORMALIZED_MIME_TYPE)


def normalize_image_file(path: Path, **kwargs) -> str:
    """Read *path* and return :func:`normalize_image` of its content."""
    path = Path(path)
    return normalize_image(path.read_bytes(), mime_type=guess_mime_type(path), **kwargs)
