# src/imaging/normalizer.py - v2
"""Downsample and recompress an uploaded image to a bounded byte budget.

The longer edge is capped at MAX_IMAGE_DIMENSION and the image is
re-encoded as JPEG. Quality starts at JPEG_DEFAULT_QUALITY and drops in
proportion to how far the original exceeds TARGET_IMAGE_BYTES, never
below JPEG_MIN_QUALITY.
"""

from __future__ import annotations

import asyncio
import base64
import io
import logging

from PIL import Image, ImageOps, UnidentifiedImageError

from careocr.config.settings import Settings
from careocr.core.errors import ImageDecodeError, ImageValidationError
from careocr.core.models import NormalizedImage
from careocr.imaging.validation import oversize_message

logger = logging.getLogger(__name__)


def choose_quality(original_size: int, settings: Settings) -> float:
    """JPEG quality (0-1) for an original of the given byte size.

    Non-increasing in original_size.
    """
    quality = settings.jpeg_default_quality
    if original_size > settings.target_image_bytes:
        quality = max(
            settings.jpeg_min_quality,
            settings.target_image_bytes / original_size,
        )
        quality = min(quality, settings.jpeg_default_quality)
    return quality


def scaled_dimensions(width: int, height: int, max_dimension: int) -> tuple[int, int]:
    """Scale (width, height) so the longer edge is at most max_dimension."""
    if width <= max_dimension and height <= max_dimension:
        return width, height
    if width >= height:
        return max_dimension, max(1, round(height * max_dimension / width))
    return max(1, round(width * max_dimension / height)), max_dimension


async def normalize_image(
    data: bytes,
    settings: Settings | None = None,
) -> NormalizedImage:
    """Decode, resize and re-encode an image as base64 JPEG.

    Decoding and encoding run in a worker thread so the event loop stays
    responsive.

    Raises:
        ImageValidationError: If the raw upload exceeds the size cap.
        ImageDecodeError: If the bytes are not a readable image.
    """
    settings = settings or Settings()
    if len(data) > settings.max_upload_bytes:
        raise ImageValidationError(oversize_message(settings))
    if not data:
        raise ImageDecodeError("Image file is empty")

    return await asyncio.to_thread(_normalize_sync, data, settings)


def _check_pixel_budget(size: tuple[int, int], settings: Settings) -> None:
    width, height = size
    if width * height > settings.max_image_pixels:
        raise ImageDecodeError(
            f"Image dimensions too large: {width}x{height} exceeds "
            f"{settings.max_image_pixels} pixels"
        )


def _normalize_sync(data: bytes, settings: Settings) -> NormalizedImage:
    try:
        with Image.open(io.BytesIO(data)) as img:
            _check_pixel_budget(img.size, settings)
            img.load()
            image = ImageOps.exif_transpose(img)
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as e:
        raise ImageDecodeError(f"Unable to load image: {e}") from e

    if image.mode != "RGB":
        image = image.convert("RGB")

    original_dims = image.size
    width, height = scaled_dimensions(
        image.width, image.height, settings.max_image_dimension
    )
    if (width, height) != image.size:
        image = image.resize((width, height), Image.Resampling.LANCZOS)

    quality = choose_quality(len(data), settings)
    buffer = io.BytesIO()
    image.save(buffer, format="JPEG", quality=int(round(quality * 100)), optimize=True)
    encoded = buffer.getvalue()

    logger.debug(
        "Normalized image %dx%d -> %dx%d, q=%.2f, %d -> %d bytes",
        original_dims[0], original_dims[1], width, height,
        quality, len(data), len(encoded),
    )

    return NormalizedImage(
        payload=base64.b64encode(encoded).decode("ascii"),
        width=width,
        height=height,
        quality=quality,
        original_size=len(data),
        encoded_size=len(encoded),
    )
