"""
Signature checks for downloaded page images
"""
from __future__ import annotations

from typing import Optional

from .models import ImageFormat

PNG_SIGNATURE = b"\x89PNG"
JPEG_SIGNATURE = b"\xff\xd8"
MIN_IMAGE_BYTES = 4


def detect_image_format(data: bytes) -> Optional[ImageFormat]:
    """
    Classify page bytes by their leading signature

    Only the magic bytes are inspected; the image is not decoded.

    Args:
        data: Raw response body

    Returns:
        ImageFormat.PNG or ImageFormat.JPEG, or None for anything else
    """
    if len(data) < MIN_IMAGE_BYTES:
        return None

    header = bytes(data[:MIN_IMAGE_BYTES])
    if header.startswith(PNG_SIGNATURE):
        return ImageFormat.PNG
    if header.startswith(JPEG_SIGNATURE):
        return ImageFormat.JPEG
    return None


def is_valid_image(data: bytes) -> bool:
    return detect_image_format(data) is not None
