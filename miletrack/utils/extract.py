"""
Region extraction and upload encoding for MileTrack.

This module handles:
- Copying the selected region out of the captured frame (clipped to it)
- Encoding the region as a JPEG data URL for the upload payload
- Decoding such data URLs again on the server side
- Archiving extracted crops as JPEG files
"""

import base64
import binascii
import io
import logging
import os
import re
from pathlib import Path
from typing import Dict

from PIL import Image

from .errors import InvalidImageDataError, SelectionTooSmallError
from .paths import MileTrackPaths
from .selection import SelectionRect

logger = logging.getLogger(__name__)

DEFAULT_JPEG_QUALITY = 0.9
DATA_URL_PREFIX = "data:image/jpeg;base64,"
_DATA_URL_HEADER = re.compile(r"^data:image/\w+;base64,")


def extract_region(frame: Image.Image, rect: SelectionRect) -> Image.Image:
    """
    Copy the pixels of frame inside rect into a new, minimally sized image.

    The rectangle is clipped to the frame; the result is sized to the clipped
    region and nothing outside the frame's pixels is ever read.

    Args:
        frame: Captured frame
        rect: Finalized selection (both sides larger than the minimum size)

    Returns:
        New image of round(w) x round(h) pixels, or the clipped size

    Raises:
        SelectionTooSmallError: rect is below the minimum size or misses the frame
    """
    if not rect.is_submittable:
        raise SelectionTooSmallError(
            f"Selection {rect.w:.0f}x{rect.h:.0f} is too small to extract"
        )

    left, top, right, bottom = rect.to_box()
    clipped = (
        max(left, 0),
        max(top, 0),
        min(right, frame.width),
        min(bottom, frame.height),
    )
    if clipped[2] <= clipped[0] or clipped[3] <= clipped[1]:
        raise SelectionTooSmallError(f"Selection {rect} lies outside the frame")

    if clipped != (left, top, right, bottom):
        logger.debug(f"Selection clipped from {(left, top, right, bottom)} to {clipped}")

    region = frame.crop(clipped)
    logger.info(f"Region extracted: {region.width}x{region.height} at ({clipped[0]}, {clipped[1]})")
    return region


def encode_region(region: Image.Image, quality: float = DEFAULT_JPEG_QUALITY) -> str:
    """
    Encode a region as a base64 JPEG data URL.

    Args:
        region: Extracted region (any mode; alpha is dropped)
        quality: JPEG quality in (0, 1]

    Returns:
        String of the form data:image/jpeg;base64,<payload>
    """
    if not 0 < quality <= 1:
        raise ValueError(f"JPEG quality must be in (0, 1], got {quality}")

    if region.mode != "RGB":
        region = region.convert("RGB")

    buffer = io.BytesIO()
    region.save(buffer, "JPEG", quality=int(round(quality * 100)))
    payload = base64.b64encode(buffer.getvalue()).decode("ascii")
    logger.debug(f"Region encoded: {len(buffer.getvalue())} bytes JPEG")
    return DATA_URL_PREFIX + payload


def build_upload_payload(data_url: str) -> Dict[str, str]:
    """JSON body for the upload endpoint."""
    return {"image": data_url}


def decode_data_url(data_url: str) -> bytes:
    """Strip the data URL header and decode the base64 payload."""
    if not isinstance(data_url, str):
        raise InvalidImageDataError("Image data must be a string")

    payload = _DATA_URL_HEADER.sub("", data_url, count=1)
    try:
        data = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        raise InvalidImageDataError(f"Image data is not valid base64: {e}") from e

    if not data:
        raise InvalidImageDataError("Image data is empty")
    return data


def load_image(data: bytes) -> Image.Image:
    """Open decoded image bytes with Pillow."""
    try:
        image = Image.open(io.BytesIO(data))
        image.load()
    except (OSError, SyntaxError) as e:
        raise InvalidImageDataError(f"Image data could not be read: {e}") from e
    return image


def save_region(region: Image.Image, directory: str = None, quality: float = DEFAULT_JPEG_QUALITY) -> str:
    """
    Archive an extracted region as a timestamped JPEG.

    Args:
        region: Extracted region
        directory: Target directory (defaults to the crops directory)
        quality: JPEG quality in (0, 1]

    Returns:
        Path of the saved file
    """
    filepath = MileTrackPaths.get_crop_path(directory)
    Path(filepath).parent.mkdir(parents=True, exist_ok=True)

    if region.mode != "RGB":
        region = region.convert("RGB")
    try:
        region.save(filepath, "JPEG", quality=int(round(quality * 100)))
    except (OSError, IOError, PermissionError) as e:
        logger.error(f"Failed to save crop to {filepath}: {e}")
        raise

    logger.info(f"Crop saved: {filepath} ({os.path.getsize(filepath)} bytes)")
    return filepath
