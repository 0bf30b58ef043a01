"""
Odometer OCR for MileTrack.

Recognition is delegated to Tesseract through pytesseract; this module only
turns the raw text into a mileage value.
"""

import logging
import re
from typing import Optional

import pytesseract
from PIL import Image

logger = logging.getLogger(__name__)

_NUMBER_FRAGMENT = re.compile(r"[\d.]+")
_LEADING_DECIMAL = re.compile(r"\d*\.?\d*")


def recognize_text(image: Image.Image, lang: str = "eng") -> str:
    """Run Tesseract on an image and return the raw text."""
    if image.mode not in ("RGB", "L"):
        image = image.convert("RGB")
    text = pytesseract.image_to_string(image, lang=lang)
    logger.debug(f"Raw OCR text: {text!r}")
    return text


def parse_mileage(text: str) -> Optional[str]:
    """
    Pull a mileage value out of raw OCR text.

    Every run of digits and dots is joined together and the leading
    decimal number of the result is kept, so "12 345.6 km" gives "12345.6".

    Returns:
        The mileage as a string, or None if no digits were recognized
    """
    joined = "".join(_NUMBER_FRAGMENT.findall(text or ""))
    value = _LEADING_DECIMAL.match(joined).group(0)
    if not any(ch.isdigit() for ch in value):
        return None
    return value
