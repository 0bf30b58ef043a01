"""Tests for region extraction and upload encoding."""

import base64
import io
import os

import pytest
from PIL import Image

from miletrack.utils.errors import InvalidImageDataError, SelectionTooSmallError
from miletrack.utils.extract import (
    DATA_URL_PREFIX,
    build_upload_payload,
    decode_data_url,
    encode_region,
    extract_region,
    load_image,
    save_region,
)
from miletrack.utils.selection import SelectionRect


@pytest.fixture
def frame():
    """100x100 frame where every pixel encodes its own position."""
    img = Image.new("RGBA", (100, 100))
    pixels = img.load()
    for x in range(100):
        for y in range(100):
            pixels[x, y] = (x, y, (x * 7 + y) % 256, 255)
    return img


def test_extraction_copies_exact_pixels(frame):
    rect = SelectionRect(20, 30, 40, 25)
    region = extract_region(frame, rect)

    assert region.size == (40, 25)
    for i in range(40):
        for j in range(25):
            assert region.getpixel((i, j)) == frame.getpixel((20 + i, 30 + j))


def test_extraction_rounds_fractional_rectangles(frame):
    region = extract_region(frame, SelectionRect(10.4, 10.6, 20.4, 15.5))
    assert region.size == (20, 16)
    assert region.getpixel((0, 0)) == frame.getpixel((10, 11))


def test_extraction_rounds_halves_up(frame):
    rect = SelectionRect(2.5, 4.5, 10.5, 12.5)
    assert rect.is_submittable

    region = extract_region(frame, rect)
    assert region.size == (11, 13)
    assert region.getpixel((0, 0)) == frame.getpixel((3, 5))


def test_extraction_clips_to_frame(frame):
    region = extract_region(frame, SelectionRect(90, 90, 20, 20))

    assert region.size == (10, 10)
    assert region.getpixel((0, 0)) == frame.getpixel((90, 90))
    assert region.getpixel((9, 9)) == frame.getpixel((99, 99))


def test_extraction_clips_negative_origin(frame):
    region = extract_region(frame, SelectionRect(-5, -8, 30, 28))
    assert region.size == (25, 20)
    assert region.getpixel((0, 0)) == frame.getpixel((0, 0))


def test_extraction_does_not_alias_frame(frame):
    region = extract_region(frame, SelectionRect(0, 0, 50, 50))
    region.putpixel((0, 0), (255, 255, 255, 255))
    assert frame.getpixel((0, 0)) == (0, 0, 0, 255)


@pytest.mark.parametrize(
    "rect",
    [
        SelectionRect(0, 0, 10, 50),
        SelectionRect(0, 0, 50, 10),
        SelectionRect(0, 0, 0, 0),
        SelectionRect(200, 200, 30, 30),
    ],
)
def test_unextractable_selections_raise(frame, rect):
    with pytest.raises(SelectionTooSmallError):
        extract_region(frame, rect)


def test_encoded_region_is_jpeg_data_url(frame):
    region = extract_region(frame, SelectionRect(10, 10, 40, 30))
    data_url = encode_region(region)

    assert data_url.startswith(DATA_URL_PREFIX)
    decoded = Image.open(io.BytesIO(base64.b64decode(data_url[len(DATA_URL_PREFIX):])))
    assert decoded.format == "JPEG"
    assert decoded.size == (40, 30)


def test_lower_quality_gives_smaller_payload(frame):
    assert len(encode_region(frame, 0.3)) < len(encode_region(frame, 0.95))


def test_encode_rejects_bad_quality(frame):
    with pytest.raises(ValueError):
        encode_region(frame, 0)


def test_upload_payload_shape():
    assert build_upload_payload("data:image/jpeg;base64,AAAA") == {"image": "data:image/jpeg;base64,AAAA"}


def test_decode_accepts_any_image_header(frame):
    raw = base64.b64decode(encode_region(frame)[len(DATA_URL_PREFIX):])
    png_style = "data:image/png;base64," + base64.b64encode(raw).decode("ascii")

    assert decode_data_url(png_style) == raw
    assert load_image(raw).size == (100, 100)


@pytest.mark.parametrize("value", ["data:image/jpeg;base64,@@@", "data:image/jpeg;base64,", 42])
def test_decode_rejects_invalid_data(value):
    with pytest.raises(InvalidImageDataError):
        decode_data_url(value)


def test_load_image_rejects_garbage():
    with pytest.raises(InvalidImageDataError):
        load_image(b"not an image")


def test_save_region_writes_jpeg(frame, tmp_path):
    path = save_region(frame, directory=str(tmp_path))

    assert os.path.dirname(path) == str(tmp_path)
    assert path.endswith(".jpg")
    with Image.open(path) as saved:
        assert saved.format == "JPEG"
        assert saved.size == (100, 100)
