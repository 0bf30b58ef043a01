"""Tests for the crop canvas compositor."""

from PIL import Image

from miletrack.utils.compositor import compose_frame
from miletrack.utils.selection import SelectionRect
from miletrack.utils.theme import MileTrackColors


def create_test_image(width=120, height=90):
    """Create a test image with a gradient pattern."""
    img = Image.new("RGBA", (width, height))
    pixels = img.load()
    for x in range(width):
        for y in range(height):
            pixels[x, y] = (x * 2 % 256, y * 2 % 256, (x + y) % 256, 255)
    return img


def test_redraw_is_idempotent():
    frame = create_test_image()
    rect = SelectionRect(20, 15, 60, 40)

    first = compose_frame(frame, rect)
    second = compose_frame(frame, rect)

    assert first.tobytes() == second.tobytes()


def test_frame_is_not_modified():
    frame = create_test_image()
    before = frame.tobytes()

    compose_frame(frame, SelectionRect(10, 10, 50, 50))

    assert frame.tobytes() == before


def test_no_selection_shows_plain_frame():
    frame = create_test_image()
    assert compose_frame(frame, SelectionRect()).tobytes() == frame.tobytes()
    assert compose_frame(frame, SelectionRect(10, 10, 30, 0)).tobytes() == frame.tobytes()
    assert compose_frame(frame, None).tobytes() == frame.tobytes()


def test_cutout_restores_original_and_outside_is_dimmed():
    frame = create_test_image()
    composed = compose_frame(frame, SelectionRect(20, 15, 60, 40))

    # Inside the selection, past the border
    assert composed.getpixel((50, 35)) == frame.getpixel((50, 35))

    # Outside the selection
    original = frame.getpixel((100, 80))
    dimmed = composed.getpixel((100, 80))
    assert dimmed[3] == 255
    assert all(d < o or o == 0 for d, o in zip(dimmed[:3], original[:3]))


def test_border_outlines_selection():
    frame = create_test_image()
    composed = compose_frame(frame, SelectionRect(20, 15, 60, 40))

    border = MileTrackColors.SELECTION_BORDER
    assert composed.getpixel((20, 15)) == border
    assert composed.getpixel((79, 54)) == border
    assert composed.getpixel((21, 30)) == border
    assert composed.getpixel((22, 30)) == frame.getpixel((22, 30))


def test_rgb_frames_are_composited_as_rgba():
    frame = create_test_image().convert("RGB")
    composed = compose_frame(frame, SelectionRect(5, 5, 30, 30))
    assert composed.mode == "RGBA"
    assert composed.size == frame.size
