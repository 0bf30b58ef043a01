"""Tests for coordinate mapping, the crop selection state machine and sessions."""

import pytest
from PIL import Image

from miletrack.utils.selection import (
    CaptureSession,
    CenterCropStrategy,
    CropSelection,
    DisplayBox,
    SelectionRect,
    SelectionState,
    map_client_to_frame,
)


def drag(selection, start, end, moves=()):
    selection.on_drag_start(*start)
    for point in moves:
        selection.on_drag_move(*point)
    selection.on_drag_move(*end)
    return selection.on_drag_end()


@pytest.mark.parametrize(
    "start, end",
    [
        ((10, 20), (110, 70)),
        ((110, 70), (10, 20)),
        ((300, 5), (250, 200)),
        ((5, 200), (250, 5)),
        ((42.5, 17.25), (42.5, 17.25)),
    ],
)
def test_rectangle_is_bounding_box_of_drag(start, end):
    selection = CropSelection(640, 480)
    drag(selection, start, end, moves=[(1, 1), (600, 400)])

    (x0, y0), (x1, y1) = start, end
    assert selection.rect.x == min(x0, x1)
    assert selection.rect.y == min(y0, y1)
    assert selection.rect.w == abs(x1 - x0)
    assert selection.rect.h == abs(y1 - y0)


def test_drag_start_zeroes_rectangle_and_disables_submit():
    selection = CropSelection(640, 480)
    assert drag(selection, (10, 10), (100, 100))
    assert selection.can_submit

    selection.on_drag_start(50, 60)
    assert selection.state is SelectionState.DRAGGING
    assert selection.rect == SelectionRect(50, 60, 0, 0)
    assert not selection.can_submit


@pytest.mark.parametrize(
    "end, ready",
    [
        ((10, 50), False),
        ((50, 10), False),
        ((10, 10), False),
        ((11, 11), True),
        ((10.5, 40), True),
        ((200, 200), True),
    ],
)
def test_minimum_size_gate(end, ready):
    selection = CropSelection(640, 480)
    assert drag(selection, (0, 0), end) is ready
    assert selection.can_submit is ready
    assert selection.state is (SelectionState.READY if ready else SelectionState.IDLE)


def test_move_without_drag_is_ignored():
    selection = CropSelection(640, 480)
    assert selection.on_drag_move(100, 100) is False
    assert selection.rect == SelectionRect()


def test_drag_end_applies_final_point():
    selection = CropSelection(640, 480)
    selection.on_drag_start(20, 20)
    assert selection.on_drag_end(80, 90)
    assert selection.rect == SelectionRect(20, 20, 60, 70)


def test_points_outside_frame_are_clamped():
    selection = CropSelection(100, 80)
    selection.on_drag_start(-30, 50)
    selection.on_drag_move(250, -10)
    selection.on_drag_end()

    assert selection.rect == SelectionRect(0, 0, 100, 50)


def test_retake_resets_selection():
    frame = Image.new("RGBA", (320, 240), (10, 20, 30, 255))
    session = CaptureSession()
    session.capture(frame)
    drag(session.selection, (10, 10), (200, 150))
    assert session.selection.rect.has_area

    session.capture(Image.new("RGBA", (160, 120)))
    assert session.selection.state is SelectionState.IDLE
    assert not session.selection.rect.has_area
    assert (session.selection.frame_width, session.selection.frame_height) == (160, 120)

    drag(session.selection, (5, 5), (100, 100))
    session.discard()
    assert not session.has_frame
    assert session.selection.state is SelectionState.IDLE
    assert session.selection.rect == SelectionRect()


def test_session_frame_is_a_private_rgba_copy():
    frame = Image.new("RGB", (50, 40), (1, 2, 3))
    session = CaptureSession()
    session.capture(frame)

    assert session.frame.mode == "RGBA"
    assert session.frame is not frame
    assert session.frame_size == (50, 40)


@pytest.mark.parametrize("k", [0.25, 0.5, 1.0, 2.0, 3.7])
def test_coordinate_mapping_is_scale_invariant(k):
    width, height = 640, 480
    box = DisplayBox(left=15, top=7, width=width * k, height=height * k)

    frame_x, frame_y = map_client_to_frame(15 + 200 * k, 7 + 100 * k, box, width, height)

    assert frame_x == pytest.approx(200)
    assert frame_y == pytest.approx(100)


def test_coordinate_mapping_does_not_clamp():
    box = DisplayBox(0, 0, 320, 240)
    assert map_client_to_frame(-10, 500, box, 640, 480) == (-20, 1000)


def test_coordinate_mapping_rejects_empty_box():
    with pytest.raises(ValueError):
        map_client_to_frame(1, 1, DisplayBox(0, 0, 0, 100), 640, 480)


def test_center_crop_is_centered():
    rect = CenterCropStrategy(0.5, 0.25).rect_for(400, 200)
    assert rect == SelectionRect(100, 75, 200, 50)


def test_center_crop_applies_as_ready_selection():
    selection = CropSelection(640, 480)
    assert selection.apply_rect(CenterCropStrategy().rect_for(640, 480))
    assert selection.state is SelectionState.READY


def test_apply_rect_clamps_and_gates():
    selection = CropSelection(100, 100)
    assert selection.apply_rect(SelectionRect(90, 90, 20, 20)) is False
    assert selection.rect == SelectionRect(90, 90, 10, 10)


@pytest.mark.parametrize("fractions", [(0, 0.5), (0.5, 1.5)])
def test_center_crop_rejects_bad_fractions(fractions):
    with pytest.raises(ValueError):
        CenterCropStrategy(*fractions)
