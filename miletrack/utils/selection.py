"""
Crop selection logic for MileTrack.

This module holds the toolkit-independent part of the crop interaction:
- Coordinate mapping from pointer (client) space into frame space
- The drag-driven selection state machine (IDLE -> DRAGGING -> READY)
- The fixed fractional center crop used as an alternative strategy
- The capture session that owns the current frame and its selection

Nothing here imports Qt, so every rule can be exercised directly in tests.
"""

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import NamedTuple, Optional, Tuple

from PIL import Image

logger = logging.getLogger(__name__)

# Both sides of a selection must be strictly larger than this (frame pixels)
MIN_SELECTION_SIZE = 10


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


class DisplayBox(NamedTuple):
    """On-screen bounding box of the displayed frame, in client space."""

    left: float
    top: float
    width: float
    height: float


@dataclass
class SelectionRect:
    """Selection rectangle in frame pixel coordinates."""

    x: float = 0.0
    y: float = 0.0
    w: float = 0.0
    h: float = 0.0

    @property
    def has_area(self) -> bool:
        return self.w > 0 and self.h > 0

    @property
    def is_submittable(self) -> bool:
        """True when both sides exceed the minimum selection size."""
        return self.w > MIN_SELECTION_SIZE and self.h > MIN_SELECTION_SIZE

    def to_box(self) -> Tuple[int, int, int, int]:
        """Integer (left, top, right, bottom) box, sized round(w) x round(h).

        Halves round up (10.5 -> 11).
        """
        left = _round_half_up(self.x)
        top = _round_half_up(self.y)
        return (left, top, left + _round_half_up(self.w), top + _round_half_up(self.h))

    @classmethod
    def from_points(cls, x0: float, y0: float, x1: float, y1: float) -> "SelectionRect":
        """Axis-aligned bounding box of two points."""
        return cls(
            x=min(x0, x1),
            y=min(y0, y1),
            w=abs(x1 - x0),
            h=abs(y1 - y0),
        )


def map_client_to_frame(
    client_x: float,
    client_y: float,
    box: DisplayBox,
    backing_width: int,
    backing_height: int,
) -> Tuple[float, float]:
    """
    Convert a pointer position from client space to frame space.

    Args:
        client_x, client_y: Pointer position in client space
        box: Where the frame is displayed, in client space
        backing_width, backing_height: Frame pixel dimensions

    Returns:
        (frame_x, frame_y), not clamped to the frame
    """
    if box.width <= 0 or box.height <= 0:
        raise ValueError(f"Display box has no area: {box}")

    frame_x = (client_x - box.left) * (backing_width / box.width)
    frame_y = (client_y - box.top) * (backing_height / box.height)
    return frame_x, frame_y


def _clamp(value: float, upper: float) -> float:
    return max(0.0, min(float(value), float(upper)))


class SelectionState(Enum):
    """States of the crop selection."""

    IDLE = "idle"
    DRAGGING = "dragging"
    READY = "ready"


class CropSelection:
    """Drag-driven rectangle selection over a static frame.

    Event handlers of whatever toolkit is in use call on_drag_start,
    on_drag_move and on_drag_end with frame-space coordinates. Points are
    clamped to [0, frame_width] x [0, frame_height], so the rectangle never
    leaves the frame.
    """

    def __init__(self, frame_width: int = 0, frame_height: int = 0):
        self.frame_width = frame_width
        self.frame_height = frame_height
        self.state = SelectionState.IDLE
        self.rect = SelectionRect()
        self._start: Tuple[float, float] = (0.0, 0.0)

    @property
    def can_submit(self) -> bool:
        return self.state is SelectionState.READY

    @property
    def is_dragging(self) -> bool:
        return self.state is SelectionState.DRAGGING

    def reset(self, frame_width: Optional[int] = None, frame_height: Optional[int] = None):
        """Zero the rectangle and return to IDLE, optionally with new frame bounds."""
        if frame_width is not None:
            self.frame_width = frame_width
        if frame_height is not None:
            self.frame_height = frame_height
        self.state = SelectionState.IDLE
        self.rect = SelectionRect()
        self._start = (0.0, 0.0)
        logger.debug(f"Selection reset for frame {self.frame_width}x{self.frame_height}")

    def clamp_point(self, x: float, y: float) -> Tuple[float, float]:
        return _clamp(x, self.frame_width), _clamp(y, self.frame_height)

    def on_drag_start(self, x: float, y: float):
        """Begin a new selection at (x, y); submission is disabled until drag end."""
        start_x, start_y = self.clamp_point(x, y)
        self._start = (start_x, start_y)
        self.rect = SelectionRect(start_x, start_y, 0.0, 0.0)
        self.state = SelectionState.DRAGGING
        logger.debug(f"Drag started at ({start_x:.1f}, {start_y:.1f})")

    def on_drag_move(self, x: float, y: float) -> bool:
        """
        Update the rectangle to span the drag start and (x, y).

        Returns:
            True if the rectangle changed and a redraw is needed
        """
        if self.state is not SelectionState.DRAGGING:
            return False

        current_x, current_y = self.clamp_point(x, y)
        start_x, start_y = self._start
        self.rect = SelectionRect.from_points(start_x, start_y, current_x, current_y)
        return True

    def on_drag_end(self, x: Optional[float] = None, y: Optional[float] = None) -> bool:
        """
        Finish the drag, applying (x, y) as a last move when given.

        Returns:
            True if the selection is ready to submit
        """
        if self.state is not SelectionState.DRAGGING:
            return self.can_submit

        if x is not None and y is not None:
            self.on_drag_move(x, y)

        if self.rect.is_submittable:
            self.state = SelectionState.READY
            logger.info(
                f"Selection ready: {self.rect.w:.0f}x{self.rect.h:.0f} "
                f"at ({self.rect.x:.0f}, {self.rect.y:.0f})"
            )
        else:
            self.state = SelectionState.IDLE
            logger.debug(f"Selection too small: {self.rect.w:.0f}x{self.rect.h:.0f}")
        return self.can_submit

    def apply_rect(self, rect: SelectionRect) -> bool:
        """Install a rectangle produced by another strategy, clamped to the frame."""
        left, top = self.clamp_point(rect.x, rect.y)
        right, bottom = self.clamp_point(rect.x + rect.w, rect.y + rect.h)
        self.rect = SelectionRect.from_points(left, top, right, bottom)
        self._start = (left, top)
        self.state = SelectionState.READY if self.rect.is_submittable else SelectionState.IDLE
        return self.can_submit


class CenterCropStrategy:
    """Fixed fractional crop centred in the frame."""

    def __init__(self, width_fraction: float = 0.6, height_fraction: float = 0.3):
        if not (0 < width_fraction <= 1 and 0 < height_fraction <= 1):
            raise ValueError("Center crop fractions must be in (0, 1]")
        self.width_fraction = width_fraction
        self.height_fraction = height_fraction

    def rect_for(self, frame_width: int, frame_height: int) -> SelectionRect:
        w = frame_width * self.width_fraction
        h = frame_height * self.height_fraction
        return SelectionRect(
            x=(frame_width - w) / 2,
            y=(frame_height - h) / 2,
            w=w,
            h=h,
        )


class CaptureSession:
    """Owns the captured frame and the selection made on it.

    capture() installs a new frame and resets the selection; discard()
    drops everything on retake. The UI controller holds exactly one session.
    """

    def __init__(self):
        self.frame: Optional[Image.Image] = None
        self.selection = CropSelection()

    @property
    def has_frame(self) -> bool:
        return self.frame is not None

    @property
    def frame_size(self) -> Tuple[int, int]:
        if self.frame is None:
            return (0, 0)
        return self.frame.size

    def capture(self, frame: Image.Image):
        """Snapshot a new frame, replacing any previous one wholesale."""
        self.frame = frame.convert("RGBA") if frame.mode != "RGBA" else frame.copy()
        width, height = self.frame.size
        self.selection.reset(width, height)
        logger.info(f"Frame captured: {width}x{height}")

    def discard(self):
        """Drop the frame and any in-progress selection."""
        self.frame = None
        self.selection.reset(0, 0)
        logger.debug("Capture session discarded")
