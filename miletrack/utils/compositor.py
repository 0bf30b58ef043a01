"""
Crop canvas compositing for MileTrack.

Renders the captured frame with a dimmed overlay that has a clear window cut
out at the current selection, plus a border around it. Every call starts
from the untouched captured frame, so redraws never accumulate overlays.
"""

import logging
from typing import Optional

from PIL import Image, ImageDraw

from .selection import SelectionRect
from .theme import MileTrackColors

logger = logging.getLogger(__name__)

BORDER_WIDTH = 2  # Selection border width (pixels)


def compose_frame(
    frame: Image.Image,
    rect: Optional[SelectionRect],
    overlay_color: tuple = MileTrackColors.DIM_OVERLAY,
    border_color: tuple = MileTrackColors.SELECTION_BORDER,
    border_width: int = BORDER_WIDTH,
) -> Image.Image:
    """
    Compose the crop canvas image for a frame and selection.

    Args:
        frame: Captured frame (left unmodified)
        rect: Current selection, or None
        overlay_color: RGBA of the dimming layer
        border_color: RGBA of the selection border
        border_width: Border stroke width in pixels

    Returns:
        New RGBA image the size of the frame
    """
    canvas = frame.convert("RGBA") if frame.mode != "RGBA" else frame.copy()

    if rect is None or not rect.has_area:
        return canvas

    left, top, right, bottom = rect.to_box()
    # Clip the drawing box to the canvas
    left, top = max(left, 0), max(top, 0)
    right, bottom = min(right, canvas.width), min(bottom, canvas.height)
    if right <= left or bottom <= top:
        return canvas

    overlay = Image.new("RGBA", canvas.size, overlay_color)
    overlay.paste(MileTrackColors.CUTOUT_CLEAR, (left, top, right, bottom))
    canvas = Image.alpha_composite(canvas, overlay)

    # ImageDraw boxes are inclusive of the bottom-right pixel
    draw = ImageDraw.Draw(canvas)
    draw.rectangle(
        (left, top, right - 1, bottom - 1),
        outline=border_color,
        width=border_width,
    )
    return canvas
